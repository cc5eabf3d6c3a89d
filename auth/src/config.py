"""
Authentication configuration module.

Holds the JWT settings shared by the socket layer and any service that needs
to verify Tastebase bearer tokens.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

DEV_SECRET_KEY = "dev-secret-key-change-in-production-please"


class AuthConfig:
    """Authentication configuration singleton"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.environment = os.getenv("ENVIRONMENT", "development")

        # JWT Configuration
        self.jwt_secret_key = self._get_secret_key()
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_days = int(
            os.getenv("JWT_ACCESS_TOKEN_EXPIRE_DAYS", "7")
        )

        self._initialized = True

        logger.info(
            "Auth config loaded (environment=%s, algorithm=%s)",
            self.environment,
            self.jwt_algorithm,
        )

    def _get_secret_key(self) -> str:
        """Get JWT secret key from environment or file"""
        secret = os.getenv("JWT_SECRET_KEY") or os.getenv("JWT_SECRET")
        if secret:
            return secret

        # Docker secrets file
        secret_file = os.getenv("JWT_SECRET_KEY_FILE")
        if secret_file and os.path.exists(secret_file):
            try:
                with open(secret_file, "r") as f:
                    return f.read().strip()
            except OSError as e:
                logger.warning("Could not read JWT secret from file %s: %s", secret_file, e)

        common_paths = [
            Path("/run/secrets/jwt_secret"),
            Path.home() / ".tastebase" / "jwt_secret",
        ]
        for path in common_paths:
            if path.exists():
                try:
                    secret = path.read_text().strip()
                except OSError as e:
                    logger.warning("Could not read JWT secret from %s: %s", path, e)
                    continue
                if secret:
                    logger.info("Loaded JWT secret from %s", path)
                    return secret

        if self.environment != "production":
            logger.warning("Using development JWT secret - CHANGE IN PRODUCTION!")
            return DEV_SECRET_KEY

        raise ValueError(
            "JWT_SECRET_KEY is required in production. "
            "Set JWT_SECRET_KEY environment variable or JWT_SECRET_KEY_FILE path."
        )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next call re-reads the environment."""
        cls._instance = None

