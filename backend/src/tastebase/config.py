"""Runtime configuration for the realtime service."""

import os
import logging
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

DEV_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


def _str_to_bool(value: Optional[str], default: bool = False) -> bool:
    """Interpret common truthy strings."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class RealtimeConfig:
    """Realtime configuration singleton"""

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

        # Socket.IO transport
        self.namespace = os.getenv("SOCKETIO_NAMESPACE", "/")
        self.socketio_path = os.getenv("SOCKETIO_PATH", "socket.io")
        self.ping_interval = int(os.getenv("SOCKETIO_PING_INTERVAL", "25"))
        self.ping_timeout = int(os.getenv("SOCKETIO_PING_TIMEOUT", "30"))
        self.cors_allowed_origins = self._get_cors_origins()

        # Event handling
        self.revalidate_each_event = _str_to_bool(
            os.getenv("REVALIDATE_TOKEN_EACH_EVENT"), default=True
        )
        self.comment_max_length = int(os.getenv("COMMENT_MAX_LENGTH", "500"))

        # Persistence: same selection rule as the web API, database when configured
        backend = os.getenv("STORAGE_BACKEND")
        if not backend:
            backend = "sql" if (os.getenv("DATABASE_URL") or os.getenv("DATABASE_URL_FILE")) else "memory"
        self.storage_backend = backend.strip().lower()

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE") or None

        self._initialized = True

        logger.info(
            "Realtime config loaded (environment=%s, namespace=%s, storage=%s)",
            self.environment,
            self.namespace,
            self.storage_backend,
        )

    def _get_cors_origins(self) -> List[str] | str:
        explicit = os.getenv("CORS_ALLOWED_ORIGINS")
        if explicit:
            if explicit.strip() == "*":
                return "*"
            return [origin.strip() for origin in explicit.split(",") if origin.strip()]
        if self.environment == "production":
            return [os.getenv("FRONTEND_URL", "https://tastebase.vercel.app")]
        frontend_url = os.getenv("FRONTEND_URL")
        return DEV_ORIGINS + ([frontend_url] if frontend_url else [])

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next call re-reads the environment."""
        cls._instance = None
