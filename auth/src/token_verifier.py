"""JWT verification for Tastebase bearer tokens.

Tokens are HS256-signed and carry ``userId``, ``username`` and ``email``
claims. ``sub`` is accepted in place of ``userId`` so tokens minted by
standard tooling verify as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from auth.src.config import AuthConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated user behind a connection."""

    user_id: str
    username: str
    email: Optional[str] = None

    def to_author(self) -> Dict[str, str]:
        return {"id": self.user_id, "username": self.username}


class JWTVerifier:
    """Verifies bearer tokens and resolves them to an :class:`Identity`."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        token_ttl: Optional[timedelta] = None,
    ) -> None:
        if secret_key is None or algorithm is None or token_ttl is None:
            config = AuthConfig()
            secret_key = secret_key or config.jwt_secret_key
            algorithm = algorithm or config.jwt_algorithm
            token_ttl = token_ttl or timedelta(days=config.access_token_expire_days)
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._token_ttl = token_ttl

    @staticmethod
    def extract_token(raw: Optional[str]) -> Optional[str]:
        """Strip an optional ``Bearer`` prefix and surrounding whitespace."""
        if not raw or not isinstance(raw, str):
            return None
        token = raw.strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        return token or None

    def verify_token(self, token: Optional[str]) -> Optional[Identity]:
        """Verify a JWT and return the identity it names, or None."""
        token = self.extract_token(token)
        if not token:
            logger.debug("Token missing or empty")
            return None

        if token.count(".") != 2:
            logger.warning("Invalid JWT structure: expected 3 segments")
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_aud": False, "require_exp": True},
            )
        except ExpiredSignatureError:
            logger.info("JWT token has expired")
            return None
        except JWTClaimsError as e:
            logger.warning("Invalid JWT claims: %s", e)
            return None
        except JWTError as e:
            logger.warning("JWT decode error: %s", e)
            return None

        return self._identity_from_claims(payload)

    def issue_token(
        self,
        user_id: Any,
        username: str,
        email: Optional[str] = None,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Mint a token with the claim shape the web client receives at login."""
        now = datetime.now(timezone.utc)
        claims = {
            "userId": str(user_id),
            "username": username,
            "email": email,
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else self._token_ttl),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    @staticmethod
    def _identity_from_claims(payload: Dict[str, Any]) -> Optional[Identity]:
        user_id = payload.get("userId") or payload.get("sub")
        if user_id is None or user_id == "":
            logger.warning("JWT missing userId/sub claim")
            return None
        username = payload.get("username") or payload.get("nickname") or str(user_id)
        return Identity(
            user_id=str(user_id),
            username=str(username),
            email=payload.get("email"),
        )
