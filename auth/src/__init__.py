"""
Authentication module for Tastebase

Verifies the HS256 bearer tokens issued at login and resolves them to the
identity a realtime connection acts as.
"""

from .config import AuthConfig
from .token_verifier import Identity, JWTVerifier

__all__ = [
    'AuthConfig',
    'Identity',
    'JWTVerifier',
]
