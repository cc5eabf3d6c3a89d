"""Persistence gateways for recipe comments and likes."""

from tastebase.persistence.gateway import (
    CommentRecord,
    LikeToggleResult,
    PersistenceGateway,
    RecipeSummary,
)
from tastebase.persistence.memory_gateway import InMemoryGateway

__all__ = [
    "CommentRecord",
    "InMemoryGateway",
    "LikeToggleResult",
    "PersistenceGateway",
    "RecipeSummary",
]
