"""Persistence gateway contract consumed by the realtime layer.

The realtime layer never owns durable state. It reads recipes, writes
comments and toggles likes through this interface, then broadcasts the
result. Two implementations exist: ``InMemoryGateway`` and ``SqlGateway``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from auth.src.token_verifier import Identity


@dataclass(frozen=True)
class RecipeSummary:
    """The slice of a recipe the realtime layer needs for its checks."""

    recipe_id: str
    author_id: str
    is_public: bool = True
    likes_count: int = 0


@dataclass(frozen=True)
class CommentRecord:
    comment_id: str
    recipe_id: str
    author_id: str
    author_username: str
    text: str
    created_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape of a comment: ``{id, text, author: {id, username}, createdAt}``."""
        return {
            "id": self.comment_id,
            "text": self.text,
            "author": {"id": self.author_id, "username": self.author_username},
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class LikeToggleResult:
    liked: bool
    count: int


@runtime_checkable
class PersistenceGateway(Protocol):
    async def get_recipe(self, recipe_id: str) -> Optional[RecipeSummary]:
        ...

    async def create_comment(self, recipe_id: str, author: Identity, text: str) -> CommentRecord:
        ...

    async def get_comment(self, comment_id: str) -> Optional[CommentRecord]:
        ...

    async def delete_comment(self, comment_id: str) -> bool:
        ...

    async def toggle_like(self, recipe_id: str, user_id: str) -> LikeToggleResult:
        ...
