"""Dict-backed persistence gateway for development and tests."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from auth.src.token_verifier import Identity
from tastebase.persistence.gateway import CommentRecord, LikeToggleResult, RecipeSummary

logger = logging.getLogger(__name__)


class InMemoryGateway:
    """Keeps recipes, comments and likes in process memory.

    State is lost on restart; use ``SqlGateway`` when ``DATABASE_URL`` is set.
    """

    def __init__(self) -> None:
        self._recipes: Dict[str, RecipeSummary] = {}
        self._comments: Dict[str, CommentRecord] = {}
        self._likes: Dict[str, Set[str]] = {}

    def add_recipe(
        self,
        recipe_id: str,
        author_id: str,
        is_public: bool = True,
        liked_by: Optional[Set[str]] = None,
    ) -> RecipeSummary:
        """Seed a recipe; the HTTP API owns recipe creation in production."""
        recipe_id = str(recipe_id)
        likers = set(liked_by or ())
        recipe = RecipeSummary(
            recipe_id=recipe_id,
            author_id=str(author_id),
            is_public=is_public,
            likes_count=len(likers),
        )
        self._recipes[recipe_id] = recipe
        self._likes[recipe_id] = likers
        return recipe

    def comments_for(self, recipe_id: str) -> list[CommentRecord]:
        return sorted(
            (c for c in self._comments.values() if c.recipe_id == str(recipe_id)),
            key=lambda c: c.created_at,
        )

    async def get_recipe(self, recipe_id: str) -> Optional[RecipeSummary]:
        recipe = self._recipes.get(str(recipe_id))
        if recipe is None:
            return None
        return RecipeSummary(
            recipe_id=recipe.recipe_id,
            author_id=recipe.author_id,
            is_public=recipe.is_public,
            likes_count=len(self._likes.get(recipe.recipe_id, ())),
        )

    async def create_comment(self, recipe_id: str, author: Identity, text: str) -> CommentRecord:
        recipe_id = str(recipe_id)
        if recipe_id not in self._recipes:
            raise KeyError(f"Recipe {recipe_id} does not exist")
        comment = CommentRecord(
            comment_id=uuid.uuid4().hex,
            recipe_id=recipe_id,
            author_id=author.user_id,
            author_username=author.username,
            text=text,
            created_at=datetime.now(timezone.utc),
        )
        self._comments[comment.comment_id] = comment
        logger.debug("Stored comment %s on recipe %s", comment.comment_id, recipe_id)
        return comment

    async def get_comment(self, comment_id: str) -> Optional[CommentRecord]:
        return self._comments.get(str(comment_id))

    async def delete_comment(self, comment_id: str) -> bool:
        return self._comments.pop(str(comment_id), None) is not None

    async def toggle_like(self, recipe_id: str, user_id: str) -> LikeToggleResult:
        recipe_id = str(recipe_id)
        if recipe_id not in self._recipes:
            raise KeyError(f"Recipe {recipe_id} does not exist")
        likers = self._likes.setdefault(recipe_id, set())
        if user_id in likers:
            likers.discard(user_id)
            liked = False
        else:
            likers.add(user_id)
            liked = True
        return LikeToggleResult(liked=liked, count=len(likers))
