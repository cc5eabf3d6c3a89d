"""SQLAlchemy-backed persistence gateway."""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from auth.src.token_verifier import Identity
from db.src.connection import DatabaseManager, db_manager as default_db_manager
from tastebase.persistence.gateway import CommentRecord, LikeToggleResult, RecipeSummary
from tastebase.persistence.models import CommentRow, LikeRow, RecipeRow

logger = logging.getLogger(__name__)


def _to_comment_record(row: CommentRow) -> CommentRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # SQLite drops tzinfo; values are always written in UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    return CommentRecord(
        comment_id=row.comment_id,
        recipe_id=row.recipe_id,
        author_id=row.author_id,
        author_username=row.author_username,
        text=row.text,
        created_at=created_at,
    )


class SqlGateway:
    """Reads and writes recipe interaction data through the async ORM."""

    def __init__(self, manager: Optional[DatabaseManager] = None) -> None:
        self._db = manager or default_db_manager

    async def create_tables(self) -> None:
        await self._db.create_tables()

    async def add_recipe(
        self,
        recipe_id: str,
        author_id: str,
        is_public: bool = True,
        title: Optional[str] = None,
    ) -> RecipeSummary:
        """Insert a recipe row; the HTTP API owns recipe creation in production."""
        async with self._db.get_async_session() as session:
            session.add(
                RecipeRow(
                    recipe_id=str(recipe_id),
                    author_id=str(author_id),
                    title=title,
                    is_public=is_public,
                    likes_count=0,
                )
            )
        return RecipeSummary(recipe_id=str(recipe_id), author_id=str(author_id), is_public=is_public)

    async def get_recipe(self, recipe_id: str) -> Optional[RecipeSummary]:
        async with self._db.get_async_session() as session:
            row = await session.get(RecipeRow, str(recipe_id))
            if row is None:
                return None
            return RecipeSummary(
                recipe_id=row.recipe_id,
                author_id=row.author_id,
                is_public=row.is_public,
                likes_count=row.likes_count,
            )

    async def create_comment(self, recipe_id: str, author: Identity, text: str) -> CommentRecord:
        try:
            async with self._db.get_async_session() as session:
                row = CommentRow(
                    recipe_id=str(recipe_id),
                    author_id=author.user_id,
                    author_username=author.username,
                    text=text,
                )
                session.add(row)
                await session.flush()
                record = _to_comment_record(row)
        except SQLAlchemyError as exc:
            logger.error("[PERSISTENCE] Failed to create comment on recipe %s: %s", recipe_id, exc)
            raise

        logger.debug("[PERSISTENCE] Created comment %s on recipe %s", record.comment_id, recipe_id)
        return record

    async def get_comment(self, comment_id: str) -> Optional[CommentRecord]:
        async with self._db.get_async_session() as session:
            row = await session.get(CommentRow, str(comment_id))
            return _to_comment_record(row) if row is not None else None

    async def delete_comment(self, comment_id: str) -> bool:
        try:
            async with self._db.get_async_session() as session:
                result = await session.execute(
                    delete(CommentRow).where(CommentRow.comment_id == str(comment_id))
                )
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            logger.error("[PERSISTENCE] Failed to delete comment %s: %s", comment_id, exc)
            raise

    async def toggle_like(self, recipe_id: str, user_id: str) -> LikeToggleResult:
        recipe_id = str(recipe_id)
        try:
            async with self._db.get_async_session() as session:
                recipe = await session.get(RecipeRow, recipe_id, with_for_update=True)
                if recipe is None:
                    raise LookupError(f"Recipe {recipe_id} does not exist")

                existing = (
                    await session.execute(
                        select(LikeRow).where(
                            LikeRow.recipe_id == recipe_id,
                            LikeRow.user_id == user_id,
                        )
                    )
                ).scalar_one_or_none()

                if existing is not None:
                    await session.delete(existing)
                    liked = False
                else:
                    session.add(LikeRow(recipe_id=recipe_id, user_id=user_id))
                    liked = True
                await session.flush()

                count = (
                    await session.execute(
                        select(func.count()).select_from(LikeRow).where(LikeRow.recipe_id == recipe_id)
                    )
                ).scalar_one()
                recipe.likes_count = count
        except SQLAlchemyError as exc:
            logger.error("[PERSISTENCE] Failed to toggle like on recipe %s: %s", recipe_id, exc)
            raise

        return LikeToggleResult(liked=liked, count=count)
