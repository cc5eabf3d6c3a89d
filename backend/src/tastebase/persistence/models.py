"""ORM tables backing the SQL persistence gateway."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.src.base import BaseModel


def _new_id() -> str:
    return uuid.uuid4().hex


class RecipeRow(BaseModel):
    """Recipe columns the realtime layer reads or updates.

    The full recipe document (ingredients, instructions, tags, image) is owned
    by the HTTP API and is not mapped here.
    """

    __tablename__ = "recipes"

    recipe_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    likes_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Cached size of recipe_likes for this recipe",
    )

    comments: Mapped[list["CommentRow"]] = relationship(
        "CommentRow",
        back_populates="recipe",
        cascade="all, delete-orphan",
    )


class CommentRow(BaseModel):
    __tablename__ = "recipe_comments"
    __table_args__ = (
        Index("ix_recipe_comments_recipe_created", "recipe_id", "created_at"),
    )

    comment_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        ForeignKey("recipes.recipe_id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_username: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    recipe: Mapped[RecipeRow] = relationship("RecipeRow", back_populates="comments")


class LikeRow(BaseModel):
    __tablename__ = "recipe_likes"
    __table_args__ = (
        UniqueConstraint("recipe_id", "user_id", name="uq_recipe_likes_recipe_user"),
    )

    like_id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        ForeignKey("recipes.recipe_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
