"""
Pydantic schemas for the socket wire contract.

Inbound payloads are validated at the boundary; unknown fields and wrong
types are rejected rather than passed through. Outbound models fix the shape
every client receives.
"""

from typing import Any, Annotated, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, StrictBool, StrictStr, TypeAdapter, ValidationError

from tastebase.realtime.exceptions import PayloadValidationError


def _normalize_id(value: Any) -> str:
    # Older clients send numeric recipe ids
    if isinstance(value, bool):
        raise ValueError("id must be a string")
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError("id must be a string")
    value = value.strip()
    if not value:
        raise ValueError("id must not be empty")
    return value


EntityId = Annotated[str, BeforeValidator(_normalize_id)]

_entity_id_adapter = TypeAdapter(EntityId)


class InboundPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class NewCommentPayload(InboundPayload):
    recipeId: EntityId
    text: StrictStr = ""


class DeleteCommentPayload(InboundPayload):
    recipeId: EntityId
    commentId: EntityId


class ToggleLikePayload(InboundPayload):
    recipeId: EntityId


class UserTypingPayload(InboundPayload):
    recipeId: EntityId
    username: StrictStr
    isTyping: StrictBool


class AuthorPayload(BaseModel):
    id: str
    username: str


class CommentPayload(BaseModel):
    id: str
    text: str
    author: AuthorPayload
    createdAt: str


class CommentAddedPayload(BaseModel):
    comment: CommentPayload
    recipeId: str


class CommentDeletedPayload(BaseModel):
    commentId: str
    recipeId: str


class LikeUpdatedPayload(BaseModel):
    recipeId: str
    likesCount: int
    isLiked: bool
    userId: str


class ErrorPayload(BaseModel):
    message: str


PayloadT = TypeVar("PayloadT", bound=BaseModel)


def parse_payload(model: Type[PayloadT], data: Any, event: str) -> PayloadT:
    """Validate ``data`` against ``model`` or raise PayloadValidationError."""
    if not isinstance(data, dict):
        raise PayloadValidationError(f"Invalid {event} payload")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PayloadValidationError(f"Invalid {event} payload") from exc


def parse_recipe_id(data: Any, event: str) -> str:
    """Validate the bare recipe id carried by join/leave events."""
    try:
        return _entity_id_adapter.validate_python(data)
    except ValidationError as exc:
        raise PayloadValidationError(f"Invalid {event} payload") from exc
