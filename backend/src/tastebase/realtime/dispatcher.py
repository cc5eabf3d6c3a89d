"""Per-event validation, persistence and fan-out.

Each inbound event name maps to one handler. A handler receives the sending
connection and the raw payload, performs its checks and any persistence call,
and returns the outbound events it wants sent. The dispatcher applies those
through the room router and turns every failure into an ``error`` event for
the sender, so no exception from a handler reaches the transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from tastebase.persistence.gateway import PersistenceGateway
from tastebase.realtime.events import InboundEvent, OutboundEvent, room_for_recipe
from tastebase.realtime.exceptions import (
    AccessDeniedError,
    NotFoundError,
    PayloadValidationError,
    RealtimeError,
)
from tastebase.realtime.registry import Connection
from tastebase.realtime.router import RoomRouter
from tastebase.realtime.schemas import (
    CommentAddedPayload,
    CommentDeletedPayload,
    DeleteCommentPayload,
    ErrorPayload,
    LikeUpdatedPayload,
    NewCommentPayload,
    ToggleLikePayload,
    UserTypingPayload,
    parse_payload,
    parse_recipe_id,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Server error"


class Audience(str, Enum):
    SENDER = "sender"
    ROOM = "room"
    ROOM_EXCEPT_SENDER = "room_except_sender"


@dataclass(frozen=True)
class Outbound:
    """An event a handler wants delivered, and to whom."""

    event: str
    payload: Dict[str, Any]
    audience: Audience
    room: Optional[str] = None

    @classmethod
    def error(cls, message: str) -> "Outbound":
        return cls(OutboundEvent.ERROR.value, ErrorPayload(message=message).model_dump(), Audience.SENDER)


Handler = Callable[[Connection, Any], Awaitable[List[Outbound]]]


class EventDispatcher:
    """Routes inbound socket events to their handlers."""

    def __init__(
        self,
        router: RoomRouter,
        gateway: PersistenceGateway,
        comment_max_length: int = 500,
    ) -> None:
        self._router = router
        self._gateway = gateway
        self._comment_max_length = comment_max_length
        self._handlers: Dict[str, Handler] = {
            InboundEvent.JOIN_RECIPE.value: self._handle_join_recipe,
            InboundEvent.LEAVE_RECIPE.value: self._handle_leave_recipe,
            InboundEvent.NEW_COMMENT.value: self._handle_new_comment,
            InboundEvent.DELETE_COMMENT.value: self._handle_delete_comment,
            InboundEvent.TOGGLE_LIKE.value: self._handle_toggle_like,
            InboundEvent.USER_TYPING.value: self._handle_user_typing,
        }

    @property
    def event_names(self) -> List[str]:
        return list(self._handlers)

    async def dispatch(self, connection: Connection, event: str, data: Any) -> List[Outbound]:
        """Run the handler for ``event`` and deliver what it produced."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.info("[DISPATCH] Unknown event | id=%s event=%s", connection.connection_id, event)
            outbound = [Outbound.error("Unknown event")]
        else:
            try:
                outbound = await handler(connection, data)
            except RealtimeError as exc:
                logger.info(
                    "[DISPATCH] Rejected | id=%s user=%s event=%s reason=%s",
                    connection.connection_id,
                    connection.user_id,
                    event,
                    exc.message,
                )
                outbound = [Outbound.error(exc.message)]
            except Exception:
                logger.exception(
                    "[DISPATCH] Handler failed | id=%s user=%s event=%s",
                    connection.connection_id,
                    connection.user_id,
                    event,
                )
                outbound = [Outbound.error(GENERIC_ERROR_MESSAGE)]

        self._apply(connection, outbound)
        return outbound

    def _apply(self, connection: Connection, outbound: List[Outbound]) -> None:
        for item in outbound:
            if item.audience is Audience.SENDER:
                self._router.send(connection.connection_id, item.event, item.payload)
            elif item.audience is Audience.ROOM:
                self._router.broadcast(item.room, item.event, item.payload)
            else:
                self._router.broadcast(
                    item.room,
                    item.event,
                    item.payload,
                    exclude_connection_id=connection.connection_id,
                )

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_join_recipe(self, connection: Connection, data: Any) -> List[Outbound]:
        recipe_id = parse_recipe_id(data, InboundEvent.JOIN_RECIPE.value)
        self._router.join(connection.connection_id, room_for_recipe(recipe_id))
        return []

    async def _handle_leave_recipe(self, connection: Connection, data: Any) -> List[Outbound]:
        recipe_id = parse_recipe_id(data, InboundEvent.LEAVE_RECIPE.value)
        self._router.leave(connection.connection_id, room_for_recipe(recipe_id))
        return []

    async def _handle_new_comment(self, connection: Connection, data: Any) -> List[Outbound]:
        payload = parse_payload(NewCommentPayload, data, InboundEvent.NEW_COMMENT.value)
        text = payload.text.strip()
        if not text:
            raise PayloadValidationError("Comment text is required")
        if len(text) > self._comment_max_length:
            raise PayloadValidationError(
                f"Comment cannot exceed {self._comment_max_length} characters"
            )

        recipe = await self._gateway.get_recipe(payload.recipeId)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        if not recipe.is_public:
            raise AccessDeniedError("Cannot comment on private recipe")

        comment = await self._gateway.create_comment(payload.recipeId, connection.identity, text)
        logger.info(
            "[DISPATCH] Comment added | recipe=%s comment=%s user=%s",
            payload.recipeId,
            comment.comment_id,
            connection.user_id,
        )

        body = CommentAddedPayload.model_validate(
            {"comment": comment.to_payload(), "recipeId": payload.recipeId}
        )
        return [
            Outbound(
                OutboundEvent.COMMENT_ADDED.value,
                body.model_dump(),
                Audience.ROOM,
                room_for_recipe(payload.recipeId),
            )
        ]

    async def _handle_delete_comment(self, connection: Connection, data: Any) -> List[Outbound]:
        payload = parse_payload(DeleteCommentPayload, data, InboundEvent.DELETE_COMMENT.value)

        recipe = await self._gateway.get_recipe(payload.recipeId)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        comment = await self._gateway.get_comment(payload.commentId)
        if comment is None or comment.recipe_id != recipe.recipe_id:
            raise NotFoundError("Comment not found")

        caller = connection.user_id
        if caller != comment.author_id and caller != recipe.author_id:
            raise AccessDeniedError("Access denied")

        if not await self._gateway.delete_comment(payload.commentId):
            # Someone else deleted it between the read and the write
            raise NotFoundError("Comment not found")
        logger.info(
            "[DISPATCH] Comment deleted | recipe=%s comment=%s user=%s",
            payload.recipeId,
            payload.commentId,
            caller,
        )

        body = CommentDeletedPayload(commentId=payload.commentId, recipeId=payload.recipeId)
        return [
            Outbound(
                OutboundEvent.COMMENT_DELETED.value,
                body.model_dump(),
                Audience.ROOM,
                room_for_recipe(payload.recipeId),
            )
        ]

    async def _handle_toggle_like(self, connection: Connection, data: Any) -> List[Outbound]:
        payload = parse_payload(ToggleLikePayload, data, InboundEvent.TOGGLE_LIKE.value)

        recipe = await self._gateway.get_recipe(payload.recipeId)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        if not recipe.is_public:
            raise AccessDeniedError("Cannot like private recipe")

        result = await self._gateway.toggle_like(payload.recipeId, connection.user_id)
        logger.info(
            "[DISPATCH] Like toggled | recipe=%s user=%s liked=%s count=%d",
            payload.recipeId,
            connection.user_id,
            result.liked,
            result.count,
        )

        body = LikeUpdatedPayload(
            recipeId=payload.recipeId,
            likesCount=result.count,
            isLiked=result.liked,
            userId=connection.user_id,
        )
        return [
            Outbound(
                OutboundEvent.LIKE_UPDATED.value,
                body.model_dump(),
                Audience.ROOM,
                room_for_recipe(payload.recipeId),
            )
        ]

    async def _handle_user_typing(self, connection: Connection, data: Any) -> List[Outbound]:
        try:
            payload = parse_payload(UserTypingPayload, data, InboundEvent.USER_TYPING.value)
        except PayloadValidationError:
            logger.debug("[DISPATCH] Dropping malformed typing event | id=%s", connection.connection_id)
            return []

        return [
            Outbound(
                OutboundEvent.USER_TYPING.value,
                payload.model_dump(),
                Audience.ROOM_EXCEPT_SENDER,
                room_for_recipe(payload.recipeId),
            )
        ]
