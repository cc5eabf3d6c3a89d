"""Socket event names and room naming."""

from enum import Enum


class InboundEvent(str, Enum):
    """Events a client may emit."""
    JOIN_RECIPE = "join-recipe"
    LEAVE_RECIPE = "leave-recipe"
    NEW_COMMENT = "new-comment"
    DELETE_COMMENT = "delete-comment"
    TOGGLE_LIKE = "toggle-like"
    USER_TYPING = "user-typing"


class OutboundEvent(str, Enum):
    """Events the server emits."""
    COMMENT_ADDED = "comment-added"
    COMMENT_DELETED = "comment-deleted"
    LIKE_UPDATED = "like-updated"
    USER_TYPING = "user-typing"
    ERROR = "error"


ROOM_PREFIX = "recipe-"


def room_for_recipe(recipe_id: str) -> str:
    return f"{ROOM_PREFIX}{recipe_id}"
