"""Realtime collaboration layer: rooms, fan-out and authenticated sockets."""

from tastebase.realtime.dispatcher import Audience, EventDispatcher, Outbound
from tastebase.realtime.events import InboundEvent, OutboundEvent, room_for_recipe
from tastebase.realtime.lifecycle import ConnectionLifecycleManager
from tastebase.realtime.registry import Connection, ConnectionRegistry
from tastebase.realtime.router import RoomRouter

__all__ = [
    "Audience",
    "Connection",
    "ConnectionLifecycleManager",
    "ConnectionRegistry",
    "EventDispatcher",
    "InboundEvent",
    "Outbound",
    "OutboundEvent",
    "RoomRouter",
    "room_for_recipe",
]
