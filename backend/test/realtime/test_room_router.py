"""Tests for room membership and fan-out."""

import pytest

from auth.src.token_verifier import Identity
from tastebase.realtime.registry import Connection


def _register(registry, sid: str, user_id: str = None) -> Connection:
    connection = Connection(connection_id=sid, identity=Identity(user_id=user_id or sid, username=sid))
    registry.add(connection)
    return connection


# =============================================================================
# Membership
# =============================================================================

class TestMembership:
    def test_join_adds_both_directions(self, registry, router):
        conn = _register(registry, "a")

        assert router.join("a", "recipe-42") is True

        assert router.members("recipe-42") == frozenset({"a"})
        assert conn.joined_rooms == {"recipe-42"}
        assert router.rooms_of("a") == frozenset({"recipe-42"})

    def test_join_is_idempotent(self, registry, router):
        conn = _register(registry, "a")

        router.join("a", "recipe-42")
        assert router.join("a", "recipe-42") is False

        assert router.members("recipe-42") == frozenset({"a"})
        assert conn.joined_rooms == {"recipe-42"}

    def test_join_unknown_connection_is_ignored(self, router):
        assert router.join("ghost", "recipe-42") is False
        assert router.members("recipe-42") == frozenset()
        assert router.room_count() == 0

    def test_leave_when_not_member_is_noop(self, registry, router):
        _register(registry, "a")

        assert router.leave("a", "recipe-42") is False
        assert router.room_count() == 0

    def test_leave_removes_both_directions(self, registry, router):
        conn = _register(registry, "a")
        _register(registry, "b")
        router.join("a", "recipe-42")
        router.join("b", "recipe-42")

        assert router.leave("a", "recipe-42") is True

        assert router.members("recipe-42") == frozenset({"b"})
        assert conn.joined_rooms == set()

    def test_last_leave_discards_room(self, registry, router):
        _register(registry, "a")
        router.join("a", "recipe-42")

        router.leave("a", "recipe-42")

        assert router.room_count() == 0

    def test_leave_all_returns_every_room(self, registry, router):
        conn = _register(registry, "a")
        _register(registry, "b")
        router.join("a", "recipe-1")
        router.join("a", "recipe-2")
        router.join("b", "recipe-2")

        rooms = router.leave_all("a")

        assert rooms == ["recipe-1", "recipe-2"]
        assert conn.joined_rooms == set()
        assert router.members("recipe-2") == frozenset({"b"})
        assert router.room_count() == 1

    def test_leave_all_for_unregistered_connection_sweeps_rooms(self, registry, router):
        _register(registry, "a")
        router.join("a", "recipe-1")
        registry.remove("a")

        assert router.leave_all("a") == ["recipe-1"]
        assert router.room_count() == 0

    def test_membership_stays_consistent(self, registry, router):
        for sid in ("a", "b", "c"):
            _register(registry, sid)
        router.join("a", "recipe-1")
        router.join("b", "recipe-1")
        router.join("c", "recipe-2")
        router.join("a", "recipe-2")
        router.leave("b", "recipe-1")
        router.leave_all("c")

        for conn in registry:
            for room in conn.joined_rooms:
                assert conn.connection_id in router.members(room)
        for room in ("recipe-1", "recipe-2"):
            for sid in router.members(room):
                assert room in registry.get(sid).joined_rooms


# =============================================================================
# Fan-out
# =============================================================================

class TestBroadcast:
    def test_broadcast_reaches_every_member(self, registry, router, delivery):
        for sid in ("a", "b", "c"):
            _register(registry, sid)
        router.join("a", "recipe-42")
        router.join("b", "recipe-42")
        router.join("c", "recipe-7")

        delivered = router.broadcast("recipe-42", "like-updated", {"likesCount": 1})

        assert delivered == 2
        assert delivery.received("a", "like-updated") == [{"likesCount": 1}]
        assert delivery.received("b", "like-updated") == [{"likesCount": 1}]
        assert delivery.received("c") == []

    def test_broadcast_excludes_sender(self, registry, router, delivery):
        _register(registry, "a")
        _register(registry, "b")
        router.join("a", "recipe-42")
        router.join("b", "recipe-42")

        delivered = router.broadcast("recipe-42", "user-typing", {"isTyping": True}, exclude_connection_id="a")

        assert delivered == 1
        assert delivery.received("a") == []
        assert delivery.received("b") == [{"isTyping": True}]

    def test_broadcast_to_empty_room(self, router, delivery):
        assert router.broadcast("recipe-99", "comment-added", {}) == 0
        assert delivery.sent == []

    def test_failing_member_does_not_block_others(self, registry, router, delivery):
        for sid in ("a", "b", "c"):
            _register(registry, sid)
            router.join(sid, "recipe-42")
        delivery.fail_for.add("b")

        delivered = router.broadcast("recipe-42", "comment-deleted", {"commentId": "c1"})

        assert delivered == 2
        assert delivery.received("a") == [{"commentId": "c1"}]
        assert delivery.received("c") == [{"commentId": "c1"}]

    def test_send_to_departed_connection_is_dropped(self, router, delivery):
        assert router.send("gone", "error", {"message": "x"}) is False
        assert delivery.sent == []

    def test_send_to_live_connection(self, registry, router, delivery):
        _register(registry, "a")

        assert router.send("a", "error", {"message": "Recipe not found"}) is True
        assert delivery.received("a", "error") == [{"message": "Recipe not found"}]


@pytest.mark.parametrize("room", ["recipe-1", "recipe-abc"])
def test_rooms_of_after_join(registry, router, room):
    _register(registry, "a")
    router.join("a", room)
    assert room in router.rooms_of("a")
