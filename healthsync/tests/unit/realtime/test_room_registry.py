"""
Tests for RoomRegistry membership and fan-out.
"""

import random

import pytest

from healthsync.exceptions import UnknownConnectionError
from healthsync.realtime.envelope import build_event
from healthsync.realtime.room_registry import RoomRegistry


def _assert_membership_invariant(registry: RoomRegistry) -> None:
    seen: set[str] = set()
    for user_id, members in registry.rooms.items():
        assert members, f"empty room left behind for {user_id}"
        assert not seen & members, "connection in more than one room"
        seen |= members
        for connection_id in members:
            assert registry.connection_rooms[connection_id] == user_id
    assert seen == set(registry.connection_rooms)


class TestJoin:
    """Test joining rooms."""

    def test_join_places_connection_in_user_room(self, registry, make_handle):
        """Test a registered connection joins its user's room."""
        registry.register_connection(make_handle("c1"))

        registry.join("c1", "u1")

        assert registry.get_room("u1") == {"c1"}
        assert registry.get_user_for_connection("c1") == "u1"
        assert registry.get_connection("c1").user_id == "u1"
        _assert_membership_invariant(registry)

    def test_join_is_idempotent(self, registry, make_handle):
        """Test joining the same room twice leaves one membership."""
        registry.register_connection(make_handle("c1"))

        registry.join("c1", "u1")
        registry.join("c1", "u1")

        assert registry.get_room("u1") == {"c1"}
        _assert_membership_invariant(registry)

    def test_join_other_room_moves_connection(self, registry, make_handle):
        """Test a connection never sits in two rooms."""
        registry.register_connection(make_handle("c1"))
        registry.join("c1", "u1")

        registry.join("c1", "u2")

        assert registry.get_room("u1") == set()
        assert "u1" not in registry.rooms
        assert registry.get_room("u2") == {"c1"}
        _assert_membership_invariant(registry)

    def test_join_unknown_connection_raises(self, registry):
        """Test joining with an unregistered connection id."""
        with pytest.raises(UnknownConnectionError) as exc_info:
            registry.join("ghost", "u1")

        assert exc_info.value.connection_id == "ghost"
        assert registry.rooms == {}

    def test_multiple_devices_share_a_room(self, registry, make_handle):
        """Test several connections for one user."""
        for connection_id in ("phone", "laptop"):
            registry.register_connection(make_handle(connection_id))
            registry.join(connection_id, "u1")

        assert registry.get_room("u1") == {"phone", "laptop"}
        _assert_membership_invariant(registry)


class TestMembershipUnderChurn:
    """Test the membership invariant over long join/leave sequences."""

    def test_random_join_leave_sequence_keeps_invariant(self, registry, make_handle):
        """Test every step of a seeded random sequence leaves each connection in at most one room."""
        connection_ids = [f"c{index}" for index in range(8)]
        user_ids = [f"u{index}" for index in range(4)]
        for connection_id in connection_ids:
            registry.register_connection(make_handle(connection_id))

        for _ in range(300):
            connection_id = random.choice(connection_ids)
            action = random.choice(("join", "join", "leave", "reconnect"))
            if action == "join" and connection_id in registry.connections:
                registry.join(connection_id, random.choice(user_ids))
            elif action == "leave":
                registry.leave(connection_id)
            elif action == "reconnect" and connection_id not in registry.connections:
                registry.register_connection(make_handle(connection_id))

            _assert_membership_invariant(registry)
            assert len(registry.connection_rooms) == sum(len(members) for members in registry.rooms.values())
            assert set(registry.connection_rooms) <= set(registry.connections)
            for joined_id, user_id in registry.connection_rooms.items():
                assert registry.get_connection(joined_id).user_id == user_id


class TestLeave:
    """Test leaving rooms."""

    def test_leave_removes_membership_and_empty_room(self, registry, make_handle):
        registry.register_connection(make_handle("c1"))
        registry.join("c1", "u1")

        registry.leave("c1")

        assert "u1" not in registry.rooms
        assert registry.get_user_for_connection("c1") is None
        assert registry.get_connection("c1") is None
        _assert_membership_invariant(registry)

    def test_leave_keeps_other_members(self, registry, make_handle):
        for connection_id in ("c1", "c2"):
            registry.register_connection(make_handle(connection_id))
            registry.join(connection_id, "u1")

        registry.leave("c1")

        assert registry.get_room("u1") == {"c2"}
        _assert_membership_invariant(registry)

    def test_leave_unknown_connection_is_noop(self, registry):
        """Test leaving twice or leaving something never seen."""
        registry.leave("ghost")
        registry.leave("ghost")

        assert registry.get_stats()["total_connections"] == 0

    def test_leave_anonymous_connection(self, registry, make_handle):
        """Test a connection that never joined is forgotten."""
        registry.register_connection(make_handle("c1"))

        registry.leave("c1")

        assert registry.get_connection("c1") is None


class TestEmitToUser:
    """Test fan-out."""

    def test_emit_reaches_every_connection_of_user(self, registry, make_handle):
        handles = {connection_id: make_handle(connection_id) for connection_id in ("c1", "c2", "c3")}
        for connection_id, handle in handles.items():
            registry.register_connection(handle)
        registry.join("c1", "u1")
        registry.join("c2", "u1")
        registry.join("c3", "u2")
        event = build_event("vitals_updated", {"heart_rate": 72})

        report = registry.emit_to_user("u1", event)

        assert sorted(report.delivered) == ["c1", "c2"]
        assert report.skipped == []
        assert handles["c1"].outbox.get_nowait() is event
        assert handles["c2"].outbox.get_nowait() is event
        assert handles["c3"].outbox.empty()

    def test_emit_to_unknown_user_is_silent(self, registry):
        """Test emitting to a user with no connections."""
        report = registry.emit_to_user("nobody", build_event("mood_updated", {}))

        assert report.delivered == []
        assert report.attempted == 0

    def test_emit_skips_closed_connections(self, registry, make_handle):
        open_handle, closed_handle = make_handle("open"), make_handle("closed")
        for handle in (open_handle, closed_handle):
            registry.register_connection(handle)
            registry.join(handle.connection_id, "u1")
        closed_handle.close()

        report = registry.emit_to_user("u1", build_event("appointment_updated", {}))

        assert report.delivered == ["open"]
        assert report.skipped == ["closed"]

    def test_emit_preserves_order_per_connection(self, registry, make_handle):
        handle = make_handle("c1")
        registry.register_connection(handle)
        registry.join("c1", "u1")

        for index in range(5):
            registry.emit_to_user("u1", build_event("vitals_updated", {"index": index}))

        received = [handle.outbox.get_nowait()["data"]["index"] for _ in range(5)]
        assert received == [0, 1, 2, 3, 4]

    def test_stats_track_connections_and_deliveries(self, registry, make_handle):
        registry.register_connection(make_handle("c1"))
        registry.register_connection(make_handle("c2"))
        registry.join("c1", "u1")
        registry.emit_to_user("u1", build_event("vitals_updated", {}))

        stats = registry.get_stats()

        assert stats["total_rooms"] == 1
        assert stats["total_connections"] == 2
        assert stats["joined_connections"] == 1
        assert stats["anonymous_connections"] == 1
        assert stats["total_emits"] == 1
        assert stats["total_deliveries"] == 1
