"""
Tests for notifications, subscriptions and identities.
"""

from healthsync.client.identity import UserIdentity
from healthsync.client.notifications import (
    Notification,
    NotificationCenter,
    NotificationLevel,
    NotificationPriority,
    NotificationStyles,
)
from healthsync.client.subscriptions import Subscription, SubscriptionGroup
from healthsync.config.models import NotificationConfig


class TestNotificationCenter:
    def test_recent_is_newest_first_and_bounded(self):
        center = NotificationCenter(NotificationConfig(history_size=2))

        for message in ("one", "two", "three"):
            center.notify(Notification(message))

        assert [n.message for n in center.recent] == ["three", "two"]
        center.clear()
        assert center.recent == []

    def test_listeners_receive_notifications(self):
        center = NotificationCenter()
        received = []

        def broken(notification):
            raise RuntimeError("ui crashed")

        center.subscribe(broken)
        subscription = center.subscribe(received.append)
        center.notify(Notification("hello"))
        subscription.cancel()
        center.notify(Notification("ignored"))

        assert [n.message for n in received] == ["hello"]

    def test_to_dict(self):
        notification = Notification("Saved", NotificationLevel.SUCCESS, duration=None)

        data = notification.to_dict()

        assert data["level"] == "success"
        assert data["priority"] == "normal"
        assert data["duration"] is None
        assert notification.persistent is True


class TestNotificationStyles:
    def test_styles_use_configured_durations(self):
        styles = NotificationStyles(NotificationConfig(default_duration=3.0, emergency_duration=12.0))

        assert styles.success("ok").duration == 3.0
        alert = styles.alert("help")
        assert alert.priority is NotificationPriority.HIGH
        assert alert.level is NotificationLevel.ERROR
        assert alert.duration == 12.0
        persistent = styles.persistent("offline")
        assert persistent.persistent is True
        assert persistent.priority is NotificationPriority.LOW


class TestSubscriptions:
    def test_cancel_is_idempotent(self):
        calls = []
        subscription = Subscription(lambda: calls.append(1), "x")

        subscription.cancel()
        subscription.cancel()

        assert calls == [1]
        assert subscription.active is False

    def test_context_manager_cancels(self):
        calls = []

        with Subscription(lambda: calls.append(1)) as subscription:
            assert subscription.active is True

        assert calls == [1]

    def test_group_cancels_all(self):
        calls = []
        group = SubscriptionGroup()
        group.add(Subscription(lambda: calls.append("a")))
        kept = group.add(Subscription(lambda: calls.append("b")))
        kept.cancel()

        assert len(group) == 1
        group.cancel_all()

        assert calls == ["b", "a"]
        assert len(group) == 0


class TestUserIdentity:
    def test_eligibility(self):
        assert UserIdentity("u1").is_real_time_eligible is True
        assert UserIdentity.demo().is_real_time_eligible is False
        assert UserIdentity.anonymous().is_real_time_eligible is False
        assert UserIdentity("", authenticated=True).is_real_time_eligible is False
