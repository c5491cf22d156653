"""
Subscription handles returned by every client-side subscribe call.

Listeners are never removed implicitly: whoever subscribes holds the handle
and cancels it, which makes teardown deterministic.
"""

from collections.abc import Callable
from types import TracebackType
from typing import Any


class Subscription:
    """
    A cancellable registration.

    cancel() is idempotent; the handle is also a context manager that
    cancels on exit.
    """

    def __init__(self, cancel: Callable[[], Any], description: str = "") -> None:
        self._cancel: Callable[[], Any] | None = cancel
        self.description = description

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def cancel(self) -> None:
        """Remove the registration; later calls do nothing."""
        cancel, self._cancel = self._cancel, None
        if cancel is not None:
            cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"<Subscription {self.description or 'anonymous'} {state}>"


class SubscriptionGroup:
    """Cancels a set of subscriptions together."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def cancel_all(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()

    def __len__(self) -> int:
        return sum(1 for subscription in self._subscriptions if subscription.active)
