"""
Reconnection policy for the client transport.

Backoff grows geometrically from initial_delay, is capped at max_delay, and
is randomized by +/- jitter. Attempts are unbounded unless max_attempts is
set.
"""

import random
from dataclasses import dataclass, field

from ..config.models import ReconnectionConfig


@dataclass(frozen=True)
class ReconnectionPolicy:
    """When and how often the transport retries a lost connection."""

    max_attempts: int | None = None
    initial_delay: float = 1.0
    max_delay: float = 5.0
    multiplier: float = 2.0
    jitter: float = 0.5
    rng: random.Random = field(default_factory=random.Random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1 when set")
        if self.initial_delay < 0 or self.max_delay < self.initial_delay:
            raise ValueError("Delays must satisfy 0 <= initial_delay <= max_delay")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    @classmethod
    def from_config(cls, config: ReconnectionConfig, rng: random.Random | None = None) -> "ReconnectionPolicy":
        return cls(
            max_attempts=config.max_attempts,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            multiplier=config.multiplier,
            jitter=config.jitter,
            rng=rng or random.Random(),
        )

    def exhausted(self, attempt: int) -> bool:
        """Whether the given 1-based consecutive attempt exceeds the cap."""
        return self.max_attempts is not None and attempt > self.max_attempts

    def base_delay(self, attempt: int) -> float:
        """Delay before the given 1-based attempt, without jitter."""
        exponent = max(attempt - 1, 0)
        # Cap the exponent so huge attempt counts cannot overflow
        delay = self.initial_delay * (self.multiplier ** min(exponent, 64))
        return min(delay, self.max_delay)

    def next_delay(self, attempt: int) -> float:
        """Delay before the given 1-based attempt, jittered and capped."""
        delay = self.base_delay(attempt)
        if self.jitter:
            delay += delay * self.jitter * self.rng.uniform(-1.0, 1.0)
        return max(0.0, min(delay, self.max_delay))
