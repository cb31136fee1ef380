"""Shared fixtures for the keyauth test suite."""

from typing import Any, List, Tuple

import pytest

from keyauth.core.rate_limit import RateLimiter
from keyauth.models import ClientEvent
from keyauth.services.event_bus import EventBus
from keyauth.transport.mock import MockTransport


class FakeClock:
    """Manually driven monotonic clock whose sleep advances time."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class EventRecorder:
    """Subscribes to every kind of a bus and records (kind, payload) pairs."""

    def __init__(self, bus: EventBus):
        self.events: List[Tuple[Any, Any]] = []
        for kind in bus.kinds:
            bus.on(kind, lambda payload, kind=kind: self.events.append((kind, payload)))

    def kinds(self) -> List[Any]:
        return [kind for kind, _ in self.events]

    def of(self, kind) -> List[Any]:
        return [payload for recorded, payload in self.events if recorded == kind]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    """Limiter with 2 tokens refilled one per second on the fake clock."""
    return RateLimiter(max_tokens=2, refill_rate=1000, clock=clock, sleep=clock.sleep)


@pytest.fixture
def bus():
    return EventBus(ClientEvent)


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def record_events():
    """Factory attaching an EventRecorder to any bus."""
    return EventRecorder
