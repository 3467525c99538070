from __future__ import annotations

import pytest

from smart_attendance.core.exceptions import UnavailableError
from smart_attendance.database.health import StoreHealth


class FlakyStore:
    def __init__(self):
        self.up = False
        self.probes = 0

    def ping(self):
        self.probes += 1
        if not self.up:
            raise ConnectionError("connection refused")


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_fails_fast_between_retries():
    store, clock = FlakyStore(), Clock()
    health = StoreHealth(store.ping, backend="mysql", retry_seconds=5, clock=clock)

    assert health.check() is False
    assert health.status()["database"] == "Disconnected"
    assert health.status()["error"] == "connection refused"

    store.up = True
    clock.now += 1
    with pytest.raises(UnavailableError):
        health.require_ready()
    assert store.probes == 1

    clock.now += 5
    health.require_ready()
    assert store.probes == 2
    assert health.is_ready
    assert health.status()["ok"] is True
    assert health.status()["ready_since"] is not None


def test_ready_store_is_not_probed_per_request():
    store, clock = FlakyStore(), Clock()
    store.up = True
    health = StoreHealth(store.ping, backend="mongo", clock=clock)
    health.check()

    for _ in range(3):
        health.require_ready()
    assert store.probes == 1


def test_lost_store_waits_for_retry_interval():
    store, clock = FlakyStore(), Clock()
    store.up = True
    health = StoreHealth(store.ping, backend="mysql", retry_seconds=5, clock=clock)
    health.check()

    health.mark_unavailable("server gone away")
    assert not health.is_ready
    assert health.status()["error"] == "server gone away"

    clock.now += 3
    # repeated failures must not push the retry further out
    health.mark_unavailable("still gone")
    clock.now += 2
    health.require_ready()
    assert health.is_ready
    assert store.probes == 2
