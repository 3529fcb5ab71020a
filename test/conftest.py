"""
Shared fixtures for the spotflake test suite.
"""

import threading
from typing import Callable, Iterable, Optional

import pytest

from spotflake.services import provider
from spotflake.utils.layout import DEFAULT_EPOCH

# 2024-01-01T00:00:00Z, well inside the default layout's range
START_MS = 1704067200000


class FakeClock:
    """Clock under test control.

    ``now()`` returns the current value; ``script`` queues values that are
    returned one per call before falling back to the current value. When
    ``auto_advance_after`` is set, the clock moves forward by one millisecond
    after that many consecutive reads of the same value, so a spinning node
    always makes progress.
    """

    def __init__(self, start: int = START_MS, auto_advance_after: Optional[int] = 50):
        self._value = start
        self._script: list[int] = []
        self._repeats = 0
        self._lock = threading.Lock()
        self.auto_advance_after = auto_advance_after
        self.reads = 0

    def now(self) -> int:
        with self._lock:
            self.reads += 1
            if self._script:
                self._value = self._script.pop(0)
                self._repeats = 0
                return self._value
            self._repeats += 1
            if self.auto_advance_after is not None and self._repeats > self.auto_advance_after:
                self._value += 1
                self._repeats = 0
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value
            self._repeats = 0

    def advance(self, millis: int = 1) -> None:
        self.set(self._value + millis)

    def script(self, values: Iterable[int]) -> None:
        with self._lock:
            self._script.extend(values)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def frozen_clock() -> FakeClock:
    """A clock that only moves when the test moves it."""
    return FakeClock(auto_advance_after=None)


@pytest.fixture
def make_node(fake_clock) -> Callable:
    from spotflake.utils.snowflake import SnowflakeNode

    def _make(node_id: int = 1, **kwargs):
        kwargs.setdefault("clock", fake_clock)
        kwargs.setdefault("epoch", DEFAULT_EPOCH)
        return SnowflakeNode(node_id, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def _reset_process_node():
    provider.reset_node()
    yield
    provider.reset_node()


@pytest.fixture
def clock_factory() -> Callable[..., FakeClock]:
    return FakeClock
