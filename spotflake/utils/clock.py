"""
Clock Source Module

Supplies the only time capability the generator needs: the current instant as
integer milliseconds since the Unix epoch (1970-01-01T00:00:00Z).

The primary reading comes from ``time.time_ns()``, the highest resolution wall
clock Python exposes. If that read fails the float based ``time.time()`` is
used instead. When neither clock can be read the process cannot generate IDs
at all, so ``ClockUnavailableError`` is raised rather than retried.

Helpers are included to convert between datetimes and flake milliseconds,
which is how a deployment computes its custom epoch:

    >>> to_millis(datetime(2018, 1, 1, tzinfo=timezone.utc))
    1514764800000
"""

import time
from datetime import datetime, timezone
from typing import Protocol

from spotflake.core.exceptions import ClockUnavailableError
from spotflake.services.logger import setup_logger

logger = setup_logger()

NANOS_PER_MILLI = 1_000_000


class ClockSource(Protocol):
    """Anything that can report the current time in Unix milliseconds."""

    def now(self) -> int: ...


def _primary_millis() -> int:
    return time.time_ns() // NANOS_PER_MILLI


def _fallback_millis() -> int:
    return int(time.time() * 1000)


class SystemClock:
    """Wall clock reading the operating system time."""

    def now(self) -> int:
        """Returns the current Unix time in milliseconds.

        Raises:
            ClockUnavailableError: If both the primary and fallback reads fail.
        """
        try:
            return _primary_millis()
        except OSError as primary_error:
            logger.warning("High resolution clock read failed: %s", primary_error)
            try:
                return _fallback_millis()
            except OSError as fallback_error:
                logger.error("Fallback clock read failed: %s", fallback_error)
                raise ClockUnavailableError(
                    "System clock is unavailable"
                ) from fallback_error

    def __repr__(self) -> str:
        return "SystemClock()"


system_clock = SystemClock()


def to_millis(moment: datetime) -> int:
    """Converts a datetime to milliseconds since the Unix epoch.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    delta = moment - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_millis(millis: int) -> datetime:
    """Returns the UTC datetime for a count of Unix milliseconds."""
    seconds, remainder = divmod(millis, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=remainder * 1000
    )
