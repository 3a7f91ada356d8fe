"""Injectable time sources.

Components take a ``Clock`` and a ``Sleeper`` so tests can simulate time
without waiting.
"""

import time
from collections.abc import Callable
from datetime import UTC, datetime


Clock = Callable[[], datetime]
Sleeper = Callable[[float], None]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def real_sleep(seconds: float) -> None:
    """Block the current thread for ``seconds``."""
    time.sleep(seconds)
