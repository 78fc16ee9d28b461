"""Time source for ledger timestamps."""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from src.circulation.entities._base import as_utc, utc_now

_TICK = timedelta(microseconds=1)


class MonotonicClock:
    """Wraps a time source so that successive readings strictly increase.

    If the source stalls or steps backwards the clock advances by one
    microsecond past the previous reading instead.
    """

    def __init__(self, source: Callable[[], datetime] = utc_now) -> None:
        self._source = source
        self._guard = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        with self._guard:
            current = as_utc(self._source())
            if self._last is not None and current <= self._last:
                current = self._last + _TICK
            self._last = current
            return current
