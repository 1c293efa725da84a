from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def monotonic_ms(self) -> float: ...

    def timestamp_ms(self) -> int: ...


class SystemClock:
    """Monotonic time for reaction measurements, wall-clock time for score stamps."""

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000

    def timestamp_ms(self) -> int:
        return int(time.time() * 1000)
