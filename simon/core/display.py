from __future__ import annotations

from typing import Protocol

from simon.api.models import ScoreEntry
from simon.core.stats import StatsSummary


class DisplaySurface(Protocol):
    """Everything the engine needs from whatever renders the game.

    `present_signal` must not return before `duration_ms` has elapsed; playback
    ordering relies on it.
    """

    async def present_signal(self, signal: int, duration_ms: float) -> None: ...

    async def set_input_enabled(self, on: bool) -> None: ...

    async def show_message(self, text: str, *, announce: bool = False) -> None: ...

    async def signal_error(self) -> None: ...

    async def update_round(self, round_: int) -> None: ...

    async def update_stats(self, summary: StatsSummary) -> None: ...

    async def announce_score(self, entry: ScoreEntry) -> None: ...
