from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

RECENT_WINDOW = 20
RT_WINDOW = 24
NEUTRAL_ACCURACY = 0.85
RT_MIN_MS = 50
RT_MAX_MS = 2000


@dataclass(frozen=True, slots=True)
class StatsSummary:
    """What the stats card shows: accuracy bar plus reaction-time sparkline."""

    accuracy_percent: int | None
    accuracy_inputs: int
    reaction_avg_ms: int | None
    reaction_min_ms: int | None
    reaction_max_ms: int | None
    reactions_ms: tuple[int, ...]

    @property
    def accuracy_footnote(self) -> str:
        return f"Based on last {self.accuracy_inputs} inputs"

    @property
    def reaction_footnote(self) -> str:
        n = len(self.reactions_ms)
        if n == 0:
            return "Last 0 rounds"
        return f"Last {n} rounds · min {self.reaction_min_ms} · max {self.reaction_max_ms}"


@dataclass(slots=True)
class StatsTracker:
    """Per-run accuracy and reaction-time bookkeeping.

    - the sliding window feeds live pacing;
    - the run totals feed the final leaderboard accuracy;
    - reaction history is one clamped sample per round attempt.
    """

    recent_window: int = RECENT_WINDOW
    rt_window: int = RT_WINDOW
    run_inputs: int = 0
    run_correct: int = 0
    _recent: deque[int] = field(init=False)
    _reactions: deque[int] = field(init=False)

    def __post_init__(self) -> None:
        self._recent = deque(maxlen=self.recent_window)
        self._reactions = deque(maxlen=self.rt_window)

    @property
    def window(self) -> tuple[int, ...]:
        return tuple(self._recent)

    @property
    def reactions(self) -> tuple[int, ...]:
        return tuple(self._reactions)

    def reset(self) -> None:
        self._recent.clear()
        self._reactions.clear()
        self.run_inputs = 0
        self.run_correct = 0

    def record_result(self, correct: bool) -> None:
        self._recent.append(1 if correct else 0)
        self.run_inputs += 1
        if correct:
            self.run_correct += 1

    def recent_accuracy(self) -> float:
        # Neutral baseline so pacing doesn't jump to full speed before any data exists.
        if not self._recent:
            return NEUTRAL_ACCURACY
        return sum(self._recent) / len(self._recent)

    def record_reaction(self, ms: float) -> int:
        clamped = max(RT_MIN_MS, min(RT_MAX_MS, int(ms)))
        self._reactions.append(clamped)
        return clamped

    def final_accuracy(self) -> float:
        if not self.run_inputs:
            return 0.0
        return self.run_correct / self.run_inputs

    def summary(self) -> StatsSummary:
        acc_pct = round(self.recent_accuracy() * 100) if self._recent else None
        rts = tuple(self._reactions)
        if not rts:
            return StatsSummary(
                accuracy_percent=acc_pct,
                accuracy_inputs=len(self._recent),
                reaction_avg_ms=None,
                reaction_min_ms=None,
                reaction_max_ms=None,
                reactions_ms=(),
            )
        return StatsSummary(
            accuracy_percent=acc_pct,
            accuracy_inputs=len(self._recent),
            reaction_avg_ms=round(sum(rts) / len(rts)),
            reaction_min_ms=min(rts),
            reaction_max_ms=max(rts),
            reactions_ms=rts,
        )
