from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from simon.api.models import LeaderboardRow, ScoreEntry

MAX_STORED_ENTRIES = 200
DISPLAYED_ENTRIES = 10


def _rank_key(entry: ScoreEntry) -> tuple[int, float, int]:
    return (-entry.round, -entry.accuracy, -entry.time)


def rank(entries: Sequence[ScoreEntry]) -> list[ScoreEntry]:
    """Order by round desc, then accuracy desc, then most recent first.

    `sorted` is stable, so fully tied entries keep their insertion order.
    """

    return sorted(entries, key=_rank_key)


def insert(entries: Sequence[ScoreEntry], new_entry: ScoreEntry) -> list[ScoreEntry]:
    # Re-ranked from scratch on every insert; this happens at most once per run.
    ranked = rank([*entries, new_entry])
    return ranked[:MAX_STORED_ENTRIES]


def top(entries: Sequence[ScoreEntry], n: int = DISPLAYED_ENTRIES) -> list[ScoreEntry]:
    return list(entries[:n])


def format_relative_time(ts_ms: int, now_ms: int) -> str:
    s = (now_ms - ts_ms) // 1000
    if s < 5:
        return "just now"
    if s < 60:
        return f"{s}s ago"
    m = s // 60
    if m < 60:
        return f"{m}m ago"
    h = m // 60
    if h < 24:
        return f"{h}h ago"
    d = h // 24
    if d < 7:
        return f"{d}d ago"
    dt = datetime.fromtimestamp(ts_ms / 1000, tz=UTC)
    return f"{dt:%b} {dt.day}"


def build_rows(
    entries: Sequence[ScoreEntry],
    *,
    now_ms: int,
    newest_time: int | None = None,
    n: int = DISPLAYED_ENTRIES,
) -> list[LeaderboardRow]:
    rows: list[LeaderboardRow] = []
    for i, e in enumerate(top(entries, n)):
        rows.append(
            LeaderboardRow(
                rank=i + 1,
                name=e.name,
                round=e.round,
                accuracy_percent=round(e.accuracy * 100),
                mode="Strict" if e.strict else "Normal",
                relative_time=format_relative_time(e.time, now_ms),
                time=e.time,
                is_new=newest_time is not None and e.time == newest_time,
            )
        )
    return rows
