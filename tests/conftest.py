from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from simon.api.models import ScoreEntry
from simon.config import Timings
from simon.core.engine import GameEngine
from simon.core.sequencer import Sequencer
from simon.core.stats import StatsSummary
from simon.store import MemoryStore


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (e.g. a REDIS_URL pointing at a dev server).

    In CI we don't auto-load `.env` unless explicitly opted-in with
    SIMON_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("SIMON_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


class ScriptedRng:
    """Stands in for random.Random: hands out a fixed list of signals, then zeros."""

    def __init__(self, values: list[int]) -> None:
        self.values = list(values)

    def randrange(self, stop: int) -> int:
        v = self.values.pop(0) if self.values else 0
        assert 0 <= v < stop
        return v


class FakeClock:
    def __init__(self, *, monotonic_ms: float = 10_000.0, timestamp_ms: int = 1_700_000_000_000) -> None:
        self.now = monotonic_ms
        self.wall = timestamp_ms

    def advance(self, ms: float) -> None:
        self.now += ms
        self.wall += int(ms)

    def monotonic_ms(self) -> float:
        return self.now

    def timestamp_ms(self) -> int:
        return self.wall


class RecordingDisplay:
    """DisplaySurface that records every call and never sleeps."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []
        self.on_present: Callable[[int], None] | None = None

    async def present_signal(self, signal: int, duration_ms: float) -> None:
        self.events.append(("signal", signal, duration_ms))
        if self.on_present is not None:
            self.on_present(signal)

    async def set_input_enabled(self, on: bool) -> None:
        self.events.append(("input_enabled", on))

    async def show_message(self, text: str, *, announce: bool = False) -> None:
        self.events.append(("message", text, announce))

    async def signal_error(self) -> None:
        self.events.append(("error",))

    async def update_round(self, round_: int) -> None:
        self.events.append(("round", round_))

    async def update_stats(self, summary: StatsSummary) -> None:
        self.events.append(("stats", summary))

    async def announce_score(self, entry: ScoreEntry) -> None:
        self.events.append(("score", entry))

    def messages(self) -> list[str]:
        return [e[1] for e in self.events if e[0] == "message"]

    def playback(self, *, press_ms: float = 150) -> list[int]:
        # Player echoes use the preset's press duration; everything else is playback.
        return [e[1] for e in self.events if e[0] == "signal" and e[2] != press_ms]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture()
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def make_engine(
    display: RecordingDisplay, clock: FakeClock, store: MemoryStore
) -> Callable[[list[int]], GameEngine]:
    def _make(signals: list[int]) -> GameEngine:
        return GameEngine(
            display=display,
            store=store,
            sequencer=Sequencer(rng=ScriptedRng(signals)),  # type: ignore[arg-type]
            clock=clock,
            timings=Timings.instant(),
        )

    return _make


@pytest.fixture()
def client() -> Generator[Any, None, None]:
    """FastAPI TestClient over a fakeredis-backed runtime with no pauses."""

    import fakeredis
    from fastapi.testclient import TestClient

    from simon.main import app
    from simon.runtime import init_runtime, reset_runtime_for_tests

    reset_runtime_for_tests()
    r = fakeredis.FakeRedis(decode_responses=True)
    init_runtime(r=r, timings=Timings.instant())
    with TestClient(app) as c:
        yield c
    reset_runtime_for_tests()
