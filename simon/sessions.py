from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from simon.api.models import GameMode, GameSnapshot, StatsView, TonePreset
from simon.config import Timings
from simon.core.clock import Clock
from simon.core.display import DisplaySurface
from simon.core.engine import GameEngine
from simon.core.sequencer import Sequencer
from simon.store import LeaderboardStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GameSession:
    """One live engine plus the background tasks driving it.

    Engine coroutines run as tasks so HTTP handlers return right away; we keep
    references until they finish so they aren't garbage-collected mid-run.
    """

    game_id: UUID
    seed: int
    engine: GameEngine
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("game %s task failed", self.game_id, exc_info=task.exception())

    async def wait_idle(self) -> None:
        """Wait for every scheduled engine task (tests, shutdown)."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    async def start(self, name: str, *, strict: bool, tone_preset: TonePreset) -> bool:
        if not self.engine.begin_run(name, strict=strict, tone_preset=tone_preset):
            await self.engine.show_name_hint()
            return False
        self.spawn(self.engine.run())
        return True

    def press(self, signal: int) -> bool:
        if not self.engine.claim_input(signal):
            return False
        self.spawn(self.engine.process_input(signal))
        return True

    def end(self) -> None:
        self.engine.begin_end()
        self.spawn(self.engine.complete_end())

    async def reset(self) -> None:
        await self.engine.reset()

    def snapshot(self) -> GameSnapshot:
        s = self.engine.state
        summary = self.engine.stats.summary()
        finished = s.mode == GameMode.gameover
        return GameSnapshot(
            game_id=self.game_id,
            seed=self.seed,
            mode=s.mode,
            player_name=s.player_name,
            strict=s.strict,
            tone_preset=s.tone_preset,
            round=s.round,
            sequence_length=len(s.sequence),
            input_index=s.input_index,
            accepting=s.accepting,
            showing=s.showing,
            completed_rounds=s.final_round if finished else s.completed_rounds,
            status=self.engine.status,
            stats=StatsView(
                accuracy_percent=summary.accuracy_percent,
                accuracy_footnote=summary.accuracy_footnote,
                reaction_avg_ms=summary.reaction_avg_ms,
                reaction_footnote=summary.reaction_footnote,
                reactions_ms=list(summary.reactions_ms),
            ),
        )


class SessionRegistry:
    """Live games by id, capped at `max_sessions`.

    When full, the oldest sessions that are idle or over are evicted to make
    room; games still being played are never evicted.
    """

    def __init__(self, *, max_sessions: int = 256) -> None:
        self.max_sessions = max(1, max_sessions)
        self._sessions: dict[UUID, GameSession] = {}
        # Newest score among evicted sessions, so the leaderboard highlight survives eviction.
        self._evicted_newest: int | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        *,
        display_factory: Callable[[str], DisplaySurface],
        store: LeaderboardStore,
        timings: Timings,
        clock: Clock | None = None,
        seed: int | None = None,
    ) -> GameSession:
        game_id = uuid4()
        if seed is None:
            seed = random.SystemRandom().randint(1, 2**31 - 1)
        display: DisplaySurface = display_factory(str(game_id))
        engine = GameEngine(
            display=display,
            store=store,
            sequencer=Sequencer(rng=random.Random(seed)),
            clock=clock,
            timings=timings,
        )
        session = GameSession(game_id=game_id, seed=seed, engine=engine)
        self._evict_for_new()
        self._sessions[game_id] = session
        return session

    def _evict_for_new(self) -> None:
        # dicts keep insertion order, so iteration is oldest first.
        for game_id, session in list(self._sessions.items()):
            if len(self._sessions) < self.max_sessions:
                return
            if session.engine.mode in (GameMode.idle, GameMode.gameover) and not session.busy:
                logger.info("evicting finished game %s", game_id)
                self.remove(game_id)
        if len(self._sessions) >= self.max_sessions:
            logger.warning("session cap %s reached with every game in play", self.max_sessions)

    def get(self, game_id: UUID) -> GameSession | None:
        return self._sessions.get(game_id)

    def remove(self, game_id: UUID) -> bool:
        """Drop a game and cancel whatever it still has scheduled. False if unknown."""

        session = self._sessions.pop(game_id, None)
        if session is None:
            return False
        session.cancel()
        newest = session.engine.newest_entry
        if newest is not None and (self._evicted_newest is None or newest.time > self._evicted_newest):
            self._evicted_newest = newest.time
        return True

    def newest_entry_time(self) -> int | None:
        times = [s.engine.newest_entry.time for s in self._sessions.values() if s.engine.newest_entry is not None]
        if self._evicted_newest is not None:
            times.append(self._evicted_newest)
        return max(times) if times else None

    def shutdown(self) -> None:
        for session in self._sessions.values():
            session.cancel()
        self._sessions.clear()

    async def aclose(self) -> None:
        sessions = list(self._sessions.values())
        self.shutdown()
        for session in sessions:
            await session.wait_idle()
