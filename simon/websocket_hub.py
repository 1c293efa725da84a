from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from dataclasses import asdict

from fastapi import WebSocket

from simon.api.models import ScoreEntry
from simon.core.sequencer import ERROR_FREQUENCY_HZ, frequency_for
from simon.core.stats import StatsSummary


class GameWebSocketHub:
    """In-process WebSocket pub/sub keyed by game_id.

    Contract:
      - assign connection to a game_id via `connect(game_id, websocket)`.
      - broadcast lightweight events with `broadcast(game_id, payload)`.

    Payloads should be JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._by_game: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, game_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_game[game_id].add(websocket)

    async def disconnect(self, game_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_game.get(game_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_game.pop(game_id, None)

    async def broadcast(self, game_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_game.get(game_id, set()))

        if not conns:
            return

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._by_game.get(game_id, set()).discard(ws)


hub = GameWebSocketHub()


class HubDisplay:
    """DisplaySurface that turns engine calls into WebSocket events for one game.

    Clients do the rendering and tone synthesis; the server only owns timing, so
    `present_signal` sleeps for the step duration after broadcasting.
    """

    def __init__(
        self,
        *,
        game_id: str,
        hub: GameWebSocketHub = hub,
        sound_enabled: Callable[[], bool] = lambda: True,
    ) -> None:
        self.game_id = game_id
        self.hub = hub
        # Looked up per event so preference changes reach games already running.
        self.sound_enabled = sound_enabled

    async def _emit(self, type_: str, **fields: object) -> None:
        await self.hub.broadcast(self.game_id, {"type": type_, "game_id": self.game_id, **fields})

    async def present_signal(self, signal: int, duration_ms: float) -> None:
        await self._emit(
            "signal",
            signal=signal,
            duration_ms=round(duration_ms),
            frequency_hz=frequency_for(signal) if self.sound_enabled() else None,
        )
        await asyncio.sleep(max(0.0, duration_ms) / 1000)

    async def set_input_enabled(self, on: bool) -> None:
        await self._emit("input_enabled", enabled=on)

    async def show_message(self, text: str, *, announce: bool = False) -> None:
        await self._emit("message", text=text, announce=announce)

    async def signal_error(self) -> None:
        await self._emit("error", frequency_hz=ERROR_FREQUENCY_HZ if self.sound_enabled() else None)

    async def update_round(self, round_: int) -> None:
        await self._emit("round", round=round_)

    async def update_stats(self, summary: StatsSummary) -> None:
        data = asdict(summary)
        data["reactions_ms"] = list(summary.reactions_ms)
        await self._emit(
            "stats",
            **data,
            accuracy_footnote=summary.accuracy_footnote,
            reaction_footnote=summary.reaction_footnote,
        )

    async def announce_score(self, entry: ScoreEntry) -> None:
        await self._emit("leaderboard_updated", entry=entry.model_dump())
