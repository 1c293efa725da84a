from __future__ import annotations

from dataclasses import dataclass

import redis

from simon.config import Settings, Timings, settings_from_env
from simon.core.clock import Clock, SystemClock
from simon.infra.redis_client import create_redis
from simon.sessions import SessionRegistry
from simon.store import LeaderboardStore, select_store


@dataclass(slots=True)
class Runtime:
    """Process-lifetime collaborators shared by every game session."""

    settings: Settings
    store: LeaderboardStore
    sessions: SessionRegistry
    timings: Timings
    clock: Clock


_RUNTIME: Runtime | None = None


def init_runtime(
    *,
    r: redis.Redis | None = None,
    settings: Settings | None = None,
    timings: Timings | None = None,
    clock: Clock | None = None,
) -> Runtime:
    """Create the shared runtime once and cache it.

    Safe to call multiple times; subsequent calls return the already created instance.
    The store is selected here, once: Redis if reachable, otherwise memory.
    """

    global _RUNTIME
    if _RUNTIME is None:
        settings = settings or settings_from_env()
        client = r if r is not None else create_redis()
        _RUNTIME = Runtime(
            settings=settings,
            store=select_store(
                r=client,
                leaderboard_key=settings.leaderboard_key,
                preferences_key=settings.preferences_key,
            ),
            sessions=SessionRegistry(max_sessions=settings.max_sessions),
            timings=timings or settings.timings,
            clock=clock or SystemClock(),
        )
    return _RUNTIME


def reset_runtime_for_tests() -> None:
    """Drop the cached runtime (and cancel its sessions) so tests can start clean."""

    global _RUNTIME
    if _RUNTIME is not None:
        _RUNTIME.sessions.shutdown()
    _RUNTIME = None


def get_runtime() -> Runtime:
    if _RUNTIME is None:
        raise RuntimeError("Runtime not initialized. Call init_runtime() at startup.")
    return _RUNTIME
