from __future__ import annotations

import logging
from typing import Protocol

import redis
from pydantic import TypeAdapter, ValidationError

from simon.api.models import Preferences, ScoreEntry
from simon.core.leaderboard import MAX_STORED_ENTRIES
from simon.infra.redis_client import redis_available

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "simon:leaderboard:v5"
PREFERENCES_KEY = "simon:preferences"

_entries_adapter = TypeAdapter(list[ScoreEntry])


class LeaderboardStore(Protocol):
    """Authoritative list of score entries.

    `save_entries` overwrites: callers always pass the full desired list.
    """

    durable: bool

    def load_entries(self) -> list[ScoreEntry]: ...

    def save_entries(self, entries: list[ScoreEntry]) -> None: ...

    def clear(self) -> None: ...

    def load_preferences(self) -> Preferences: ...

    def save_preferences(self, prefs: Preferences) -> None: ...


class MemoryStore:
    """Process-lifetime store, used when Redis can't be reached."""

    durable = False

    def __init__(self, entries: list[ScoreEntry] | None = None, prefs: Preferences | None = None) -> None:
        self._entries: list[ScoreEntry] = list(entries or [])[:MAX_STORED_ENTRIES]
        self._prefs = prefs or Preferences()

    def load_entries(self) -> list[ScoreEntry]:
        return list(self._entries)

    def save_entries(self, entries: list[ScoreEntry]) -> None:
        self._entries = list(entries[:MAX_STORED_ENTRIES])

    def clear(self) -> None:
        self._entries = []

    def load_preferences(self) -> Preferences:
        return self._prefs.model_copy()

    def save_preferences(self, prefs: Preferences) -> None:
        self._prefs = prefs.model_copy()


class RedisStore:
    durable = True

    def __init__(
        self,
        *,
        r: redis.Redis,
        leaderboard_key: str = LEADERBOARD_KEY,
        preferences_key: str = PREFERENCES_KEY,
    ) -> None:
        self.r = r
        self.leaderboard_key = leaderboard_key
        self.preferences_key = preferences_key

    def load_entries(self) -> list[ScoreEntry]:
        raw = self.r.get(self.leaderboard_key)
        if not raw:
            return []
        try:
            return _entries_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable leaderboard at %s", self.leaderboard_key)
            return []

    def save_entries(self, entries: list[ScoreEntry]) -> None:
        trimmed = list(entries[:MAX_STORED_ENTRIES])
        self.r.set(self.leaderboard_key, _entries_adapter.dump_json(trimmed))

    def clear(self) -> None:
        self.r.delete(self.leaderboard_key)

    def load_preferences(self) -> Preferences:
        raw = self.r.get(self.preferences_key)
        if not raw:
            return Preferences()
        try:
            return Preferences.model_validate_json(raw)
        except ValidationError:
            return Preferences()

    def save_preferences(self, prefs: Preferences) -> None:
        self.r.set(self.preferences_key, prefs.model_dump_json())


class FallbackStore:
    """Durable store that degrades to memory on the first Redis error.

    Once degraded it stays in memory for the rest of the process, seeded with the
    last data read or written successfully, so gameplay never notices.
    """

    def __init__(self, primary: RedisStore) -> None:
        self._primary: RedisStore | None = primary
        self._memory = MemoryStore()

    @property
    def durable(self) -> bool:
        return self._primary is not None

    def _degrade(self, err: Exception) -> None:
        logger.warning("Redis store failed (%s); keeping scores in memory from now on", err)
        self._primary = None

    def load_entries(self) -> list[ScoreEntry]:
        if self._primary is not None:
            try:
                entries = self._primary.load_entries()
            except redis.RedisError as e:
                self._degrade(e)
            else:
                self._memory.save_entries(entries)
                return entries
        return self._memory.load_entries()

    def save_entries(self, entries: list[ScoreEntry]) -> None:
        self._memory.save_entries(entries)
        if self._primary is not None:
            try:
                self._primary.save_entries(entries)
            except redis.RedisError as e:
                self._degrade(e)

    def clear(self) -> None:
        self._memory.clear()
        if self._primary is not None:
            try:
                self._primary.clear()
            except redis.RedisError as e:
                self._degrade(e)

    def load_preferences(self) -> Preferences:
        if self._primary is not None:
            try:
                prefs = self._primary.load_preferences()
            except redis.RedisError as e:
                self._degrade(e)
            else:
                self._memory.save_preferences(prefs)
                return prefs
        return self._memory.load_preferences()

    def save_preferences(self, prefs: Preferences) -> None:
        self._memory.save_preferences(prefs)
        if self._primary is not None:
            try:
                self._primary.save_preferences(prefs)
            except redis.RedisError as e:
                self._degrade(e)


def select_store(
    *,
    r: redis.Redis | None,
    leaderboard_key: str = LEADERBOARD_KEY,
    preferences_key: str = PREFERENCES_KEY,
) -> LeaderboardStore:
    """Pick the store once at startup: Redis if it answers PING, else memory."""

    if r is None or not redis_available(r):
        return MemoryStore()
    return FallbackStore(RedisStore(r=r, leaderboard_key=leaderboard_key, preferences_key=preferences_key))
