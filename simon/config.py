from __future__ import annotations

import os
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class Timings:
    """Engine pauses, in milliseconds.

    Every suspension point of a run uses one of these. Tests build `Timings.instant()`
    so a whole run completes without real sleeping.
    """

    pre_start_ms: float = 350
    pre_round_ms: float = 450
    inter_step_ms: float = 80
    round_complete_ms: float = 650
    mismatch_retry_ms: float = 300
    strict_failure_ms: float = 320
    end_request_ms: float = 120

    def scaled(self, factor: float) -> "Timings":
        factor = max(0.0, factor)
        return replace(
            self,
            pre_start_ms=self.pre_start_ms * factor,
            pre_round_ms=self.pre_round_ms * factor,
            inter_step_ms=self.inter_step_ms * factor,
            round_complete_ms=self.round_complete_ms * factor,
            mismatch_retry_ms=self.mismatch_retry_ms * factor,
            strict_failure_ms=self.strict_failure_ms * factor,
            end_request_ms=self.end_request_ms * factor,
        )

    @staticmethod
    def instant() -> "Timings":
        return Timings().scaled(0.0)


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    leaderboard_key: str
    preferences_key: str
    time_scale: float
    max_sessions: int = 256

    @property
    def timings(self) -> Timings:
        return Timings().scaled(self.time_scale)


def _float_from_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from e


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def settings_from_env() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        # Versioned key; bump the suffix when the stored entry schema changes.
        leaderboard_key=os.environ.get("SIMON_LEADERBOARD_KEY", "simon:leaderboard:v5"),
        preferences_key=os.environ.get("SIMON_PREFERENCES_KEY", "simon:preferences"),
        time_scale=_float_from_env("SIMON_TIME_SCALE", 1.0),
        max_sessions=_int_from_env("SIMON_MAX_SESSIONS", 256),
    )
