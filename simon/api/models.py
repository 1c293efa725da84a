from __future__ import annotations

from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GameMode(StrEnum):
    idle = "idle"
    playing = "playing"
    gameending = "gameending"
    gameover = "gameover"


class TonePreset(StrEnum):
    short = "short"
    medium = "medium"
    long = "long"


class ScoreEntry(BaseModel):
    """One finished run, as persisted. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    name: str
    round: int = Field(..., ge=0)
    accuracy: float = Field(..., ge=0.0, le=1.0)
    strict: bool = False
    # Wall-clock epoch milliseconds.
    time: int


class LeaderboardRow(BaseModel):
    rank: int
    name: str
    round: int
    accuracy_percent: int
    mode: str
    relative_time: str
    time: int
    is_new: bool = False


class LeaderboardResponse(BaseModel):
    rows: list[LeaderboardRow]
    total_entries: int
    # False when scores only live in process memory (Redis unavailable).
    storage_durable: bool
    empty_message: str | None = None


class Preferences(BaseModel):
    name: str = ""
    volume: int = 30
    tone_preset: TonePreset = TonePreset.medium
    sound_enabled: bool = True
    show_labels: bool = False
    show_stats: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("volume", mode="before")
    @classmethod
    def _clamp_volume(cls, v: object) -> object:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return max(0, min(100, int(v)))
        return v


class StartRequest(BaseModel):
    name: str = Field(..., max_length=64)
    strict: bool = False
    tone_preset: TonePreset = TonePreset.medium


class InputRequest(BaseModel):
    signal: int = Field(..., ge=0, le=3)


class InputResponse(BaseModel):
    accepted: bool


class StatsView(BaseModel):
    accuracy_percent: int | None
    accuracy_footnote: str
    reaction_avg_ms: int | None
    reaction_footnote: str
    reactions_ms: list[int] = Field(default_factory=list)


class GameSnapshot(BaseModel):
    game_id: UUID
    seed: int
    mode: GameMode
    player_name: str
    strict: bool
    tone_preset: TonePreset
    round: int
    sequence_length: int
    input_index: int
    accepting: bool
    showing: bool
    completed_rounds: int
    status: str | None = None
    stats: StatsView


class GameIdResponse(BaseModel):
    game_id: UUID
