from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

BASE_DURATION_MS = 720
MIN_DURATION_MS = 200
ROUND_FACTOR_MS = 45
ACCURACY_THRESHOLD = 0.60
ACCURACY_BONUS_MS = 380

TonePresetName = Literal["short", "medium", "long"]
DEFAULT_PRESET: TonePresetName = "medium"


@dataclass(frozen=True, slots=True)
class ToneProfile:
    # press_ms: how long a player's own press stays lit.
    # step_multiplier: scales playback speed per step (lower => faster).
    press_ms: int
    step_multiplier: float


TONE_PRESETS: dict[str, ToneProfile] = {
    "short": ToneProfile(press_ms=120, step_multiplier=0.85),
    "medium": ToneProfile(press_ms=150, step_multiplier=1.00),
    "long": ToneProfile(press_ms=220, step_multiplier=1.15),
}


def resolve_preset(name: str | None) -> ToneProfile:
    return TONE_PRESETS.get(name or DEFAULT_PRESET, TONE_PRESETS[DEFAULT_PRESET])


def step_duration(round_: int, recent_accuracy: float, step_multiplier: float) -> float:
    """Playback duration (ms) of one step of the sequence.

    Faster at higher rounds, with an extra speed bonus for accuracy above 60%
    (at most +38% of the base duration).
    """

    accuracy_bonus = max(0.0, recent_accuracy - ACCURACY_THRESHOLD) * ACCURACY_BONUS_MS
    raw = (BASE_DURATION_MS - round_ * ROUND_FACTOR_MS - accuracy_bonus) * step_multiplier
    return max(MIN_DURATION_MS, raw)
