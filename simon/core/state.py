from __future__ import annotations

from dataclasses import dataclass, field

from simon.api.models import GameMode, TonePreset


@dataclass(slots=True)
class GameState:
    """Authoritative per-session state. Only GameEngine (through GameFSM) mutates it."""

    mode: GameMode = GameMode.idle
    player_name: str = ""
    strict: bool = False
    tone_preset: TonePreset = TonePreset.medium

    sequence: list[int] = field(default_factory=list)
    round: int = 0
    input_index: int = 0
    accepting: bool = False
    showing: bool = False
    completed_rounds: int = 0
    # Monotonic ms when input was last enabled; baseline for reaction time.
    input_enabled_at: float = 0.0

    # Result of the last finalized run, shown on the game-over screen.
    final_round: int = 0
    final_accuracy: float = 0.0

    def clear_round_state(self) -> None:
        self.sequence = []
        self.round = 0
        self.input_index = 0
        self.accepting = False
        self.showing = False

    def clear_run(self) -> None:
        self.clear_round_state()
        self.player_name = ""
        self.strict = False
        self.tone_preset = TonePreset.medium
        self.completed_rounds = 0
        self.input_enabled_at = 0.0
        self.final_round = 0
        self.final_accuracy = 0.0
