from __future__ import annotations

import asyncio
import logging
from enum import Enum

from simon.api.models import GameMode, ScoreEntry, TonePreset
from simon.config import Timings
from simon.core import leaderboard
from simon.core.clock import Clock, SystemClock
from simon.core.display import DisplaySurface
from simon.core.pacer import resolve_preset, step_duration
from simon.core.sequencer import Sequencer, is_valid_signal
from simon.core.state import GameState
from simon.core.stats import StatsTracker
from simon.fsm import GameFSM
from simon.store import LeaderboardStore

logger = logging.getLogger(__name__)

NAME_HINT = "Enter your name to start"


def _coerce_preset(value: TonePreset | str | None) -> TonePreset:
    # Unknown presets fall back to medium, same as the pacer does.
    try:
        return TonePreset(value)
    except ValueError:
        return TonePreset.medium


class InputOutcome(Enum):
    advanced = "advanced"
    round_complete = "round_complete"
    retry = "retry"
    strict_failure = "strict_failure"
    aborted = "aborted"


class GameEngine:
    """The Simon run/round state machine.

    Public coroutines chain the whole flow the way a player experiences it:
    `start` returns once the first sequence has been played back, and
    `handle_input` returns once the consequence of that press (next round,
    replay, or game over) has been presented.

    Callers that must not block (the HTTP layer) use the synchronous halves
    `begin_run` / `claim_input` / `begin_end` and schedule the matching
    coroutine themselves; the synchronous half is what decides acceptance.

    Every pause is a suspension point. Work resumed after a pause first checks
    that its run is still the live, playing run and otherwise stops without
    touching state.
    """

    def __init__(
        self,
        *,
        display: DisplaySurface,
        store: LeaderboardStore,
        sequencer: Sequencer | None = None,
        clock: Clock | None = None,
        timings: Timings | None = None,
    ) -> None:
        self.display = display
        self.store = store
        self.sequencer = sequencer or Sequencer()
        self.clock = clock or SystemClock()
        self.timings = timings or Timings()

        self.state = GameState()
        self.stats = StatsTracker()
        self.fsm = GameFSM(self.state)

        self.status: str | None = None
        self.newest_entry: ScoreEntry | None = None

        self._run = 0
        self._input_live = False

    # ---- helpers ----

    @property
    def mode(self) -> GameMode:
        return self.state.mode

    @property
    def input_in_flight(self) -> bool:
        return self._input_live

    def _transition(self, event: str) -> None:
        self.fsm.send(event)
        self.fsm.sync_mode_to_model()

    def _live(self, run: int) -> bool:
        return self._run == run and self.state.mode == GameMode.playing

    async def _pause(self, ms: float) -> None:
        await asyncio.sleep(max(0.0, ms) / 1000)

    async def _show(self, text: str, *, announce: bool = False) -> None:
        self.status = text
        await self.display.show_message(text, announce=announce)

    def _set_accepting(self, on: bool) -> None:
        self.state.accepting = on
        if on:
            self.state.input_enabled_at = self.clock.monotonic_ms()

    async def _enable_input(self, on: bool) -> None:
        self._set_accepting(on)
        await self.display.set_input_enabled(on)

    # ---- run lifecycle ----

    def begin_run(self, name: str, *, strict: bool = False, tone_preset: TonePreset | str = TonePreset.medium) -> bool:
        """Enter `playing` with fresh run state. Returns False (and stays idle) on a blank name."""

        player = (name or "").strip()
        if not player:
            return False

        self._transition("start_run")
        self._run += 1
        self.state.clear_run()
        self.state.player_name = player
        self.state.strict = strict
        self.state.tone_preset = _coerce_preset(tone_preset)
        self.stats.reset()
        self._input_live = False
        logger.info("run %s started: player=%r strict=%s preset=%s", self._run, player, strict, self.state.tone_preset.value)
        return True

    async def show_name_hint(self) -> None:
        await self._show(NAME_HINT)

    async def run(self) -> None:
        """Lead-in for a freshly begun run, then the first round."""

        run = self._run
        await self.display.update_round(0)
        await self.display.update_stats(self.stats.summary())
        await self._show("Get ready…")
        await self._pause(self.timings.pre_start_ms)
        await self._next_round(run)

    async def start(self, name: str, *, strict: bool = False, tone_preset: TonePreset | str = TonePreset.medium) -> bool:
        if not self.begin_run(name, strict=strict, tone_preset=tone_preset):
            await self.show_name_hint()
            return False
        await self.run()
        return True

    async def _next_round(self, run: int) -> None:
        if not self._live(run):
            return

        s = self.state
        upcoming = s.round + 1
        await self.display.update_round(upcoming)
        await self._show(f"Round {upcoming} — get ready…")
        await self._pause(self.timings.pre_round_ms)
        if not self._live(run):
            return

        # Sequence and round grow together, so len(sequence) == round holds between rounds.
        self.sequencer.extend(s.sequence)
        s.round = upcoming
        s.input_index = 0
        await self._play_sequence(run)

    async def _play_sequence(self, run: int) -> bool:
        """Play the whole sequence back, then hand the turn to the player.

        Returns False if the run stopped playing mid-way; nothing after the abort is shown.
        """

        s = self.state
        s.showing = True
        await self._enable_input(False)

        duration = step_duration(s.round, self.stats.recent_accuracy(), resolve_preset(s.tone_preset).step_multiplier)
        await self._show(f"Listen… (speed {round(duration)}ms)")

        for signal in list(s.sequence):
            if not self._live(run):
                return False
            await self.display.present_signal(signal, duration)
            # Small gap keeps consecutive (possibly identical) steps distinct.
            await self._pause(self.timings.inter_step_ms)

        if not self._live(run):
            return False

        s.showing = False
        await self._enable_input(True)
        await self._show("Your turn!", announce=True)
        return True

    # ---- input ----

    def claim_input(self, signal: int) -> bool:
        """Decide whether a press is taken; at most one press is in flight at a time.

        Presses while not accepting are dropped, not queued.
        """

        if not is_valid_signal(signal):
            raise ValueError(f"signal must be in 0..3, got {signal}")

        s = self.state
        if s.mode != GameMode.playing or not s.accepting or self._input_live:
            logger.debug("input %s ignored (mode=%s accepting=%s)", signal, s.mode.value, s.accepting)
            return False

        self._input_live = True
        if s.input_index == 0:
            # First press after playback: reaction time for this attempt.
            self.stats.record_reaction(self.clock.monotonic_ms() - s.input_enabled_at)
        return True

    async def process_input(self, signal: int) -> InputOutcome:
        """Second half of a claimed press: echo, validate, then follow through."""

        run = self._run
        try:
            outcome = await self._validate_input(signal, run)
        finally:
            self._input_live = False

        if outcome is InputOutcome.round_complete:
            await self._pause(self.timings.round_complete_ms)
            await self._next_round(run)
        elif outcome is InputOutcome.retry:
            await self._show("Wrong! Try again.")
            await self._pause(self.timings.mismatch_retry_ms)
            if self._live(run):
                self.state.input_index = 0
                await self._play_sequence(run)
        elif outcome is InputOutcome.strict_failure:
            await self._pause(self.timings.strict_failure_ms)
            if self._live(run):
                await self.finalize()
        return outcome

    async def handle_input(self, signal: int) -> bool:
        if not self.claim_input(signal):
            return False
        await self.process_input(signal)
        return True

    async def _validate_input(self, signal: int, run: int) -> InputOutcome:
        s = self.state

        await self.display.present_signal(signal, resolve_preset(s.tone_preset).press_ms)
        await self._pause(self.timings.inter_step_ms)
        if not self._live(run):
            return InputOutcome.aborted

        expected = s.sequence[s.input_index]
        if signal != expected:
            self.stats.record_result(False)
            await self._enable_input(False)
            await self.display.signal_error()
            await self.display.update_stats(self.stats.summary())
            return InputOutcome.strict_failure if s.strict else InputOutcome.retry

        self.stats.record_result(True)
        s.input_index += 1
        await self.display.update_stats(self.stats.summary())

        if s.input_index == len(s.sequence):
            s.completed_rounds = max(s.completed_rounds, s.round)
            await self._enable_input(False)
            await self._show("Nice!")
            return InputOutcome.round_complete
        return InputOutcome.advanced

    # ---- ending ----

    def begin_end(self) -> None:
        """playing -> gameending; input stops being accepted immediately."""

        self._transition("request_end")
        self._set_accepting(False)

    async def complete_end(self) -> ScoreEntry | None:
        await self.display.set_input_enabled(False)
        await self._show("Ending run…")
        await self._pause(self.timings.end_request_ms)
        if self.state.mode != GameMode.gameending:
            return None
        return await self.finalize()

    async def request_end(self) -> ScoreEntry | None:
        self.begin_end()
        return await self.complete_end()

    async def finalize(self) -> ScoreEntry | None:
        """Close the run: commit a score if any round was completed, then game over."""

        s = self.state
        self._transition("finalize_run")

        final_round = s.completed_rounds
        final_acc = self.stats.final_accuracy()
        s.final_round = final_round
        s.final_accuracy = final_acc

        entry: ScoreEntry | None = None
        if final_round > 0:
            entry = ScoreEntry(
                name=s.player_name,
                round=final_round,
                accuracy=final_acc,
                strict=s.strict,
                time=self.clock.timestamp_ms(),
            )
            self.store.save_entries(leaderboard.insert(self.store.load_entries(), entry))
            self.newest_entry = entry
            message = f"Game over — Score R{final_round}"
        else:
            message = "Game over — No completed rounds"

        s.clear_round_state()
        s.completed_rounds = 0
        self._input_live = False
        await self.display.set_input_enabled(False)
        if entry is not None:
            await self.display.announce_score(entry)
        await self._show(message, announce=True)

        logger.info(
            "run %s finalized: player=%r round=%s accuracy=%.3f recorded=%s",
            self._run,
            s.player_name,
            final_round,
            final_acc,
            entry is not None,
        )
        return entry

    async def reset(self) -> None:
        """Back to a clean idle state; calling it again from idle changes nothing."""

        self._transition("return_to_idle")
        self.state.clear_run()
        self.stats.reset()
        self.status = None
        self._input_live = False
        await self.display.set_input_enabled(False)
        await self.display.update_round(0)
        await self.display.update_stats(self.stats.summary())
