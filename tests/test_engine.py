from __future__ import annotations

import asyncio
import copy
import dataclasses
from collections.abc import Callable

import pytest
from statemachine.exceptions import TransitionNotAllowed

from simon.api.models import GameMode
from simon.config import Timings
from simon.core.engine import NAME_HINT, GameEngine

EngineFactory = Callable[[list[int]], GameEngine]


async def _play_round(engine: GameEngine) -> None:
    for signal in list(engine.state.sequence):
        assert await engine.handle_input(signal)


@pytest.mark.asyncio
async def test_start_plays_first_round(make_engine: EngineFactory, display) -> None:
    engine = make_engine([2])
    assert await engine.start("  Ada ")

    s = engine.state
    assert s.mode == GameMode.playing
    assert s.player_name == "Ada"
    assert (s.round, s.sequence, s.input_index) == (1, [2], 0)
    assert s.accepting
    assert display.playback() == [2]
    assert "Listen… (speed 580ms)" in display.messages()
    assert display.messages()[-1] == "Your turn!"
    assert ("input_enabled", True) in display.events


@pytest.mark.asyncio
async def test_blank_name_is_rejected_and_stays_idle(make_engine: EngineFactory, display) -> None:
    engine = make_engine([0])
    assert not await engine.start("   ")
    assert engine.mode == GameMode.idle
    assert display.messages() == [NAME_HINT]
    assert not display.playback()


@pytest.mark.asyncio
async def test_matching_input_completes_round_and_advances(make_engine: EngineFactory, display) -> None:
    engine = make_engine([2, 1])
    await engine.start("Ada")
    display.clear()

    assert await engine.handle_input(2)

    s = engine.state
    assert s.completed_rounds == 1
    assert s.round == 2
    assert s.sequence == [2, 1]
    assert s.input_index == 0
    assert s.accepting
    assert "Nice!" in display.messages()
    assert display.playback() == [2, 1]


@pytest.mark.asyncio
async def test_mismatch_in_normal_mode_replays_same_round(make_engine: EngineFactory, display) -> None:
    engine = make_engine([0, 1, 2])
    await engine.start("Ada")
    await _play_round(engine)
    await _play_round(engine)
    assert engine.state.round == 3
    display.clear()

    assert await engine.handle_input(3)

    s = engine.state
    assert s.mode == GameMode.playing
    assert s.round == 3
    assert s.sequence == [0, 1, 2]
    assert s.input_index == 0
    assert s.completed_rounds == 2
    assert s.accepting
    assert engine.stats.window[-1] == 0
    assert ("error",) in display.events
    assert "Wrong! Try again." in display.messages()
    assert display.playback() == [0, 1, 2]


@pytest.mark.asyncio
async def test_mismatch_in_strict_mode_finalizes_with_run_accuracy(
    make_engine: EngineFactory, display, store, clock
) -> None:
    engine = make_engine([0, 1, 2, 3, 0])
    await engine.start("Ada", strict=True)
    for _ in range(4):
        await _play_round(engine)
    assert engine.state.round == 5
    assert (engine.stats.run_inputs, engine.stats.run_correct) == (10, 10)
    # One earlier miss on the books, then the fatal one: 10 correct out of 12.
    engine.stats.record_result(False)

    assert await engine.handle_input(1)

    s = engine.state
    assert s.mode == GameMode.gameover
    assert (s.sequence, s.round, s.input_index, s.accepting) == ([], 0, 0, False)
    assert s.final_round == 4

    [entry] = store.load_entries()
    assert entry.name == "Ada"
    assert entry.round == 4
    assert entry.accuracy == pytest.approx(10 / 12)
    assert entry.strict is True
    assert entry.time == clock.wall
    assert engine.newest_entry == entry
    assert display.messages()[-1] == "Game over — Score R4"
    assert ("score", entry) in display.events


@pytest.mark.asyncio
@pytest.mark.parametrize("strict", [False, True])
async def test_run_without_completed_rounds_records_nothing(make_engine: EngineFactory, display, store, strict: bool) -> None:
    engine = make_engine([3])
    await engine.start("Ada", strict=strict)

    if strict:
        assert await engine.handle_input(0)
    else:
        assert await engine.request_end() is None

    assert engine.mode == GameMode.gameover
    assert engine.state.final_round == 0
    assert store.load_entries() == []
    assert display.messages()[-1] == "Game over — No completed rounds"


@pytest.mark.asyncio
async def test_end_request_commits_completed_rounds(make_engine: EngineFactory, store) -> None:
    engine = make_engine([1, 2])
    await engine.start("Bo")
    await _play_round(engine)
    await engine.handle_input(1)  # one correct step into round 2

    entry = await engine.request_end()

    assert entry is not None
    assert entry.round == 1
    assert entry.accuracy == 1.0
    assert entry.strict is False
    assert store.load_entries() == [entry]


@pytest.mark.asyncio
async def test_end_during_playback_aborts_remaining_steps(make_engine: EngineFactory, display) -> None:
    engine = make_engine([1, 2, 3])
    await engine.start("Ada")
    await _play_round(engine)
    assert await engine.handle_input(1)
    display.clear()

    def _end_on_first_playback_step(_signal: int) -> None:
        if engine.state.showing and engine.mode == GameMode.playing:
            engine.begin_end()

    display.on_present = _end_on_first_playback_step
    assert await engine.handle_input(2)

    assert engine.mode == GameMode.gameending
    assert display.playback() == [1]
    assert "Your turn!" not in display.messages()
    assert not engine.state.accepting

    entry = await engine.complete_end()
    assert entry is not None and entry.round == 2
    assert engine.mode == GameMode.gameover


@pytest.mark.asyncio
async def test_presses_during_playback_are_dropped(make_engine: EngineFactory, display) -> None:
    engine = make_engine([3, 0])
    claimed: list[bool] = []

    def _press_while_showing(signal: int) -> None:
        if engine.state.showing:
            claimed.append(engine.claim_input(signal))

    display.on_present = _press_while_showing
    await engine.start("Ada")
    await _play_round(engine)

    # Round 1 plays [3], round 2 plays [3, 0].
    assert claimed == [False, False, False]
    assert display.playback() == [3, 3, 0]
    s = engine.state
    assert (s.round, s.input_index) == (2, 0)
    assert engine.stats.window == (1,)
    assert not engine.input_in_flight


@pytest.mark.asyncio
async def test_end_during_strict_failure_pause_finalizes_once(make_engine: EngineFactory, display, store) -> None:
    engine = make_engine([0, 1])
    await engine.start("Ada", strict=True)
    await _play_round(engine)
    engine.timings = dataclasses.replace(Timings.instant(), strict_failure_ms=50)

    wrong = asyncio.create_task(engine.handle_input(1))
    while ("error",) not in display.events:
        await asyncio.sleep(0)

    engine.begin_end()
    entry = await engine.complete_end()
    assert await wrong

    assert engine.mode == GameMode.gameover
    assert entry is not None and entry.round == 1
    assert store.load_entries() == [entry]
    assert display.messages().count("Game over — Score R1") == 1


@pytest.mark.asyncio
async def test_inputs_are_ignored_unless_accepting(make_engine: EngineFactory) -> None:
    engine = make_engine([0])
    assert not await engine.handle_input(0)

    await engine.start("Ada")
    assert engine.claim_input(0)
    # A second press while the first is still being processed is dropped.
    assert engine.input_in_flight
    assert not engine.claim_input(0)
    await engine.process_input(0)
    assert engine.state.completed_rounds == 1

    await engine.request_end()
    assert not await engine.handle_input(0)


@pytest.mark.asyncio
async def test_out_of_range_signal_raises(make_engine: EngineFactory) -> None:
    engine = make_engine([0])
    await engine.start("Ada")
    with pytest.raises(ValueError):
        await engine.handle_input(4)


@pytest.mark.asyncio
async def test_reaction_time_measured_from_input_enable(make_engine: EngineFactory, clock) -> None:
    engine = make_engine([0, 0])
    await engine.start("Ada")
    clock.advance(420)
    await engine.handle_input(0)
    assert engine.stats.reactions == (420,)

    # Only the first press of an attempt is timed; later ones are ignored.
    clock.advance(3_000)
    await engine.handle_input(0)
    clock.advance(5)
    await engine.handle_input(0)
    assert engine.stats.reactions == (420, 2000)


@pytest.mark.asyncio
async def test_accuracy_window_carries_across_rounds(make_engine: EngineFactory) -> None:
    engine = make_engine([0, 1, 2])
    await engine.start("Ada")
    await _play_round(engine)
    await _play_round(engine)
    assert engine.stats.window == (1, 1, 1)


@pytest.mark.asyncio
async def test_tone_preset_changes_speed_and_press_echo(make_engine: EngineFactory, display) -> None:
    engine = make_engine([0])
    await engine.start("Ada", tone_preset="short")
    assert "Listen… (speed 493ms)" in display.messages()

    display.clear()
    await engine.handle_input(0)
    assert display.events[0] == ("signal", 0, 120)


@pytest.mark.asyncio
async def test_unknown_tone_preset_falls_back_to_medium(make_engine: EngineFactory) -> None:
    engine = make_engine([0])
    await engine.start("Ada", tone_preset="bogus")
    assert engine.state.tone_preset.value == "medium"


@pytest.mark.asyncio
async def test_reset_is_idempotent(make_engine: EngineFactory) -> None:
    engine = make_engine([0, 1])
    await engine.start("Ada")
    await _play_round(engine)
    await engine.request_end()
    # Stats stay visible after the run until the next reset.
    assert engine.stats.window == (1,)

    await engine.reset()
    first = copy.deepcopy(engine.state)
    await engine.reset()

    assert engine.state == first
    assert engine.mode == GameMode.idle
    assert engine.state.sequence == []
    assert engine.stats.window == ()
    assert engine.status is None


@pytest.mark.asyncio
async def test_lifecycle_guards(make_engine: EngineFactory) -> None:
    engine = make_engine([0])
    with pytest.raises(TransitionNotAllowed):
        await engine.request_end()

    await engine.start("Ada")
    with pytest.raises(TransitionNotAllowed):
        await engine.start("Ada")
    with pytest.raises(TransitionNotAllowed):
        await engine.reset()
    assert engine.mode == GameMode.playing


@pytest.mark.asyncio
async def test_new_run_starts_clean(make_engine: EngineFactory) -> None:
    engine = make_engine([0, 1, 2])
    await engine.start("Ada")
    await engine.handle_input(3)
    await engine.request_end()
    await engine.reset()

    await engine.start("Cy")
    s = engine.state
    assert s.player_name == "Cy"
    assert s.round == 1
    assert len(s.sequence) == 1
    assert s.completed_rounds == 0
    assert engine.stats.window == ()
    assert (engine.stats.run_inputs, engine.stats.run_correct) == (0, 0)
