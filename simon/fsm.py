from __future__ import annotations

from statemachine import State, StateMachine

from simon.api.models import GameMode
from simon.core.state import GameState


class GameFSM(StateMachine):
    """FSM wrapper around GameState.

    Only guards mode transitions; the engine applies the state changes:
    - idle -> playing (start a run)
    - playing -> gameending -> gameover (player ends the run)
    - playing -> gameover (strict-mode mistake)
    - gameover -> idle, idle -> idle (reset is idempotent)
    """

    idle = State(GameMode.idle.value, value=GameMode.idle.value, initial=True)
    playing = State(GameMode.playing.value, value=GameMode.playing.value)
    gameending = State(GameMode.gameending.value, value=GameMode.gameending.value)
    gameover = State(GameMode.gameover.value, value=GameMode.gameover.value)

    start_run = idle.to(playing)
    request_end = playing.to(gameending)
    finalize_run = playing.to(gameover) | gameending.to(gameover)
    return_to_idle = gameover.to(idle) | idle.to.itself()

    def __init__(self, game: GameState):
        self.game = game
        super().__init__(start_value=game.mode.value)

    def sync_mode_to_model(self) -> None:
        self.game.mode = GameMode(str(self.current_state.value))
