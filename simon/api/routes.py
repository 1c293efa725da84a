from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status
from statemachine.exceptions import TransitionNotAllowed

from simon.api.deps import get_session, get_sessions, get_store
from simon.api.models import (
    GameIdResponse,
    GameSnapshot,
    InputRequest,
    InputResponse,
    LeaderboardResponse,
    Preferences,
    StartRequest,
)
from simon.core import leaderboard
from simon.runtime import Runtime, get_runtime
from simon.sessions import GameSession, SessionRegistry
from simon.store import LeaderboardStore
from simon.websocket_hub import HubDisplay, hub

router = APIRouter()


@router.websocket("/ws/games/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: UUID) -> None:
    gid = str(game_id)
    await hub.connect(gid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(gid, websocket)
    except Exception:
        await hub.disconnect(gid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/games", response_model=GameIdResponse, status_code=status.HTTP_201_CREATED)
async def create_game_route(rt: Runtime = Depends(get_runtime)) -> GameIdResponse:
    def sound_enabled() -> bool:
        return rt.store.load_preferences().sound_enabled

    session = rt.sessions.create(
        display_factory=lambda gid: HubDisplay(game_id=gid, hub=hub, sound_enabled=sound_enabled),
        store=rt.store,
        timings=rt.timings,
        clock=rt.clock,
    )
    return GameIdResponse(game_id=session.game_id)


@router.get("/games/{game_id}", response_model=GameSnapshot)
async def get_game_route(session: GameSession = Depends(get_session)) -> GameSnapshot:
    return session.snapshot()


@router.delete("/games/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_game_route(game_id: UUID, sessions: SessionRegistry = Depends(get_sessions)) -> Response:
    if not sessions.remove(game_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/games/{game_id}/start", response_model=GameSnapshot)
async def start_route(payload: StartRequest, session: GameSession = Depends(get_session)) -> GameSnapshot:
    try:
        started = await session.start(payload.name, strict=payload.strict, tone_preset=payload.tone_preset)
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Game is not idle") from e

    if not started:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A player name is required")
    return session.snapshot()


@router.post("/games/{game_id}/input", response_model=InputResponse)
async def input_route(payload: InputRequest, session: GameSession = Depends(get_session)) -> InputResponse:
    # Presses that arrive while input is closed are dropped, not errors.
    return InputResponse(accepted=session.press(payload.signal))


@router.post("/games/{game_id}/end", response_model=GameSnapshot)
async def end_route(session: GameSession = Depends(get_session)) -> GameSnapshot:
    try:
        session.end()
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Game is not being played") from e
    return session.snapshot()


@router.post("/games/{game_id}/reset", response_model=GameSnapshot)
async def reset_route(session: GameSession = Depends(get_session)) -> GameSnapshot:
    try:
        await session.reset()
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="End the current run first") from e
    return session.snapshot()


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard_route(
    rt: Runtime = Depends(get_runtime),
    sessions: SessionRegistry = Depends(get_sessions),
) -> LeaderboardResponse:
    entries = rt.store.load_entries()
    rows = leaderboard.build_rows(
        entries,
        now_ms=rt.clock.timestamp_ms(),
        newest_time=sessions.newest_entry_time(),
    )
    empty_message = None
    if not rows:
        if rt.store.durable:
            empty_message = "No scores yet — finish a game to record one!"
        else:
            empty_message = "Storage disabled: scores are temporary."
    return LeaderboardResponse(
        rows=rows,
        total_entries=len(entries),
        storage_durable=rt.store.durable,
        empty_message=empty_message,
    )


@router.delete("/leaderboard", status_code=status.HTTP_204_NO_CONTENT)
async def clear_leaderboard_route(store: LeaderboardStore = Depends(get_store)) -> Response:
    store.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/preferences", response_model=Preferences)
async def get_preferences_route(store: LeaderboardStore = Depends(get_store)) -> Preferences:
    return store.load_preferences()


@router.put("/preferences", response_model=Preferences)
async def put_preferences_route(payload: Preferences, store: LeaderboardStore = Depends(get_store)) -> Preferences:
    store.save_preferences(payload)
    return payload
