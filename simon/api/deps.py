from __future__ import annotations

from fastapi import Depends, HTTPException, status
from uuid import UUID

from simon.runtime import Runtime, get_runtime
from simon.sessions import GameSession, SessionRegistry
from simon.store import LeaderboardStore


def get_store(rt: Runtime = Depends(get_runtime)) -> LeaderboardStore:
    return rt.store


def get_sessions(rt: Runtime = Depends(get_runtime)) -> SessionRegistry:
    return rt.sessions


def get_session(game_id: UUID, sessions: SessionRegistry = Depends(get_sessions)) -> GameSession:
    session = sessions.get(game_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return session
