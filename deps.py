"""
FastAPI dependencies. Use Depends(get_state) in route handlers to receive AppState.
"""
from fastapi import HTTPException, Request

from app_state import AppState
from posealign.sessions import EditorSession


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	return request.app.state.state


def get_session(session_id: str, request: Request) -> EditorSession:
	"""Resolve {session_id} path parameter to a live editing session or 404."""
	state: AppState = request.app.state.state
	session = state.sessions.get(session_id) if state.sessions is not None else None
	if session is None:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
	return session
