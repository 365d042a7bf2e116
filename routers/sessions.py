"""Editing session routes. Routes: /sessions, /sessions/{id}, photos, anchor, alignment, auto-align, reset, keys, toggles."""
from fastapi import APIRouter, Depends, HTTPException, Request

from app_state import AppState
from deps import get_session, get_state
from posealign.alignment.keyboard import KeyEvent
from posealign.pose.errors import PoseAlignError
from posealign.sessions import SLOTS, EditorSession, load_photo_into_slot
from routers.pose import error_detail
from schemas.requests import (
	AlignmentPatchPayload,
	AnchorPayload,
	AutoAlignPayload,
	KeyEventPayload,
	SessionCreatePayload,
)
from schemas.responses import AlignmentResponse, SessionResponse

router = APIRouter(tags=["sessions"])

TOGGLES = ("landmarks", "grid", "linked_zoom")


def _session_out(session: EditorSession) -> dict:
	snap = session.state.snapshot()
	snap["session_id"] = session.id
	snap["can_align"] = session.coordinator.can_align
	snap["is_aligned"] = session.coordinator.is_aligned
	return snap


def _alignment_out(session: EditorSession) -> dict:
	return {
		"alignment": session.state.alignment.to_dict(),
		"can_align": session.coordinator.can_align,
		"is_aligned": session.coordinator.is_aligned,
		"error": session.state.error,
	}


def _check_slot(slot: str) -> None:
	if slot not in SLOTS:
		raise HTTPException(status_code=404, detail=f"Unknown photo slot {slot!r}; use 'before' or 'after'")


@router.post("/sessions", response_model=SessionResponse)
async def create_session(payload: SessionCreatePayload = None, state: AppState = Depends(get_state)):
	"""Start an editing session with neutral alignment (anchor=full)."""
	try:
		session = state.sessions.create((payload.session_id if payload else None))
	except ValueError as e:
		raise HTTPException(status_code=409, detail=str(e))
	return _session_out(session)


@router.get("/sessions")
async def list_sessions(state: AppState = Depends(get_state)):
	return {"sessions": state.sessions.ids()}


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session_endpoint(session: EditorSession = Depends(get_session)):
	return _session_out(session)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, state: AppState = Depends(get_state)):
	"""End a session; pending auto-align work is cancelled."""
	if not state.sessions.remove(session_id):
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
	return {"detail": "Session closed", "session_id": session_id}


@router.put("/sessions/{session_id}/photos/{slot}", response_model=SessionResponse)
async def put_photo(
	slot: str,
	request: Request,
	session: EditorSession = Depends(get_session),
	state: AppState = Depends(get_state),
):
	"""Upload the before/after photo as the raw request body and detect its landmarks."""
	_check_slot(slot)
	data = await request.body()
	try:
		await load_photo_into_slot(session, slot, data, state.detector, state.cfg.imaging.max_dimension)
	except PoseAlignError as e:
		raise HTTPException(status_code=e.http_status, detail=error_detail(e))
	return _session_out(session)


@router.delete("/sessions/{session_id}/photos/{slot}", response_model=SessionResponse)
async def delete_photo(slot: str, session: EditorSession = Depends(get_session)):
	_check_slot(slot)
	session.set_photo(slot, None)
	return _session_out(session)


@router.get("/sessions/{session_id}/photos/{slot}/landmarks")
async def get_photo_landmarks(slot: str, session: EditorSession = Depends(get_session)):
	_check_slot(slot)
	photo = session.photo(slot)
	if photo is None:
		raise HTTPException(status_code=404, detail=f"No {slot} photo in session")
	return {
		"photo_id": photo.id,
		"width": photo.width,
		"height": photo.height,
		"landmarks": photo.landmarks.to_list() if photo.landmarks is not None else None,
	}


@router.get("/sessions/{session_id}/alignment", response_model=AlignmentResponse)
async def get_alignment(session: EditorSession = Depends(get_session)):
	return _alignment_out(session)


@router.put("/sessions/{session_id}/anchor", response_model=AlignmentResponse)
async def put_anchor(payload: AnchorPayload, session: EditorSession = Depends(get_session)):
	session.coordinator.set_anchor(payload.anchor)
	if payload.auto_align:
		session.coordinator.auto_align()
	return _alignment_out(session)


@router.patch("/sessions/{session_id}/alignment", response_model=AlignmentResponse)
async def patch_alignment(payload: AlignmentPatchPayload, session: EditorSession = Depends(get_session)):
	"""Manual slider adjustment. Scale is clamped to 0.5..2.0."""
	session.coordinator.adjust(scale=payload.scale, offset_x=payload.offset_x, offset_y=payload.offset_y)
	return _alignment_out(session)


@router.post("/sessions/{session_id}/auto-align", response_model=AlignmentResponse)
async def auto_align(payload: AutoAlignPayload = None, session: EditorSession = Depends(get_session)):
	"""
	Trigger a debounced auto-align. With wait=true (default) the response
	reflects the computed alignment (or the error, settings unchanged).
	"""
	session.coordinator.auto_align()
	if payload is None or payload.wait:
		await session.coordinator.wait_idle()
	return _alignment_out(session)


@router.post("/sessions/{session_id}/reset", response_model=AlignmentResponse)
async def reset_alignment(session: EditorSession = Depends(get_session)):
	session.coordinator.reset()
	return _alignment_out(session)


@router.post("/sessions/{session_id}/keys")
async def key_event(payload: KeyEventPayload, session: EditorSession = Depends(get_session)):
	"""Apply one keyboard shortcut (arrows, +/-, r, a, l, g)."""
	handled = session.coordinator.apply_key(
		KeyEvent(key=payload.key, shift=payload.shift, in_text_input=payload.in_text_input)
	)
	out = _alignment_out(session)
	out["handled"] = handled
	out["show_landmarks"] = session.state.show_landmarks
	out["show_grid"] = session.state.show_grid
	return out


@router.post("/sessions/{session_id}/toggles/{name}")
async def toggle(name: str, session: EditorSession = Depends(get_session)):
	if name not in TOGGLES:
		raise HTTPException(status_code=404, detail=f"Unknown toggle {name!r}")
	value = session.coordinator.toggle_display(name)
	return {"name": name, "value": value}
