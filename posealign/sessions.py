from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from posealign.alignment.coordinator import DEBOUNCE_SECONDS, AlignmentCoordinator
from posealign.debug_log import AlignmentDebugLog
from posealign.editor_state import AlignmentSettings, EditorState
from posealign.imaging import new_photo, prepare_image
from posealign.pose.detector import PoseDetector
from posealign.pose.errors import PoseDetectionError
from posealign.pose.types import Photo

logger = logging.getLogger(__name__)

SLOTS = ("before", "after")


@dataclass
class EditorSession:
	id: str
	state: EditorState
	coordinator: AlignmentCoordinator
	created_at: float = field(default_factory=time.time)

	def photo(self, slot: str) -> Optional[Photo]:
		return self.state.before_photo if slot == "before" else self.state.after_photo

	def set_photo(self, slot: str, photo: Optional[Photo]) -> None:
		if slot == "before":
			self.state.set_before_photo(photo)
		else:
			self.state.set_after_photo(photo)


class SessionRegistry:
	"""In-memory editing sessions, one EditorState + coordinator each."""

	def __init__(
		self,
		debounce_s: float = DEBOUNCE_SECONDS,
		debug_log: Optional[AlignmentDebugLog] = None,
		on_change: Optional[Callable[[str, EditorState], None]] = None,
	) -> None:
		self.debounce_s = debounce_s
		self.debug_log = debug_log
		self.on_change = on_change
		self._sessions: Dict[str, EditorSession] = {}

	def create(self, session_id: Optional[str] = None) -> EditorSession:
		sid = (session_id or "").strip() or uuid.uuid4().hex[:12]
		if sid in self._sessions:
			raise ValueError(f"Session {sid} already exists")
		state = EditorState()
		listener = None
		if self.on_change is not None:
			notify = self.on_change

			def listener(settings: AlignmentSettings, _sid: str = sid, _state: EditorState = state) -> None:
				notify(_sid, _state)

		coordinator = AlignmentCoordinator(
			state,
			debounce_s=self.debounce_s,
			debug_log=self.debug_log,
			on_change=listener,
		)
		session = EditorSession(id=sid, state=state, coordinator=coordinator)
		self._sessions[sid] = session
		logger.info("Session %s created", sid)
		return session

	def get(self, session_id: str) -> Optional[EditorSession]:
		return self._sessions.get(session_id)

	def ids(self) -> List[str]:
		return list(self._sessions.keys())

	def remove(self, session_id: str) -> bool:
		session = self._sessions.pop(session_id, None)
		if session is None:
			return False
		session.coordinator.close()
		logger.info("Session %s closed", session_id)
		return True

	def close_all(self) -> None:
		for sid in list(self._sessions.keys()):
			self.remove(sid)

	def __len__(self) -> int:
		return len(self._sessions)


async def load_photo_into_slot(
	session: EditorSession,
	slot: str,
	data: bytes,
	detector: PoseDetector,
	max_dimension: int = 2048,
) -> Photo:
	"""
	Decode an upload, place it in `slot`, then detect and attach landmarks.

	The photo is visible (without landmarks) while detection runs. Detection
	errors are recorded in state.error and re-raised. If the slot was replaced
	while detecting, the stale landmarks are dropped.
	"""
	if slot not in SLOTS:
		raise ValueError(f"Unknown photo slot {slot!r}")
	state = session.state
	try:
		prepared = await asyncio.to_thread(prepare_image, data, max_dimension)
	except PoseDetectionError as e:
		state.error = e.message
		raise
	photo = new_photo(prepared)
	session.set_photo(slot, photo)

	state.begin_detection(slot)
	state.error = None
	try:
		landmarks = await detector.detect(prepared.rgb)
	except PoseDetectionError as e:
		state.error = e.message
		raise
	finally:
		state.end_detection(slot)

	current = session.photo(slot)
	if current is None or current.id != photo.id:
		logger.info("Session %s: %s photo replaced during detection; dropping landmarks", session.id, slot)
		return photo
	updated = photo.with_landmarks(landmarks)
	session.set_photo(slot, updated)
	return updated
