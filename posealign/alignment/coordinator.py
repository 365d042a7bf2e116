from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Set

from posealign.alignment.anchors import DEFAULT_ANCHOR, can_calculate_alignment
from posealign.alignment.calculator import AlignmentResult, calculate_alignment
from posealign.alignment.keyboard import KeyAction, KeyEvent, offset_step, resolve_action, scale_step
from posealign.debug_log import AlignmentDebugLog, build_log_entry
from posealign.editor_state import AlignmentSettings, EditorState
from posealign.pose.errors import AlignmentUnavailable
from posealign.pose.types import Photo

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.1

MISSING_LANDMARKS_MESSAGE = "Cannot auto-align: both photos need detected landmarks."


class AlignmentCoordinator:
	"""
	Turns session state changes and keyboard commands into AlignmentSettings writes.

	auto_align() is debounced: each call cancels the pending computation and
	schedules a new one with the inputs current at that call, so only the last
	request in a burst is computed. Failures leave the settings untouched and
	put a user-facing message in state.error.

	Must be driven from a running event loop (auto_align schedules a task).
	"""

	def __init__(
		self,
		state: EditorState,
		debounce_s: float = DEBOUNCE_SECONDS,
		calculator: Callable[..., AlignmentResult] = calculate_alignment,
		debug_log: Optional[AlignmentDebugLog] = None,
		on_change: Optional[Callable[[AlignmentSettings], None]] = None,
	) -> None:
		self.state = state
		self.debounce_s = max(0.0, float(debounce_s))
		self._calculate = calculator
		self._debug_log = debug_log
		self.on_change = on_change
		self._pending: Optional[asyncio.Task] = None
		self._closed = False
		self.computations = 0
		self.last_result: Optional[AlignmentResult] = None
		self._debug_writes: Set[asyncio.Task] = set()

	# Derived flags: recomputed from state on every read, never stored.

	@property
	def can_align(self) -> bool:
		before, after = self.state.before_photo, self.state.after_photo
		if before is None or after is None:
			return False
		if before.landmarks is None or after.landmarks is None:
			return False
		anchor = self.state.alignment.anchor
		return can_calculate_alignment(before.landmarks, anchor) and can_calculate_alignment(after.landmarks, anchor)

	@property
	def is_aligned(self) -> bool:
		return not self.state.alignment.is_neutral()

	@property
	def has_pending(self) -> bool:
		return self._pending is not None and not self._pending.done()

	@property
	def closed(self) -> bool:
		return self._closed

	def auto_align(self) -> Optional[asyncio.Task]:
		if self._closed:
			return None
		self._cancel_pending()
		before, after = self.state.before_photo, self.state.after_photo
		anchor = self.state.alignment.anchor
		task = asyncio.get_running_loop().create_task(self._debounced(before, after, anchor))
		self._pending = task
		return task

	async def _debounced(self, before: Optional[Photo], after: Optional[Photo], anchor: str) -> None:
		try:
			await asyncio.sleep(self.debounce_s)
			self._compute(before, after, anchor)
		finally:
			if self._pending is asyncio.current_task():
				self._pending = None

	def _compute(self, before: Optional[Photo], after: Optional[Photo], anchor: str) -> Optional[AlignmentResult]:
		self.computations += 1
		if before is None or after is None or before.landmarks is None or after.landmarks is None:
			logger.warning(MISSING_LANDMARKS_MESSAGE)
			self.state.error = MISSING_LANDMARKS_MESSAGE
			return None
		try:
			result = self._calculate(before.landmarks, after.landmarks, anchor, before.size, after.size)
		except AlignmentUnavailable as e:
			logger.info("Auto-align unavailable (anchor=%s, reason=%s)", anchor, e.reason)
			self.state.error = e.message
			return None

		self.state.update_alignment(scale=result.scale, offset_x=result.offset_x, offset_y=result.offset_y)
		self.state.error = None
		self.last_result = result
		logger.debug("Auto-align anchor=%s -> %s", anchor, result)
		self._record_debug(before, after, anchor, result)
		self._notify()
		return result

	def _record_debug(self, before: Photo, after: Photo, anchor: str, result: AlignmentResult) -> None:
		if self._debug_log is None or not self._debug_log.enabled:
			return
		try:
			entry = build_log_entry(before, after, anchor, result.to_dict())
		except Exception:
			logger.debug("alignment debug snapshot failed", exc_info=True)
			return
		# File I/O runs in a worker thread; the task is kept so wait_idle() can drain it.
		task = asyncio.get_running_loop().create_task(asyncio.to_thread(self._debug_log.record, entry))
		self._debug_writes.add(task)
		task.add_done_callback(self._debug_writes.discard)

	async def wait_idle(self) -> None:
		"""Wait until no debounced computation is pending (follows replacements) and debug writes have landed."""
		while True:
			task = self._pending
			if task is None or task.done():
				break
			await asyncio.wait({task})
		if self._debug_writes:
			await asyncio.wait(set(self._debug_writes))

	def _cancel_pending(self) -> None:
		task = self._pending
		self._pending = None
		if task is not None and not task.done():
			task.cancel()

	def reset(self) -> AlignmentSettings:
		"""Cancel pending work and write the neutral alignment (anchor forced to full)."""
		self._cancel_pending()
		settings = self.state.update_alignment(anchor=DEFAULT_ANCHOR, scale=1.0, offset_x=0.0, offset_y=0.0)
		self.state.error = None
		self._notify()
		return settings

	def set_anchor(self, anchor: str) -> AlignmentSettings:
		settings = self.state.update_alignment(anchor=anchor)
		self._notify()
		return settings

	def adjust(
		self,
		scale: Optional[float] = None,
		offset_x: Optional[float] = None,
		offset_y: Optional[float] = None,
	) -> AlignmentSettings:
		"""Manual write (sliders, nudges). Scale is clamped by the state."""
		settings = self.state.update_alignment(scale=scale, offset_x=offset_x, offset_y=offset_y)
		self._notify()
		return settings

	def toggle_display(self, name: str) -> bool:
		"""Flip a display flag (landmarks, grid, linked_zoom) and return its new value."""
		if name == "landmarks":
			value = self.state.toggle_landmarks()
		elif name == "grid":
			value = self.state.toggle_grid()
		elif name == "linked_zoom":
			value = self.state.toggle_linked_zoom()
		else:
			raise ValueError(f"Unknown display toggle {name!r}")
		self._notify()
		return value

	def apply_key(self, event: KeyEvent) -> bool:
		"""Handle one key press. Returns False when the key was ignored."""
		action = resolve_action(event)
		if action is None:
			return False

		a = self.state.alignment
		step = offset_step(event.shift)
		if action is KeyAction.MOVE_UP:
			self.adjust(offset_y=a.offset_y - step)
		elif action is KeyAction.MOVE_DOWN:
			self.adjust(offset_y=a.offset_y + step)
		elif action is KeyAction.MOVE_LEFT:
			self.adjust(offset_x=a.offset_x - step)
		elif action is KeyAction.MOVE_RIGHT:
			self.adjust(offset_x=a.offset_x + step)
		elif action is KeyAction.SCALE_UP:
			self.adjust(scale=a.scale + scale_step(event.shift))
		elif action is KeyAction.SCALE_DOWN:
			self.adjust(scale=a.scale - scale_step(event.shift))
		elif action is KeyAction.RESET:
			self.reset()
		elif action is KeyAction.AUTO_ALIGN:
			self.auto_align()
		elif action is KeyAction.TOGGLE_LANDMARKS:
			self.toggle_display("landmarks")
		elif action is KeyAction.TOGGLE_GRID:
			self.toggle_display("grid")
		return True

	def _notify(self) -> None:
		if self.on_change is None:
			return
		try:
			self.on_change(self.state.alignment)
		except Exception:
			logger.warning("alignment change listener failed", exc_info=True)

	def close(self) -> None:
		"""Teardown: cancel pending timers; later triggers are ignored."""
		self._closed = True
		self._cancel_pending()
