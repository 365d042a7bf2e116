import io
import threading
import time
from typing import Callable, List, Optional, Union

from PIL import Image

from posealign.pose.base import PoseProvider
from posealign.pose.types import Landmark, LandmarkSet


def make_landmarks(points: Optional[dict] = None, default_visibility: float = 0.0) -> LandmarkSet:
	"""33 landmarks at the image center; `points` maps index -> (x, y, visibility)."""
	rows = [Landmark(0.5, 0.5, 0.0, default_visibility) for _ in range(33)]
	for idx, (x, y, vis) in (points or {}).items():
		rows[idx] = Landmark(x, y, 0.0, vis)
	return LandmarkSet(rows)


def make_pose(
	nose_y: float = 0.2,
	shoulder_y: float = 0.35,
	hip_y: float = 0.6,
	center_x: float = 0.5,
	shoulder_half_width: float = 0.1,
	hip_half_width: float = 0.08,
	visibility: float = 0.9,
) -> LandmarkSet:
	"""A front-facing pose with visible nose, eyes, shoulders and hips."""
	return make_landmarks({
		0: (center_x, nose_y, visibility),
		2: (center_x - 0.03, nose_y - 0.02, visibility),
		5: (center_x + 0.03, nose_y - 0.02, visibility),
		11: (center_x - shoulder_half_width, shoulder_y, visibility),
		12: (center_x + shoulder_half_width, shoulder_y, visibility),
		23: (center_x - hip_half_width, hip_y, visibility),
		24: (center_x + hip_half_width, hip_y, visibility),
	})


def png_bytes(width: int = 64, height: int = 48, color=(120, 90, 60)) -> bytes:
	buf = io.BytesIO()
	Image.new("RGB", (width, height), color).save(buf, format="PNG")
	return buf.getvalue()


class FakePoseProvider(PoseProvider):
	def __init__(self, poses: Union[List[LandmarkSet], Callable[[object], List[LandmarkSet]], None] = None, error: Optional[Exception] = None) -> None:
		self._poses = poses if poses is not None else [make_pose()]
		self._error = error
		self.calls = 0
		self.closed = False

	def name(self) -> str:
		return "fake"

	def infer_rgb(self, rgb) -> List[LandmarkSet]:
		self.calls += 1
		if self._error is not None:
			raise self._error
		if callable(self._poses):
			return self._poses(rgb)
		return list(self._poses)

	def close(self) -> None:
		self.closed = True


class FakeFactory:
	"""Counts model loads; can fail the first N loads, sleep, or block until released."""

	def __init__(self, provider_kwargs: Optional[dict] = None, fail_times: int = 0, delay_s: float = 0.0, gate: Optional[threading.Event] = None) -> None:
		self.provider_kwargs = provider_kwargs or {}
		self.fail_times = fail_times
		self.delay_s = delay_s
		self.gate = gate
		self.calls = 0
		self.providers: List[FakePoseProvider] = []

	def __call__(self) -> FakePoseProvider:
		self.calls += 1
		if self.gate is not None:
			self.gate.wait(timeout=5.0)
		if self.delay_s:
			time.sleep(self.delay_s)
		if self.calls <= self.fail_times:
			raise OSError("model asset unreachable")
		provider = FakePoseProvider(**self.provider_kwargs)
		self.providers.append(provider)
		return provider


class GatedPoseProvider(FakePoseProvider):
	"""Blocks inside infer_rgb until `release` is set; tracks overlapping calls."""

	def __init__(self, **kwargs) -> None:
		super().__init__(**kwargs)
		self.release = threading.Event()
		self.entered = threading.Event()
		self.active = 0
		self.max_active = 0
		self.saw_closed = False
		self._lock = threading.Lock()

	def infer_rgb(self, rgb) -> List[LandmarkSet]:
		with self._lock:
			self.active += 1
			self.max_active = max(self.max_active, self.active)
		self.entered.set()
		try:
			self.release.wait(timeout=5.0)
			if self.closed:
				self.saw_closed = True
			return super().infer_rgb(rgb)
		finally:
			with self._lock:
				self.active -= 1
