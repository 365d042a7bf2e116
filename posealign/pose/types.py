from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple


LANDMARK_COUNT = 33

# MediaPipe Pose landmark indices (33-point body model).
LANDMARK_INDICES = {
	"nose": 0,
	"left_eye_inner": 1,
	"left_eye": 2,
	"left_eye_outer": 3,
	"right_eye_inner": 4,
	"right_eye": 5,
	"right_eye_outer": 6,
	"left_ear": 7,
	"right_ear": 8,
	"mouth_left": 9,
	"mouth_right": 10,
	"left_shoulder": 11,
	"right_shoulder": 12,
	"left_elbow": 13,
	"right_elbow": 14,
	"left_wrist": 15,
	"right_wrist": 16,
	"left_pinky": 17,
	"right_pinky": 18,
	"left_index": 19,
	"right_index": 20,
	"left_thumb": 21,
	"right_thumb": 22,
	"left_hip": 23,
	"right_hip": 24,
	"left_knee": 25,
	"right_knee": 26,
	"left_ankle": 27,
	"right_ankle": 28,
	"left_heel": 29,
	"right_heel": 30,
	"left_foot_index": 31,
	"right_foot_index": 32,
}

NOSE = LANDMARK_INDICES["nose"]
LEFT_EYE = LANDMARK_INDICES["left_eye"]
RIGHT_EYE = LANDMARK_INDICES["right_eye"]
LEFT_SHOULDER = LANDMARK_INDICES["left_shoulder"]
RIGHT_SHOULDER = LANDMARK_INDICES["right_shoulder"]
LEFT_HIP = LANDMARK_INDICES["left_hip"]
RIGHT_HIP = LANDMARK_INDICES["right_hip"]


@dataclass(frozen=True)
class Landmark:
	"""
	A single body keypoint in normalized image coordinates.

	x/y are image-relative in [0..1]; z is MediaPipe's relative depth;
	visibility is the model's confidence, clamped into [0..1].
	"""

	x: float
	y: float
	z: float = 0.0
	visibility: float = 0.0

	def __post_init__(self) -> None:
		vis = float(self.visibility or 0.0)
		object.__setattr__(self, "visibility", min(1.0, max(0.0, vis)))

	def to_dict(self) -> dict:
		return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


class LandmarkSet(Sequence[Landmark]):
	"""
	Immutable, ordered set of exactly 33 landmarks.

	Index is the body-part identity (see LANDMARK_INDICES), so the order is
	never changed after construction.
	"""

	__slots__ = ("_points",)

	def __init__(self, points: Iterable[Landmark]) -> None:
		pts = tuple(points)
		if len(pts) != LANDMARK_COUNT:
			raise ValueError(f"LandmarkSet needs exactly {LANDMARK_COUNT} landmarks, got {len(pts)}")
		for p in pts:
			if not isinstance(p, Landmark):
				raise TypeError(f"expected Landmark, got {type(p).__name__}")
		self._points: Tuple[Landmark, ...] = pts

	@classmethod
	def from_sequence(cls, rows: Iterable[Any]) -> "LandmarkSet":
		"""Build from Landmarks, dicts with x/y/z/visibility, or objects exposing those attributes."""
		pts = []
		for r in rows:
			if isinstance(r, Landmark):
				pts.append(r)
			elif isinstance(r, dict):
				pts.append(Landmark(
					x=float(r.get("x", 0.0)),
					y=float(r.get("y", 0.0)),
					z=float(r.get("z", 0.0) or 0.0),
					visibility=float(r.get("visibility", 0.0) or 0.0),
				))
			else:
				pts.append(Landmark(
					x=float(getattr(r, "x", 0.0)),
					y=float(getattr(r, "y", 0.0)),
					z=float(getattr(r, "z", 0.0) or 0.0),
					visibility=float(getattr(r, "visibility", 0.0) or 0.0),
				))
		return cls(pts)

	@classmethod
	def coerce(cls, rows: Any) -> Optional["LandmarkSet"]:
		"""Like from_sequence, but anything that is not a valid 33-point set is treated as absent."""
		if rows is None:
			return None
		if isinstance(rows, LandmarkSet):
			return rows
		try:
			return cls.from_sequence(rows)
		except (TypeError, ValueError):
			return None

	def __getitem__(self, idx):  # type: ignore[override]
		return self._points[idx]

	def __len__(self) -> int:
		return len(self._points)

	def __iter__(self) -> Iterator[Landmark]:
		return iter(self._points)

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, LandmarkSet):
			return NotImplemented
		return self._points == other._points

	def __hash__(self) -> int:
		return hash(self._points)

	def __repr__(self) -> str:
		return f"LandmarkSet(n={len(self._points)})"

	def mean_visibility(self) -> float:
		return sum(p.visibility for p in self._points) / float(LANDMARK_COUNT)

	def to_list(self) -> list[dict]:
		return [p.to_dict() for p in self._points]


@dataclass(frozen=True)
class ImageSize:
	width: int
	height: int


@dataclass(frozen=True)
class Photo:
	"""
	An uploaded photo. `landmarks` stays None until detection succeeds.

	Photos are immutable: attaching landmarks produces a new Photo.
	"""

	id: str
	data: bytes
	width: int
	height: int
	landmarks: Optional[LandmarkSet] = None

	@property
	def size(self) -> ImageSize:
		return ImageSize(width=int(self.width), height=int(self.height))

	def with_landmarks(self, landmarks: Optional[LandmarkSet]) -> "Photo":
		return replace(self, landmarks=landmarks)

	def __repr__(self) -> str:
		return (
			f"Photo(id={self.id!r}, width={self.width}, height={self.height}, "
			f"bytes={len(self.data)}, landmarks={'yes' if self.landmarks is not None else 'no'})"
		)
