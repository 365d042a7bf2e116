"""
Per-session editor state: the two photos, the alignment settings and the
display toggles. Every alignment write goes through update_alignment(), which
clamps scale so no writer can store an out-of-range value.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from posealign.alignment.anchors import DEFAULT_ANCHOR, parse_anchor
from posealign.alignment.calculator import clamp_scale
from posealign.pose.types import LandmarkSet, Photo


@dataclass
class AlignmentSettings:
	anchor: str = DEFAULT_ANCHOR
	scale: float = 1.0
	offset_x: float = 0.0
	offset_y: float = 0.0

	def is_neutral(self) -> bool:
		return self.scale == 1.0 and self.offset_x == 0.0 and self.offset_y == 0.0

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


@dataclass
class EditorState:
	before_photo: Optional[Photo] = None
	after_photo: Optional[Photo] = None
	alignment: AlignmentSettings = field(default_factory=AlignmentSettings)
	show_landmarks: bool = True
	show_grid: bool = False
	linked_zoom: bool = True
	error: Optional[str] = None
	# In-flight detections per photo slot.
	detecting: Dict[str, int] = field(default_factory=dict)

	@property
	def is_detecting(self) -> bool:
		return any(n > 0 for n in self.detecting.values())

	def detecting_slots(self) -> List[str]:
		return sorted(slot for slot, n in self.detecting.items() if n > 0)

	def begin_detection(self, slot: str) -> None:
		self.detecting[slot] = self.detecting.get(slot, 0) + 1

	def end_detection(self, slot: str) -> None:
		remaining = self.detecting.get(slot, 0) - 1
		if remaining > 0:
			self.detecting[slot] = remaining
		else:
			self.detecting.pop(slot, None)

	def set_before_photo(self, photo: Optional[Photo]) -> None:
		self.before_photo = photo

	def set_after_photo(self, photo: Optional[Photo]) -> None:
		self.after_photo = photo

	def set_before_landmarks(self, landmarks: Optional[LandmarkSet]) -> None:
		if self.before_photo is not None:
			self.before_photo = self.before_photo.with_landmarks(landmarks)

	def set_after_landmarks(self, landmarks: Optional[LandmarkSet]) -> None:
		if self.after_photo is not None:
			self.after_photo = self.after_photo.with_landmarks(landmarks)

	def update_alignment(
		self,
		anchor: Optional[str] = None,
		scale: Optional[float] = None,
		offset_x: Optional[float] = None,
		offset_y: Optional[float] = None,
	) -> AlignmentSettings:
		"""Partial, in-place update. Validates the anchor before touching anything."""
		if anchor is not None:
			anchor = parse_anchor(anchor)
		a = self.alignment
		if anchor is not None:
			a.anchor = anchor
		if scale is not None:
			a.scale = clamp_scale(scale)
		if offset_x is not None:
			a.offset_x = float(offset_x)
		if offset_y is not None:
			a.offset_y = float(offset_y)
		return a

	def toggle_landmarks(self) -> bool:
		self.show_landmarks = not self.show_landmarks
		return self.show_landmarks

	def toggle_grid(self) -> bool:
		self.show_grid = not self.show_grid
		return self.show_grid

	def toggle_linked_zoom(self) -> bool:
		self.linked_zoom = not self.linked_zoom
		return self.linked_zoom

	def display(self) -> Dict[str, bool]:
		return {"show_landmarks": self.show_landmarks, "show_grid": self.show_grid, "linked_zoom": self.linked_zoom}

	def snapshot(self) -> Dict[str, Any]:
		def _photo(p: Optional[Photo]) -> Optional[Dict[str, Any]]:
			if p is None:
				return None
			return {"id": p.id, "width": p.width, "height": p.height, "has_landmarks": p.landmarks is not None}

		return {
			"before_photo": _photo(self.before_photo),
			"after_photo": _photo(self.after_photo),
			"alignment": self.alignment.to_dict(),
			**self.display(),
			"is_detecting": self.is_detecting,
			"detecting_slots": self.detecting_slots(),
			"error": self.error,
		}
