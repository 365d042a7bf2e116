"""
Alignment calculation.

Given landmarks for a "before" and "after" photo, compute the scale and
pixel offsets that put the after photo's anchor geometry on top of the
before photo's:

  1. reference distance per photo (normalized coordinates)
  2. scale = ref(before) / ref(after), clamped to [0.5, 2.0]
  3. anchor midpoint per photo, converted to each photo's pixels
  4. offset = before_mid_px - after_mid_px * scale

Pure: same inputs always give bit-identical output, inputs are never touched.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from posealign.alignment.anchors import can_calculate_alignment, parse_anchor, visible
from posealign.pose.errors import AlignmentUnavailable
from posealign.pose.types import (
	LEFT_EYE,
	LEFT_HIP,
	LEFT_SHOULDER,
	NOSE,
	RIGHT_EYE,
	RIGHT_HIP,
	RIGHT_SHOULDER,
	ImageSize,
	LandmarkSet,
)

MIN_SCALE = 0.5
MAX_SCALE = 2.0
DEGENERATE_EPSILON = 1e-6
# Used for both photos when the eye span is not usable; gives scale 1.0 (translate only).
HEAD_REFERENCE_DISTANCE = 0.05

Point = Tuple[float, float]


@dataclass(frozen=True)
class AlignmentResult:
	scale: float
	offset_x: float
	offset_y: float

	def to_dict(self) -> dict:
		return {"scale": self.scale, "offset_x": self.offset_x, "offset_y": self.offset_y}


def clamp_scale(scale: float) -> float:
	return max(MIN_SCALE, min(MAX_SCALE, float(scale)))


def _point(landmarks: LandmarkSet, idx: int) -> Point:
	p = landmarks[idx]
	return (float(p.x), float(p.y))


def _midpoint(a: Point, b: Point) -> Point:
	return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def _distance(a: Point, b: Point) -> float:
	return math.hypot(b[0] - a[0], b[1] - a[1])


def _pair(landmarks: LandmarkSet, i: int, j: int) -> Tuple[Point, Point]:
	return _point(landmarks, i), _point(landmarks, j)


def reference_distance(landmarks: LandmarkSet, anchor: str) -> float:
	"""Normalized span used to compare body size between the two photos."""
	anchor = parse_anchor(anchor)
	if anchor == "shoulders":
		return _distance(*_pair(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER))
	if anchor == "hips":
		return _distance(*_pair(landmarks, LEFT_HIP, RIGHT_HIP))
	if anchor == "full":
		shoulder_mid = _midpoint(*_pair(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER))
		hip_mid = _midpoint(*_pair(landmarks, LEFT_HIP, RIGHT_HIP))
		return _distance(shoulder_mid, hip_mid)
	return _distance(*_pair(landmarks, LEFT_EYE, RIGHT_EYE))


def anchor_midpoint(landmarks: LandmarkSet, anchor: str, use_nose: bool = True) -> Point:
	"""Normalized anchor center. For head, `use_nose` picks nose vs eye midpoint."""
	anchor = parse_anchor(anchor)
	if anchor == "shoulders":
		return _midpoint(*_pair(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER))
	if anchor == "hips":
		return _midpoint(*_pair(landmarks, LEFT_HIP, RIGHT_HIP))
	if anchor == "full":
		pts = [_point(landmarks, i) for i in (LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP)]
		return (sum(p[0] for p in pts) / 4.0, sum(p[1] for p in pts) / 4.0)
	if use_nose:
		return _point(landmarks, NOSE)
	return _midpoint(*_pair(landmarks, LEFT_EYE, RIGHT_EYE))


def _head_references(before: LandmarkSet, after: LandmarkSet) -> Tuple[float, float]:
	eyes = (LEFT_EYE, RIGHT_EYE)
	if visible(before, eyes) and visible(after, eyes):
		return reference_distance(before, "head"), reference_distance(after, "head")
	return HEAD_REFERENCE_DISTANCE, HEAD_REFERENCE_DISTANCE


def calculate_alignment(
	before: LandmarkSet,
	after: LandmarkSet,
	anchor: str,
	before_size: ImageSize,
	after_size: ImageSize,
) -> AlignmentResult:
	"""
	Compute the transform for the after photo.

	Raises AlignmentUnavailable when either photo cannot satisfy the anchor
	(reason "insufficient_landmarks") or when a reference distance is ~0
	(reason "degenerate").
	"""
	anchor = parse_anchor(anchor)
	if before is None or after is None:
		raise AlignmentUnavailable("Both photos need detected landmarks before aligning.")
	if not (can_calculate_alignment(before, anchor) and can_calculate_alignment(after, anchor)):
		raise AlignmentUnavailable(reason="insufficient_landmarks")

	if anchor == "head":
		ref_before, ref_after = _head_references(before, after)
		nose = (NOSE,)
		use_nose = visible(before, nose) and visible(after, nose)
		if not use_nose and not (visible(before, (LEFT_EYE, RIGHT_EYE)) and visible(after, (LEFT_EYE, RIGHT_EYE))):
			# One photo only has a nose, the other only eyes: no common reference point.
			raise AlignmentUnavailable(reason="insufficient_landmarks")
	else:
		ref_before = reference_distance(before, anchor)
		ref_after = reference_distance(after, anchor)
		use_nose = True

	if ref_before < DEGENERATE_EPSILON or ref_after < DEGENERATE_EPSILON:
		raise AlignmentUnavailable(
			"Anchor landmarks are too close together to measure. Try a different anchor point.",
			reason="degenerate",
		)

	scale = clamp_scale(ref_before / ref_after)

	mid_b = anchor_midpoint(before, anchor, use_nose=use_nose)
	mid_a = anchor_midpoint(after, anchor, use_nose=use_nose)
	before_px = (mid_b[0] * before_size.width, mid_b[1] * before_size.height)
	after_px = (mid_a[0] * after_size.width, mid_a[1] * after_size.height)

	return AlignmentResult(
		scale=scale,
		offset_x=before_px[0] - after_px[0] * scale,
		offset_y=before_px[1] - after_px[1] * scale,
	)
