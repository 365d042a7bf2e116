"""
Anchor policy: which landmarks each anchor class relies on, and whether a
landmark set is trustworthy enough to align with that anchor.

Anchors are exclusive. Each check looks only at its own anchor's landmarks;
passing "full" says nothing about "hips" and vice versa.
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from posealign.pose.types import (
	LEFT_EYE,
	LEFT_HIP,
	LEFT_SHOULDER,
	NOSE,
	RIGHT_EYE,
	RIGHT_HIP,
	RIGHT_SHOULDER,
	LandmarkSet,
)

VISIBILITY_THRESHOLD = 0.5

ANCHORS = ("head", "shoulders", "hips", "full")
DEFAULT_ANCHOR = "full"

# Each anchor lists one or more alternative index groups; the anchor is
# satisfied when every index of at least one group is visible.
ANCHOR_GROUPS: Dict[str, Tuple[Tuple[int, ...], ...]] = {
	"head": ((NOSE,), (LEFT_EYE, RIGHT_EYE)),
	"shoulders": ((LEFT_SHOULDER, RIGHT_SHOULDER),),
	"hips": ((LEFT_HIP, RIGHT_HIP),),
	"full": ((LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP),),
}

_DESCRIPTIONS = {
	"head": "Aligns based on head position (nose, or eyes when the nose is hidden)",
	"shoulders": "Aligns based on shoulder width",
	"hips": "Aligns based on hip width",
	"full": "Aligns based on full torso (shoulders to hips)",
}


def parse_anchor(value: Optional[str]) -> str:
	v = (value or "").strip().lower()
	if v not in ANCHOR_GROUPS:
		raise ValueError(f"Unknown anchor {value!r}; expected one of {', '.join(ANCHORS)}")
	return v


def anchor_indices(anchor: str) -> Tuple[Tuple[int, ...], ...]:
	return ANCHOR_GROUPS[parse_anchor(anchor)]


def describe_anchor(anchor: str) -> str:
	return _DESCRIPTIONS[parse_anchor(anchor)]


def visible(landmarks: LandmarkSet, indices: Tuple[int, ...], threshold: float = VISIBILITY_THRESHOLD) -> bool:
	return all(landmarks[i].visibility >= threshold for i in indices)


def satisfied_group(landmarks: Optional[LandmarkSet], anchor: str) -> Optional[Tuple[int, ...]]:
	"""Return the first index group of `anchor` that is fully visible, else None."""
	if landmarks is None or len(landmarks) != 33:
		return None
	for group in anchor_indices(anchor):
		if visible(landmarks, group):
			return group
	return None


def can_calculate_alignment(landmarks: Optional[LandmarkSet], anchor: str) -> bool:
	"""True when every landmark the anchor needs is present with visibility >= 0.5."""
	return satisfied_group(landmarks, anchor) is not None
