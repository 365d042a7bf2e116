"""Pydantic response models for API docs."""
from typing import List, Optional

from pydantic import BaseModel


class LandmarkModel(BaseModel):
	x: float
	y: float
	z: float
	visibility: float


class DetectResponse(BaseModel):
	"""Response from POST /pose/detect."""

	width: int
	height: int
	landmarks: List[LandmarkModel]


class DetectorStatusResponse(BaseModel):
	"""Response from GET /pose/status."""

	ready: bool
	state: str
	load_count: int


class AlignmentModel(BaseModel):
	anchor: str
	scale: float
	offset_x: float
	offset_y: float


class AlignmentResponse(BaseModel):
	"""Alignment plus the derived flags, recomputed per request."""

	alignment: AlignmentModel
	can_align: bool
	is_aligned: bool
	error: Optional[str] = None


class PhotoModel(BaseModel):
	id: str
	width: int
	height: int
	has_landmarks: bool


class SessionResponse(BaseModel):
	"""Response from GET /sessions/{id}."""

	session_id: str
	before_photo: Optional[PhotoModel] = None
	after_photo: Optional[PhotoModel] = None
	alignment: AlignmentModel
	can_align: bool
	is_aligned: bool
	show_landmarks: bool
	show_grid: bool
	linked_zoom: bool
	is_detecting: bool
	detecting_slots: List[str] = []
	error: Optional[str] = None
