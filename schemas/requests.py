"""Pydantic request body models for the alignment API."""
from typing import Literal, Optional

from pydantic import BaseModel, Field

AnchorName = Literal["head", "shoulders", "hips", "full"]


class SessionCreatePayload(BaseModel):
	"""Request body for POST /sessions. Optional session_id; auto-generated if omitted."""

	session_id: Optional[str] = Field(None, description="Session identifier; generated if empty")


class AnchorPayload(BaseModel):
	"""Request body for PUT /sessions/{id}/anchor."""

	anchor: AnchorName = Field(..., description="head, shoulders, hips or full")
	auto_align: bool = Field(False, description="Trigger a debounced auto-align after switching")


class AlignmentPatchPayload(BaseModel):
	"""Request body for PATCH /sessions/{id}/alignment. Manual slider values; scale is clamped."""

	scale: Optional[float] = Field(None, description="Scale for the after photo (clamped to 0.5..2.0)")
	offset_x: Optional[float] = Field(None, description="Horizontal offset in pixels")
	offset_y: Optional[float] = Field(None, description="Vertical offset in pixels")


class AutoAlignPayload(BaseModel):
	"""Request body for POST /sessions/{id}/auto-align."""

	wait: bool = Field(True, description="Wait for the debounced computation before responding")


class KeyEventPayload(BaseModel):
	"""Request body for POST /sessions/{id}/keys. Mirrors a browser keydown event."""

	key: str = Field(..., min_length=1, description="KeyboardEvent.key, e.g. ArrowUp, +, r")
	shift: bool = Field(False, description="Shift held (coarse step)")
	in_text_input: bool = Field(False, description="Focus is inside a text input; key is ignored")
