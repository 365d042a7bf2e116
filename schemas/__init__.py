"""Pydantic request/response models for API validation and docs."""
from schemas.requests import (
	AlignmentPatchPayload,
	AnchorPayload,
	AutoAlignPayload,
	KeyEventPayload,
	SessionCreatePayload,
)

__all__ = [
	"AlignmentPatchPayload",
	"AnchorPayload",
	"AutoAlignPayload",
	"KeyEventPayload",
	"SessionCreatePayload",
]
