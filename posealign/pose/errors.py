"""
Error taxonomy for detection and alignment.

Every error carries a stable `code` (sent to clients) and a user-facing message.
None of these are fatal: each is scoped to one detection attempt or one photo pair.
"""
from __future__ import annotations

from typing import Optional


class PoseAlignError(Exception):
	code = "error"
	http_status = 500
	default_message = "Pose alignment error."

	def __init__(self, message: Optional[str] = None) -> None:
		super().__init__(message or self.default_message)

	@property
	def message(self) -> str:
		return str(self.args[0]) if self.args else self.default_message


class PoseDetectionError(PoseAlignError):
	code = "detection_error"


class InitializationFailed(PoseDetectionError):
	code = "initialization_failed"
	http_status = 503
	default_message = "Failed to initialize pose detector. Please check your internet connection and try again."


class InvalidImage(PoseDetectionError):
	code = "invalid_image"
	http_status = 400
	default_message = "Failed to load image for pose detection."


class NoPoseDetected(PoseDetectionError):
	code = "no_pose_detected"
	http_status = 422
	default_message = "No pose detected in the image. Please ensure a person is visible in the photo."


class DetectionFailed(PoseDetectionError):
	code = "detection_failed"
	default_message = "Failed to detect pose in the image. Please try with a different photo."


class AlignmentUnavailable(PoseAlignError):
	"""
	Alignment cannot be computed for this photo pair and anchor.

	reason is "insufficient_landmarks" (anchor landmarks missing/low confidence)
	or "degenerate" (reference distance ~0).
	"""

	code = "alignment_unavailable"
	http_status = 409
	default_message = "Cannot align with this anchor. Try a different anchor point."

	def __init__(self, message: Optional[str] = None, reason: str = "insufficient_landmarks") -> None:
		super().__init__(message)
		self.reason = reason
