from __future__ import annotations

import logging
import shutil
import urllib.request
from pathlib import Path
from typing import List, Optional

import numpy as np

from posealign.config import PoseConfig
from posealign.pose.base import PoseProvider
from posealign.pose.types import LANDMARK_COUNT, Landmark, LandmarkSet

logger = logging.getLogger(__name__)


def ensure_model_asset(model_path: str | Path, model_url: str) -> Path:
	"""
	Return a local path to the .task model, downloading it first if missing.

	Downloads go to a .tmp sibling and are renamed into place, so a failed
	transfer never leaves a truncated model behind.
	"""
	path = Path(model_path).expanduser()
	if path.exists() and path.stat().st_size > 1024:
		return path

	path.parent.mkdir(parents=True, exist_ok=True)
	tmp_path = path.with_suffix(path.suffix + ".tmp")
	logger.info("Downloading pose landmarker model %s -> %s", model_url, path)
	try:
		with urllib.request.urlopen(model_url, timeout=60) as response, tmp_path.open("wb") as fh:
			shutil.copyfileobj(response, fh)
		tmp_path.replace(path)
	except Exception:
		tmp_path.unlink(missing_ok=True)
		raise
	return path


class MediaPipePoseProvider(PoseProvider):
	"""
	MediaPipe Tasks PoseLandmarker in IMAGE mode.

	Notes:
	- Output stays in MediaPipe's normalized coordinates (33 points per pose).
	- `visibility` is passed through as the per-point confidence.
	- Constructing this loads the model; it is slow and blocking, so the
	  detector lifecycle builds it off the event loop.
	"""

	def __init__(self, cfg: Optional[PoseConfig] = None) -> None:
		cfg = cfg or PoseConfig()
		try:
			import mediapipe as mp  # type: ignore
			from mediapipe.tasks.python.core.base_options import BaseOptions  # type: ignore
			from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions, RunningMode  # type: ignore
		except Exception as e:
			raise RuntimeError(
				"MediaPipe Tasks API is not available. Install with: pip install mediapipe"
			) from e

		model_path = ensure_model_asset(cfg.model_path, cfg.model_url)
		options = PoseLandmarkerOptions(
			base_options=BaseOptions(model_asset_path=str(model_path)),
			running_mode=RunningMode.IMAGE,
			num_poses=int(cfg.num_poses),
			min_pose_detection_confidence=float(cfg.min_pose_detection_confidence),
			min_pose_presence_confidence=float(cfg.min_pose_presence_confidence),
			min_tracking_confidence=float(cfg.min_tracking_confidence),
			output_segmentation_masks=False,
		)
		self._mp = mp
		self._landmarker = PoseLandmarker.create_from_options(options)
		logger.info("MediaPipe PoseLandmarker loaded from %s (num_poses=%d)", model_path, int(cfg.num_poses))

	def name(self) -> str:
		return "mediapipe_pose_landmarker"

	def infer_rgb(self, rgb) -> List[LandmarkSet]:
		# rgb: HxWx3 uint8
		frame = np.ascontiguousarray(rgb, dtype=np.uint8)
		mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=frame)
		res = self._landmarker.detect(mp_image)
		poses = getattr(res, "pose_landmarks", None) or []

		out: List[LandmarkSet] = []
		for pose in poses:
			if len(pose) != LANDMARK_COUNT:
				continue
			out.append(LandmarkSet(
				Landmark(
					x=float(p.x),
					y=float(p.y),
					z=float(p.z),
					visibility=float(getattr(p, "visibility", 0.0) or 0.0),
				)
				for p in pose
			))
		return out

	def close(self) -> None:
		if self._landmarker is not None:
			self._landmarker.close()
			self._landmarker = None
