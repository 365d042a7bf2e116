"""
Alignment debug log.

When enabled, each computed alignment is appended to a JSON array file
(debug/alignment-log.json by default) so runs can be diffed offline.
Writing is best-effort: failures are logged at debug level and never reach
the alignment path.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from posealign.pose.types import LEFT_HIP, LEFT_SHOULDER, NOSE, RIGHT_HIP, RIGHT_SHOULDER, LandmarkSet, Photo

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000


def extract_landmark_summary(landmarks: Optional[LandmarkSet]) -> Optional[Dict[str, Any]]:
	if landmarks is None:
		return None
	nose = landmarks[NOSE]
	ls = landmarks[LEFT_SHOULDER]
	rs = landmarks[RIGHT_SHOULDER]
	lh = landmarks[LEFT_HIP]
	rh = landmarks[RIGHT_HIP]
	return {
		"count": len(landmarks),
		"nose": {"y": nose.y, "visibility": nose.visibility},
		"left_shoulder": {"x": ls.x, "y": ls.y, "visibility": ls.visibility},
		"right_shoulder": {"x": rs.x, "y": rs.y, "visibility": rs.visibility},
		"left_hip": {"y": lh.y, "visibility": lh.visibility},
		"right_hip": {"y": rh.y, "visibility": rh.visibility},
	}


def build_log_entry(
	before: Photo,
	after: Photo,
	anchor: str,
	result: Dict[str, float],
	source: str = "auto_align",
) -> Dict[str, Any]:
	return {
		"timestamp": datetime.now(timezone.utc).isoformat(),
		"input": {
			"before_img": {"width": before.width, "height": before.height},
			"after_img": {"width": after.width, "height": after.height},
			"anchor": anchor,
			"before_landmarks": extract_landmark_summary(before.landmarks),
			"after_landmarks": extract_landmark_summary(after.landmarks),
		},
		"result": {
			"scale": round(float(result["scale"]), 4),
			"offset_x": round(float(result["offset_x"]), 2),
			"offset_y": round(float(result["offset_y"]), 2),
		},
		"metadata": {"source": source},
	}


def is_valid_entry(entry: Any) -> bool:
	return isinstance(entry, dict) and all(k in entry for k in ("timestamp", "input", "result"))


class AlignmentDebugLog:
	"""JSON-array log file holding the newest `max_entries` entries. Writes block; call off the event loop."""

	def __init__(self, path: str | Path, enabled: bool = False, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
		self.path = Path(path)
		self.enabled = bool(enabled)
		self.max_entries = max(1, int(max_entries))
		self._lock = threading.Lock()

	def read(self) -> List[Any]:
		with self._lock:
			return self._read_unlocked()

	def _read_unlocked(self) -> List[Any]:
		try:
			logs = json.loads(self.path.read_text(encoding="utf-8"))
		except (OSError, ValueError):
			return []
		return logs if isinstance(logs, list) else []

	def append(self, entry: Dict[str, Any]) -> int:
		"""Append one entry; returns the number of entries now in the file."""
		with self._lock:
			logs = self._read_unlocked()
			logs.append(entry)
			if len(logs) > self.max_entries:
				logs = logs[-self.max_entries:]
			self.path.parent.mkdir(parents=True, exist_ok=True)
			self.path.write_text(json.dumps(logs, indent=2), encoding="utf-8")
			return len(logs)

	def clear(self) -> bool:
		with self._lock:
			try:
				self.path.unlink()
				return True
			except FileNotFoundError:
				return False

	def record(self, entry: Dict[str, Any]) -> None:
		"""Fire-and-forget append used by the alignment path. Never raises."""
		if not self.enabled:
			return
		try:
			self.append(entry)
		except Exception:
			logger.debug("alignment debug log write failed", exc_info=True)
