from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_MODEL_URL = (
	"https://storage.googleapis.com/mediapipe-models/pose_landmarker/"
	"pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
)


@dataclass(frozen=True)
class PoseConfig:
	# Remote asset is downloaded to model_path on first initialize if missing.
	model_url: str = DEFAULT_MODEL_URL
	model_path: str = str(Path("data") / "models" / "pose_landmarker_lite.task")
	num_poses: int = 1
	min_pose_detection_confidence: float = 0.5
	min_pose_presence_confidence: float = 0.5
	min_tracking_confidence: float = 0.5
	# Start loading the model in the background when the server starts.
	warmup_on_startup: bool = True


@dataclass(frozen=True)
class AlignmentConfig:
	debounce_ms: float = 100.0


@dataclass(frozen=True)
class ImagingConfig:
	# Uploaded photos larger than this (either side, px) are downscaled before detection.
	max_dimension: int = 2048


@dataclass(frozen=True)
class DebugConfig:
	alignment_log: bool = False
	alignment_log_path: str = str(Path("debug") / "alignment-log.json")
	# Oldest entries are dropped past this count.
	alignment_log_max_entries: int = 1000
	log_level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
	pose: PoseConfig = field(default_factory=PoseConfig)
	alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
	imaging: ImagingConfig = field(default_factory=ImagingConfig)
	debug: DebugConfig = field(default_factory=DebugConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None

DEBUG_ALIGNMENT_ENV = "POSEALIGN_DEBUG_ALIGNMENT"


def _repo_root() -> Path:
	# posealign/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Intended for tooling and tests; the server normally uses the default path.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except Exception:
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except Exception:
		return float(default)


def _as_confidence(v: Any, default: float) -> float:
	val = _as_float(v, default)
	return val if 0.0 <= val <= 1.0 else float(default)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except Exception:
		# If config is malformed, fail safe to defaults (but keep app running).
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	d_pose = PoseConfig()
	model_url = _as_str(_deep_get(raw, ["pose", "model_url"], d_pose.model_url), d_pose.model_url).strip()
	model_path = _as_str(_deep_get(raw, ["pose", "model_path"], d_pose.model_path), d_pose.model_path).strip()
	num_poses = _as_int(_deep_get(raw, ["pose", "num_poses"], 1), 1)
	det_conf = _as_confidence(_deep_get(raw, ["pose", "min_pose_detection_confidence"], 0.5), 0.5)
	pres_conf = _as_confidence(_deep_get(raw, ["pose", "min_pose_presence_confidence"], 0.5), 0.5)
	track_conf = _as_confidence(_deep_get(raw, ["pose", "min_tracking_confidence"], 0.5), 0.5)
	warmup = _as_bool(_deep_get(raw, ["pose", "warmup_on_startup"], True), True)

	debounce_ms = _as_float(_deep_get(raw, ["alignment", "debounce_ms"], 100.0), 100.0)

	max_dim = _as_int(_deep_get(raw, ["imaging", "max_dimension"], 2048), 2048)

	d_debug = DebugConfig()
	align_log = _as_bool(_deep_get(raw, ["debug", "alignment_log"], False), False)
	align_log_path = _as_str(_deep_get(raw, ["debug", "alignment_log_path"], d_debug.alignment_log_path), "").strip()
	log_level = _as_str(_deep_get(raw, ["debug", "log_level"], "INFO"), "INFO").strip().upper()
	log_max = _as_int(_deep_get(raw, ["debug", "alignment_log_max_entries"], 1000), 1000)

	return AppConfig(
		pose=PoseConfig(
			model_url=model_url or d_pose.model_url,
			model_path=model_path or d_pose.model_path,
			num_poses=int(num_poses) if int(num_poses) > 0 else 1,
			min_pose_detection_confidence=det_conf,
			min_pose_presence_confidence=pres_conf,
			min_tracking_confidence=track_conf,
			warmup_on_startup=warmup,
		),
		alignment=AlignmentConfig(debounce_ms=float(debounce_ms) if float(debounce_ms) >= 0.0 else 100.0),
		imaging=ImagingConfig(max_dimension=int(max_dim) if int(max_dim) > 0 else 2048),
		debug=DebugConfig(
			alignment_log=align_log,
			alignment_log_path=align_log_path or d_debug.alignment_log_path,
			alignment_log_max_entries=int(log_max) if int(log_max) > 0 else 1000,
			log_level=log_level or "INFO",
		),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE


def is_alignment_debug_enabled(cfg: Optional[AppConfig] = None) -> bool:
	"""Env var wins over config.json so the log can be toggled without editing files."""
	env = os.getenv(DEBUG_ALIGNMENT_ENV)
	if env is not None and env.strip():
		return _as_bool(env, False)
	cfg = cfg or get_config()
	return bool(cfg.debug.alignment_log)
