from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import numpy as np

from posealign.imaging import decode_image
from posealign.pose.base import PoseProvider
from posealign.pose.errors import (
	DetectionFailed,
	InitializationFailed,
	NoPoseDetected,
	PoseDetectionError,
)
from posealign.pose.types import LandmarkSet

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, bytearray, memoryview, np.ndarray]


class DetectorState(str, enum.Enum):
	UNINITIALIZED = "uninitialized"
	INITIALIZING = "initializing"
	READY = "ready"


@dataclass(frozen=True)
class DetectorHandle:
	"""The live provider plus the load generation it came from."""

	provider: PoseProvider
	generation: int

	@property
	def backend(self) -> str:
		return self.provider.name()


def select_primary_pose(poses: List[LandmarkSet]) -> LandmarkSet:
	"""Pick the highest-confidence pose (mean visibility); first one wins ties."""
	if not poses:
		raise NoPoseDetected()
	best = poses[0]
	best_score = best.mean_visibility()
	for pose in poses[1:]:
		score = pose.mean_visibility()
		if score > best_score:
			best, best_score = pose, score
	return best


def _retrieve_exception(fut: asyncio.Future) -> None:
	# Every waiter may have been cancelled before a failed load finishes.
	if not fut.cancelled():
		fut.exception()


class PoseDetector:
	"""
	Owns the single pose model instance shared by every detection call.

	State machine: uninitialized -> initializing -> ready, and back to
	uninitialized on load failure or close(). Concurrent initialize() calls
	all await the same in-flight load, so the model is loaded at most once
	per generation. Detect calls are serialized against the one instance.
	"""

	def __init__(self, provider_factory: Callable[[], PoseProvider]) -> None:
		self._factory = provider_factory
		self._handle: Optional[DetectorHandle] = None
		self._pending: Optional[asyncio.Future] = None
		self._state = DetectorState.UNINITIALIZED
		self._generation = 0
		self._load_count = 0
		self._state_lock = asyncio.Lock()
		self._detect_lock = asyncio.Lock()

	@property
	def state(self) -> DetectorState:
		return self._state

	@property
	def load_count(self) -> int:
		"""Number of times the provider factory has been invoked."""
		return self._load_count

	def is_ready(self) -> bool:
		return self._handle is not None

	async def initialize(self) -> DetectorHandle:
		async with self._state_lock:
			if self._handle is not None:
				return self._handle
			if self._pending is None:
				self._state = DetectorState.INITIALIZING
				self._pending = asyncio.ensure_future(self._load(self._generation))
				self._pending.add_done_callback(_retrieve_exception)
			pending = self._pending
		# shield: one caller being cancelled must not abort the shared load.
		return await asyncio.shield(pending)

	async def _load(self, generation: int) -> DetectorHandle:
		self._load_count += 1
		logger.info("Loading pose model (attempt %d)", self._load_count)
		try:
			provider = await asyncio.to_thread(self._factory)
		except Exception as e:
			if generation == self._generation:
				self._reset()
			logger.warning("Pose model load failed: %r", e)
			raise InitializationFailed() from e

		if generation != self._generation:
			# close() ran while we were loading; this instance is orphaned.
			try:
				provider.close()
			except Exception:
				logger.debug("Closing orphaned pose provider failed", exc_info=True)
			raise InitializationFailed("Pose detector was closed during initialization.")

		handle = DetectorHandle(provider=provider, generation=generation)
		self._handle = handle
		self._pending = None
		self._state = DetectorState.READY
		logger.info("Pose model ready (%s)", handle.backend)
		return handle

	def _reset(self) -> None:
		self._handle = None
		self._pending = None
		self._state = DetectorState.UNINITIALIZED

	async def detect(self, image: ImageInput) -> LandmarkSet:
		"""
		Detect one person's landmarks in `image` (encoded bytes or an RGB array).

		Raises InvalidImage, NoPoseDetected, DetectionFailed, or
		InitializationFailed when the model cannot be loaded.
		"""
		if isinstance(image, np.ndarray):
			rgb = image
		else:
			rgb = decode_image(bytes(image))

		while True:
			handle = await self.initialize()
			async with self._detect_lock:
				if handle is not self._handle:
					# Closed while we waited for the lock; run against the reloaded model.
					continue
				try:
					poses = await asyncio.to_thread(handle.provider.infer_rgb, rgb)
				except PoseDetectionError:
					raise
				except Exception as e:
					logger.warning("Pose detection failed: %r", e)
					raise DetectionFailed() from e
			return select_primary_pose(poses)

	async def close(self) -> None:
		"""
		Release the model. The next initialize() performs a full reload.

		The detector is marked uninitialized immediately; the provider itself is
		released only after any in-flight detection on it has finished.
		"""
		async with self._state_lock:
			handle = self._handle
			self._generation += 1
			self._reset()
		if handle is None:
			return
		async with self._detect_lock:
			try:
				handle.provider.close()
			except Exception:
				logger.warning("Error while closing pose provider", exc_info=True)
		logger.info("Pose model closed")
