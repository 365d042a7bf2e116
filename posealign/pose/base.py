from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from posealign.pose.types import LandmarkSet


class PoseProvider(ABC):
	"""
	Model adapter interface.

	Implementations take an RGB image (H,W,3 uint8) and return every pose the
	model found (possibly none). Choosing one person is the detector's job.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def infer_rgb(self, rgb) -> List[LandmarkSet]: ...

	@abstractmethod
	def close(self) -> None: ...
