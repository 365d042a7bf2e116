"""Image acquisition: decode uploaded bytes, honour EXIF orientation, cap the size."""
from __future__ import annotations

import io
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from posealign.pose.errors import InvalidImage
from posealign.pose.types import Photo


@dataclass(frozen=True)
class PreparedImage:
	data: bytes
	width: int
	height: int
	rgb: np.ndarray


def _open_rgb(data: bytes) -> Image.Image:
	if not data:
		raise InvalidImage("Image payload is empty.")
	try:
		img = Image.open(io.BytesIO(data))
		img.load()
	except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
		raise InvalidImage(f"Failed to load image for pose detection: {e}") from e
	img = ImageOps.exif_transpose(img) or img
	return img.convert("RGB")


def decode_image(data: bytes) -> np.ndarray:
	"""Decode encoded image bytes (JPEG/PNG/...) to an HxWx3 uint8 RGB array."""
	return np.asarray(_open_rgb(data), dtype=np.uint8)


def fit_within(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
	"""Scale (width, height) down so neither side exceeds max_dimension, keeping aspect ratio."""
	if max_dimension <= 0 or (width <= max_dimension and height <= max_dimension):
		return int(width), int(height)
	if width >= height:
		new_w = int(max_dimension)
		new_h = max(1, int(round(height * (max_dimension / float(width)))))
	else:
		new_h = int(max_dimension)
		new_w = max(1, int(round(width * (max_dimension / float(height)))))
	return new_w, new_h


def prepare_image(data: bytes, max_dimension: int = 2048) -> PreparedImage:
	"""
	Decode and (if needed) downscale an upload.

	The returned `data` is the original payload when no resize happened,
	otherwise the resized image re-encoded as JPEG.
	"""
	img = _open_rgb(data)
	w, h = img.size
	new_w, new_h = fit_within(w, h, max_dimension)
	if (new_w, new_h) != (w, h):
		img = img.resize((new_w, new_h), Image.LANCZOS)
		buf = io.BytesIO()
		img.save(buf, format="JPEG", quality=90)
		data = buf.getvalue()
	return PreparedImage(data=data, width=new_w, height=new_h, rgb=np.asarray(img, dtype=np.uint8))


def new_photo(prepared: PreparedImage, photo_id: Optional[str] = None) -> Photo:
	return Photo(
		id=photo_id or uuid.uuid4().hex,
		data=prepared.data,
		width=int(prepared.width),
		height=int(prepared.height),
		landmarks=None,
	)
