#!/usr/bin/env python3
"""
Detect poses in a before/after pair and print the alignment for one anchor.

Example:
    python scripts/align_photos.py before.jpg after.jpg --anchor shoulders
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from posealign.alignment.anchors import ANCHORS, can_calculate_alignment, describe_anchor
from posealign.alignment.calculator import calculate_alignment
from posealign.config import get_config, set_config_path
from posealign.imaging import new_photo, prepare_image
from posealign.pose.detector import PoseDetector
from posealign.pose.errors import PoseAlignError
from posealign.pose.mediapipe_provider import MediaPipePoseProvider


async def run(before_path: Path, after_path: Path, anchor: str) -> dict:
	cfg = get_config()
	detector = PoseDetector(lambda: MediaPipePoseProvider(cfg.pose))
	try:
		photos = []
		for p in (before_path, after_path):
			prepared = prepare_image(p.read_bytes(), cfg.imaging.max_dimension)
			landmarks = await detector.detect(prepared.rgb)
			photos.append(new_photo(prepared, photo_id=p.name).with_landmarks(landmarks))
	finally:
		await detector.close()

	before, after = photos
	out = {
		"anchor": anchor,
		"description": describe_anchor(anchor),
		"before": {"width": before.width, "height": before.height, "anchor_ok": can_calculate_alignment(before.landmarks, anchor)},
		"after": {"width": after.width, "height": after.height, "anchor_ok": can_calculate_alignment(after.landmarks, anchor)},
	}
	result = calculate_alignment(before.landmarks, after.landmarks, anchor, before.size, after.size)
	out["result"] = result.to_dict()
	return out


def main():
	parser = argparse.ArgumentParser(description="Compute before/after photo alignment from pose landmarks.")
	parser.add_argument("before", type=Path)
	parser.add_argument("after", type=Path)
	parser.add_argument("--anchor", choices=ANCHORS, default="full")
	parser.add_argument("--config", help="Path to config.json (defaults to repo root)")
	parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
	args = parser.parse_args()

	logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
	if args.config:
		set_config_path(args.config)

	try:
		out = asyncio.run(run(args.before, args.after, args.anchor))
	except PoseAlignError as e:
		print(f"[{e.code}] {e.message}", file=sys.stderr)
		sys.exit(2)
	print(json.dumps(out, indent=2))


if __name__ == "__main__":
	main()
