#!/usr/bin/env python3
"""Download the pose landmarker model asset ahead of time (so the server starts offline)."""

import argparse

from posealign.config import get_config, set_config_path
from posealign.pose.mediapipe_provider import ensure_model_asset


def main():
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--config", help="Path to config.json (defaults to repo root)")
	parser.add_argument("--url", help="Override model URL")
	parser.add_argument("--out", help="Override destination path")
	args = parser.parse_args()

	if args.config:
		set_config_path(args.config)
	cfg = get_config().pose
	path = ensure_model_asset(args.out or cfg.model_path, args.url or cfg.model_url)
	print(f"Model ready: {path} ({path.stat().st_size} bytes)")


if __name__ == "__main__":
	main()
