"""
posealign application package.

Pose detection, anchor policy, alignment math and the per-session coordinator
live here; the HTTP layer (server.py, routers/, schemas/) imports from it.
"""

from pathlib import Path


def _read_version() -> str:
	try:
		vf = Path(__file__).resolve().parents[1] / "VERSION"
		if vf.exists():
			val = vf.read_text(encoding="utf-8").strip()
			if val:
				return val
	except Exception:
		pass
	return "0.1.0"


__version__ = _read_version()
