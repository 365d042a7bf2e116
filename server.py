import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from posealign import __version__
from posealign.config import AppConfig, get_config, is_alignment_debug_enabled
from posealign.debug_log import AlignmentDebugLog
from posealign.editor_state import EditorState
from posealign.pose.base import PoseProvider
from posealign.pose.detector import PoseDetector
from posealign.pose.errors import InitializationFailed
from posealign.sessions import SessionRegistry
from routers import debug, pose, sessions, ws

logger = logging.getLogger("posealign.server")


def configure_logging(level: str = "INFO") -> None:
	logging.basicConfig(
		level=getattr(logging, (level or "INFO").upper(), logging.INFO),
		format="%(levelname)s:%(name)s:%(message)s",
	)


def _default_provider_factory(cfg: AppConfig) -> Callable[[], PoseProvider]:
	def factory() -> PoseProvider:
		# Imported lazily: mediapipe is heavy and only needed once the model loads.
		from posealign.pose.mediapipe_provider import MediaPipePoseProvider

		return MediaPipePoseProvider(cfg.pose)

	return factory


def _publish_alignment(session_id: str, state: EditorState) -> None:
	ws.publish({
		"type": "alignment",
		"session_id": session_id,
		"alignment": state.alignment.to_dict(),
		"display": state.display(),
	})


async def _warmup(detector: PoseDetector) -> None:
	try:
		await detector.initialize()
		ws.log_to_clients("[Pose] model ready")
	except InitializationFailed as e:
		# Not fatal: the next detect/initialize retries.
		logger.warning("Pose model warm-up failed: %s", e.message)
		ws.log_to_clients(f"[Pose] warm-up failed: {e.message}")


def create_app(
	cfg: Optional[AppConfig] = None,
	provider_factory: Optional[Callable[[], PoseProvider]] = None,
) -> FastAPI:
	cfg = cfg or get_config()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		state = AppState()
		state.cfg = cfg
		state.manager = ws.manager
		state.log_to_clients = ws.log_to_clients
		state.detector = PoseDetector(provider_factory or _default_provider_factory(cfg))
		state.debug_log = AlignmentDebugLog(
			Path(cfg.debug.alignment_log_path),
			enabled=is_alignment_debug_enabled(cfg),
			max_entries=cfg.debug.alignment_log_max_entries,
		)
		state.sessions = SessionRegistry(
			debounce_s=float(cfg.alignment.debounce_ms) / 1000.0,
			debug_log=state.debug_log,
			on_change=_publish_alignment,
		)
		app.state.state = state

		if cfg.pose.warmup_on_startup:
			state.warmup_task = asyncio.create_task(_warmup(state.detector))

		try:
			yield
		finally:
			# Stop sessions first so no debounced write lands after shutdown.
			state.sessions.close_all()

			if state.warmup_task is not None and not state.warmup_task.done():
				state.warmup_task.cancel()
				try:
					await state.warmup_task
				except asyncio.CancelledError:
					pass
			state.warmup_task = None

			await state.detector.close()

	app = FastAPI(title="posealign", version=__version__, lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(pose.router)
	app.include_router(sessions.router)
	app.include_router(debug.router)
	app.include_router(ws.router)

	@app.get("/health")
	async def health():
		return {"status": "ok", "version": __version__}

	return app


app = create_app()


def main() -> None:
	parser = argparse.ArgumentParser(description="Run the pose alignment service.")
	parser.add_argument("--host", default="127.0.0.1")
	parser.add_argument("--port", type=int, default=8000)
	parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
	args = parser.parse_args()

	configure_logging("DEBUG" if args.debug else get_config().debug.log_level)

	import uvicorn

	uvicorn.run(app, host=args.host, port=int(args.port))


if __name__ == "__main__":
	main()
