"""Pose detector routes. Routes: /pose/status, /pose/initialize, /pose/detect, /pose/close."""
import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request

from app_state import AppState
from deps import get_state
from posealign.imaging import prepare_image
from posealign.pose.errors import PoseAlignError
from schemas.responses import DetectorStatusResponse, DetectResponse

router = APIRouter(tags=["pose"])


def error_detail(e: PoseAlignError) -> dict:
	return {"code": e.code, "message": e.message}


def _status(state: AppState) -> dict:
	det = state.detector
	return {"ready": det.is_ready(), "state": det.state.value, "load_count": det.load_count}


@router.get("/pose/status", response_model=DetectorStatusResponse)
async def pose_status(state: AppState = Depends(get_state)):
	"""Non-blocking readiness probe."""
	return _status(state)


@router.post("/pose/initialize", response_model=DetectorStatusResponse)
async def pose_initialize(state: AppState = Depends(get_state)):
	"""Load the pose model (or join an in-flight load)."""
	try:
		await state.detector.initialize()
	except PoseAlignError as e:
		raise HTTPException(status_code=e.http_status, detail=error_detail(e))
	return _status(state)


@router.post("/pose/detect", response_model=DetectResponse)
async def pose_detect(request: Request, state: AppState = Depends(get_state)):
	"""Detect landmarks in the raw image sent as the request body."""
	data = await request.body()
	try:
		prepared = await asyncio.to_thread(prepare_image, data, state.cfg.imaging.max_dimension)
		landmarks = await state.detector.detect(prepared.rgb)
	except PoseAlignError as e:
		raise HTTPException(status_code=e.http_status, detail=error_detail(e))
	return {"width": prepared.width, "height": prepared.height, "landmarks": landmarks.to_list()}


@router.post("/pose/close", response_model=DetectorStatusResponse)
async def pose_close(state: AppState = Depends(get_state)):
	"""Release the model; the next detect/initialize reloads it."""
	await state.detector.close()
	return _status(state)
