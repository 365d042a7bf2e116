"""Alignment debug log routes. Routes: /debug/alignment-log (GET, POST, DELETE). 403 unless alignment debug is enabled."""
import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_state
from posealign.config import is_alignment_debug_enabled
from posealign.debug_log import is_valid_entry

router = APIRouter(tags=["debug"])


def _require_enabled(state: AppState) -> None:
	if not is_alignment_debug_enabled(state.cfg):
		raise HTTPException(status_code=403, detail="Alignment debug logging is disabled")


@router.get("/debug/alignment-log")
async def read_alignment_log(state: AppState = Depends(get_state)):
	_require_enabled(state)
	logs = await asyncio.to_thread(state.debug_log.read)
	return {"success": True, "entries_count": len(logs), "logs": logs}


@router.post("/debug/alignment-log")
async def append_alignment_log(entry: Dict[str, Any], state: AppState = Depends(get_state)):
	"""Append an externally built entry (e.g. from a client-side preview)."""
	_require_enabled(state)
	if not is_valid_entry(entry):
		raise HTTPException(status_code=400, detail="Invalid log entry format")
	try:
		count = await asyncio.to_thread(state.debug_log.append, entry)
	except OSError as e:
		raise HTTPException(status_code=500, detail=f"Failed to write log entry: {e!r}")
	return {"success": True, "entries_count": count, "path": str(state.debug_log.path)}


@router.delete("/debug/alignment-log")
async def clear_alignment_log(state: AppState = Depends(get_state)):
	_require_enabled(state)
	if await asyncio.to_thread(state.debug_log.clear):
		return {"success": True, "message": "Log file deleted"}
	return {"success": True, "message": "No log file to delete"}
