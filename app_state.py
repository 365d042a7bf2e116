"""
Explicit app state – single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from typing import Any, Optional

from posealign.config import AppConfig
from posealign.debug_log import AlignmentDebugLog
from posealign.pose.detector import PoseDetector
from posealign.sessions import SessionRegistry


class AppState:
	"""
	Holds all runtime state for the app.
	Populated in server lifespan; routers receive this instance via Depends(get_state).
	"""
	cfg: Optional[AppConfig] = None

	# Process-wide pose model owner (one instance shared by every session)
	detector: Optional[PoseDetector] = None

	# Editing sessions (EditorState + AlignmentCoordinator each)
	sessions: Optional[SessionRegistry] = None

	# Alignment debug log (file-backed, toggled by config/env)
	debug_log: Optional[AlignmentDebugLog] = None

	# WebSocket manager and fire-and-forget log helper (set at app creation)
	manager: Any = None
	log_to_clients: Any = None

	# Background model warm-up task (set in lifespan; cancelled on shutdown)
	warmup_task: Any = None
