"""
Keyboard command surface for manual alignment.

  Arrow keys       move offset 1px   (shift: 10px)
  + / =            scale up 0.01     (shift: 0.1)
  - / _            scale down 0.01   (shift: 0.1)
  R                reset alignment
  A                auto-align
  L                toggle landmark overlay
  G                toggle grid

Keys are ignored while focus is in a text input.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

OFFSET_STEP_FINE = 1.0
OFFSET_STEP_COARSE = 10.0
SCALE_STEP_FINE = 0.01
SCALE_STEP_COARSE = 0.1


class KeyAction(str, enum.Enum):
	MOVE_UP = "move_up"
	MOVE_DOWN = "move_down"
	MOVE_LEFT = "move_left"
	MOVE_RIGHT = "move_right"
	SCALE_UP = "scale_up"
	SCALE_DOWN = "scale_down"
	RESET = "reset"
	AUTO_ALIGN = "auto_align"
	TOGGLE_LANDMARKS = "toggle_landmarks"
	TOGGLE_GRID = "toggle_grid"


_KEYMAP = {
	"arrowup": KeyAction.MOVE_UP,
	"arrowdown": KeyAction.MOVE_DOWN,
	"arrowleft": KeyAction.MOVE_LEFT,
	"arrowright": KeyAction.MOVE_RIGHT,
	"+": KeyAction.SCALE_UP,
	"=": KeyAction.SCALE_UP,
	"-": KeyAction.SCALE_DOWN,
	"_": KeyAction.SCALE_DOWN,
	"r": KeyAction.RESET,
	"a": KeyAction.AUTO_ALIGN,
	"l": KeyAction.TOGGLE_LANDMARKS,
	"g": KeyAction.TOGGLE_GRID,
}


@dataclass(frozen=True)
class KeyEvent:
	key: str
	shift: bool = False
	in_text_input: bool = False


def resolve_action(event: KeyEvent) -> Optional[KeyAction]:
	if event.in_text_input:
		return None
	return _KEYMAP.get((event.key or "").lower())


def offset_step(shift: bool) -> float:
	return OFFSET_STEP_COARSE if shift else OFFSET_STEP_FINE


def scale_step(shift: bool) -> float:
	return SCALE_STEP_COARSE if shift else SCALE_STEP_FINE
