# hexapod_host/core/commands.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple


class CommandKind(Enum):
    MOVE_FORWARD = "move_forward"
    MOVE_BACK = "move_back"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    TILT_FORWARD = "tilt_forward"
    TILT_BACK = "tilt_back"
    TILT_LEFT = "tilt_left"
    TILT_RIGHT = "tilt_right"
    REST = "rest"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Command:
    """A queued motion intent. args holds numbers, or a Packet for CUSTOM."""
    kind: CommandKind
    args: Tuple[Any, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        args = ", ".join(repr(a) for a in self.args)
        return f"{self.kind.value}({args})"
