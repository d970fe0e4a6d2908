# hexapod_host/core/translator.py
"""
Command -> (Packet, seconds) translation.

The seconds value drives the host-side step timer. The same time is embedded in
the packet as whole 20 ms robot cycles, so the robot stops on its own even if
the host goes quiet.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Sequence, Tuple

from .commands import Command, CommandKind
from .errors import UnknownCommandError
from .packet import Packet
from .protocol import CYCLES_PER_SECOND


@dataclass(frozen=True)
class Calibration:
    speed_factor: float = 13.0      # seconds to walk 1 m at full power
    rotation_period: float = 13.0   # seconds for a full 360 deg turn


Translation = Tuple[Packet, float]
Handler = Callable[[Calibration, Sequence[Any]], Translation]


def to_cycles(seconds: float) -> int:
    return int(seconds * CYCLES_PER_SECOND)


def _seconds(args: Sequence[Any]) -> float:
    return float(args[0])


def _walk(angle: int) -> Handler:
    def handler(cal: Calibration, args: Sequence[Any]) -> Translation:
        seconds = cal.speed_factor * _seconds(args)
        return Packet(power=100, angle=angle, duration=to_cycles(seconds)), seconds
    return handler


def _turn(rotation: int) -> Handler:
    def handler(cal: Calibration, args: Sequence[Any]) -> Translation:
        seconds = cal.rotation_period * _seconds(args) / 360
        return Packet(rotation=rotation, duration=to_cycles(seconds)), seconds
    return handler


def _tilt(acc_x: int = 0, acc_y: int = 0) -> Handler:
    def handler(cal: Calibration, args: Sequence[Any]) -> Translation:
        seconds = _seconds(args)
        packet = Packet(static_tilt=1, acc_x=acc_x, acc_y=acc_y, duration=to_cycles(seconds))
        return packet, seconds
    return handler


def _rest(cal: Calibration, args: Sequence[Any]) -> Translation:
    seconds = _seconds(args) if args else 0.0
    if seconds > 0:
        return Packet(duration=to_cycles(seconds)), seconds
    return Packet.neutral(), 0


def _custom(cal: Calibration, args: Sequence[Any]) -> Translation:
    packet: Packet = args[0]
    if packet.duration > 0:
        return packet, packet.duration / CYCLES_PER_SECOND
    return packet, 0


HANDLERS: Dict[CommandKind, Handler] = {
    CommandKind.MOVE_FORWARD: _walk(0),
    CommandKind.MOVE_BACK: _walk(180),
    CommandKind.TURN_LEFT: _turn(-100),
    CommandKind.TURN_RIGHT: _turn(100),
    CommandKind.TILT_FORWARD: _tilt(acc_x=-30),
    CommandKind.TILT_BACK: _tilt(acc_x=30),
    CommandKind.TILT_LEFT: _tilt(acc_y=-30),
    CommandKind.TILT_RIGHT: _tilt(acc_y=30),
    CommandKind.REST: _rest,
    CommandKind.CUSTOM: _custom,
}


class CommandTranslator:
    """Pure mapping from Command to (Packet, duration in seconds)."""

    def __init__(self, calibration: Calibration | None = None) -> None:
        self.calibration = calibration or Calibration()

    def translate(self, cmd: Command) -> Translation:
        handler = HANDLERS.get(cmd.kind)
        if handler is None:
            raise UnknownCommandError(cmd.kind)
        return handler(self.calibration, cmd.args)
