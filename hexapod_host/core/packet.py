# hexapod_host/core/packet.py
"""
Packet: one 10 Hz control frame for the hexapod.

Field summary (defaults describe a robot standing still, powered on):

  Translation:
    power     [0..100]     walking speed
    angle     [-180..180]  heading; 0 forward, 90 right, -90 left, 180 back
                           (halved on the wire, see serialize())
  Rotation:
    rotation  [-100..100]  >0 clockwise, <0 counter-clockwise

  Flags (static_tilt and moving_tilt are mutually exclusive):
    static_tilt  [0,1]  tilt body according to acc_x/acc_y while standing
    moving_tilt  [0,1]  tilt body while walking (experimental on the robot)
    on_off       [0,1]  1 operational, 0 sleeping

  Acceleration (tenths of m/s^2, saturated at +-40, only read when a tilt flag is set):
    acc_x, acc_y

  sliders: auxiliary array of exactly 9 bytes
    [0] height [0..100], [1] gait [0..100], [2..8] user data [0..255]

  duration [0..65535]: how many 20 ms robot cycles the packet is executed for.
    0 means "rest once the robot-side timeout expires", not "zero time".

Construction is deliberately permissive: numbers pass straight through to the
wire. The only guard is the slider length check. Use build_strict() when you
want ranges enforced.
"""
from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .errors import PacketValidationError

log = logging.getLogger(__name__)

MAGIC = b"PKT"
PACKET_LEN = 22
SLIDERS_LEN = 9
DEFAULT_SLIDERS: Tuple[int, ...] = (50, 25, 0, 0, 0, 0, 0, 0, 0)

# name -> (min, max), inclusive
FIELD_RANGES: Dict[str, Tuple[int, int]] = {
    "power": (0, 100),
    "angle": (-180, 180),
    "rotation": (-100, 100),
    "static_tilt": (0, 1),
    "moving_tilt": (0, 1),
    "on_off": (0, 1),
    "acc_x": (-40, 40),
    "acc_y": (-40, 40),
    "duration": (0, 65535),
}
SLIDER_RANGES: Tuple[Tuple[int, int], ...] = ((0, 100), (0, 100)) + ((0, 255),) * 7


def _u8(value: Any) -> int:
    """Truncate toward zero and wrap into one byte. Non-finite values become 0."""
    value = float(value)
    if not math.isfinite(value):
        return 0
    return int(value) & 0xFF


@dataclass(frozen=True)
class Packet:
    power: float = 0
    angle: float = 0
    rotation: float = 0
    static_tilt: int = 0
    moving_tilt: int = 0
    on_off: int = 1
    acc_x: float = 0
    acc_y: float = 0
    sliders: Tuple[int, ...] = field(default=DEFAULT_SLIDERS)
    duration: float = 0

    def __post_init__(self) -> None:
        sliders = self.sliders
        if sliders is None:
            sliders = DEFAULT_SLIDERS
        elif len(sliders) != SLIDERS_LEN:
            log.warning(
                "Packet: sliders must have exactly %d elements (got %r); using default",
                SLIDERS_LEN,
                sliders,
            )
            sliders = DEFAULT_SLIDERS
        object.__setattr__(self, "sliders", tuple(sliders))

    # ---------------- Construction ----------------

    @classmethod
    def build(cls, **fields: Any) -> "Packet":
        return cls(**fields)

    @classmethod
    def build_strict(cls, **fields: Any) -> "Packet":
        """Like build(), but raise PacketValidationError on any range violation."""
        sliders = fields.get("sliders")
        if sliders is not None and len(sliders) != SLIDERS_LEN:
            raise PacketValidationError(
                [f"sliders: expected {SLIDERS_LEN} elements, got {len(sliders)}"]
            )
        packet = cls(**fields)
        problems = packet.problems()
        if problems:
            raise PacketValidationError(problems)
        return packet

    @classmethod
    def neutral(cls) -> "Packet":
        return cls()

    def replace(self, **changes: Any) -> "Packet":
        return dataclasses.replace(self, **changes)

    # ---------------- Inspection ----------------

    def problems(self) -> list[str]:
        out: list[str] = []
        for name, (lo, hi) in FIELD_RANGES.items():
            v = getattr(self, name)
            if not (lo <= v <= hi):
                out.append(f"{name}={v!r} outside [{lo}, {hi}]")
        for i, (v, (lo, hi)) in enumerate(zip(self.sliders, SLIDER_RANGES)):
            if not (lo <= v <= hi):
                out.append(f"sliders[{i}]={v!r} outside [{lo}, {hi}]")
        if self.static_tilt == 1 and self.moving_tilt == 1:
            out.append("static_tilt and moving_tilt are mutually exclusive")
        return out

    @property
    def is_neutral(self) -> bool:
        return self == NEUTRAL

    def to_dict(self) -> Dict[str, Any]:
        d = dataclasses.asdict(self)
        d["sliders"] = list(self.sliders)
        return d

    # ---------------- Wire ----------------

    def serialize(self) -> bytes:
        """
        Encode as the 22-byte frame the robot expects:

            'P' 'K' 'T' power angle/2 rotation static_tilt moving_tilt on_off
            acc_x acc_y sliders[0..8] duration_hi duration_lo

        angle is halved (one byte cannot hold [-180..180]); the robot doubles it.
        Every value is truncated toward zero and wrapped to a byte, so negative
        numbers go out as two's complement.
        """
        out = bytearray(MAGIC)
        out.extend(
            _u8(v)
            for v in (
                self.power,
                float(self.angle) / 2,
                self.rotation,
                self.static_tilt,
                self.moving_tilt,
                self.on_off,
                self.acc_x,
                self.acc_y,
            )
        )
        out.extend(_u8(v) for v in self.sliders)

        duration = float(self.duration)
        if math.isfinite(duration):
            out.append(_u8(duration / 256))
            out.append(_u8(math.fmod(duration, 256)))
        else:
            out.extend((0, 0))
        return bytes(out)


NEUTRAL = Packet()
