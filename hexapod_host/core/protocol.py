# hexapod_host/core/protocol.py
from typing import Callable

from .packet import MAGIC, PACKET_LEN, SLIDERS_LEN, Packet

# byte offsets inside a frame
OFF_POWER       = 3
OFF_ANGLE       = 4
OFF_ROTATION    = 5
OFF_STATIC_TILT = 6
OFF_MOVING_TILT = 7
OFF_ON_OFF      = 8
OFF_ACC_X       = 9
OFF_ACC_Y       = 10
OFF_SLIDERS     = 11
OFF_DURATION    = 20

CYCLE_S = 0.02          # one robot-side execution cycle
CYCLES_PER_SECOND = 50


def _s8(b: int) -> int:
    return b - 256 if b > 127 else b


def is_frame(data: bytes) -> bool:
    return len(data) == PACKET_LEN and data[:3] == MAGIC


def encode(packet: Packet) -> bytes:
    """Encode a Packet as a 22-byte PKT frame."""
    return packet.serialize()


def decode(frame: bytes) -> Packet:
    """
    Decode one 22-byte PKT frame back into a Packet.

    angle, rotation, acc_x and acc_y are read as signed bytes. angle is
    doubled, so odd angles come back as the even value the robot sees.
    """
    if len(frame) != PACKET_LEN:
        raise ValueError(f"Invalid frame length: {len(frame)} (expected {PACKET_LEN})")
    if frame[:3] != MAGIC:
        raise ValueError(f"Bad magic: {bytes(frame[:3])!r}")

    return Packet(
        power=frame[OFF_POWER],
        angle=_s8(frame[OFF_ANGLE]) * 2,
        rotation=_s8(frame[OFF_ROTATION]),
        static_tilt=frame[OFF_STATIC_TILT],
        moving_tilt=frame[OFF_MOVING_TILT],
        on_off=frame[OFF_ON_OFF],
        acc_x=_s8(frame[OFF_ACC_X]),
        acc_y=_s8(frame[OFF_ACC_Y]),
        sliders=tuple(frame[OFF_SLIDERS:OFF_SLIDERS + SLIDERS_LEN]),
        duration=(frame[OFF_DURATION] << 8) | frame[OFF_DURATION + 1],
    )


def extract_packets(buffer: bytearray, on_packet: Callable[[Packet], None]) -> None:
    """
    Parse as many PKT frames as possible from buffer.

    Calls on_packet(packet) for each complete frame. Garbage before a magic
    sequence is skipped. Mutates buffer, removing consumed bytes; a trailing
    partial frame is left in place for the next call.
    """
    i = 0
    n = len(buffer)

    while i + PACKET_LEN <= n:
        if buffer[i:i + 3] != MAGIC:
            i += 1
            continue

        on_packet(decode(bytes(buffer[i:i + PACKET_LEN])))
        i += PACKET_LEN

    if i > 0:
        del buffer[:i]
