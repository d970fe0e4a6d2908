from dataclasses import dataclass
from typing import Callable, Optional, Any

from hexapod_host.core import protocol
from hexapod_host.core.packet import Packet


def decode_all(blobs: list[bytes]) -> list[Packet]:
    """Decode every PKT frame found in a list of sent byte blobs."""
    buf = bytearray(b"".join(blobs))
    packets: list[Packet] = []
    protocol.extract_packets(buf, packets.append)
    return packets


@dataclass
class PublishedEvent:
    topic: str
    data: Any


class CapturingBus:
    """
    EventBus stand-in: publish(topic, data) is recorded so tests can assert on it.
    """
    def __init__(self) -> None:
        self.events: list[PublishedEvent] = []
        self.subscribers: dict[str, list[Callable[[Any], None]]] = {}

    def subscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        self.subscribers.setdefault(topic, []).append(handler)

    def publish(self, topic: str, data: Any) -> None:
        self.events.append(PublishedEvent(topic, data))
        for h in self.subscribers.get(topic, []):
            h(data)

    def topics(self) -> list[str]:
        return [e.topic for e in self.events]

    def last(self, topic: str) -> Optional[PublishedEvent]:
        for e in reversed(self.events):
            if e.topic == topic:
                return e
        return None


class ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler with a fake clock. Nothing fires until advance() is called,
    which runs due timers in time order (including ones armed while advancing).
    """
    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimer:
        t = ManualTimer(self.now + delay_s, callback)
        self.timers.append(t)
        return t

    def armed(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, dt: float) -> None:
        target = self.now + dt
        while True:
            due = sorted((t for t in self.armed() if t.when <= target), key=lambda t: t.when)
            if not due:
                break
            t = due[0]
            self.now = t.when
            t.fired = True
            t.callback()
        self.now = target

    def run_all(self) -> None:
        """Fire timers until none are armed."""
        while self.armed():
            nxt = min(t.when for t in self.armed())
            self.advance(nxt - self.now)
