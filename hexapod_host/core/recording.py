# hexapod_host/core/recording.py
from __future__ import annotations

from typing import Any, Callable, Optional

from hexapod_host.logger.logger import JsonlLogger
from .event_bus import EventBus
from .protocol import decode, is_frame


class RecordingEventBus:
    """Wraps EventBus; records every publish() to JSONL."""
    def __init__(self, inner_bus: EventBus, recorder: JsonlLogger):
        self._bus = inner_bus
        self._recorder = recorder

    def subscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        self._bus.subscribe(topic, handler)

    def unsubscribe(self, topic: str, handler: Callable[[Any], None]) -> None:
        self._bus.unsubscribe(topic, handler)

    def publish(self, topic: str, data: Any) -> None:
        self._recorder.write("bus.publish", topic=topic, data=data)
        self._bus.publish(topic, data)


class RecordingTransport:
    """
    Wraps a persistent transport (open/send/close/is_open); records the link
    lifecycle and every frame sent. PKT frames are decoded so the recording
    shows fields, not just hex.
    """
    def __init__(self, inner_transport: Any, recorder: JsonlLogger):
        self._t = inner_transport
        self._recorder = recorder

    @property
    def is_open(self) -> bool:
        return self._t.is_open

    async def open(self, address: Optional[Any] = None) -> bool:
        ok = await self._t.open(address)
        self._recorder.write("transport.open", type=type(self._t).__name__, ok=ok)
        return ok

    async def send(self, data: bytes) -> None:
        row: dict[str, Any] = {"n": len(data), "data": data}
        if is_frame(data):
            row["packet"] = decode(data)
        self._recorder.write("transport.tx", **row)
        await self._t.send(data)

    async def close(self) -> None:
        self._recorder.write("transport.close", type=type(self._t).__name__)
        await self._t.close()
