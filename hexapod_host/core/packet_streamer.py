# hexapod_host/core/packet_streamer.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any, Callable, Optional, Protocol

from .packet import Packet

log = logging.getLogger(__name__)

DEFAULT_RATE_HZ = 10.0


class PacketSink(Protocol):
    """What the streamer needs from the persistent transport."""

    @property
    def is_open(self) -> bool: ...

    async def send(self, data: bytes) -> None: ...


class PacketStreamer:
    """
    Fixed-rate sender for the current packet.

    Every tick reads the packet provider (normally the sequencer's slot),
    serializes it and hands the bytes to the transport. It knows nothing about
    command boundaries; whatever packet is current at tick time goes out.

      - start() is a no-op while already running
      - ticks are skipped while the transport is not open
      - send errors are counted and reported to on_error, never raised
    """

    def __init__(
        self,
        provider: Callable[[], Packet],
        transport: PacketSink,
        *,
        rate_hz: float = DEFAULT_RATE_HZ,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self.provider = provider
        self.transport = transport
        self.rate_hz = float(rate_hz)
        self._on_error = on_error
        self._task: Optional[asyncio.Task] = None
        self._enabled = False

        # Stats
        self.sent = 0
        self.errors = 0
        self.skipped_not_open = 0
        self.last_send_ts = 0.0

    @property
    def running(self) -> bool:
        return self._enabled and self._task is not None and not self._task.done()

    @property
    def period_s(self) -> float:
        return 1.0 / max(1e-6, self.rate_hz)

    # ---------------- Control ----------------

    def start(self) -> bool:
        """Start streaming. Must be called from inside the event loop."""
        if self.running:
            return False
        self._enabled = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        log.debug("streaming at %.1f Hz", self.rate_hz)
        return True

    async def stop(self) -> None:
        self._enabled = False
        task, self._task = self._task, None
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            log.debug("streaming stopped (sent=%d errors=%d)", self.sent, self.errors)

    def stats(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "sent": self.sent,
            "errors": self.errors,
            "skipped_not_open": self.skipped_not_open,
            "last_send_ts": self.last_send_ts,
        }

    # ---------------- Internals ----------------

    async def tick(self) -> bool:
        """Send the current packet once. Returns True if bytes were handed to the transport."""
        if not self.transport.is_open:
            self.skipped_not_open += 1
            return False

        try:
            await self.transport.send(self.provider().serialize())
        except Exception as e:
            self.errors += 1
            log.warning("stream send failed: %s", e)
            if self._on_error:
                try:
                    self._on_error(e)
                except Exception:
                    log.exception("stream on_error callback failed")
            return False

        self.sent += 1
        self.last_send_ts = time.monotonic()
        return True

    async def _run(self) -> None:
        next_t = time.monotonic()

        while self._enabled:
            await self.tick()

            # stable cadence
            next_t += self.period_s
            sleep_s = next_t - time.monotonic()
            if sleep_s < 0:
                next_t = time.monotonic()
                sleep_s = 0
            await asyncio.sleep(sleep_s)
