# hexapod_host/transports/tcp_transport.py

import asyncio
import logging
from typing import Any, Optional, Tuple

from hexapod_host.core.event_bus import EventBus

log = logging.getLogger(__name__)

Address = Tuple[str, int]


class AsyncTcpTransport:
    """
    Persistent TCP channel to the hexapod.

      - open() connects once, with a connect timeout; failures are logged and
        published on the bus, never retried
      - send() writes already-encoded bytes (one PKT frame per tick)
      - whatever the robot sends back is only logged
      - close() tears the socket down

    Bus topics: link.connected, link.timeout, link.error, link.closed
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout_s: float = 5.0,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.connect_timeout_s = float(connect_timeout_s)
        self.bus = bus

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._rx_task: Optional[asyncio.Task] = None

        self.bytes_sent = 0
        self.bytes_received = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def address(self) -> Address:
        return (self.host, self.port)

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    async def open(self, address: Optional[Address] = None) -> bool:
        """Connect to address (or the configured host/port). Returns True on success."""
        if address is not None:
            self.host, self.port = address
        if self.is_open:
            return True

        info = {"host": self.host, "port": self.port}
        log.info("connecting to %s:%s ...", self.host, self.port)
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout_s,
            )
        except asyncio.TimeoutError:
            log.error("can't connect to TCP socket (%s:%s): timeout after %.1fs",
                      self.host, self.port, self.connect_timeout_s)
            self._publish("link.timeout", info)
            return False
        except OSError as e:
            log.error("can't connect to TCP socket (%s:%s): %s", self.host, self.port, e)
            self._publish("link.error", {**info, "error": str(e)})
            return False

        log.info("connected to %s:%s", self.host, self.port)
        self._rx_task = asyncio.create_task(self._rx_loop())
        self._publish("link.connected", info)
        return True

    async def send(self, data: bytes) -> None:
        if not self._writer:
            log.warning("send called while not connected")
            return

        self._writer.write(data)
        await self._writer.drain()
        self.bytes_sent += len(data)

    async def close(self) -> None:
        """Stop the reader and close the socket."""
        if self._rx_task:
            self._rx_task.cancel()
            try:
                await self._rx_task
            except asyncio.CancelledError:
                pass
            self._rx_task = None

        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except Exception as e:
            log.debug("error while closing socket: %s", e)
        log.info("disconnected from %s:%s", self.host, self.port)
        self._publish("link.closed", {"host": self.host, "port": self.port})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _publish(self, topic: str, data: Any) -> None:
        if self.bus is not None:
            self.bus.publish(topic, data)

    async def _rx_loop(self) -> None:
        reader = self._reader
        if reader is None:
            return
        try:
            while True:
                data = await reader.read(1024)
                if not data:
                    log.info("connection closed by peer")
                    break
                self.bytes_received += len(data)
                log.debug("received: %r", data)
        except (ConnectionError, OSError) as e:
            log.error("socket error: %s", e)
            self._publish("link.error", {"host": self.host, "port": self.port, "error": str(e)})

        # peer went away: drop the writer so is_open reports False
        if self._writer is not None:
            self._writer.close()
            self._writer = None
            self._reader = None
            self._publish("link.closed", {"host": self.host, "port": self.port})
