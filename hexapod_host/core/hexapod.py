# hexapod_host/core/hexapod.py
"""
Hexapod: the public command surface.

    hexapod = Hexapod.from_settings(HexapodSettings.load())
    hexapod.move_forward(1.0)
    hexapod.turn_left(90)
    hexapod.rest(2)
    await hexapod.wait_idle()
    await hexapod.disconnect()

Motion methods queue a Command and return immediately; execution is timer
driven. While the sequencer is running the current packet is streamed at 10 Hz
over the persistent link, which is opened on demand and torn down (final
neutral packet first) when the queue drains. Every installed packet, and the
neutral packet at the end of a sequence, is also echoed once over HTTP.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Optional, Protocol

from hexapod_host.transports.http_transport import HttpPacketSender
from hexapod_host.transports.tcp_transport import AsyncTcpTransport

from .commands import Command, CommandKind
from .event_bus import EventBus
from .packet import NEUTRAL, Packet
from .packet_streamer import DEFAULT_RATE_HZ, PacketStreamer
from .recording import RecordingEventBus, RecordingTransport
from .scheduler import AsyncioScheduler, Scheduler
from .sequencer import RobotState, Sequencer
from .settings import HexapodSettings
from .translator import Calibration, CommandTranslator

log = logging.getLogger(__name__)


class PersistentTransport(Protocol):
    @property
    def is_open(self) -> bool: ...
    async def open(self, address: Optional[Any] = None) -> bool: ...
    async def send(self, data: bytes) -> None: ...
    async def close(self) -> None: ...


class OneShotTransport(Protocol):
    async def send_once(self, data: bytes) -> bool: ...


class Hexapod:
    def __init__(
        self,
        transport: PersistentTransport,
        http: Optional[OneShotTransport] = None,
        *,
        calibration: Optional[Calibration] = None,
        bus: Optional[EventBus] = None,
        scheduler: Optional[Scheduler] = None,
        rate_hz: float = DEFAULT_RATE_HZ,
        step_slack_s: float = 0.1,
        echo_http: bool = True,
    ) -> None:
        self.transport = transport
        self.http = http
        self.bus = bus or EventBus()
        self.echo_http = bool(echo_http)

        self.translator = CommandTranslator(calibration)
        self.sequencer = Sequencer(
            self.translator,
            scheduler or AsyncioScheduler(),
            step_slack_s=step_slack_s,
            on_running=self._on_running,
            on_install=self._on_install,
            on_complete=self._on_complete,
        )
        self.streamer = PacketStreamer(self.sequencer.slot.get, transport, rate_hz=rate_hz)

        self._link_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_settings(
        cls,
        settings: HexapodSettings,
        *,
        bus: Optional[EventBus] = None,
        recorder: Any = None,
    ) -> "Hexapod":
        """
        Build TCP + HTTP transports from a settings profile. If a JsonlLogger
        is passed as recorder, the bus and the persistent link are recorded.
        """
        link = settings.link
        bus = bus or EventBus()
        if recorder is not None:
            bus = RecordingEventBus(bus, recorder)

        transport: Any = AsyncTcpTransport(
            link.host,
            link.port,
            connect_timeout_s=link.connect_timeout_s,
            bus=bus,
        )
        if recorder is not None:
            transport = RecordingTransport(transport, recorder)

        http = HttpPacketSender(link.host, link.port, timeout=link.http_timeout_s) if link.echo_http else None

        return cls(
            transport,
            http,
            calibration=settings.calibration,
            bus=bus,
            rate_hz=settings.stream.rate_hz,
            step_slack_s=settings.stream.step_slack_s,
            echo_http=link.echo_http,
        )

    # ---------------- State ----------------

    @property
    def state(self) -> RobotState:
        return self.sequencer.state

    @property
    def current_packet(self) -> Packet:
        return self.sequencer.current_packet

    @property
    def pending(self) -> int:
        return self.sequencer.pending()

    @property
    def connected(self) -> bool:
        return self.transport.is_open

    # ---------------- Link lifecycle ----------------

    async def connect(self, address: Optional[Any] = None) -> bool:
        """Open the persistent link. On failure the sequencer stays idle."""
        async with self._link_lock:
            return await self.transport.open(address)

    async def disconnect(self) -> None:
        """
        Stop everything and leave the robot safe: cancel the step timer, clear
        the queue, stop streaming, then send one neutral packet and close.
        """
        self.sequencer.reset()
        self._idle.set()
        async with self._link_lock:
            await self._shutdown_link()
        await self.drain()
        log.info("disconnected")

    async def wait_idle(self) -> None:
        """Wait until the queue has drained and the link has been wound down."""
        await self._idle.wait()
        await self.drain()

    async def drain(self) -> None:
        """Wait for background link/echo tasks spawned so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def __aenter__(self) -> "Hexapod":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ---------------- Motion commands ----------------

    def move_forward(self, distance: float) -> bool:
        """Walk forward distance metres (> 0)."""
        return self._push_distance(CommandKind.MOVE_FORWARD, distance)

    def move_back(self, distance: float) -> bool:
        """Walk backwards distance metres (> 0)."""
        return self._push_distance(CommandKind.MOVE_BACK, distance)

    def turn_left(self, degrees: float) -> bool:
        return self._push(CommandKind.TURN_LEFT, degrees)

    def turn_right(self, degrees: float) -> bool:
        return self._push(CommandKind.TURN_RIGHT, degrees)

    def tilt_forward(self, seconds: float) -> bool:
        return self._push(CommandKind.TILT_FORWARD, seconds)

    def tilt_back(self, seconds: float) -> bool:
        return self._push(CommandKind.TILT_BACK, seconds)

    def tilt_left(self, seconds: float) -> bool:
        return self._push(CommandKind.TILT_LEFT, seconds)

    def tilt_right(self, seconds: float) -> bool:
        return self._push(CommandKind.TILT_RIGHT, seconds)

    def rest(self, seconds: float = 0) -> bool:
        """Stand still for seconds; 0 (or nothing) installs the neutral packet and moves on."""
        return self._push(CommandKind.REST, seconds or 0)

    def send_custom(self, packet: Packet) -> bool:
        """Queue a hand-built packet; it runs for packet.duration cycles."""
        return self._push(CommandKind.CUSTOM, packet)

    def _push_distance(self, kind: CommandKind, distance: float) -> bool:
        try:
            ok = distance > 0
        except TypeError:
            ok = False
        if ok:
            return self._push(kind, distance)
        log.warning("%s: argument must be greater than zero (got %r)", kind.value, distance)
        self.bus.publish("hexapod.rejected", {"kind": kind.value, "args": [distance]})
        return False

    def _push(self, kind: CommandKind, *args: Any) -> bool:
        self.sequencer.enqueue(Command(kind, tuple(args)))
        return True

    # ---------------- Sequencer hooks ----------------

    def _on_running(self) -> None:
        self._idle.clear()
        self.bus.publish("sequencer.running", {"pending": self.sequencer.pending()})
        self._bring_up()

    def _on_install(self, cmd: Command, packet: Packet, seconds: float) -> None:
        self.bus.publish("sequencer.installed", {"cmd": cmd, "packet": packet, "seconds": seconds})
        self._echo(packet)

    def _on_complete(self) -> None:
        self._echo(NEUTRAL)
        self.bus.publish("sequencer.complete", {"completed": self.sequencer.sequences_completed})
        self._spawn(self._wind_down())
        self._idle.set()

    # ---------------- Internals ----------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("background task failed: %r", exc)

    def _echo(self, packet: Packet) -> None:
        if self.http is None or not self.echo_http:
            return
        self._spawn(self.http.send_once(packet.serialize()))

    def _bring_up(self) -> None:
        self.streamer.start()
        if not self.transport.is_open:
            self._spawn(self._open_link())

    async def _open_link(self) -> None:
        async with self._link_lock:
            if self.sequencer.is_idle or self.transport.is_open:
                return
            if not await self.transport.open():
                log.warning("link unavailable; sequence continues without a robot")

    async def _wind_down(self) -> None:
        async with self._link_lock:
            if self.sequencer.is_running:
                return  # new work arrived before we got here
            await self._shutdown_link()

        # enqueue() during the shutdown found the streamer still stopping
        if self.sequencer.is_running:
            self._bring_up()

    async def _shutdown_link(self) -> None:
        await self.streamer.stop()
        if not self.transport.is_open:
            return
        try:
            await self.transport.send(NEUTRAL.serialize())
        except Exception as e:
            log.error("could not send final neutral packet: %s", e)
        await self.transport.close()
