# hexapod_host/core/sequencer.py

from __future__ import annotations

import logging
import math
import threading
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Optional

from .commands import Command
from .packet import NEUTRAL, Packet
from .scheduler import Scheduler, TimerHandle
from .translator import CommandTranslator

log = logging.getLogger(__name__)

InstallHook = Callable[[Command, Packet, float], None]


class RobotState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class PacketSlot:
    """
    Holds the packet currently being streamed.

    Written only by the Sequencer, read by the streamer on every tick. The lock
    makes set()/get() safe if the reader lives on another thread.
    """

    def __init__(self, packet: Packet = NEUTRAL) -> None:
        self._lock = threading.Lock()
        self._packet = packet

    def get(self) -> Packet:
        with self._lock:
            return self._packet

    def set(self, packet: Packet) -> Packet:
        with self._lock:
            previous, self._packet = self._packet, packet
        return previous


class Sequencer:
    """
    Drains queued Commands one at a time.

    idle --enqueue--> running --(step timer, queue empty)--> idle

    Each step translates a Command, installs its Packet in the slot and arms a
    one-shot timer for duration + step_slack_s. The slack lets the robot-side
    timeout (driven by the packet's own cycle count) expire before the host
    moves on. Steps with a non-positive duration complete immediately.

    Hooks (all optional, errors are logged and ignored):
        on_running()                     idle -> running
        on_install(cmd, packet, seconds) a step's packet was installed
        on_complete()                    queue drained, back to idle + neutral
    """

    def __init__(
        self,
        translator: CommandTranslator,
        scheduler: Scheduler,
        *,
        step_slack_s: float = 0.1,
        on_running: Optional[Callable[[], None]] = None,
        on_install: Optional[InstallHook] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        self.translator = translator
        self.scheduler = scheduler
        self.step_slack_s = float(step_slack_s)

        self.on_running = on_running
        self.on_install = on_install
        self.on_complete = on_complete

        self.state = RobotState.IDLE
        self.queue: Deque[Command] = deque()
        self.slot = PacketSlot()
        self._timer: Optional[TimerHandle] = None
        self._current: Optional[Command] = None

        # Stats
        self.steps_installed = 0
        self.sequences_completed = 0

    # ---------------- Properties ----------------

    @property
    def current_packet(self) -> Packet:
        return self.slot.get()

    @property
    def current_command(self) -> Optional[Command]:
        return self._current

    @property
    def is_idle(self) -> bool:
        return self.state is RobotState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state is RobotState.RUNNING

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def pending(self) -> int:
        return len(self.queue)

    # ---------------- Public API ----------------

    def enqueue(self, cmd: Command) -> None:
        """Queue a command. Starts it right away if the sequencer is idle."""
        self.queue.append(cmd)
        log.debug("queued %s (pending=%d)", cmd, len(self.queue))
        if self.is_idle:
            self.advance()

    def advance(self) -> bool:
        """Leave idle and start the next queued command. No-op unless idle with work queued."""
        if not self.is_idle or not self.queue:
            return False

        self.state = RobotState.RUNNING
        log.debug("sequence started")
        self._fire("on_running", self.on_running)
        self._run_steps()
        return True

    def reset(self) -> None:
        """Cancel the step timer, drop queued work and return to idle + neutral."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        dropped = len(self.queue)
        self.queue.clear()
        self.slot.set(NEUTRAL)
        self._current = None
        self.state = RobotState.IDLE
        if dropped:
            log.info("reset: dropped %d queued command(s)", dropped)

    # ---------------- Internals ----------------

    def _fire(self, name: str, hook: Optional[Callable[..., Any]], *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            log.exception("%s hook failed", name)

    def _translate(self, cmd: Command) -> tuple[Packet, float]:
        try:
            packet, seconds = self.translator.translate(cmd)
            seconds = float(seconds)
        except Exception:
            log.exception("could not translate %s; installing neutral packet", cmd)
            return NEUTRAL, 0.0
        if not math.isfinite(seconds):
            log.warning("%s: duration %r is not finite; installing neutral packet", cmd, seconds)
            return NEUTRAL, 0.0
        return packet, seconds

    def _run_steps(self) -> None:
        # Iterative so a long run of zero-duration commands cannot recurse.
        while self.queue:
            cmd = self.queue.popleft()
            packet, seconds = self._translate(cmd)

            self._current = cmd
            self.slot.set(packet)
            self.steps_installed += 1
            log.debug("installed %s -> %s for %.3fs", cmd, packet.to_dict(), seconds)
            self._fire("on_install", self.on_install, cmd, packet, seconds)
            if not self.is_running:
                return  # reset() from inside the hook

            if seconds > 0:
                self._timer = self.scheduler.call_later(seconds + self.step_slack_s, self._on_step_expired)
                return

        self._finish()

    def _on_step_expired(self) -> None:
        self._timer = None
        if not self.is_running:
            return
        log.debug("%s: step expired", self._current)
        self._run_steps()

    def _finish(self) -> None:
        self.slot.set(NEUTRAL)
        self._current = None
        self.state = RobotState.IDLE
        self.sequences_completed += 1
        log.debug("done with the queue")
        self._fire("on_complete", self.on_complete)
