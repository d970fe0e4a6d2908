# hexapod_host/logger/logger.py
"""
Session logging.

HexapodLogBundle hangs a rotating text log off the package logger and, if
asked, opens a JSONL recorder next to it. RecordingEventBus and
RecordingTransport write into the recorder; packets, commands and PKT frames
come out as fields rather than reprs.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from hexapod_host.core.commands import Command
from hexapod_host.core.packet import Packet
from hexapod_host.core.protocol import decode, is_frame

ROOT_LOGGER = "hexapod_host"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s%(repeats)s"
MAX_HEX_BYTES = 64


class DedupFilter(logging.Filter):
    """
    Drop repeats of the same log call inside a cooldown window.

    Records are keyed on (logger, level, format string), so "stream send
    failed: %s" at 10 Hz counts as one message whatever the exception text.
    The first record let through after a quiet spell says how many were
    dropped. cooldown_s <= 0 turns suppression off.
    """
    def __init__(self, cooldown_s: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self.cooldown_s = float(cooldown_s)
        self._clock = clock
        self._lock = threading.Lock()
        # key -> [last emitted at, dropped since]
        self._seen: Dict[Tuple[str, int, str], List[float]] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        record.repeats = ""
        if self.cooldown_s <= 0:
            return True

        key = (record.name, record.levelno, str(record.msg))
        now = self._clock()
        with self._lock:
            seen = self._seen.get(key)
            if seen is not None and now - seen[0] < self.cooldown_s:
                seen[1] += 1
                return False
            if seen is not None and seen[1]:
                record.repeats = f" (repeated {int(seen[1])}x)"
            self._seen[key] = [now, 0]
        return True


def _text_handler(handler: logging.Handler, level: Union[int, str], cooldown_s: float) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(DedupFilter(cooldown_s))
    return handler


class JsonlLogger:
    """One JSON object per line, line-buffered. Writes after close() are dropped."""

    def __init__(self, path: str, mkdirs: bool = True) -> None:
        self.path = str(path)
        if mkdirs:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._f = open(self.path, "a", buffering=1, encoding="utf-8")

    def write(self, event: str, **data: Any) -> None:
        row = {"ts_ns": time.time_ns(), "event": event, **self._normalize(data)}
        line = json.dumps(row, ensure_ascii=False, default=str)
        with self._lock:
            if not self._f.closed:
                self._f.write(line + "\n")

    def close(self) -> None:
        with self._lock:
            self._f.close()

    def __enter__(self) -> "JsonlLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _normalize(self, obj: Any) -> Any:
        if isinstance(obj, Packet):
            return obj.to_dict()
        if isinstance(obj, Command):
            return {"kind": obj.kind.value, "args": [self._normalize(a) for a in obj.args]}
        if isinstance(obj, (bytes, bytearray)):
            return self._frame(bytes(obj))
        if isinstance(obj, dict):
            return {k: self._normalize(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [self._normalize(v) for v in obj]
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, BaseException):
            return repr(obj)
        return obj

    @staticmethod
    def _frame(data: bytes) -> Dict[str, Any]:
        out: Dict[str, Any] = {"bytes_len": len(data), "hex": data[:MAX_HEX_BYTES].hex()}
        if len(data) > MAX_HEX_BYTES:
            out["truncated"] = True
        if is_frame(data):
            out["packet"] = decode(data).to_dict()
        return out


class HexapodLogBundle:
    """
    Text log for one session, plus the JSONL recorder when record_jsonl is set.

    The handlers go on the `name` logger, so with the default every
    hexapod_host.* module logger lands in <log_dir>/hexapod_host.log.
    close() takes them off again and restores propagation.
    """
    def __init__(
        self,
        name: str = ROOT_LOGGER,
        log_dir: str = "logs",
        level: Union[int, str] = logging.INFO,
        console: bool = False,
        dedup_cooldown_s: float = 1.0,
        record_jsonl: bool = True,
        max_bytes: int = 5_000_000,
        backup_count: int = 5,
    ) -> None:
        if isinstance(level, str):
            level = level.upper()
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger(name)
        self.text_path = log_path / f"{name}.log"
        self._handlers: List[logging.Handler] = [
            _text_handler(
                RotatingFileHandler(self.text_path, maxBytes=max_bytes, backupCount=backup_count),
                level,
                dedup_cooldown_s,
            )
        ]
        if console:
            self._handlers.append(_text_handler(logging.StreamHandler(), level, dedup_cooldown_s))

        self._propagate = self.logger.propagate
        self.logger.setLevel(level)
        self.logger.propagate = False
        for h in self._handlers:
            self.logger.addHandler(h)

        self.events: Optional[JsonlLogger] = (
            JsonlLogger(str(log_path / f"{name}.jsonl")) if record_jsonl else None
        )
        self.logger.debug("logging to %s", self.text_path)

    @classmethod
    def from_settings(cls, settings: Any, name: str = ROOT_LOGGER) -> "HexapodLogBundle":
        """Build from a LogSettings section."""
        return cls(
            name=name,
            log_dir=settings.log_dir,
            level=settings.level,
            console=settings.console,
            dedup_cooldown_s=settings.dedup_cooldown_s,
            record_jsonl=settings.record_jsonl,
        )

    def close(self) -> None:
        if self.events is not None:
            self.events.close()
        for h in self._handlers:
            self.logger.removeHandler(h)
            h.close()
        self.logger.propagate = self._propagate
