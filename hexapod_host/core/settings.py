# hexapod_host/core/settings.py

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Type, TypeVar, Union

import yaml

from .errors import SettingsError
from .translator import Calibration

T = TypeVar("T")

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@dataclass
class LinkSettings:
    host: str = "192.168.4.1"
    port: int = 80
    connect_timeout_s: float = 5.0
    http_timeout_s: float = 1.0
    echo_http: bool = True     # mirror installed packets over HTTP


@dataclass
class StreamSettings:
    rate_hz: float = 10.0
    step_slack_s: float = 0.1  # added to every step timer


@dataclass
class LogSettings:
    log_dir: str = "logs"
    level: str = "INFO"
    console: bool = False
    dedup_cooldown_s: float = 1.0
    record_jsonl: bool = False


@dataclass
class HexapodSettings:
    link: LinkSettings = field(default_factory=LinkSettings)
    calibration: Calibration = field(default_factory=Calibration)
    stream: StreamSettings = field(default_factory=StreamSettings)
    logging: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def load(cls, profile: str = "default") -> "HexapodSettings":
        return cls.from_file(CONFIG_DIR / f"hexapod_profile_{profile}.yaml")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "HexapodSettings":
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(f"cannot read settings from {path}: {e}") from e
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HexapodSettings":
        if not isinstance(data, dict):
            raise SettingsError(f"settings must be a mapping, got {type(data).__name__}")
        unknown = set(data) - {"link", "calibration", "stream", "logging"}
        if unknown:
            raise SettingsError(f"unknown settings section(s): {sorted(unknown)}")

        return cls(
            link=_section(LinkSettings, data, "link"),
            calibration=_section(Calibration, data, "calibration"),
            stream=_section(StreamSettings, data, "stream"),
            logging=_section(LogSettings, data, "logging"),
        )


def _section(kind: Type[T], data: Dict[str, Any], key: str) -> T:
    raw = data.get(key) or {}
    try:
        return kind(**raw)
    except TypeError as e:
        raise SettingsError(f"[{key}] {e}") from e
