# hexapod_host/core/errors.py


class HexapodError(Exception):
    """Base class for hexapod_host errors."""


class PacketValidationError(HexapodError, ValueError):
    """Raised by Packet.build_strict() when a field is out of range."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class UnknownCommandError(HexapodError, KeyError):
    """A Command reached the translator with a kind that has no handler."""


class SettingsError(HexapodError, ValueError):
    """Profile YAML is missing, unreadable or has unknown keys."""
