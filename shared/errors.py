"""Exception hierarchy for the channel logging runtime."""

from __future__ import annotations


class GhostError(Exception):
    """Base class for every error raised by purple-ghost."""


class ConfigError(GhostError):
    """Configuration could not be read, parsed or validated."""


class ChannelLogError(GhostError):
    """A channel log file could not be opened."""

    def __init__(self, message: str, *, channel: str | None = None) -> None:
        super().__init__(message)
        self.channel = channel


class MalformedEvent(GhostError):
    """A known command arrived with a parameter shape we cannot route."""

    def __init__(self, command: str, params: list[str]) -> None:
        super().__init__(
            f"unexpected number of params for {command}: {' '.join(params)!r}"
        )
        self.command = command
        self.params = list(params)


class RecordFormatError(GhostError, ValueError):
    """Text is not a canonical serialized record."""
