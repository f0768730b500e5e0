"""Record shapes persisted to channel log files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Union


@dataclass(frozen=True)
class PrivateMessage:
    sender: str
    message: str
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ClearChat:
    tags: Dict[str, str] = field(default_factory=dict)
    user: Optional[str] = None


@dataclass(frozen=True)
class ClearMessage:
    message_id: str
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Notice:
    """Tag-only record for ROOMSTATE / USERNOTICE."""

    command: str
    tags: Dict[str, str] = field(default_factory=dict)


LogRecord = Union[PrivateMessage, ClearChat, ClearMessage, Notice]


__all__ = [
    "PrivateMessage",
    "ClearChat",
    "ClearMessage",
    "Notice",
    "LogRecord",
]
