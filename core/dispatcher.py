"""Classification of decoded IRC events into channel log records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Union

from services.twitch.models.message import IrcEvent, Tag
from shared.errors import MalformedEvent
from shared.logging.logger import get_diagnostics_logger, get_logger
from shared.storage.channel_logs.handles import FileHandleManager
from shared.storage.channel_logs.records import (
    ClearChat,
    ClearMessage,
    LogRecord,
    Notice,
    PrivateMessage,
)
from shared.storage.channel_logs.serializer import serialize_record

log = get_logger("core.dispatcher")
diagnostics = get_diagnostics_logger("core.dispatcher")

UNKNOWN_SENDER = "???"
NOTICE_COMMANDS = {"ROOMSTATE", "USERNOTICE"}


@dataclass(frozen=True)
class RoutedRecord:
    channel: str
    record: LogRecord


@dataclass(frozen=True)
class Diagnostic:
    """Event that is only printed, never persisted."""

    command: str
    prefix: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        source = f"from {self.prefix} " if self.prefix else ""
        return f"{self.command} {source}{self.tags}"


Classification = Union[RoutedRecord, Diagnostic]


def tags_to_map(tags: Optional[Iterable[Tag]]) -> Dict[str, str]:
    """Bare tags map to ""; a repeated key keeps its last value."""
    collected: Dict[str, str] = {}
    for key, value in tags or ():
        collected[key] = value or ""
    return dict(sorted(collected.items()))


def classify(event: IrcEvent) -> Classification:
    """
    Route one event to a record or to the print-only path.

    Raises MalformedEvent for CLEARCHAT / CLEARMSG / notice commands whose
    parameter shape is not one we log.
    """
    command = event.command
    params = event.params
    tags = tags_to_map(event.tags)

    if command == "PRIVMSG" and len(params) == 2:
        channel, message = params
        sender = event.source_nickname() or UNKNOWN_SENDER
        return RoutedRecord(channel, PrivateMessage(sender, message, tags))

    if command == "CLEARCHAT":
        if len(params) == 1:
            return RoutedRecord(params[0], ClearChat(tags=tags))
        if len(params) == 2:
            return RoutedRecord(params[0], ClearChat(tags=tags, user=params[1]))
        raise MalformedEvent(command, params)

    if command == "CLEARMSG":
        if len(params) == 2:
            return RoutedRecord(params[0], ClearMessage(params[1], tags))
        raise MalformedEvent(command, params)

    if command in NOTICE_COMMANDS:
        if params:
            return RoutedRecord(params[0], Notice(command, tags))
        raise MalformedEvent(command, params)

    return Diagnostic(command=command, prefix=event.prefix, tags=tags)


class EventDispatcher:
    """
    Classifies events and writes records through whichever
    FileHandleManager the caller passes in.
    """

    async def dispatch(
        self,
        event: IrcEvent,
        handles: FileHandleManager,
    ) -> Classification:
        try:
            outcome = classify(event)
        except MalformedEvent as exc:
            log.warning(f"Malformed event degraded to diagnostics: {exc}")
            outcome = Diagnostic(
                command=event.command,
                prefix=event.prefix,
                tags=tags_to_map(event.tags),
            )

        if isinstance(outcome, Diagnostic):
            diagnostics.info(outcome.render())
            return outcome

        await handles.write(outcome.channel, serialize_record(outcome.record))
        return outcome
