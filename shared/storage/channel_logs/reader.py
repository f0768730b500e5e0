"""Read-side helpers for channel log files.

These never touch the live handle set; they open the file independently and
are safe to use while the runtime is appending.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

from shared.errors import RecordFormatError
from shared.logging.logger import get_logger
from shared.storage.channel_logs.records import LogRecord
from shared.storage.channel_logs.serializer import parse_record

log = get_logger("storage.channel_logs.reader")

SESSION_MARKER_PREFIX = "// File opened at "
TIMESTAMP_SEPARATOR = " // "


@dataclass(frozen=True)
class LogEntry:
    record: LogRecord
    timestamp: str


def split_timestamp(line: str) -> Tuple[str, str]:
    body, sep, timestamp = line.rstrip("\n").rpartition(TIMESTAMP_SEPARATOR)
    if not sep:
        raise RecordFormatError(f"missing timestamp suffix: {line!r}")
    return body, timestamp


def parse_log_line(line: str) -> LogEntry:
    body, timestamp = split_timestamp(line)
    return LogEntry(record=parse_record(body), timestamp=timestamp)


def iter_log_entries(path: Path | str) -> Iterator[LogEntry]:
    """Yield every record in a channel log, skipping session markers."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip() or line.startswith(SESSION_MARKER_PREFIX):
                continue
            try:
                yield parse_log_line(line)
            except RecordFormatError as exc:
                log.warning(f"{path}:{lineno}: skipping malformed line ({exc})")


__all__ = [
    "LogEntry",
    "parse_log_line",
    "iter_log_entries",
    "split_timestamp",
]
