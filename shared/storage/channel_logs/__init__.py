"""Per-channel append-only log storage.

Records are serialized to a canonical single-line text shape and appended to
``<log_path>/<channel>.txt`` with a local RFC 3339 timestamp suffix.
"""

from shared.storage.channel_logs.handles import FileHandleManager, open_log_files
from shared.storage.channel_logs.records import (
    ClearChat,
    ClearMessage,
    LogRecord,
    Notice,
    PrivateMessage,
)
from shared.storage.channel_logs.serializer import parse_record, serialize_record

__all__ = [
    "FileHandleManager",
    "open_log_files",
    "ClearChat",
    "ClearMessage",
    "LogRecord",
    "Notice",
    "PrivateMessage",
    "parse_record",
    "serialize_record",
]
