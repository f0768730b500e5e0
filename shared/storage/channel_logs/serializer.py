"""Canonical text encoding for channel log records.

Records look like ``NAME(field:value,...,tags:{...})``. Every value is a JSON
literal: strings are JSON string literals and the tag map is a compact JSON
object with sorted keys. That keeps each record on a single line and lets
``parse_record`` recover exactly what ``serialize_record`` wrote.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, Tuple

from shared.errors import RecordFormatError
from shared.storage.channel_logs.records import (
    ClearChat,
    ClearMessage,
    LogRecord,
    Notice,
    PrivateMessage,
)

_DECODER = json.JSONDecoder()
_NAME_RE = re.compile(r"([A-Za-z0-9_]+)\(")
_FIELD_RE = re.compile(r"([a-z_]+):")


# ----------------------------------------------------------------------
# Tag maps
# ----------------------------------------------------------------------

def encode_tags(tags: Mapping[str, str]) -> str:
    return json.dumps(
        dict(tags),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def decode_tags(text: str) -> Dict[str, str]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RecordFormatError(f"invalid tag map: {exc}") from exc
    return _as_tag_map(value)


def _as_tag_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise RecordFormatError("tag map must be an object")
    for key, item in value.items():
        if not isinstance(item, str):
            raise RecordFormatError(f"tag {key!r} must have a string value")
    return dict(sorted(value.items()))


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


# ----------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------

def serialize_record(record: LogRecord) -> str:
    """Render a record in its canonical shape (no timestamp suffix)."""
    if not isinstance(record, (PrivateMessage, ClearChat, ClearMessage, Notice)):
        raise TypeError(f"not a log record: {record!r}")

    tags = encode_tags(record.tags)

    if isinstance(record, PrivateMessage):
        return (
            f"PRIVMSG(sender:{_quote(record.sender)},"
            f"message:{_quote(record.message)},tags:{tags})"
        )
    if isinstance(record, ClearChat):
        if record.user is None:
            return f"CLEARCHAT(tags:{tags})"
        return f"CLEARCHAT(user:{_quote(record.user)},tags:{tags})"
    if isinstance(record, ClearMessage):
        return f"CLEARMSG(message:{_quote(record.message_id)},tags:{tags})"
    return f"{record.command}(tags:{tags})"


def _scan_fields(text: str) -> Tuple[str, List[Tuple[str, Any]]]:
    match = _NAME_RE.match(text)
    if not match:
        raise RecordFormatError(f"missing record name: {text!r}")

    name = match.group(1)
    pos = match.end()
    fields: List[Tuple[str, Any]] = []

    while True:
        field_match = _FIELD_RE.match(text, pos)
        if not field_match:
            raise RecordFormatError(f"expected field name at offset {pos}")
        try:
            value, pos = _DECODER.raw_decode(text, field_match.end())
        except json.JSONDecodeError as exc:
            raise RecordFormatError(
                f"invalid value for {field_match.group(1)!r}: {exc}"
            ) from exc
        fields.append((field_match.group(1), value))

        separator = text[pos:pos + 1]
        pos += 1
        if separator == ",":
            continue
        if separator == ")":
            break
        raise RecordFormatError(f"expected ',' or ')' at offset {pos - 1}")

    if pos != len(text):
        raise RecordFormatError(f"trailing data after record: {text[pos:]!r}")

    return name, fields


def _string_field(fields: Dict[str, Any], key: str, name: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str):
        raise RecordFormatError(f"{name} record needs a string {key!r} field")
    return value


def parse_record(text: str) -> LogRecord:
    """Inverse of ``serialize_record``."""
    name, pairs = _scan_fields(text)
    keys = [key for key, _ in pairs]
    fields = dict(pairs)

    if len(set(keys)) != len(keys) or keys[-1:] != ["tags"]:
        raise RecordFormatError(f"{name} record must end with a single tags field")

    tags = _as_tag_map(fields["tags"])

    if name == "PRIVMSG" and keys == ["sender", "message", "tags"]:
        return PrivateMessage(
            sender=_string_field(fields, "sender", name),
            message=_string_field(fields, "message", name),
            tags=tags,
        )
    if name == "CLEARCHAT" and keys == ["tags"]:
        return ClearChat(tags=tags)
    if name == "CLEARCHAT" and keys == ["user", "tags"]:
        return ClearChat(tags=tags, user=_string_field(fields, "user", name))
    if name == "CLEARMSG" and keys == ["message", "tags"]:
        return ClearMessage(
            message_id=_string_field(fields, "message", name),
            tags=tags,
        )
    if name not in {"PRIVMSG", "CLEARCHAT", "CLEARMSG"} and keys == ["tags"]:
        return Notice(command=name, tags=tags)

    raise RecordFormatError(f"unexpected fields {keys} for {name} record")


__all__ = [
    "encode_tags",
    "decode_tags",
    "serialize_record",
    "parse_record",
]
