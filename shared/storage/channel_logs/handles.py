"""Append-only per-channel log files.

One ``FileHandleManager`` owns the open handles for the current channel set.
It is driven exclusively by the runtime loop, so no locking is done here.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import aiofiles

from shared.errors import ChannelLogError
from shared.logging.logger import get_diagnostics_logger, get_logger

log = get_logger("storage.channel_logs")
diagnostics = get_diagnostics_logger("storage.channel_logs")

Clock = Callable[[], str]


def local_timestamp() -> str:
    """Local wall-clock time as RFC 3339 with UTC offset."""
    return datetime.now().astimezone().isoformat()


def channel_log_path(log_dir: Path | str, channel: str) -> Path:
    return Path(log_dir) / f"{channel}.txt"


class FileHandleManager:
    def __init__(
        self,
        handles: Optional[Dict[str, Any]] = None,
        *,
        clock: Clock = local_timestamp,
    ) -> None:
        self._handles: Dict[str, Any] = dict(handles or {})
        self._clock = clock
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def channels(self) -> List[str]:
        return list(self._handles)

    @property
    def closed(self) -> bool:
        return self._closed

    def __contains__(self, channel: object) -> bool:
        return channel in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write(self, channel: str, text: str) -> bool:
        """
        Append ``text`` with a timestamp suffix to the channel's log.

        Returns False when the channel has no open handle (diagnostic
        emitted) or the append failed (error logged).
        """
        handle = self._handles.get(channel)
        if handle is None:
            diagnostics.warning(
                f"No file opened for {channel}, would have logged:\n{text!r}"
            )
            return False

        try:
            await handle.write(f"{text} // {self._clock()}\n")
            await handle.flush()
        except OSError as exc:
            log.error(f"[{channel}] Failed to append to channel log: {exc}")
            return False

        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> int:
        """
        Flush and close every handle. Safe to call more than once.

        A failing flush or close is logged and the remaining handles are
        still closed. Returns the number of handles that failed to close.
        """
        if self._closed:
            return 0
        self._closed = True

        handles, self._handles = self._handles, {}
        failed = 0
        for channel, handle in handles.items():
            try:
                await handle.flush()
            except OSError as exc:
                log.warning(f"[{channel}] Flush before close failed: {exc}")

            try:
                await handle.close()
            except OSError as exc:
                failed += 1
                log.error(f"[{channel}] Failed to close channel log: {exc}")

        if handles:
            closed = len(handles) - failed
            log.debug(f"Closed {closed} of {len(handles)} channel log(s)")
        return failed


async def _open_channel_log(log_dir: Path, channel: str, opened_at: str) -> Any:
    path = channel_log_path(log_dir, channel)
    try:
        handle = await aiofiles.open(path, mode="a", encoding="utf-8")
    except OSError as exc:
        raise ChannelLogError(
            f"Failed to open log file {path}: {exc}", channel=channel
        ) from exc

    try:
        await handle.write(f"// File opened at {opened_at}\n")
        await handle.flush()
    except OSError as exc:
        await handle.close()
        raise ChannelLogError(
            f"Failed to write session marker to {path}: {exc}", channel=channel
        ) from exc

    return handle


async def open_log_files(
    channels: Iterable[str],
    log_dir: Path | str,
    *,
    clock: Clock = local_timestamp,
) -> FileHandleManager:
    """
    Open every channel log concurrently and wait for all of them.

    If any open fails, the handles that did open are closed again and the
    first failure is raised; nothing is returned half-open.
    """
    log_dir = Path(log_dir)
    channels = list(channels)
    opened_at = clock()

    results = await asyncio.gather(
        *(_open_channel_log(log_dir, channel, opened_at) for channel in channels),
        return_exceptions=True,
    )

    handles: Dict[str, Any] = {}
    failures: List[BaseException] = []
    for channel, result in zip(channels, results):
        if isinstance(result, BaseException):
            failures.append(result)
        else:
            handles[channel] = result

    if failures:
        await FileHandleManager(handles, clock=clock).close()
        raise failures[0]

    log.info(f"Opened {len(handles)} channel log(s) under {log_dir}")
    return FileHandleManager(handles, clock=clock)


__all__ = [
    "FileHandleManager",
    "open_log_files",
    "channel_log_path",
    "local_timestamp",
]
