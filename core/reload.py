"""
Live channel reconfiguration.

On each trigger the configuration is loaded again, the channel set is diffed
against the live one, the transport is told to PART/JOIN the difference and
the FileHandleManager is swapped. A configuration or file-open failure keeps
the previous channels and handles in place.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Protocol

from core.config_loader import ConfigLoader
from shared.errors import ChannelLogError, ConfigError
from shared.logging.logger import get_diagnostics_logger, get_logger
from shared.storage.channel_logs.handles import FileHandleManager

log = get_logger("core.reload")
diagnostics = get_diagnostics_logger("core.reload")


class ChannelTransport(Protocol):
    async def send_join(self, channels: str) -> None: ...

    async def send_part(self, channels: str) -> None: ...


class ReloadState(str, Enum):
    IDLE = "idle"
    RELOADING = "reloading"


def diff_channels(old: List[str], new: List[str]) -> tuple[List[str], List[str]]:
    """Return (removed, added), each in its source list's order."""
    removed = [c for c in old if c not in new]
    added = [c for c in new if c not in old]
    return removed, added


class ReloadController:
    def __init__(
        self,
        *,
        loader: ConfigLoader,
        transport: ChannelTransport,
        channels: List[str],
        handles: FileHandleManager,
    ) -> None:
        self._loader = loader
        self._transport = transport
        self._channels = list(channels)
        self._handles = handles
        self.state = ReloadState.IDLE

    @property
    def channels(self) -> List[str]:
        return list(self._channels)

    @property
    def handles(self) -> FileHandleManager:
        return self._handles

    async def reload(self) -> bool:
        """
        Run one reload cycle. Returns False when the new configuration could
        not be loaded and the previous one was kept.
        """
        if self.state is ReloadState.RELOADING:
            log.warning("Reload already in progress; ignoring trigger")
            return False

        self.state = ReloadState.RELOADING
        try:
            return await self._reload()
        finally:
            self.state = ReloadState.IDLE

    async def _reload(self) -> bool:
        try:
            new_channels, new_handles = await self._loader.load()
        except (ConfigError, ChannelLogError) as exc:
            log.error(f"Reload failed, keeping previous configuration: {exc}")
            return False

        removed, added = diff_channels(self._channels, new_channels)

        try:
            if removed:
                await self._transport.send_part(",".join(removed))
        except BaseException:
            await new_handles.close()
            raise

        old_handles, self._handles = self._handles, new_handles
        self._channels = list(new_channels)

        failed = await old_handles.close()
        if failed:
            log.warning(f"{failed} previous channel log(s) did not close cleanly")

        if added:
            await self._transport.send_join(",".join(added))

        diagnostics.info("Reloaded config.")
        log.info(
            f"Channels now {', '.join(self._channels) or '<none>'} "
            f"(left {len(removed)}, joined {len(added)})"
        )
        return True
