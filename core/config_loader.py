"""
Channel configuration loader.

Reads the JSON configuration (channel list + log directory), validates it
against schemas/config.schema.json, normalizes channel names and opens one
append-only log file per channel. Every failure surfaces as ConfigError or
ChannelLogError; whether that is fatal is the caller's decision.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator

from shared.errors import ConfigError
from shared.logging.logger import get_logger
from shared.storage.channel_logs.handles import (
    Clock,
    FileHandleManager,
    local_timestamp,
    open_log_files,
)

log = get_logger("core.config_loader")

_CHANNEL_NAME_RE = re.compile(r"[A-Za-z0-9_]+")


@dataclass
class GhostConfig:
    channels: List[str] = field(default_factory=list)
    log_path: str = "logs"


def normalize_channel(raw: str) -> str:
    """
    ``Foo_Bar`` -> ``#foo_bar``. Anything outside [A-Za-z0-9_] is rejected.
    """
    if not isinstance(raw, str) or not _CHANNEL_NAME_RE.fullmatch(raw):
        raise ConfigError(f"Invalid channel name: {raw!r}")
    return f"#{raw.lower()}"


def normalize_channels(raw_channels: List[str]) -> List[str]:
    channels: List[str] = []
    for raw in raw_channels:
        channel = normalize_channel(raw)
        if channel in channels:
            log.warning(f"Duplicate channel {raw!r} ({channel}) ignored")
            continue
        channels.append(channel)
    return channels


class ConfigLoader:
    """
    Loads the channel configuration and opens the matching log files.

    Path resolution: explicit argument, then GHOST_CONFIG_PATH, then
    ./config.json.
    """

    CONFIG_PATH = Path("config.json")
    SCHEMA_PATH = Path(__file__).resolve().parents[1] / "schemas" / "config.schema.json"

    def __init__(
        self,
        config_path: Optional[Path | str] = None,
        *,
        schema_path: Optional[Path | str] = None,
        clock: Clock = local_timestamp,
    ) -> None:
        env_path = os.getenv("GHOST_CONFIG_PATH")
        self.config_path = Path(config_path or env_path or self.CONFIG_PATH)
        self.schema_path = Path(schema_path) if schema_path else self.SCHEMA_PATH
        self._clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_json(self) -> Dict[str, Any]:
        try:
            text = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"read {self.config_path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"parse {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_path}: root must be an object")
        return data

    def _validate(self, payload: Dict[str, Any]) -> None:
        if not self.schema_path.exists():
            log.warning(
                f"Config schema not found at {self.schema_path}; "
                "skipping schema validation"
            )
            return

        try:
            schema = json.loads(self.schema_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config schema ({e})") from e

        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
        if errors:
            messages = []
            for err in errors:
                loc = "/".join(str(p) for p in err.path) or "<root>"
                messages.append(f"'{loc}': {err.message}")
            raise ConfigError(
                f"{self.config_path} failed validation: " + "; ".join(messages)
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_config(self) -> GhostConfig:
        """Read, validate and normalize the configuration file."""
        data = self._load_json()
        self._validate(data)

        raw_channels = data.get("channels")
        if not isinstance(raw_channels, list):
            raise ConfigError(f"{self.config_path}: 'channels' must be a list")

        log_path = data.get("log_path", GhostConfig.log_path)
        if not isinstance(log_path, str) or not log_path:
            raise ConfigError(f"{self.config_path}: 'log_path' must be a string")

        return GhostConfig(
            channels=normalize_channels(raw_channels),
            log_path=log_path,
        )

    async def load(self) -> Tuple[List[str], FileHandleManager]:
        """
        Produce the normalized channel list and a ready FileHandleManager.

        Raises ConfigError for configuration problems and ChannelLogError
        when a log file cannot be opened.
        """
        config = self.read_config()

        try:
            Path(config.log_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"create log directory {config.log_path}: {e}") from e

        handles = await open_log_files(
            config.channels, config.log_path, clock=self._clock
        )
        log.info(
            f"Loaded {len(config.channels)} channel(s) from {self.config_path}"
        )
        return config.channels, handles
