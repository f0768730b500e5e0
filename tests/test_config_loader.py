"""Tests for configuration loading and channel normalization."""

import json

import pytest

from core.config_loader import (
    ConfigLoader,
    GhostConfig,
    normalize_channel,
    normalize_channels,
)
from core.config_loader import log as config_log
from shared.errors import ChannelLogError, ConfigError


class TestNormalizeChannel:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("foo", "#foo"),
            ("Foo", "#foo"),
            ("SOME_Streamer_42", "#some_streamer_42"),
            ("_", "#_"),
            ("123", "#123"),
        ],
    )
    def test_valid_names(self, raw, expected):
        assert normalize_channel(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["", "#foo", "foo bar", "foo-bar", "foo.bar", "föö", "foo\n", 42, None],
    )
    def test_invalid_names_are_rejected(self, raw):
        with pytest.raises(ConfigError):
            normalize_channel(raw)

    def test_duplicates_collapse_in_order(self):
        assert normalize_channels(["B", "a", "b", "A"]) == ["#b", "#a"]


class TestReadConfig:
    def test_reads_channels_and_log_path(self, write_config, log_dir):
        path = write_config(["Foo", "bar"])
        config = ConfigLoader(path).read_config()
        assert config == GhostConfig(channels=["#foo", "#bar"], log_path=str(log_dir))

    def test_log_path_defaults_to_logs(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"channels": []}), encoding="utf-8")
        assert ConfigLoader(path).read_config().log_path == "logs"

    def test_env_var_selects_config(self, write_config, monkeypatch):
        path = write_config(["foo"])
        monkeypatch.setenv("GHOST_CONFIG_PATH", str(path))
        assert ConfigLoader().config_path == path

    def test_explicit_path_wins_over_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GHOST_CONFIG_PATH", str(tmp_path / "env.json"))
        loader = ConfigLoader(tmp_path / "arg.json")
        assert loader.config_path == tmp_path / "arg.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="read"):
            ConfigLoader(tmp_path / "absent.json").read_config()

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{channels: [", encoding="utf-8")
        with pytest.raises(ConfigError, match="parse"):
            ConfigLoader(path).read_config()

    def test_root_must_be_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(path).read_config()

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"channels": "foo"}), encoding="utf-8")
        with pytest.raises(ConfigError, match="validation"):
            ConfigLoader(path).read_config()

    def test_missing_channels_key(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"log_path": "logs"}), encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(path).read_config()

    def test_invalid_channel_name(self, write_config):
        path = write_config(["good", "bad-name"])
        with pytest.raises(ConfigError, match="Invalid channel name"):
            ConfigLoader(path).read_config()

    def test_works_without_schema_file(self, write_config, tmp_path, capture_logger):
        captured = capture_logger(config_log)
        path = write_config(["foo"])
        loader = ConfigLoader(path, schema_path=tmp_path / "missing.schema.json")

        assert loader.read_config().channels == ["#foo"]
        assert any("schema not found" in m for m in captured.messages)

    def test_bundled_schema_is_found(self):
        assert ConfigLoader.SCHEMA_PATH.is_file()


class TestLoad:
    @pytest.mark.asyncio
    async def test_returns_channels_and_open_handles(
        self, write_config, log_dir, clock, fixed_ts
    ):
        path = write_config(["Foo", "bar"])
        channels, handles = await ConfigLoader(path, clock=clock).load()
        try:
            assert channels == ["#foo", "#bar"]
            assert handles.channels == ["#foo", "#bar"]
        finally:
            await handles.close()

        marker = f"// File opened at {fixed_ts}\n"
        assert (log_dir / "#foo.txt").read_text(encoding="utf-8") == marker
        assert (log_dir / "#bar.txt").read_text(encoding="utf-8") == marker

    @pytest.mark.asyncio
    async def test_creates_nested_log_directory(self, write_config, tmp_path, clock):
        nested = tmp_path / "a" / "b" / "logs"
        path = write_config(["foo"], log_path=nested)
        _, handles = await ConfigLoader(path, clock=clock).load()
        await handles.close()
        assert (nested / "#foo.txt").is_file()

    @pytest.mark.asyncio
    async def test_log_directory_creation_failure(self, write_config, tmp_path, clock):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        path = write_config(["foo"], log_path=blocker / "logs")
        with pytest.raises(ConfigError, match="create log directory"):
            await ConfigLoader(path, clock=clock).load()

    @pytest.mark.asyncio
    async def test_file_open_failure_closes_opened_handles(
        self, write_config, log_dir, clock
    ):
        log_dir.mkdir()
        # A directory where the channel file should be makes that open fail.
        (log_dir / "#bad.txt").mkdir()
        path = write_config(["good", "bad"])

        with pytest.raises(ChannelLogError) as exc_info:
            await ConfigLoader(path, clock=clock).load()

        assert exc_info.value.channel == "#bad"
        assert (log_dir / "#good.txt").is_file()
