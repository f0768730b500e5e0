import json
import logging
import os

os.environ.setdefault("GHOST_RUNTIME_LOG_FILE", "0")

import pytest  # noqa: E402

FIXED_TS = "2026-10-19T12:00:00.000000+02:00"


def fixed_clock() -> str:
    return FIXED_TS


class FakeTransport:
    """Records JOIN/PART directives instead of sending them."""

    def __init__(self):
        self.directives = []

    async def send_join(self, channels: str) -> None:
        self.directives.append(("JOIN", channels))

    async def send_part(self, channels: str) -> None:
        self.directives.append(("PART", channels))


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def write_config(tmp_path, log_dir):
    """Write a config.json and return its path."""
    path = tmp_path / "config.json"

    def _write(channels, log_path=None):
        payload = {"channels": channels, "log_path": str(log_path or log_dir)}
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def capture_logger():
    """Attach a list handler to a shared logger for the test's duration."""
    attached = []

    def _capture(logger):
        handler = ListHandler()
        logger.addHandler(handler)
        attached.append((logger, handler))
        return handler

    yield _capture

    for logger, handler in attached:
        logger.removeHandler(handler)


@pytest.fixture
def fixed_ts():
    return FIXED_TS
