import logging
import os
from datetime import datetime
from pathlib import Path

LOG_DIR = Path("logs")

_LOGGERS = {}


def _file_logging_enabled() -> bool:
    flag = os.getenv("GHOST_RUNTIME_LOG_FILE", "1")
    return flag.strip().lower() not in {"0", "false", "no", "off"}


def get_logger(
    name: str,
    *,
    runtime: str = "ghost",
    persist: bool = True,
) -> logging.Logger:
    """
    Create or retrieve a named logger.

    Parameters:
    - name: logger namespace (e.g. core.app, storage.channel_logs)
    - runtime: log file prefix (ghost | diagnostics)
    - persist: attach the per-run file handler; console-only when False

    Setting GHOST_RUNTIME_LOG_FILE=0 disables the file handler globally.
    """
    cache_key = f"{runtime}:{name}"
    if cache_key in _LOGGERS:
        return _LOGGERS[cache_key]

    logger = logging.getLogger(cache_key)
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # ------------------------------
    # Console handler
    # ------------------------------
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    # ------------------------------
    # File handler (one per run)
    # ------------------------------
    if persist and _file_logging_enabled():
        LOG_DIR.mkdir(exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        logfile = LOG_DIR / f"{runtime}-{timestamp}.log"

        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[cache_key] = logger

    return logger


def get_diagnostics_logger(name: str = "diagnostics") -> logging.Logger:
    """Console-only logger for observations that must never be persisted."""
    return get_logger(name, runtime="diagnostics", persist=False)
