"""
Configuration validation script.

Checks a purple-ghost config file without opening any log files or
connecting to Twitch.

Design rules:
- No side effects on import
- No runtime startup
- Validation only (no mutation, no directory creation)
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from core.config_loader import ConfigLoader
from shared.errors import ConfigError


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate a purple-ghost configuration file"
    )
    parser.add_argument(
        "config",
        nargs="?",
        help="Path to config.json (defaults to GHOST_CONFIG_PATH or ./config.json)",
    )
    args = parser.parse_args(argv)

    loader = ConfigLoader(args.config)
    try:
        config = loader.read_config()
    except ConfigError as e:
        _error(str(e))
        return 1

    print(f"{loader.config_path}: OK")
    print(f"  log_path: {config.log_path}")
    for channel in config.channels:
        print(f"  channel:  {channel}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
