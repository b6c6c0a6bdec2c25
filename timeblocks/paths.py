from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "TIMEBLOCKS_HOME"

TIME_WINDOWS_FILE = "time_windows.yaml"


def project_root() -> Path:
    """Repository root. Contains timeblocks/, cli/, config/, tests/."""
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for timeblocks.
    Override with TIMEBLOCKS_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".timeblocks").resolve()


def config_dir() -> Path:
    return app_home() / "config"


def default_windows_path() -> Path:
    """
    Time window configuration used when none is given.

    Resolution order:
    1. $TIMEBLOCKS_HOME/config/time_windows.yaml (or ~/.timeblocks/...)
    2. config/time_windows.yaml in the repository
    """
    user_file = config_dir() / TIME_WINDOWS_FILE
    if user_file.exists():
        return user_file
    return project_root() / "config" / TIME_WINDOWS_FILE
