# tsheet/config.py
import os
from pathlib import Path
from typing import Optional

STORAGE_KEY = "local_timesheet_v2"
APP_NAME = "local-timesheet"
FORMAT_VERSION = 2

DEFAULT_HOME = "~/.tsheet"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_HTTP_TIMEOUT = 30.0


def get_data_dir() -> Path:
    """Directory holding the storage slot and logs.

    ``$TSHEET_HOME`` wins over the default ``~/.tsheet``. The directory is
    created on first use.
    """
    base = Path(os.path.expanduser(os.environ.get("TSHEET_HOME") or DEFAULT_HOME))
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_data_path(relative_path: str) -> Path:
    return get_data_dir() / relative_path


def get_storage_file() -> Path:
    return get_data_path(f"{STORAGE_KEY}.json")


def get_log_dir() -> Path:
    return get_data_path("logs")


def get_log_level() -> str:
    return os.environ.get("TSHEET_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


def get_http_timeout() -> Optional[float]:
    raw = os.environ.get("TSHEET_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_HTTP_TIMEOUT
    # 0 disables the timeout
    return value if value > 0 else None
