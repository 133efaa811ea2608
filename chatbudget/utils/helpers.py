"""Path and time helpers."""

import os
import re
import time
from pathlib import Path


def current_time_millis() -> int:
    """Wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def ensure_dir(path: Path) -> Path:
    """Create *path* (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Return (and create) the data directory.

    Defaults to ``~/.chatbudget``; ``CHATBUDGET_HOME`` overrides it.
    """
    override = os.environ.get("CHATBUDGET_HOME")
    base = Path(override).expanduser() if override else Path.home() / ".chatbudget"
    return ensure_dir(base)


def get_sessions_path() -> Path:
    return ensure_dir(get_data_path() / "sessions")


def get_summaries_path() -> Path:
    return ensure_dir(get_data_path() / "summaries")


def get_metrics_path() -> Path:
    return ensure_dir(get_data_path() / "metrics")


def safe_filename(name: str) -> str:
    """Replace characters that are unsafe in file names."""
    return re.sub(r'[<>:"/\\|?*\s]', "_", name).strip("._") or "_"
