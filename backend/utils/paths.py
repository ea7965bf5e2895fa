import os
import sys
from pathlib import Path

APP_DIR_NAME = "BlangEditor"


def _user_data_dir() -> Path:
    app_data = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or os.path.expanduser("~")
    return Path(app_data) / APP_DIR_NAME


def _is_frozen() -> bool:
    return bool(getattr(sys, "frozen", False))


def get_writable_dir(sub_dir: str = "logs") -> Path:
    """
    Directory for files the editor writes itself (logs).

    BLANG_DATA_DIR wins when set. Otherwise the backend root is used when
    running from source, and the per-user data directory when frozen or
    when the backend root is read-only.
    """
    override = os.getenv("BLANG_DATA_DIR")
    if override:
        target_dir = Path(override) / sub_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        return target_dir

    candidates = [_user_data_dir()]
    if not _is_frozen():
        # Backend root is the parent of 'utils'
        candidates.insert(0, Path(__file__).parent.parent)

    last_error = None
    for base_dir in candidates:
        target_dir = base_dir / sub_dir
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            marker_file = target_dir / ".write_test"
            marker_file.touch()
            marker_file.unlink()
            return target_dir
        except OSError as e:
            last_error = e
    raise last_error
