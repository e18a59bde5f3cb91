"""
Storage path resolution for Countify.

Countify keeps its data in a per-user directory:
1. Check COUNTIFY_DB_PATH / COUNTIFY_SNAPSHOT_PATH (absolute overrides)
2. Fall back to ~/.countify/

Constraints and Failure Modes:
- Override paths must be absolute
- The data directory is created automatically if missing
- Failure to create the data directory raises PermissionError
"""

import os
from pathlib import Path

DATA_DIR_NAME = ".countify"
DB_FILE_NAME = "countify.db"
SNAPSHOT_FILE_NAME = "countify.snapshot.jsonl"


def get_data_dir() -> Path:
    """Return ~/.countify, creating it if needed."""
    data_dir = Path.home() / DATA_DIR_NAME
    _ensure_dir_exists(data_dir)
    return data_dir


def get_db_path() -> Path:
    """
    Get the database path.

    1. COUNTIFY_DB_PATH environment variable (if set, must be absolute)
    2. ~/.countify/countify.db

    Raises:
        ValueError: If COUNTIFY_DB_PATH is set but not an absolute path
        PermissionError: If the parent directory cannot be created

    Side effects:
        - Creates the parent directory if it doesn't exist
        - Does NOT create the database file itself
    """
    return _resolve("COUNTIFY_DB_PATH", DB_FILE_NAME)


def get_snapshot_path() -> Path:
    """
    Get the JSONL snapshot path.

    1. COUNTIFY_SNAPSHOT_PATH environment variable (if set, must be absolute)
    2. ~/.countify/countify.snapshot.jsonl
    """
    return _resolve("COUNTIFY_SNAPSHOT_PATH", SNAPSHOT_FILE_NAME)


def _resolve(env_var: str, file_name: str) -> Path:
    env_path = os.getenv(env_var)
    if env_path:
        path = Path(env_path)
        if not path.is_absolute():
            raise ValueError(f"{env_var} must be an absolute path, got: {env_path}")
        _ensure_dir_exists(path.parent)
        return path

    return get_data_dir() / file_name


def _ensure_dir_exists(dir_path: Path) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Raises:
        PermissionError: If directory cannot be created due to permissions
    """
    if not dir_path.exists():
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionError(f"Cannot create directory {dir_path}: {e}") from e
