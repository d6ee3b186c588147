"""
File utility functions for the blog.
Common file operations shared by the article store.
"""
import json
import os
import tempfile
from datetime import date
from typing import Any

CONTENT_FILE_MODE = 0o600


def load_json_file(filepath: str, default: Any) -> Any:
    """
    Load a JSON file with a default fallback.

    A missing or zero-length file yields the default.

    Args:
        filepath: Path to the JSON file
        default: Default value if file doesn't exist or is empty

    Returns:
        Loaded JSON data or default value

    Raises:
        json.JSONDecodeError: If the file holds invalid JSON
    """
    if os.path.exists(filepath):
        with open(filepath, 'r', encoding='utf-8') as f:
            raw = f.read()
        if raw.strip():
            return json.loads(raw)
    return default


def save_json_file(filepath: str, data: Any, ensure_dir: bool = True) -> None:
    """
    Save data to a JSON file, replacing it atomically.

    The data is written to a temporary file in the same directory which is
    then renamed over the target, so readers never observe a half-written file.

    Args:
        filepath: Path to save the JSON file
        data: Data to save
        ensure_dir: Whether to create parent directory if it doesn't exist
    """
    directory = os.path.dirname(filepath) or "."
    if ensure_dir:
        os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, filepath)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def read_bytes_file(filepath: str) -> bytes:
    """Read a whole file as bytes."""
    with open(filepath, 'rb') as f:
        return f.read()


def write_bytes_file(filepath: str, data: bytes, mode: int = CONTENT_FILE_MODE) -> None:
    """
    Write bytes to a file, replacing it atomically.

    The data goes to a temporary file in the same directory which is then
    renamed over the target, so a failed write leaves the previous file intact.

    Args:
        filepath: Path of the file to write
        data: Bytes to write
        mode: Permission bits of the written file
    """
    directory = os.path.dirname(filepath) or "."
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".md")
    try:
        with os.fdopen(fd, 'wb') as f:
            os.fchmod(f.fileno(), mode)
            f.write(data)
        os.replace(tmp_path, filepath)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def get_today_date() -> date:
    """
    Get today's local calendar date.

    Returns:
        Today's date without time-of-day component
    """
    return date.today()
