# ABOUTME: JSON file helpers shared by the config store, adapters, ledger and lockfile.
# ABOUTME: Writes go through a temp file + rename so an interrupted write never truncates a config.
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, cast

# ABOUTME: Names used as file or directory names must be a single safe path segment
_SAFE_NAME = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.@+-]*$")


def read_json_file(path: Path) -> dict[str, Any]:
    """Read JSON file with error handling.

    ABOUTME: Returns empty dict if file doesn't exist
    ABOUTME: Raises ValueError for invalid JSON or a non-object top level
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(result, dict):
        raise ValueError(f"Invalid JSON in {path}: top level must be an object")
    return cast(dict[str, Any], result)


def atomic_write_text(path: Path, content: str) -> None:
    """Write text to path atomically.

    ABOUTME: Temp file lives in the target directory so os.replace stays on one filesystem
    ABOUTME: Creates parent directories if needed
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_json_file(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file atomically.

    ABOUTME: Uses 2-space indentation for readability
    ABOUTME: Keeps key order so foreign entries stay where the user put them
    """
    atomic_write_text(path, json.dumps(data, indent=2) + "\n")


def sanitize_name(name: str) -> str:
    """Validate a resource name that will become a file or directory name.

    ABOUTME: Rejects empty names, path separators and '..' to prevent path traversal

    Raises:
        ValueError: If the name is not a single safe path segment
    """
    if not name or name in (".", "..") or not _SAFE_NAME.match(name):
        raise ValueError(f"invalid resource name: {name!r}")
    return name
