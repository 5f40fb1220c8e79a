# ABOUTME: Copies of tool config files taken before every sync write
# ABOUTME: Only the newest DEFAULT_MAX_BACKUPS are kept for each label
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_BACKUPS = 5

# <label>_<YYYYMMDD>_<HHMMSS>_<microseconds>.<ext>, e.g. cursor-workspace_20260108_143022_123456.json
_BACKUP_NAME = re.compile(r"^(?P<label>.+?)_(?P<stamp>\d{8}_\d{6}_\d{6})\.(?P<ext>.+)$")


def _default_label(path: Path) -> str:
    # .claude.json -> claude, settings.json -> settings
    return path.name.lstrip(".").split(".")[0]


def create_backup(source_path: Path, backup_dir: Path, label: str | None = None) -> Path:
    """Copy source_path into backup_dir under a timestamped name.

    ABOUTME: label defaults to the file name up to its first dot
    ABOUTME: Prunes older backups of the same label afterwards

    Raises:
        FileNotFoundError: If source_path doesn't exist
    """
    if not source_path.is_file():
        raise FileNotFoundError(f"Nothing to back up at {source_path}")

    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    target = backup_dir / f"{label or _default_label(source_path)}_{stamp}{source_path.suffix or '.bak'}"

    shutil.copy2(source_path, target)
    logger.debug(f"Backed up {source_path} to {target}")
    cleanup_old_backups(backup_dir)
    return target


def list_backups(backup_dir: Path) -> dict[str, list[Path]]:
    """Backups grouped by label, newest first."""
    grouped: dict[str, list[tuple[str, Path]]] = {}
    if not backup_dir.is_dir():
        return {}
    for path in backup_dir.iterdir():
        match = _BACKUP_NAME.match(path.name)
        if match and path.is_file():
            grouped.setdefault(match["label"], []).append((match["stamp"], path))
    return {
        label: [path for _, path in sorted(entries, reverse=True)]
        for label, entries in grouped.items()
    }


def cleanup_old_backups(backup_dir: Path, max_backups_per_label: int = DEFAULT_MAX_BACKUPS) -> list[Path]:
    """Delete all but the newest max_backups_per_label backups of each label.

    ABOUTME: Deletion failures are logged and skipped

    Returns:
        Paths that were deleted
    """
    deleted: list[Path] = []
    for label, paths in list_backups(backup_dir).items():
        for path in paths[max_backups_per_label:]:
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Could not prune backup {path}: {e}")
                continue
            deleted.append(path)
            logger.debug(f"Pruned {label} backup {path.name}")
    return deleted
