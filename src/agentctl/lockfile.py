# ABOUTME: Lockfile recording exactly which source revision of each server is installed
# ABOUTME: Also hosts the advisory "is there a newer commit upstream" checks
import hashlib
import logging
import subprocess
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from agentctl.builder import Builder, BuildError
from agentctl.config import Config, default_config_dir
from agentctl.models import Server
from agentctl.utils.fileio import read_json_file, write_json_file

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "agentctl.lock"
LOCKFILE_VERSION = "1"

# ABOUTME: Servers refreshed more recently than this are not re-checked upstream
STALENESS_WINDOW = timedelta(hours=24)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable lockfile timestamp {value!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LockedEntry:
    """One installed server pinned to a resolved revision.

    ABOUTME: Created on first acquisition, refreshed on update, removed only on uninstall
    """
    source: str = ""
    version: str = ""
    commit: str = ""
    integrity: str = ""
    installed_at: datetime | None = None
    updated_at: datetime | None = None
    checked_at: datetime | None = None

    @property
    def last_refreshed(self) -> datetime | None:
        """Latest of checked/updated/installed timestamps."""
        stamps = [t for t in (self.checked_at, self.updated_at, self.installed_at) if t]
        return max(stamps) if stamps else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"source": self.source}
        if self.version:
            data["version"] = self.version
        if self.commit:
            data["commit"] = self.commit
        if self.integrity:
            data["integrity"] = self.integrity
        for key, value in (
            ("installedAt", self.installed_at),
            ("updatedAt", self.updated_at),
            ("checkedAt", self.checked_at),
        ):
            if value:
                data[key] = _format_time(value)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LockedEntry":
        return cls(
            source=data.get("source", ""),
            version=data.get("version", ""),
            commit=data.get("commit", ""),
            integrity=data.get("integrity", ""),
            installed_at=_parse_time(data.get("installedAt")),
            updated_at=_parse_time(data.get("updatedAt")),
            checked_at=_parse_time(data.get("checkedAt")),
        )


class Lockfile:
    """agentctl.lock: {"version": "1", "locked": {name: entry}}."""

    def __init__(self, path: Path | None = None, locked: dict[str, LockedEntry] | None = None) -> None:
        self.path = path
        self.version = LOCKFILE_VERSION
        self._locked: dict[str, LockedEntry] = dict(locked or {})

    @classmethod
    def load(cls, config_dir: Path | None = None) -> "Lockfile":
        return cls.load_from((config_dir or default_config_dir()) / LOCKFILE_NAME)

    @classmethod
    def load_from(cls, path: Path) -> "Lockfile":
        """Load a lockfile, or an empty one if it doesn't exist.

        Raises:
            ValueError: If the file is not valid JSON
        """
        data = read_json_file(path)
        locked = data.get("locked") or {}
        if not isinstance(locked, dict):
            raise ValueError(f"Invalid lockfile {path}: 'locked' must be an object")
        lockfile = cls(
            path=path,
            locked={name: LockedEntry.from_dict(entry) for name, entry in locked.items()},
        )
        lockfile.version = str(data.get("version", LOCKFILE_VERSION))
        return lockfile

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "locked": {name: entry.to_dict() for name, entry in sorted(self._locked.items())},
        }

    def save(self) -> None:
        if self.path is None:
            raise ValueError("Lockfile has no path; use save_to()")
        self.save_to(self.path)

    def save_to(self, path: Path) -> None:
        write_json_file(path, self.to_dict())

    def lock(self, name: str, entry: LockedEntry, now: datetime | None = None) -> LockedEntry:
        """Add or refresh an entry.

        ABOUTME: Refreshing keeps the original installed_at and stamps updated_at
        """
        now = now or _now()
        existing = self._locked.get(name)
        if existing is not None:
            entry = replace(entry, installed_at=existing.installed_at or now, updated_at=now)
        else:
            entry = replace(entry, installed_at=now)
        self._locked[name] = entry
        return entry

    def unlock(self, name: str) -> bool:
        return self._locked.pop(name, None) is not None

    def get(self, name: str) -> LockedEntry | None:
        return self._locked.get(name)

    def is_locked(self, name: str) -> bool:
        return name in self._locked

    def needs_update(self, name: str, commit: str = "", version: str = "") -> bool:
        """True when name is unlocked or its commit/version differs from what is given."""
        entry = self._locked.get(name)
        if entry is None:
            return True
        if commit and entry.commit != commit:
            return True
        if version and entry.version != version:
            return True
        return False

    def mark_checked(self, name: str, now: datetime | None = None) -> None:
        entry = self._locked.get(name)
        if entry is not None:
            self._locked[name] = replace(entry, checked_at=now or _now())

    def entries(self) -> dict[str, LockedEntry]:
        return dict(self._locked)

    def count(self) -> int:
        return len(self._locked)


def calculate_integrity(directory: Path) -> str:
    """SHA-256 over every file's relative path and contents.

    ABOUTME: Files are visited in sorted order; the .git directory is skipped
    ABOUTME: Format: sha256-<hex>
    """
    digest = hashlib.sha256()
    for path in sorted(p for p in directory.rglob("*") if p.is_file()):
        relative = path.relative_to(directory)
        if relative.parts[0] == ".git":
            continue
        digest.update(relative.as_posix().encode("utf-8"))
        digest.update(path.read_bytes())
    return f"sha256-{digest.hexdigest()}"


def verify_integrity(directory: Path, expected: str) -> bool:
    return calculate_integrity(directory) == expected


def lock_installed(lockfile: Lockfile, builder: Builder, server: Server) -> LockedEntry:
    """Record an installed server's source, commit, tag and content hash.

    Raises:
        BuildError: If the commit cannot be read
    """
    entry = LockedEntry(
        source=server.source.url,
        version=builder.get_version(server) or server.source.ref,
        commit=builder.get_commit(server),
        integrity=calculate_integrity(builder.server_dir(server)),
    )
    return lockfile.lock(server.name, entry)


def is_possibly_updatable(server: Server, entry: LockedEntry | None, now: datetime | None = None) -> bool:
    """Whether an upstream check is worthwhile for server.

    ABOUTME: Only VCS sources without a pinned ref can move
    ABOUTME: A never-checked entry, or one last refreshed beyond STALENESS_WINDOW, qualifies
    """
    if not server.source.is_vcs or server.source.ref:
        return False
    if entry is None:
        return False

    last = entry.last_refreshed
    if last is None:
        return True
    return (now or _now()) - last >= STALENESS_WINDOW


def has_remote_update(directory: Path, local_commit: str) -> bool:
    """Compare origin's HEAD to local_commit without fetching.

    ABOUTME: Any failure (no git, no network, no remote) means False
    """
    if not local_commit:
        return False
    try:
        result = subprocess.run(
            ["git", "ls-remote", "origin", "HEAD"],
            cwd=directory,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git ls-remote failed in {directory}: {e}")
        return False

    if result.returncode != 0:
        logger.debug(f"git ls-remote failed in {directory}: {result.stderr.strip()}")
        return False

    fields = result.stdout.split()
    return bool(fields) and fields[0] != local_commit


def check_for_updates(
    config: Config,
    lockfile: Lockfile,
    builder: Builder,
    exclude: str | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Names of installed servers whose upstream HEAD moved.

    ABOUTME: Advisory: never raises, problems just mean "no update known"
    ABOUTME: Marks every checked entry so the staleness window restarts
    """
    updates: list[str] = []
    now = now or _now()

    for name in sorted(config.servers):
        if name == exclude:
            continue
        server = config.servers[name]
        entry = lockfile.get(name)
        try:
            if not builder.installed(server) or not is_possibly_updatable(server, entry, now):
                continue
            if has_remote_update(builder.server_dir(server), entry.commit if entry else ""):
                updates.append(name)
            lockfile.mark_checked(name, now)
        except (OSError, BuildError) as e:
            logger.debug(f"Update check for {name} failed: {e}")

    return updates
