# Managed-server ledger for agentctl sync
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentctl.utils.fileio import read_json_file, write_json_file

STATE_FILE_NAME = "sync-state.json"
STATE_VERSION = 1


def target_key(adapter_name: str, project_dir: Path | None = None) -> str:
    """Ledger key for one sync target.

    ABOUTME: Global targets use the adapter name, workspace targets add @<project dir>

    Examples:
        >>> target_key("cursor")
        'cursor'
        >>> target_key("cursor", Path("/work/app"))
        'cursor@/work/app'
    """
    if project_dir is None:
        return adapter_name
    return f"{adapter_name}@{project_dir}"


@dataclass
class SyncState:
    """Which server keys agentctl wrote into each target.

    ABOUTME: Entries absent from the ledger are user-authored and never deleted
    ABOUTME: Stored as {"version": 1, "managedServers": {target: [names]}}
    """
    managed_servers: dict[str, list[str]] = field(default_factory=dict)
    version: int = STATE_VERSION
    path: Path | None = None

    def get_managed(self, target: str) -> list[str]:
        return list(self.managed_servers.get(target, []))

    def set_managed(self, target: str, names: list[str]) -> None:
        """Replace the ledger for target; an empty list clears it."""
        if names:
            self.managed_servers[target] = sorted(set(names))
        else:
            self.managed_servers.pop(target, None)

    def clear(self, target: str) -> None:
        self.managed_servers.pop(target, None)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "managedServers": self.managed_servers}

    def save(self) -> None:
        if self.path is None:
            raise ValueError("SyncState has no path")
        write_json_file(self.path, self.to_dict())

    @classmethod
    def load(cls, path: Path) -> "SyncState":
        """Load the ledger, or an empty one if the file doesn't exist.

        Raises:
            ValueError: If the file is not valid JSON
        """
        data = read_json_file(path)
        managed = data.get("managedServers") or {}
        if not isinstance(managed, dict):
            raise ValueError(f"Invalid sync state in {path}: managedServers must be an object")

        return cls(
            managed_servers={target: [str(n) for n in names] for target, names in managed.items()},
            version=int(data.get("version", STATE_VERSION)),
            path=path,
        )


def state_path(config_dir: Path) -> Path:
    return config_dir / STATE_FILE_NAME


def load_state(config_dir: Path) -> SyncState:
    return SyncState.load(state_path(config_dir))
