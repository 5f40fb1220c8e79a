# Profile overlays for agentctl
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentctl.models import Server, server_from_dict, server_to_dict
from agentctl.utils.fileio import read_json_file, sanitize_name, write_json_file

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    """Named additive overlay of the global config.

    ABOUTME: servers are added to (or override) the base set, never replace it
    ABOUTME: disabled removes base entries by name
    """
    name: str
    description: str = ""
    servers: dict[str, Server] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    rules: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)
    path: Path | None = None

    def apply(self, servers: dict[str, Server]) -> dict[str, Server]:
        """Return servers with this profile layered on top.

        ABOUTME: Returns new dict (doesn't mutate input)
        """
        result = dict(servers)
        for name, server in self.servers.items():
            result[name] = server
        for name in self.disabled:
            result.pop(name, None)
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.description:
            data["description"] = self.description
        if self.servers:
            data["servers"] = {name: server_to_dict(s) for name, s in self.servers.items()}
        for key in ("commands", "rules", "skills", "disabled"):
            values = getattr(self, key)
            if values:
                data[key] = list(values)
        return data


def profile_path(directory: Path, name: str) -> Path:
    return directory / f"{sanitize_name(name)}.json"


def _names(path: Path, data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Invalid profile {path}: '{key}' must be a list of names")
    return list(value)


def load_profile(path: Path) -> Profile:
    """Load a profile from JSON.

    Raises:
        FileNotFoundError: If the profile doesn't exist
        ValueError: If the JSON or a server entry is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Profile not found: {path}")

    data = read_json_file(path)
    servers_data = data.get("servers") or {}
    if not isinstance(servers_data, dict):
        raise ValueError(f"Invalid profile {path}: 'servers' must be an object of server definitions")
    servers = {
        name: server_from_dict(name, server_data, scope="global")
        for name, server_data in servers_data.items()
    }
    return Profile(
        name=str(data.get("name") or path.stem),
        description=str(data.get("description") or ""),
        servers=servers,
        commands=_names(path, data, "commands"),
        rules=_names(path, data, "rules"),
        skills=_names(path, data, "skills"),
        disabled=_names(path, data, "disabled"),
        path=path,
    )


def save_profile(profile: Profile, path: Path | None = None) -> Path:
    target = path or profile.path
    if target is None:
        raise ValueError(f"Profile '{profile.name}' has no path")
    write_json_file(target, profile.to_dict())
    profile.path = target
    return target


def load_all_profiles(directory: Path) -> list[Profile]:
    """Load every profile in directory, skipping invalid files."""
    if not directory.is_dir():
        return []

    profiles: list[Profile] = []
    for path in sorted(directory.glob("*.json")):
        try:
            profiles.append(load_profile(path))
        except ValueError as e:
            logger.warning(f"Skipping invalid profile {path}: {e}")
    return profiles


def create_profile(directory: Path, name: str, description: str = "") -> Profile:
    path = profile_path(directory, name)
    if path.exists():
        raise FileExistsError(f"Profile '{name}' already exists at {path}")
    profile = Profile(name=name, description=description)
    save_profile(profile, path)
    return profile


def delete_profile(directory: Path, name: str) -> bool:
    """Delete a profile; returns False if it did not exist."""
    path = profile_path(directory, name)
    if not path.exists():
        return False
    path.unlink()
    return True
