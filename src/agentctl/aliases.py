# Alias store mapping short names to MCP server sources
import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

from agentctl.config import default_config_dir
from agentctl.utils.fileio import read_json_file, write_json_file

logger = logging.getLogger(__name__)

ALIASES_FILE_NAME = "aliases.json"

# ABOUTME: Runtimes that map to a package-runner command
RUNTIMES: tuple[str, ...] = ("node", "python", "go", "docker")


class UnknownAliasError(LookupError):
    """Raised when a name is neither a path, URL, git repo nor known alias."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown alias {name!r} (use a local path, git URL or http(s) URL)")
        self.name = name


@dataclass(frozen=True)
class Alias:
    """Short name for a server source.

    ABOUTME: stdio aliases carry a runtime and package, remote ones a transport and mcp_url
    """
    url: str = ""
    description: str = ""
    runtime: str = ""
    package: str = ""
    transport: str = ""
    mcp_url: str = ""

    @property
    def is_remote(self) -> bool:
        return self.transport in ("http", "sse")

    def to_dict(self) -> dict[str, str]:
        data = {
            "url": self.url,
            "description": self.description,
            "runtime": self.runtime,
            "package": self.package,
            "transport": self.transport,
            "mcpUrl": self.mcp_url,
        }
        return {key: value for key, value in data.items() if value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alias":
        return cls(
            url=str(data.get("url", "")),
            description=str(data.get("description", "")),
            runtime=str(data.get("runtime", "")),
            package=str(data.get("package", "")),
            transport=str(data.get("transport", "")),
            mcp_url=str(data.get("mcpUrl", "")),
        )


def load_bundled_aliases() -> dict[str, Alias]:
    """Aliases shipped inside the package."""
    text = resources.files("agentctl").joinpath(ALIASES_FILE_NAME).read_text(encoding="utf-8")
    return {name: Alias.from_dict(data) for name, data in json.loads(text).items()}


class AliasStore:
    """Bundled aliases overlaid with the user's aliases.json.

    ABOUTME: User entries win over bundled ones with the same name
    ABOUTME: add/remove only ever touch the user file
    """

    def __init__(self, config_dir: Path | None = None, bundled: dict[str, Alias] | None = None) -> None:
        self.path = (config_dir or default_config_dir()) / ALIASES_FILE_NAME
        self.bundled = bundled if bundled is not None else load_bundled_aliases()
        self.user = self._load_user()

    def _load_user(self) -> dict[str, Alias]:
        try:
            data = read_json_file(self.path)
        except ValueError as e:
            logger.warning(f"Ignoring invalid user aliases: {e}")
            return {}
        return {
            name: Alias.from_dict(entry)
            for name, entry in data.items()
            if isinstance(entry, dict)
        }

    def _save_user(self) -> None:
        write_json_file(self.path, {name: alias.to_dict() for name, alias in sorted(self.user.items())})

    def resolve(self, name: str) -> Alias | None:
        if name in self.user:
            return self.user[name]
        return self.bundled.get(name)

    def add(self, name: str, alias: Alias) -> None:
        self.user[name] = alias
        self._save_user()

    def remove(self, name: str) -> bool:
        """Remove a user alias; bundled aliases cannot be removed."""
        if name not in self.user:
            return False
        del self.user[name]
        self._save_user()
        return True

    def list(self) -> dict[str, Alias]:
        merged = dict(self.bundled)
        merged.update(self.user)
        return dict(sorted(merged.items()))
