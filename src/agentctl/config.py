# Configuration loading, merging and persistence for agentctl
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from agentctl.models import Server, server_from_dict, server_to_dict
from agentctl.profile import load_profile, profile_path
from agentctl.resources import Command, Rule, Skill, load_commands, load_rules, load_skills
from agentctl.scope import (
    PROJECT_CONFIG_NAME,
    InvalidScopeError,
    Scope,
    find_project_config,
    require_project_config,
)
from agentctl.utils.fileio import read_json_file, write_json_file

logger = logging.getLogger(__name__)

# ABOUTME: Global config file name inside the config directory
CONFIG_FILE_NAME = "agentctl.json"

# ABOUTME: Project-local resource directory next to the project marker
LOCAL_RESOURCE_DIR_NAME = ".agentctl"

CONFIG_VERSION = "1"

# ABOUTME: Tools enabled in a freshly created config
DEFAULT_TOOLS: tuple[str, ...] = (
    "claude",
    "claude-desktop",
    "cursor",
    "codex",
    "gemini",
    "opencode",
    "zed",
    "windsurf",
    "cline",
    "continue",
    "copilot",
)


class ConfigError(ValueError):
    """Raised for malformed config files or invalid entries."""


def default_config_dir() -> Path:
    """Return the agentctl configuration directory.

    ABOUTME: $AGENTCTL_HOME wins, then $XDG_CONFIG_HOME/agentctl, then ~/.config/agentctl
    """
    home = os.environ.get("AGENTCTL_HOME")
    if home:
        return Path(home)

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "agentctl"

    return Path.home() / ".config" / "agentctl"


def default_cache_dir() -> Path:
    """Return the cache directory where server sources are cloned.

    ABOUTME: $XDG_CACHE_HOME/agentctl, else ~/.cache/agentctl
    """
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / "agentctl"
    return Path.home() / ".cache" / "agentctl"


def get_config_path(config_dir: Path | None = None) -> Path:
    """Return the path to the global config file (may not exist yet)."""
    return (config_dir or default_config_dir()) / CONFIG_FILE_NAME


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be an object")
    return dict(value)


@dataclass
class AutoUpdateSettings:
    enabled: bool = False
    interval: str = ""
    servers: dict[str, str] = field(default_factory=dict)  # name -> "auto" | "notify"


@dataclass
class ToolSettings:
    enabled: bool = True
    overrides: dict[str, Any] = field(default_factory=dict)


@dataclass
class Settings:
    """Global settings: per-tool enablement, default profile, auto-update policy."""
    default_profile: str = ""
    auto_update: AutoUpdateSettings = field(default_factory=AutoUpdateSettings)
    tools: dict[str, ToolSettings] = field(default_factory=dict)

    def tool_enabled(self, name: str) -> bool:
        """Tools not mentioned in settings are enabled."""
        tool = self.tools.get(name)
        return tool.enabled if tool else True

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.default_profile:
            data["defaultProfile"] = self.default_profile
        auto_update: dict[str, Any] = {"enabled": self.auto_update.enabled}
        if self.auto_update.interval:
            auto_update["interval"] = self.auto_update.interval
        if self.auto_update.servers:
            auto_update["servers"] = dict(self.auto_update.servers)
        if self.auto_update.enabled or len(auto_update) > 1:
            data["autoUpdate"] = auto_update
        if self.tools:
            data["tools"] = {}
            for name, tool in self.tools.items():
                tool_data: dict[str, Any] = {"enabled": tool.enabled}
                if tool.overrides:
                    tool_data["overrides"] = dict(tool.overrides)
                data["tools"][name] = tool_data
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Parse the settings object.

        Raises:
            ValueError: If a section has the wrong type
        """
        auto_data = _section(data, "autoUpdate")
        tools_data = _section(data, "tools")
        for name, tool in tools_data.items():
            if not isinstance(tool, dict):
                raise ValueError(f"settings.tools.{name} must be an object")
        return cls(
            default_profile=data.get("defaultProfile", ""),
            auto_update=AutoUpdateSettings(
                enabled=bool(auto_data.get("enabled", False)),
                interval=auto_data.get("interval", ""),
                servers=_section(auto_data, "servers"),
            ),
            tools={
                name: ToolSettings(
                    enabled=bool(tool.get("enabled", True)),
                    overrides=_section(tool, "overrides"),
                )
                for name, tool in tools_data.items()
            },
        )


def _default_settings() -> Settings:
    return Settings(tools={name: ToolSettings(enabled=True) for name in DEFAULT_TOOLS})


def _merge_names(first: list[str], second: list[str]) -> list[str]:
    """Concatenate two name lists, dropping duplicates and keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for name in [*first, *second]:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def _in_scope(item_scope: str, scope: Scope) -> bool:
    if scope is Scope.ALL:
        return True
    if scope is Scope.LOCAL:
        return item_scope == Scope.LOCAL.value
    return item_scope in (Scope.GLOBAL.value, "")


@dataclass
class Config:
    """agentctl configuration for one scope, or the merged effective view.

    ABOUTME: servers is keyed by name; the same name may exist in both scopes
    ABOUTME: loaded_* hold resources read from disk and are never serialized
    ABOUTME: path is where save() writes; project_path is set when a project marker is involved
    """
    version: str = CONFIG_VERSION
    servers: dict[str, Server] = field(default_factory=dict)
    commands: list[str] = field(default_factory=list)
    rules: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)
    profile: str = ""
    settings: Settings = field(default_factory=Settings)

    loaded_commands: list[Command] = field(default_factory=list)
    loaded_rules: list[Rule] = field(default_factory=list)
    loaded_skills: list[Skill] = field(default_factory=list)

    path: Path | None = None
    config_dir: Path | None = None
    project_path: Path | None = None

    @property
    def project_dir(self) -> Path | None:
        return self.project_path.parent if self.project_path else None

    @property
    def local_resource_dir(self) -> Path | None:
        project_dir = self.project_dir
        return project_dir / LOCAL_RESOURCE_DIR_NAME if project_dir else None

    @property
    def profiles_dir(self) -> Path:
        return (self.config_dir or default_config_dir()) / "profiles"

    @property
    def cache_dir(self) -> Path:
        return default_cache_dir()

    def merge(self, other: "Config") -> "Config":
        """Merge another config on top of this one (other takes precedence).

        ABOUTME: Servers from self are marked global unless already scoped, servers from other are marked local
        ABOUTME: other.disabled removes entries from the merged servers and name lists
        ABOUTME: The merged view has no path: save() refuses it, use save_scoped()
        ABOUTME: Returns new Config (doesn't mutate inputs)
        """
        servers: dict[str, Server] = {
            name: server if server.scope else server.with_scope(Scope.GLOBAL.value)
            for name, server in self.servers.items()
        }
        for name, server in other.servers.items():
            servers[name] = server.with_scope(Scope.LOCAL.value)

        merged = Config(
            version=self.version,
            servers=servers,
            commands=_merge_names(self.commands, other.commands),
            rules=_merge_names(self.rules, other.rules),
            skills=_merge_names(self.skills, other.skills),
            profile=other.profile or self.profile,
            settings=self.settings,
            loaded_commands=[*self.loaded_commands, *other.loaded_commands],
            loaded_rules=[*self.loaded_rules, *other.loaded_rules],
            loaded_skills=[*self.loaded_skills, *other.loaded_skills],
            config_dir=self.config_dir,
            project_path=other.project_path or self.project_path,
        )

        disabled = set(other.disabled)
        if disabled:
            for name in disabled:
                merged.servers.pop(name, None)
            merged.commands = [n for n in merged.commands if n not in disabled]
            merged.rules = [n for n in merged.rules if n not in disabled]
            merged.skills = [n for n in merged.skills if n not in disabled]
            merged.loaded_commands = [c for c in merged.loaded_commands if c.name not in disabled]
            merged.loaded_rules = [r for r in merged.loaded_rules if r.name not in disabled]
            merged.loaded_skills = [s for s in merged.loaded_skills if s.name not in disabled]

        return merged

    def effective_servers(self, profiles_dir: Path | None = None) -> dict[str, Server]:
        """Servers with the active profile applied.

        ABOUTME: Active profile is the project's profile, else settings.default_profile
        ABOUTME: A missing or invalid profile is logged and ignored
        """
        name = self.profile or self.settings.default_profile
        if not name:
            return dict(self.servers)

        directory = profiles_dir or self.profiles_dir
        try:
            active = load_profile(profile_path(directory, name))
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"Ignoring profile '{name}': {e}")
            return dict(self.servers)
        return active.apply(self.servers)

    def active_servers(self, profiles_dir: Path | None = None) -> list[Server]:
        """Enabled servers from the profile-applied view, sorted by name."""
        servers = self.effective_servers(profiles_dir)
        return [servers[name] for name in sorted(servers) if not servers[name].disabled]

    def servers_for_scope(self, scope: Scope) -> list[Server]:
        """Enabled servers belonging to scope (GLOBAL includes unscoped entries)."""
        return [
            self.servers[name]
            for name in sorted(self.servers)
            if not self.servers[name].disabled and _in_scope(self.servers[name].scope, scope)
        ]

    def commands_for_scope(self, scope: Scope) -> list[Command]:
        return [c for c in self.loaded_commands if _in_scope(c.scope, scope)]

    def rules_for_scope(self, scope: Scope) -> list[Rule]:
        return [r for r in self.loaded_rules if _in_scope(r.scope, scope)]

    def skills_for_scope(self, scope: Scope) -> list[Skill]:
        return [s for s in self.loaded_skills if _in_scope(s.scope, scope)]

    def get_server_scope(self, name: str) -> Scope | None:
        server = self.servers.get(name)
        if server is None:
            return None
        return Scope.LOCAL if server.scope == Scope.LOCAL.value else Scope.GLOBAL

    def reload_resources(self) -> None:
        """Re-read global and project-local resources from disk."""
        self.loaded_commands, self.loaded_rules, self.loaded_skills = [], [], []
        if self.config_dir is not None:
            _attach_resources(self, self.config_dir, Scope.GLOBAL)
        if self.local_resource_dir is not None:
            _attach_resources(self, self.local_resource_dir, Scope.LOCAL)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON shape, omitting empty fields."""
        data: dict[str, Any] = {"version": self.version}
        if self.servers:
            data["servers"] = {name: server_to_dict(server) for name, server in self.servers.items()}
        for key in ("commands", "rules", "skills", "disabled"):
            values = getattr(self, key)
            if values:
                data[key] = list(values)
        if self.profile:
            data["profile"] = self.profile
        settings = self.settings.to_dict()
        if settings:
            data["settings"] = settings
        return data

    def save(self) -> None:
        if self.path is None:
            raise ConfigError("Config has no path; use save_to() or save_scoped()")
        self.save_to(self.path)

    def save_to(self, path: Path) -> None:
        """Write this config to path.

        ABOUTME: Creates parent directory if needed
        """
        write_json_file(path, self.to_dict())

    def save_scoped(
        self,
        scope: Scope,
        cwd: Path | None = None,
        config_dir: Path | None = None,
    ) -> Path:
        """Save to the file that backs scope.

        ABOUTME: LOCAL writes the project marker found from cwd and fails fast without one
        ABOUTME: GLOBAL writes the global config; ALL is rejected

        Returns:
            Path written

        Raises:
            InvalidScopeError: For Scope.ALL
            ProjectNotFoundError: For Scope.LOCAL with no project marker
        """
        if scope is Scope.LOCAL:
            path = require_project_config(cwd or Path.cwd())
        elif scope is Scope.GLOBAL:
            path = get_config_path(config_dir)
        else:
            raise InvalidScopeError(f"cannot save to scope {scope.value!r} (use local or global)")

        self.save_to(path)
        return path


def _attach_resources(config: Config, directory: Path, scope: Scope) -> None:
    config.loaded_commands.extend(load_commands(directory / "commands", scope.value))
    config.loaded_rules.extend(load_rules(directory / "rules", scope.value))
    config.loaded_skills.extend(load_skills(directory / "skills", scope.value))


def _name_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of names")
    return list(value)


def _parse_config(path: Path, scope: Scope) -> Config:
    """Parse a config file without loading resources.

    Raises:
        ConfigError: If JSON syntax or a server entry is invalid
    """
    try:
        data = read_json_file(path)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    servers_data = data.get("servers") or {}
    if not isinstance(servers_data, dict):
        raise ConfigError(f"Invalid config {path}: 'servers' must be an object")

    servers: dict[str, Server] = {}
    for name, server_data in servers_data.items():
        try:
            servers[name] = server_from_dict(name, server_data, scope=scope.value)
        except ValueError as e:
            raise ConfigError(f"Invalid config {path}: {e}") from e

    try:
        names = {key: _name_list(data, key) for key in ("commands", "rules", "skills", "disabled")}
        settings_data = data.get("settings") or {}
        if not isinstance(settings_data, dict):
            raise ValueError("'settings' must be an object")
        settings = Settings.from_dict(settings_data)
    except ValueError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e

    profile = data.get("profile") or ""
    if not isinstance(profile, str):
        raise ConfigError(f"Invalid config {path}: 'profile' must be a string")

    return Config(
        version=str(data.get("version", CONFIG_VERSION)),
        servers=servers,
        commands=names["commands"],
        rules=names["rules"],
        skills=names["skills"],
        disabled=names["disabled"],
        profile=profile,
        settings=settings,
        path=path,
        config_dir=path.parent,
    )


def load_from(path: Path) -> Config:
    """Load the global config from path.

    ABOUTME: Missing file yields a default config with every known tool enabled
    ABOUTME: Loads commands/rules/skills from the config directory

    Raises:
        ConfigError: If the file is malformed
    """
    if not path.exists():
        return Config(settings=_default_settings(), path=path, config_dir=path.parent)

    config = _parse_config(path, Scope.GLOBAL)
    _attach_resources(config, path.parent, Scope.GLOBAL)
    return config


def load(config_dir: Path | None = None) -> Config:
    """Load the global config from the default location."""
    return load_from(get_config_path(config_dir))


def load_project_file(project_path: Path) -> Config:
    """Load a project marker file with its .agentctl/ resources, all marked local."""
    config = _parse_config(project_path, Scope.LOCAL)
    config.project_path = project_path
    config.config_dir = project_path.parent
    _attach_resources(config, project_path.parent / LOCAL_RESOURCE_DIR_NAME, Scope.LOCAL)
    return config


def load_with_project(cwd: Path | None = None, config_dir: Path | None = None) -> Config:
    """Load the effective view: global merged with the nearest project config.

    ABOUTME: Falls back to the global view when no project marker is found
    """
    global_config = load(config_dir)
    project_path = find_project_config(cwd or Path.cwd())
    if project_path is None:
        return global_config

    return global_config.merge(load_project_file(project_path))


def load_scoped(scope: Scope, cwd: Path | None = None, config_dir: Path | None = None) -> Config:
    """Load configuration for exactly one scope.

    ABOUTME: LOCAL requires a project marker (walks up from cwd) and fails fast without one
    ABOUTME: GLOBAL servers are stamped global; ALL returns the merged effective view

    Raises:
        ProjectNotFoundError: For LOCAL when no marker exists
        ConfigError: If a config file is malformed
    """
    if scope is Scope.LOCAL:
        return load_project_file(require_project_config(cwd or Path.cwd()))

    if scope is Scope.GLOBAL:
        config = load(config_dir)
        config.servers = {
            name: server.with_scope(Scope.GLOBAL.value) for name, server in config.servers.items()
        }
        return config

    if scope is Scope.ALL:
        return load_with_project(cwd, config_dir)

    raise InvalidScopeError(f"invalid scope: {scope!r}")


def init_project_config(directory: Path) -> Config:
    """Create an empty project marker in directory.

    Raises:
        FileExistsError: If the directory already has a project config
    """
    path = directory / PROJECT_CONFIG_NAME
    if path.exists():
        raise FileExistsError(f"project config already exists at {path}")

    config = Config(path=path, config_dir=directory, project_path=path)
    config.save()
    return config


def with_server(config: Config, server: Server) -> Config:
    """Return a copy of config with server added or replaced.

    ABOUTME: Overwrites server if name already exists
    """
    servers = dict(config.servers)
    servers[server.name] = server
    return replace(config, servers=servers)


def without_server(config: Config, name: str) -> tuple[Config, bool]:
    """Return a copy of config without name, and whether it was present."""
    if name not in config.servers:
        return config, False
    servers = dict(config.servers)
    del servers[name]
    return replace(config, servers=servers), True
