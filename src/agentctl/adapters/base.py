# Tool adapter base classes, capability protocols and registry
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol, TypeVar, runtime_checkable

from agentctl.models import Server, string_field, string_list, string_map
from agentctl.resources import Command, Rule, Skill, format_frontmatter, load_rule, split_frontmatter
from agentctl.utils.fileio import atomic_write_text, read_json_file, sanitize_name, write_json_file

logger = logging.getLogger(__name__)

# ABOUTME: Resource kinds an adapter can declare in supported_resources
RESOURCE_SERVERS = "servers"
RESOURCE_COMMANDS = "commands"
RESOURCE_RULES = "rules"
RESOURCE_SKILLS = "skills"


class UnknownToolError(LookupError):
    """Raised when a tool name has no registered adapter."""

    def __init__(self, name: str, known: Iterable[str] = ()) -> None:
        known_list = ", ".join(known)
        message = f"unknown tool: {name!r}"
        if known_list:
            message += f" (known: {known_list})"
        super().__init__(message)
        self.name = name


class Adapter:
    """Base class for tool adapters.

    ABOUTME: Subclasses set name, supported_resources and supports_remote
    ABOUTME: config_path may be overridden for tests, home defaults to Path.home()
    ABOUTME: detect() checks the tool's config directory and never raises for a missing tool
    """

    name: str = ""
    supported_resources: frozenset[str] = frozenset({RESOURCE_SERVERS})
    supports_remote: bool = True

    def __init__(self, home: Path | None = None, config_path: Path | None = None) -> None:
        self.home = home if home is not None else Path.home()
        self._config_path = config_path

    def __repr__(self) -> str:
        return f"{type(self).__name__}(config_path={self.config_path!s})"

    @property
    def config_path(self) -> Path:
        """Path to the tool's global config file (may not exist yet)."""
        return self._config_path if self._config_path else self.default_config_path()

    def default_config_path(self) -> Path:
        raise NotImplementedError

    def detect(self) -> bool:
        try:
            return self.config_path.parent.is_dir()
        except OSError:
            return False

    def supports(self, server: Server) -> bool:
        """Whether this tool can represent server at all."""
        return self.supports_remote or not server.is_remote


@runtime_checkable
class ServerAdapter(Protocol):
    """Adapter that reads and writes MCP server definitions."""

    def read_servers(self) -> dict[str, Server]:
        ...

    def write_servers(self, servers: list[Server], remove: Iterable[str] = ()) -> None:
        """Upsert servers by key and delete the names in remove, preserving everything else."""
        ...


@runtime_checkable
class CommandsAdapter(Protocol):
    def read_commands(self) -> list[Command]:
        ...

    def write_commands(self, commands: list[Command]) -> None:
        ...


@runtime_checkable
class RulesAdapter(Protocol):
    def read_rules(self) -> list[Rule]:
        ...

    def write_rules(self, rules: list[Rule]) -> None:
        ...


@runtime_checkable
class SkillsAdapter(Protocol):
    def read_skills(self) -> list[Skill]:
        ...

    def write_skills(self, skills: list[Skill]) -> None:
        ...


@runtime_checkable
class WorkspaceAdapter(Protocol):
    """Adapter with a project-level config file next to the code."""

    def workspace_config_path(self, project_dir: Path) -> Path:
        ...

    def read_workspace_servers(self, project_dir: Path) -> dict[str, Server]:
        ...

    def write_workspace_servers(
        self, project_dir: Path, servers: list[Server], remove: Iterable[str] = ()
    ) -> None:
        ...


P = TypeVar("P")


def as_capability(adapter: Adapter, capability: type[P]) -> tuple[P | None, bool]:
    """Return (adapter, True) when it implements capability, else (None, False).

    Examples:
        >>> workspace, ok = as_capability(ZedAdapter(), WorkspaceAdapter)
        >>> ok
        False
    """
    if isinstance(adapter, capability):
        return adapter, True
    return None, False


class JSONServerAdapter(Adapter):
    """Adapter for tools that keep servers in a JSON object under servers_key.

    ABOUTME: Reads and writes the whole document so other top-level keys survive
    ABOUTME: Subclasses implement encode_server/decode_server for their dialect
    """

    servers_key: str = "mcpServers"

    def encode_server(self, server: Server) -> dict[str, Any]:
        raise NotImplementedError

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        raise NotImplementedError

    def _read_document(self, path: Path) -> dict[str, Any]:
        return read_json_file(path)

    def _write_document(self, path: Path, data: dict[str, Any]) -> None:
        write_json_file(path, data)

    def _read_servers_at(self, path: Path) -> dict[str, Server]:
        """Decode the servers section of path.

        ABOUTME: Returns empty dict if the file or section doesn't exist
        ABOUTME: Malformed entries are skipped with a warning and left untouched on disk
        """
        return decode_section(self._read_document(path).get(self.servers_key), self.decode_server, path)

    def _write_servers_at(self, path: Path, servers: list[Server], remove: Iterable[str]) -> None:
        """Apply upserts and removals to the servers section of path.

        ABOUTME: Entries not named in servers or remove keep their exact value and position
        ABOUTME: Missing file is created with just the servers section
        """
        data = self._read_document(path)
        section = data.get(self.servers_key)
        if not isinstance(section, dict):
            section = {}

        for name in remove:
            section.pop(name, None)
        for server in servers:
            section[server.key] = self.encode_server(server)

        data[self.servers_key] = section
        self._write_document(path, data)

    def read_servers(self) -> dict[str, Server]:
        return self._read_servers_at(self.config_path)

    def write_servers(self, servers: list[Server], remove: Iterable[str] = ()) -> None:
        self._write_servers_at(self.config_path, servers, remove)


class WorkspaceMixin:
    """Project-level config support for JSONServerAdapter subclasses.

    ABOUTME: workspace_file is relative to the project directory
    """

    workspace_file: str = ""

    def workspace_config_path(self, project_dir: Path) -> Path:
        return project_dir / self.workspace_file

    def read_workspace_servers(self, project_dir: Path) -> dict[str, Server]:
        return self._read_servers_at(self.workspace_config_path(project_dir))  # type: ignore[attr-defined]

    def write_workspace_servers(
        self, project_dir: Path, servers: list[Server], remove: Iterable[str] = ()
    ) -> None:
        self._write_servers_at(self.workspace_config_path(project_dir), servers, remove)  # type: ignore[attr-defined]


def decode_section(
    section: Any,
    decode: Callable[[str, dict[str, Any]], Server],
    path: Path,
) -> dict[str, Server]:
    """Decode every entry of a servers section, skipping the malformed ones.

    ABOUTME: A missing or non-object section reads as no servers
    """
    if not isinstance(section, dict):
        return {}

    servers: dict[str, Server] = {}
    for name, entry in section.items():
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed server '{name}' in {path}")
            continue
        try:
            servers[name] = decode(name, entry)
        except ValueError as e:
            logger.warning(f"Skipping malformed server '{name}' in {path}: {e}")
    return servers


def stdio_fields(server: Server) -> dict[str, Any]:
    """The {command, args, env} shape most tools share."""
    result: dict[str, Any] = {"command": server.command}
    if server.args:
        result["args"] = list(server.args)
    if server.env:
        result["env"] = dict(server.env)
    return result


def decode_common(
    name: str,
    data: dict[str, Any],
    url_keys: tuple[str, ...] = ("url",),
    default_remote: str = "http",
) -> Server:
    """Decode the common mcpServers entry shape.

    ABOUTME: An explicit type/transport wins, else any url key makes it remote
    ABOUTME: Unknown transports fall back to stdio

    Raises:
        ValueError: If a field has the wrong type
    """
    url = ""
    for key in url_keys:
        if data.get(key):
            url = string_field(name, key, data[key])
            break

    transport = data.get("type") or data.get("transport") or ""
    if transport not in ("stdio", "http", "sse"):
        transport = default_remote if url else "stdio"
    if transport != "stdio" and not url:
        transport = "stdio"

    return Server(
        name=name,
        transport=transport,
        command=string_field(name, "command", data.get("command")),
        args=string_list(name, "args", data.get("args")),
        env=string_map(name, "env", data.get("env")),
        url=url,
        headers=string_map(name, "headers", data.get("headers")),
        disabled=bool(data.get("disabled", False)),
    )


# ABOUTME: Frontmatter keys used for markdown commands (Claude Code / Cursor style)
_COMMAND_ALLOWED_KEY = "allowed-tools"
_COMMAND_DISALLOWED_KEY = "disallowed-tools"
_COMMAND_ARGUMENT_HINT_KEY = "argument-hint"


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value]


def read_markdown_commands(directory: Path) -> list[Command]:
    """Read <directory>/<name>.md commands with optional YAML frontmatter."""
    if not directory.is_dir():
        return []

    commands: list[Command] = []
    for path in sorted(directory.glob("*.md")):
        frontmatter, body = split_frontmatter(path.read_text(encoding="utf-8"))
        commands.append(Command(
            name=path.stem,
            description=str(frontmatter.get("description", "")),
            prompt=body,
            argument_hint=str(frontmatter.get(_COMMAND_ARGUMENT_HINT_KEY) or ""),
            allowed_tools=_as_list(frontmatter.get(_COMMAND_ALLOWED_KEY)),
            disallowed_tools=_as_list(frontmatter.get(_COMMAND_DISALLOWED_KEY)),
        ))
    return commands


def write_markdown_commands(directory: Path, commands: list[Command]) -> None:
    """Write each command as <directory>/<name>.md.

    ABOUTME: Other files in the directory are left alone
    """
    for command in commands:
        frontmatter: dict[str, Any] = {
            "description": command.description,
            _COMMAND_ARGUMENT_HINT_KEY: command.argument_hint,
        }
        if command.allowed_tools:
            frontmatter[_COMMAND_ALLOWED_KEY] = ", ".join(command.allowed_tools)
        if command.disallowed_tools:
            frontmatter[_COMMAND_DISALLOWED_KEY] = ", ".join(command.disallowed_tools)
        atomic_write_text(
            directory / f"{sanitize_name(command.name)}.md",
            format_frontmatter(frontmatter, command.prompt),
        )


# ABOUTME: Separator between rules joined into one instructions file (AGENTS.md, .windsurfrules)
RULES_SEPARATOR = "\n\n---\n\n"


def read_rules_file(path: Path) -> list[Rule]:
    """Read a single instructions file as one rule; missing file means no rules."""
    if not path.is_file():
        return []
    return [load_rule(path)]


def write_rules_file(path: Path, rules: list[Rule]) -> None:
    """Join every rule's content into path.

    ABOUTME: An empty rule list leaves the file untouched
    """
    if not rules:
        return
    atomic_write_text(path, RULES_SEPARATOR.join(rule.content.strip() for rule in rules) + "\n")


class AdapterRegistry:
    """Ordered collection of adapters keyed by tool name.

    ABOUTME: all() keeps registration order so sync output is stable
    """

    def __init__(self, adapters: Iterable[Adapter] = ()) -> None:
        self._adapters: dict[str, Adapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        """Register adapter, replacing any previous adapter with the same name."""
        self._adapters[adapter.name] = adapter

    def all(self) -> list[Adapter]:
        return list(self._adapters.values())

    def names(self) -> list[str]:
        return list(self._adapters)

    def detected(self) -> list[Adapter]:
        """Adapters whose tool is installed on this machine."""
        return [adapter for adapter in self._adapters.values() if adapter.detect()]

    def get(self, name: str) -> Adapter:
        """Look up an adapter by tool name.

        Raises:
            UnknownToolError: If no adapter is registered under name
        """
        try:
            return self._adapters[name]
        except KeyError:
            raise UnknownToolError(name, self._adapters) from None

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
