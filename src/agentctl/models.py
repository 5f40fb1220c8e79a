# Core data models for agentctl
from dataclasses import dataclass, field, replace
from typing import Any, Literal

# ABOUTME: Transports an MCP server can be reached over
Transport = Literal["stdio", "http", "sse"]
TRANSPORTS: tuple[str, ...] = ("stdio", "http", "sse")
REMOTE_TRANSPORTS: frozenset[str] = frozenset({"http", "sse"})

# ABOUTME: Acquisition methods; exactly one is implied by a source type
SourceType = Literal["local", "git", "alias", "remote", "manual"]
SOURCE_TYPES: tuple[str, ...] = ("local", "git", "alias", "remote", "manual")

# ABOUTME: Source types that are acquired by cloning a repository
VCS_SOURCE_TYPES: frozenset[str] = frozenset({"git", "alias"})


@dataclass(frozen=True)
class Source:
    """Where an MCP server comes from.

    ABOUTME: url is a git URL, a local path or a remote endpoint depending on type
    ABOUTME: ref pins a branch, tag or version; empty means the default branch
    """
    type: SourceType = "manual"
    url: str = ""
    ref: str = ""
    alias: str = ""

    @property
    def is_vcs(self) -> bool:
        return self.type in VCS_SOURCE_TYPES


@dataclass(frozen=True)
class BuildConfig:
    """Explicit install/build steps that override ecosystem auto-detection."""
    install: str = ""
    build: str = ""
    workdir: str = ""


@dataclass(frozen=True)
class Server:
    """Immutable MCP server definition.

    ABOUTME: Uses frozen dataclass to prevent accidental mutation
    ABOUTME: stdio servers carry command/args/env, remote servers carry url/headers
    ABOUTME: scope is assigned on load and never serialized
    """
    name: str
    transport: Transport = "stdio"
    command: str = ""
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    namespace: str = ""
    disabled: bool = False
    scope: str = ""
    source: Source = field(default_factory=Source)
    build: BuildConfig | None = None

    @property
    def key(self) -> str:
        """Name the server is written under: namespace if set, else name."""
        return self.namespace or self.name

    @property
    def is_remote(self) -> bool:
        return self.transport in REMOTE_TRANSPORTS

    def with_scope(self, scope: str) -> "Server":
        return replace(self, scope=scope)


def string_field(owner: str, key: str, value: Any) -> str:
    """A string-valued field; missing or null reads as "".

    Raises:
        ValueError: If value is present but not a string
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Server '{owner}': '{key}' must be a string, got {type(value).__name__}")
    return value


def string_list(owner: str, key: str, value: Any) -> list[str]:
    """A list field with scalar items; missing or null reads as [].

    Raises:
        ValueError: If value is not a list or holds objects/lists
    """
    if value is None:
        return []
    if not isinstance(value, list) or any(isinstance(item, (dict, list)) for item in value):
        raise ValueError(f"Server '{owner}': '{key}' must be a list of strings")
    return [str(item) for item in value]


def string_map(owner: str, key: str, value: Any) -> dict[str, str]:
    """An object field with scalar values; missing or null reads as {}.

    Raises:
        ValueError: If value is not an object or holds objects/lists
    """
    if value is None:
        return {}
    if not isinstance(value, dict) or any(isinstance(item, (dict, list)) for item in value.values()):
        raise ValueError(f"Server '{owner}': '{key}' must be an object of strings")
    return {str(k): str(v) for k, v in value.items()}


def source_to_dict(source: Source) -> dict[str, str]:
    result = {"type": source.type}
    if source.url:
        result["url"] = source.url
    if source.ref:
        result["ref"] = source.ref
    if source.alias:
        result["alias"] = source.alias
    return result


def source_from_dict(data: dict[str, Any], owner: str = "") -> Source:
    if not isinstance(data, dict):
        raise ValueError(f"Server '{owner}': 'source' must be an object")
    source_type = data.get("type") or "manual"
    if source_type not in SOURCE_TYPES:
        raise ValueError(
            f"Invalid source type '{source_type}'. Must be one of: {', '.join(SOURCE_TYPES)}"
        )
    return Source(
        type=source_type,
        url=string_field(owner, "source.url", data.get("url")),
        ref=string_field(owner, "source.ref", data.get("ref")),
        alias=string_field(owner, "source.alias", data.get("alias")),
    )


def server_to_dict(server: Server) -> dict[str, Any]:
    """Convert Server to the agentctl config format.

    ABOUTME: Omits empty fields for cleaner output
    ABOUTME: Never writes scope, which is derived from the file it came from
    """
    result: dict[str, Any] = {
        "name": server.name,
        "source": source_to_dict(server.source),
    }

    if server.is_remote:
        result["transport"] = server.transport
        result["url"] = server.url
        if server.headers:
            result["headers"] = dict(server.headers)
    else:
        if server.transport != "stdio":
            result["transport"] = server.transport
        result["command"] = server.command
        if server.args:
            result["args"] = list(server.args)

    if server.env:
        result["env"] = dict(server.env)
    if server.namespace:
        result["namespace"] = server.namespace
    if server.build is not None:
        build: dict[str, str] = {}
        if server.build.install:
            build["install"] = server.build.install
        if server.build.build:
            build["build"] = server.build.build
        if server.build.workdir:
            build["workdir"] = server.build.workdir
        result["build"] = build
    if server.disabled:
        result["disabled"] = True

    return result


def server_from_dict(name: str, data: dict[str, Any], scope: str = "") -> Server:
    """Convert agentctl config format to Server.

    ABOUTME: Transport defaults to stdio, or http when only a url is given
    ABOUTME: Raises ValueError for unknown transports, missing urls and wrongly typed fields
    """
    if not isinstance(data, dict):
        raise ValueError(f"Server '{name}' must be an object")

    transport = data.get("transport") or ("http" if data.get("url") and not data.get("command") else "stdio")
    if transport not in TRANSPORTS:
        raise ValueError(
            f"Server '{name}' has invalid transport '{transport}'. Must be 'stdio', 'http' or 'sse'."
        )
    if transport in REMOTE_TRANSPORTS and not data.get("url"):
        raise ValueError(f"Server '{name}' missing required 'url' field for {transport} transport")

    build_data = data.get("build")
    build = None
    if build_data is not None:
        if not isinstance(build_data, dict):
            raise ValueError(f"Server '{name}': 'build' must be an object")
        build = BuildConfig(
            install=string_field(name, "build.install", build_data.get("install")),
            build=string_field(name, "build.build", build_data.get("build")),
            workdir=string_field(name, "build.workdir", build_data.get("workdir")),
        )

    return Server(
        name=name,
        transport=transport,
        command=string_field(name, "command", data.get("command")),
        args=string_list(name, "args", data.get("args")),
        env=string_map(name, "env", data.get("env")),
        url=string_field(name, "url", data.get("url")),
        headers=string_map(name, "headers", data.get("headers")),
        namespace=string_field(name, "namespace", data.get("namespace")),
        disabled=bool(data.get("disabled", False)),
        scope=scope,
        source=source_from_dict(data.get("source") or {}, name),
        build=build,
    )
