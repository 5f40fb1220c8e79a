# Turning a user-supplied install target into a Server definition
import re
from urllib.parse import urlparse

from agentctl.aliases import Alias, AliasStore, UnknownAliasError
from agentctl.models import Server, Source

_NAME_SUFFIXES = (".git", "-mcp", "-server")

# ABOUTME: host/path targets without a scheme, e.g. github.com/org/repo
_BARE_REPO = re.compile(r"^[A-Za-z0-9.-]+\.[A-Za-z]{2,}/[^\s]+$")


def name_from_path(path: str) -> str:
    """Last path segment with -mcp, -server and .git suffixes removed.

    Examples:
        >>> name_from_path("./tools/filesystem-mcp")
        'filesystem'
        >>> name_from_path("git@github.com:org/weather-server.git")
        'weather'
    """
    segment = path.rstrip("/").replace(":", "/").split("/")[-1]
    for suffix in _NAME_SUFFIXES:
        if segment.endswith(suffix) and len(segment) > len(suffix):
            segment = segment[: -len(suffix)]
    return segment


def name_from_url(url: str) -> str:
    """Service name from a remote endpoint's host.

    ABOUTME: mcp.<service>.<tld> -> <service>, otherwise the first host label

    Examples:
        >>> name_from_url("https://mcp.sentry.dev/mcp")
        'sentry'
        >>> name_from_url("https://api.example.com/mcp")
        'api'
    """
    host = urlparse(url).hostname or ""
    labels = host.split(".")
    if len(labels) >= 2 and labels[0] == "mcp":
        return labels[1]
    return labels[0] if labels[0] else host


def _split_ref(target: str) -> tuple[str, str]:
    if "#" in target:
        base, ref = target.rsplit("#", 1)
        return base, ref
    return target, ""


def _is_git_target(target: str) -> bool:
    return target.startswith("git@") or target.endswith(".git") or bool(_BARE_REPO.match(target))


def server_from_alias(name: str, alias: Alias, version: str = "") -> Server:
    """Build a Server from an alias entry.

    ABOUTME: http/sse aliases become remote servers on their mcp_url
    ABOUTME: node -> npx -y <package>, python -> uvx <package>, go -> go run <url>
    """
    if alias.is_remote:
        return Server(
            name=name,
            transport=alias.transport,
            url=alias.mcp_url,
            source=Source(type="remote", url=alias.mcp_url, alias=name),
        )

    package = alias.package or name
    if alias.runtime == "python":
        command, args = "uvx", [f"{package}=={version}" if version else package]
    elif alias.runtime == "go":
        command, args = "go", ["run", f"{alias.url}@{version or 'latest'}"]
    else:
        command, args = "npx", ["-y", f"{package}@{version}" if version else package]

    return Server(
        name=name,
        command=command,
        args=args,
        source=Source(type="alias", url=alias.url, ref=version, alias=name),
    )


def parse_add_target(target: str, aliases: AliasStore | None = None) -> Server:
    """Classify target and build the Server it describes.

    ABOUTME: ./, ../ and / are local paths; http(s):// are remote endpoints kept verbatim
    ABOUTME: git@..., *.git and host/org/repo are git sources (optional #ref)
    ABOUTME: Anything else is an alias, optionally name@version

    Raises:
        UnknownAliasError: If target is not a path, URL or known alias
        ValueError: If target is empty

    Examples:
        >>> parse_add_target("./tools/filesystem-mcp").name
        'filesystem'
        >>> parse_add_target("https://mcp.example.com/api").url
        'https://mcp.example.com/api'
    """
    target = target.strip()
    if not target:
        raise ValueError("empty install target")

    if target.startswith(("./", "../", "/")):
        return Server(
            name=name_from_path(target),
            transport="stdio",
            source=Source(type="local", url=target),
        )

    if target.startswith(("http://", "https://")):
        return Server(
            name=name_from_url(target),
            transport="http",
            url=target,
            source=Source(type="remote", url=target),
        )

    base, ref = _split_ref(target)
    if _is_git_target(base):
        return Server(
            name=name_from_path(base),
            transport="stdio",
            source=Source(type="git", url=base, ref=ref),
        )

    name, _, version = target.partition("@")
    store = aliases if aliases is not None else AliasStore()
    alias = store.resolve(name)
    if alias is None:
        raise UnknownAliasError(name)
    return server_from_alias(name, alias, version)
