# ABOUTME: Tests for install-target parsing
# ABOUTME: Covers local paths, remote URLs, git repos and alias lookups
import pytest

from agentctl.aliases import Alias, AliasStore, UnknownAliasError
from agentctl.targets import name_from_path, name_from_url, parse_add_target, server_from_alias


@pytest.fixture
def aliases(config_dir) -> AliasStore:
    return AliasStore(config_dir, bundled={
        "filesystem": Alias(
            url="github.com/modelcontextprotocol/servers",
            runtime="node",
            package="@modelcontextprotocol/server-filesystem",
        ),
        "fetch": Alias(url="github.com/modelcontextprotocol/servers", runtime="python", package="mcp-server-fetch"),
        "sentry": Alias(transport="http", mcp_url="https://mcp.sentry.dev/mcp"),
    })


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("./tools/filesystem-mcp", "filesystem"),
        ("../weather-server", "weather"),
        ("/opt/mcp/db.git", "db"),
        ("./tools/plain/", "plain"),
        ("git@github.com:org/notes-server.git", "notes"),
        ("./-mcp", "-mcp"),
    ],
)
def test_name_from_path(path: str, expected: str) -> None:
    """Test the last segment is used with one trailing suffix stripped."""
    assert name_from_path(path) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://mcp.example.com/api", "example"),
        ("https://mcp.sentry.dev/mcp", "sentry"),
        ("https://api.example.com/mcp", "api"),
        ("http://localhost:8080/sse", "localhost"),
    ],
)
def test_name_from_url(url: str, expected: str) -> None:
    assert name_from_url(url) == expected


def test_local_path(aliases) -> None:
    """Test a relative path becomes a local stdio server."""
    server = parse_add_target("./tools/filesystem-mcp", aliases)

    assert server.name == "filesystem"
    assert server.source.type == "local"
    assert server.source.url == "./tools/filesystem-mcp"
    assert server.transport == "stdio"


def test_remote_url(aliases) -> None:
    """Test an http(s) URL becomes a remote http server with the URL kept verbatim."""
    server = parse_add_target("https://mcp.example.com/api", aliases)

    assert server.name == "example"
    assert server.source.type == "remote"
    assert server.transport == "http"
    assert server.url == "https://mcp.example.com/api"
    assert server.source.url == "https://mcp.example.com/api"


def test_remote_url_with_query_kept_verbatim(aliases) -> None:
    url = "https://api.example.com/mcp?team=core&v=2"
    assert parse_add_target(url, aliases).url == url


@pytest.mark.parametrize(
    ("target", "url", "ref", "name"),
    [
        ("git@github.com:org/weather-server.git", "git@github.com:org/weather-server.git", "", "weather"),
        ("github.com/org/notes-mcp", "github.com/org/notes-mcp", "", "notes"),
        ("github.com/org/notes-mcp#v1.2.0", "github.com/org/notes-mcp", "v1.2.0", "notes"),
    ],
)
def test_git_targets(aliases, target, url, ref, name) -> None:
    server = parse_add_target(target, aliases)

    assert server.source.type == "git"
    assert server.source.url == url
    assert server.source.ref == ref
    assert server.name == name


def test_node_alias(aliases) -> None:
    server = parse_add_target("filesystem", aliases)

    assert server.source.type == "alias"
    assert server.source.alias == "filesystem"
    assert server.command == "npx"
    assert server.args == ["-y", "@modelcontextprotocol/server-filesystem"]


def test_alias_with_version(aliases) -> None:
    """Test name@version pins the package and the source ref."""
    server = parse_add_target("fetch@1.2.0", aliases)

    assert server.name == "fetch"
    assert server.command == "uvx"
    assert server.args == ["mcp-server-fetch==1.2.0"]
    assert server.source.ref == "1.2.0"


def test_remote_alias(aliases) -> None:
    server = parse_add_target("sentry", aliases)

    assert server.is_remote
    assert server.url == "https://mcp.sentry.dev/mcp"
    assert server.source.type == "remote"


def test_unknown_alias(aliases) -> None:
    with pytest.raises(UnknownAliasError, match="unknown alias 'nope'") as exc_info:
        parse_add_target("nope", aliases)

    assert exc_info.value.name == "nope"


def test_empty_target(aliases) -> None:
    with pytest.raises(ValueError):
        parse_add_target("   ", aliases)


def test_go_alias() -> None:
    server = server_from_alias("weather", Alias(url="github.com/org/weather", runtime="go"), "v0.3.0")

    assert server.command == "go"
    assert server.args == ["run", "github.com/org/weather@v0.3.0"]
