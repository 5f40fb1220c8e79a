# Tests for Cursor adapter
import json
from pathlib import Path

from agentctl.adapters.cursor import CursorAdapter
from agentctl.models import Server
from agentctl.resources import Rule, split_frontmatter


def test_cursor_paths(tmp_path: Path) -> None:
    adapter = CursorAdapter(home=tmp_path)

    assert adapter.config_path == tmp_path / ".cursor" / "mcp.json"
    assert adapter.workspace_config_path(tmp_path / "app") == tmp_path / "app" / ".cursor" / "mcp.json"


def test_cursor_detect(tmp_path: Path) -> None:
    """Test detection checks the ~/.cursor directory."""
    adapter = CursorAdapter(home=tmp_path)
    assert not adapter.detect()

    (tmp_path / ".cursor").mkdir()
    assert adapter.detect()


def test_cursor_remote_without_type(tmp_path: Path) -> None:
    """Test remote servers are written as {url, headers}."""
    adapter = CursorAdapter(home=tmp_path)

    adapter.write_servers([Server(name="api", transport="http", url="https://api.example.com/mcp")])

    data = json.loads(adapter.config_path.read_text())
    assert data == {"mcpServers": {"api": {"url": "https://api.example.com/mcp"}}}
    assert adapter.read_servers()["api"].transport == "http"


def test_cursor_stdio_round_trip(tmp_path: Path) -> None:
    adapter = CursorAdapter(home=tmp_path)
    server = Server(name="fs", command="npx", args=["-y", "pkg"], env={"ROOT": "/src"})

    adapter.write_servers([server])

    assert adapter.read_servers() == {"fs": server}


def test_cursor_skips_malformed_entries(tmp_path: Path) -> None:
    (tmp_path / ".cursor").mkdir()
    (tmp_path / ".cursor" / "mcp.json").write_text(json.dumps({
        "mcpServers": {"good": {"command": "x"}, "bad": "not-an-object"},
    }))

    assert list(CursorAdapter(home=tmp_path).read_servers()) == ["good"]


def test_cursor_rules(tmp_path: Path) -> None:
    """Test rules become .mdc files with globs and alwaysApply frontmatter."""
    adapter = CursorAdapter(home=tmp_path)

    adapter.write_rules([
        Rule(name="python", content="Use type hints.", frontmatter={"description": "Python", "globs": ["*.py"]}),
        Rule(name="general", content="Be concise."),
    ])

    python_meta, python_body = split_frontmatter((adapter.rules_dir / "python.mdc").read_text())
    general_meta, _ = split_frontmatter((adapter.rules_dir / "general.mdc").read_text())
    assert python_meta == {"description": "Python", "globs": ["*.py"], "alwaysApply": False}
    assert python_body == "Use type hints."
    assert general_meta == {"alwaysApply": True}
    assert [r.name for r in adapter.read_rules()] == ["general", "python"]


def test_cursor_commands_dir(tmp_path: Path) -> None:
    adapter = CursorAdapter(home=tmp_path)
    assert adapter.read_commands() == []
    assert adapter.commands_dir == tmp_path / ".cursor" / "commands"


def test_cursor_skips_mistyped_fields(tmp_path: Path, caplog) -> None:
    """Test entries with wrongly typed args, env or command are skipped with a warning."""
    (tmp_path / ".cursor").mkdir()
    (tmp_path / ".cursor" / "mcp.json").write_text(json.dumps({
        "mcpServers": {
            "good": {"command": "x", "env": None},
            "bad-args": {"command": "x", "args": 5},
            "bad-env": {"command": "x", "env": ["a"]},
            "bad-command": {"command": 5},
        },
    }))

    with caplog.at_level("WARNING"):
        servers = CursorAdapter(home=tmp_path).read_servers()

    assert servers == {"good": Server(name="good", command="x")}
    assert "Skipping malformed server 'bad-args'" in caplog.text
    assert "'env' must be an object of strings" in caplog.text
