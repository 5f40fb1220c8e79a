# Tests for OpenCode adapter
import json
from pathlib import Path

from agentctl.adapters.opencode import OpenCodeAdapter
from agentctl.models import Server


def test_opencode_local_dialect(tmp_path: Path) -> None:
    """Test stdio servers use type: local with a command array."""
    adapter = OpenCodeAdapter(home=tmp_path)

    adapter.write_servers([Server(name="fs", command="npx", args=["-y", "pkg"], env={"A": "1"})])

    data = json.loads((tmp_path / ".config" / "opencode" / "opencode.json").read_text())
    assert data == {"mcp": {"fs": {
        "type": "local",
        "command": ["npx", "-y", "pkg"],
        "enabled": True,
        "environment": {"A": "1"},
    }}}


def test_opencode_remote_dialect(tmp_path: Path) -> None:
    adapter = OpenCodeAdapter(home=tmp_path)

    adapter.write_servers([Server(name="api", transport="http", url="https://api.example.com/mcp")])

    data = json.loads(adapter.config_path.read_text())
    assert data["mcp"]["api"] == {"type": "remote", "url": "https://api.example.com/mcp", "enabled": True}


def test_opencode_decode(tmp_path: Path) -> None:
    """Test decoding both discriminants and the enabled flag."""
    config_file = tmp_path / "opencode.json"
    config_file.write_text(json.dumps({
        "$schema": "https://opencode.ai/config.json",
        "mcp": {
            "fs": {"type": "local", "command": ["npx", "-y", "pkg"], "enabled": False},
            "api": {"type": "remote", "url": "https://api.example.com/mcp", "headers": {"K": "V"}},
        },
    }))

    servers = OpenCodeAdapter(config_path=config_file).read_servers()

    assert servers["fs"] == Server(name="fs", command="npx", args=["-y", "pkg"], disabled=True)
    assert servers["api"] == Server(
        name="api", transport="http", url="https://api.example.com/mcp", headers={"K": "V"},
    )


def test_opencode_command_string(tmp_path: Path) -> None:
    """Test a bare command string reads as a command with no args."""
    config_file = tmp_path / "opencode.json"
    config_file.write_text(json.dumps({"mcp": {"fs": {"type": "local", "command": "npx"}}}))

    assert OpenCodeAdapter(config_path=config_file).read_servers() == {"fs": Server(name="fs", command="npx")}


def test_opencode_skips_mistyped_entries(tmp_path: Path) -> None:
    config_file = tmp_path / "opencode.json"
    config_file.write_text(json.dumps({
        "mcp": {
            "good": {"type": "local", "command": ["npx"]},
            "number": {"type": "local", "command": 5},
            "env": {"type": "local", "command": ["npx"], "environment": "A=1"},
            "headers": {"type": "remote", "url": "https://x", "headers": ["K"]},
        },
    }))

    assert list(OpenCodeAdapter(config_path=config_file).read_servers()) == ["good"]
