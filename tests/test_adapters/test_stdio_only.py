# ABOUTME: Tests for Zed, Claude Desktop, Windsurf, Cline and Continue adapters
# ABOUTME: Covers their dialect quirks, remote-transport support and single-file rules
import json
import sys
from pathlib import Path

import pytest

from agentctl.adapters.claude_desktop import ClaudeDesktopAdapter
from agentctl.adapters.cline import ClineAdapter
from agentctl.adapters.continue_dev import ContinueAdapter
from agentctl.adapters.copilot import CopilotAdapter
from agentctl.adapters.windsurf import WindsurfAdapter
from agentctl.adapters.zed import ZedAdapter
from agentctl.models import Server
from agentctl.resources import Rule

REMOTE = Server(name="api", transport="http", url="https://api.example.com/mcp")
STDIO = Server(name="fs", command="npx", args=["-y", "pkg"])


@pytest.mark.parametrize("adapter_cls", [ZedAdapter, ClaudeDesktopAdapter, ContinueAdapter, CopilotAdapter])
def test_stdio_only_tools_reject_remote(tmp_path: Path, adapter_cls) -> None:
    adapter = adapter_cls(home=tmp_path)

    assert not adapter.supports(REMOTE)
    assert adapter.supports(STDIO)


def test_zed_uses_snake_case_key(tmp_path: Path) -> None:
    config_file = tmp_path / ".config" / "zed" / "settings.json"
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"theme": "One Dark"}))

    ZedAdapter(home=tmp_path).write_servers([STDIO])

    data = json.loads(config_file.read_text())
    assert data == {"theme": "One Dark", "mcp_servers": {"fs": {"command": "npx", "args": ["-y", "pkg"]}}}


def test_claude_desktop_path_linux(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "platform", "linux")
    adapter = ClaudeDesktopAdapter(home=tmp_path)

    assert adapter.config_path == tmp_path / ".config" / "Claude" / "claude_desktop_config.json"


def test_claude_desktop_path_macos(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "platform", "darwin")
    adapter = ClaudeDesktopAdapter(home=tmp_path)

    assert adapter.config_path == (
        tmp_path / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
    )


def test_windsurf_server_url(tmp_path: Path) -> None:
    """Test remote servers are written with serverUrl and decoded back."""
    adapter = WindsurfAdapter(home=tmp_path)

    adapter.write_servers([REMOTE])

    data = json.loads(adapter.config_path.read_text())
    assert data["mcpServers"]["api"] == {"serverUrl": "https://api.example.com/mcp"}
    assert adapter.read_servers()["api"] == REMOTE


def test_cline_defaults(tmp_path: Path) -> None:
    """Test every Cline entry carries disabled and autoApprove."""
    adapter = ClineAdapter(home=tmp_path)

    adapter.write_servers([STDIO, REMOTE])

    section = json.loads(adapter.config_path.read_text())["mcpServers"]
    assert section["fs"] == {"command": "npx", "args": ["-y", "pkg"], "disabled": False, "autoApprove": []}
    assert section["api"] == {"url": "https://api.example.com/mcp", "disabled": False, "autoApprove": []}


def test_windsurf_rules_joined(tmp_path: Path) -> None:
    """Test rules are concatenated into ~/.windsurfrules with a separator."""
    adapter = WindsurfAdapter(home=tmp_path)

    adapter.write_rules([Rule(name="style", content="Be terse"), Rule(name="tests", content="Write tests\n")])

    assert (tmp_path / ".windsurfrules").read_text() == "Be terse\n\n---\n\nWrite tests\n"
    rules = adapter.read_rules()
    assert [r.content for r in rules] == ["Be terse\n\n---\n\nWrite tests\n"]


def test_windsurf_empty_rules_leave_file(tmp_path: Path) -> None:
    (tmp_path / ".windsurfrules").write_text("mine\n")

    WindsurfAdapter(home=tmp_path).write_rules([])

    assert (tmp_path / ".windsurfrules").read_text() == "mine\n"


def test_continue_paths_and_rules(tmp_path: Path) -> None:
    adapter = ContinueAdapter(home=tmp_path)

    adapter.write_servers([STDIO])
    adapter.write_rules([Rule(name="style", content="Be terse")])

    assert adapter.config_path == tmp_path / ".continue" / "config.json"
    assert json.loads(adapter.config_path.read_text()) == {
        "mcpServers": {"fs": {"command": "npx", "args": ["-y", "pkg"]}},
    }
    assert (tmp_path / ".continue" / "rules.md").read_text() == "Be terse\n"
    assert adapter.read_servers() == {"fs": STDIO}
    assert adapter.detect()
