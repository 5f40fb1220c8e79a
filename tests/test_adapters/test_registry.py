# Tests for the adapter registry and capability lookup
from pathlib import Path

import pytest

from agentctl.adapters import (
    ADAPTER_CLASSES,
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SKILLS,
    AdapterRegistry,
    ClaudeAdapter,
    CodexAdapter,
    CommandsAdapter,
    RulesAdapter,
    SkillsAdapter,
    UnknownToolError,
    WorkspaceAdapter,
    ZedAdapter,
    as_capability,
    default_registry,
)


def test_default_registry_has_every_tool(tmp_path: Path) -> None:
    """Test the default registry holds one adapter per tool in a stable order."""
    registry = default_registry(home=tmp_path)

    assert len(registry) == len(ADAPTER_CLASSES)
    assert registry.names() == [
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
    ]


def test_get_unknown_tool(tmp_path: Path) -> None:
    registry = default_registry(home=tmp_path)

    with pytest.raises(UnknownToolError, match="unknown tool: 'vim'") as exc_info:
        registry.get("vim")

    assert exc_info.value.name == "vim"
    assert isinstance(exc_info.value, LookupError)


def test_detected_only_installed(tmp_path: Path) -> None:
    """Test detected() returns only tools whose directories exist."""
    (tmp_path / ".codex").mkdir()
    (tmp_path / ".claude").mkdir()

    detected = default_registry(home=tmp_path).detected()

    assert [a.name for a in detected] == ["claude", "codex"]


def test_register_replaces_same_name(tmp_path: Path) -> None:
    registry = AdapterRegistry([ClaudeAdapter(home=tmp_path)])
    replacement = ClaudeAdapter(home=tmp_path / "other")

    registry.register(replacement)

    assert len(registry) == 1
    assert registry.get("claude") is replacement
    assert "claude" in registry


def test_as_capability(tmp_path: Path) -> None:
    """Test capability lookup returns (adapter, True) or (None, False)."""
    zed = ZedAdapter(home=tmp_path)
    claude = ClaudeAdapter(home=tmp_path)

    assert as_capability(zed, WorkspaceAdapter) == (None, False)
    assert as_capability(claude, WorkspaceAdapter) == (claude, True)
    assert as_capability(claude, RulesAdapter) == (None, False)
    assert as_capability(CodexAdapter(home=tmp_path), WorkspaceAdapter) == (None, False)


def test_declared_resources_match_capabilities(tmp_path: Path) -> None:
    """Test every adapter implements the read/write pair for each resource it declares."""
    capabilities = {
        RESOURCE_COMMANDS: CommandsAdapter,
        RESOURCE_RULES: RulesAdapter,
        RESOURCE_SKILLS: SkillsAdapter,
    }

    for adapter in default_registry(home=tmp_path).all():
        for resource, capability in capabilities.items():
            declared = resource in adapter.supported_resources
            assert as_capability(adapter, capability)[1] == declared, (adapter.name, resource)


def test_config_path_override(tmp_path: Path) -> None:
    adapter = ClaudeAdapter(home=tmp_path, config_path=tmp_path / "custom.json")
    assert adapter.config_path == tmp_path / "custom.json"
