# ABOUTME: Tool adapters and the registry that holds them
# ABOUTME: default_registry() builds one adapter per supported tool, in sync order
from pathlib import Path

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    RESOURCE_SKILLS,
    Adapter,
    AdapterRegistry,
    CommandsAdapter,
    JSONServerAdapter,
    RulesAdapter,
    ServerAdapter,
    SkillsAdapter,
    UnknownToolError,
    WorkspaceAdapter,
    as_capability,
)
from agentctl.adapters.claude import ClaudeAdapter
from agentctl.adapters.claude_desktop import ClaudeDesktopAdapter
from agentctl.adapters.cline import ClineAdapter
from agentctl.adapters.codex import CodexAdapter
from agentctl.adapters.continue_dev import ContinueAdapter
from agentctl.adapters.copilot import CopilotAdapter
from agentctl.adapters.cursor import CursorAdapter
from agentctl.adapters.gemini import GeminiAdapter
from agentctl.adapters.opencode import OpenCodeAdapter
from agentctl.adapters.windsurf import WindsurfAdapter
from agentctl.adapters.zed import ZedAdapter

ADAPTER_CLASSES: tuple[type[Adapter], ...] = (
    ClaudeAdapter,
    ClaudeDesktopAdapter,
    CursorAdapter,
    CodexAdapter,
    GeminiAdapter,
    OpenCodeAdapter,
    ZedAdapter,
    WindsurfAdapter,
    ClineAdapter,
    ContinueAdapter,
    CopilotAdapter,
)


def default_registry(home: Path | None = None) -> AdapterRegistry:
    """Registry with every supported tool, rooted at home (default: Path.home())."""
    return AdapterRegistry(cls(home=home) for cls in ADAPTER_CLASSES)


__all__ = [
    "ADAPTER_CLASSES",
    "Adapter",
    "AdapterRegistry",
    "ClaudeAdapter",
    "ClaudeDesktopAdapter",
    "ClineAdapter",
    "CodexAdapter",
    "CommandsAdapter",
    "ContinueAdapter",
    "CopilotAdapter",
    "CursorAdapter",
    "GeminiAdapter",
    "JSONServerAdapter",
    "OpenCodeAdapter",
    "RESOURCE_COMMANDS",
    "RESOURCE_RULES",
    "RESOURCE_SERVERS",
    "RESOURCE_SKILLS",
    "RulesAdapter",
    "ServerAdapter",
    "SkillsAdapter",
    "UnknownToolError",
    "WindsurfAdapter",
    "WorkspaceAdapter",
    "ZedAdapter",
    "as_capability",
    "default_registry",
]
