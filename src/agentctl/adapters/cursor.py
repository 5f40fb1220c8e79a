# Cursor adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    JSONServerAdapter,
    WorkspaceMixin,
    decode_common,
    read_markdown_commands,
    stdio_fields,
    write_markdown_commands,
)
from agentctl.models import Server
from agentctl.resources import Command, Rule, format_frontmatter, split_frontmatter
from agentctl.utils.fileio import atomic_write_text, sanitize_name

# ABOUTME: Cursor rule files are markdown with frontmatter, .mdc extension
RULE_SUFFIX = ".mdc"


class CursorAdapter(WorkspaceMixin, JSONServerAdapter):
    """Adapter for Cursor (~/.cursor/mcp.json).

    ABOUTME: Remote servers are written as {url, headers} without a type field
    ABOUTME: Rules are written as .mdc with description, globs and alwaysApply frontmatter
    """

    name = "cursor"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_COMMANDS, RESOURCE_RULES})
    workspace_file = ".cursor/mcp.json"

    def default_config_path(self) -> Path:
        return self.home / ".cursor" / "mcp.json"

    @property
    def rules_dir(self) -> Path:
        return self.home / ".cursor" / "rules"

    @property
    def commands_dir(self) -> Path:
        return self.home / ".cursor" / "commands"

    def encode_server(self, server: Server) -> dict[str, Any]:
        if server.is_remote:
            result: dict[str, Any] = {"url": server.url}
            if server.headers:
                result["headers"] = dict(server.headers)
            return result
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)

    def read_commands(self) -> list[Command]:
        return read_markdown_commands(self.commands_dir)

    def write_commands(self, commands: list[Command]) -> None:
        write_markdown_commands(self.commands_dir, commands)

    def read_rules(self) -> list[Rule]:
        """Read .mdc and .md rules from ~/.cursor/rules."""
        if not self.rules_dir.is_dir():
            return []

        rules: list[Rule] = []
        for path in sorted(self.rules_dir.iterdir()):
            if path.suffix not in (RULE_SUFFIX, ".md") or not path.is_file():
                continue
            frontmatter, content = split_frontmatter(path.read_text(encoding="utf-8"))
            rules.append(Rule(name=path.stem, content=content, frontmatter=frontmatter, path=path))
        return rules

    def write_rules(self, rules: list[Rule]) -> None:
        for rule in rules:
            frontmatter = {
                "description": rule.frontmatter.get("description", ""),
                "globs": rule.globs,
                "alwaysApply": not rule.globs,
            }
            atomic_write_text(
                self.rules_dir / f"{sanitize_name(rule.name)}{RULE_SUFFIX}",
                format_frontmatter(frontmatter, rule.content),
            )
