# Claude Code adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_SERVERS,
    RESOURCE_SKILLS,
    JSONServerAdapter,
    WorkspaceMixin,
    decode_common,
    read_markdown_commands,
    stdio_fields,
    write_markdown_commands,
)
from agentctl.models import Server
from agentctl.resources import Command, Skill, load_skills, save_skill


class ClaudeAdapter(WorkspaceMixin, JSONServerAdapter):
    """Adapter for Claude Code (~/.claude.json).

    ABOUTME: Preserves projects, oauth state and every other top-level key
    ABOUTME: Project-level servers live in .mcp.json at the project root
    ABOUTME: Commands are ~/.claude/commands/<name>.md, skills ~/.claude/skills/<name>/SKILL.md
    """

    name = "claude"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_COMMANDS, RESOURCE_SKILLS})
    workspace_file = ".mcp.json"

    def default_config_path(self) -> Path:
        return self.home / ".claude.json"

    @property
    def claude_dir(self) -> Path:
        return self.home / ".claude"

    def detect(self) -> bool:
        return self.claude_dir.is_dir() or self.config_path.exists()

    def encode_server(self, server: Server) -> dict[str, Any]:
        if server.is_remote:
            result: dict[str, Any] = {"type": server.transport, "url": server.url}
            if server.headers:
                result["headers"] = dict(server.headers)
            return result
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)

    def read_commands(self) -> list[Command]:
        return read_markdown_commands(self.claude_dir / "commands")

    def write_commands(self, commands: list[Command]) -> None:
        write_markdown_commands(self.claude_dir / "commands", commands)

    def read_skills(self) -> list[Skill]:
        return load_skills(self.claude_dir / "skills")

    def write_skills(self, skills: list[Skill]) -> None:
        for skill in skills:
            save_skill(self.claude_dir / "skills", skill)
