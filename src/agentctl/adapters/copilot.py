# GitHub Copilot CLI adapter
import os
import sys
from pathlib import Path
from typing import Any

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    RESOURCE_SKILLS,
    JSONServerAdapter,
    decode_common,
    read_markdown_commands,
    read_rules_file,
    stdio_fields,
    write_markdown_commands,
    write_rules_file,
)
from agentctl.models import Server
from agentctl.resources import Command, Rule, Skill, load_skills, save_skill


class CopilotAdapter(JSONServerAdapter):
    """Adapter for GitHub Copilot CLI (github-copilot/config.json).

    ABOUTME: stdio only; servers live under mcpServers
    ABOUTME: $XDG_CONFIG_HOME/github-copilot is used when no explicit home is given
    ABOUTME: commands/<name>.md, AGENTS.md and skills/<name>/SKILL.md sit next to config.json
    """

    name = "copilot"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_COMMANDS, RESOURCE_RULES, RESOURCE_SKILLS})
    supports_remote = False

    def __init__(self, home: Path | None = None, config_path: Path | None = None) -> None:
        super().__init__(home=home, config_path=config_path)
        self._xdg_config = os.environ.get("XDG_CONFIG_HOME") if home is None else None

    @property
    def copilot_dir(self) -> Path:
        if sys.platform == "win32":
            return self.home / "AppData" / "Roaming" / "github-copilot"
        if self._xdg_config:
            return Path(self._xdg_config) / "github-copilot"
        return self.home / ".config" / "github-copilot"

    def default_config_path(self) -> Path:
        return self.copilot_dir / "config.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)

    def read_commands(self) -> list[Command]:
        return read_markdown_commands(self.copilot_dir / "commands")

    def write_commands(self, commands: list[Command]) -> None:
        write_markdown_commands(self.copilot_dir / "commands", commands)

    def read_rules(self) -> list[Rule]:
        return read_rules_file(self.copilot_dir / "AGENTS.md")

    def write_rules(self, rules: list[Rule]) -> None:
        write_rules_file(self.copilot_dir / "AGENTS.md", rules)

    def read_skills(self) -> list[Skill]:
        return load_skills(self.copilot_dir / "skills")

    def write_skills(self, skills: list[Skill]) -> None:
        for skill in skills:
            save_skill(self.copilot_dir / "skills", skill)
