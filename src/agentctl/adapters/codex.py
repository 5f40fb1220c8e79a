# Codex CLI adapter
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import tomli
import tomli_w

from agentctl.adapters.base import (
    RESOURCE_COMMANDS,
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    RESOURCE_SKILLS,
    Adapter,
    decode_common,
    decode_section,
    read_markdown_commands,
    read_rules_file,
    stdio_fields,
    write_markdown_commands,
    write_rules_file,
)
from agentctl.models import Server
from agentctl.resources import Command, Rule, Skill, load_skills, save_skill
from agentctl.utils.fileio import atomic_write_text


class CodexAdapter(Adapter):
    """Adapter for Codex CLI (~/.codex/config.toml).

    ABOUTME: Uses snake_case mcp_servers key (not mcpServers)
    ABOUTME: Reads with tomli and writes with tomli_w; other tables survive, comments do not
    ABOUTME: Commands are ~/.codex/prompts/<name>.md, rules are joined into ~/.codex/AGENTS.md
    """

    name = "codex"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_COMMANDS, RESOURCE_RULES, RESOURCE_SKILLS})
    servers_key = "mcp_servers"

    def default_config_path(self) -> Path:
        return self.home / ".codex" / "config.toml"

    @property
    def codex_dir(self) -> Path:
        return self.home / ".codex"

    def _read_document(self) -> dict[str, Any]:
        """Parse the TOML config.

        ABOUTME: Returns empty dict if config doesn't exist
        ABOUTME: Raises ValueError for invalid TOML
        """
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {self.config_path}: {e}") from e

    def encode_server(self, server: Server) -> dict[str, Any]:
        if server.is_remote:
            result: dict[str, Any] = {"url": server.url}
            if server.headers:
                result["http_headers"] = dict(server.headers)
            return result
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, {**data, "headers": data.get("http_headers")})

    def read_servers(self) -> dict[str, Server]:
        """Decode [mcp_servers], skipping malformed entries with a warning."""
        return decode_section(self._read_document().get(self.servers_key), self.decode_server, self.config_path)

    def write_servers(self, servers: list[Server], remove: Iterable[str] = ()) -> None:
        """Apply upserts and removals to [mcp_servers].

        ABOUTME: Creates file if missing
        ABOUTME: Other tables and unmanaged servers keep their values
        """
        data = self._read_document()
        section = data.get(self.servers_key)
        if not isinstance(section, dict):
            section = {}

        for name in remove:
            section.pop(name, None)
        for server in servers:
            section[server.key] = self.encode_server(server)

        data[self.servers_key] = section
        atomic_write_text(self.config_path, tomli_w.dumps(data))

    def read_commands(self) -> list[Command]:
        return read_markdown_commands(self.codex_dir / "prompts")

    def write_commands(self, commands: list[Command]) -> None:
        write_markdown_commands(self.codex_dir / "prompts", commands)

    def read_rules(self) -> list[Rule]:
        return read_rules_file(self.codex_dir / "AGENTS.md")

    def write_rules(self, rules: list[Rule]) -> None:
        write_rules_file(self.codex_dir / "AGENTS.md", rules)

    def read_skills(self) -> list[Skill]:
        return load_skills(self.codex_dir / "skills")

    def write_skills(self, skills: list[Skill]) -> None:
        for skill in skills:
            save_skill(self.codex_dir / "skills", skill)
