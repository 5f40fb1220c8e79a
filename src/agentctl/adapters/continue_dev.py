# Continue adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import (
    RESOURCE_RULES,
    RESOURCE_SERVERS,
    JSONServerAdapter,
    decode_common,
    read_rules_file,
    stdio_fields,
    write_rules_file,
)
from agentctl.models import Server
from agentctl.resources import Rule


class ContinueAdapter(JSONServerAdapter):
    """Adapter for Continue (~/.continue/config.json).

    ABOUTME: stdio only; servers live under mcpServers
    ABOUTME: Global rules are joined into ~/.continue/rules.md
    """

    name = "continue"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_RULES})
    supports_remote = False

    def default_config_path(self) -> Path:
        return self.home / ".continue" / "config.json"

    @property
    def rules_path(self) -> Path:
        return self.home / ".continue" / "rules.md"

    def encode_server(self, server: Server) -> dict[str, Any]:
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)

    def read_rules(self) -> list[Rule]:
        return read_rules_file(self.rules_path)

    def write_rules(self, rules: list[Rule]) -> None:
        write_rules_file(self.rules_path, rules)
