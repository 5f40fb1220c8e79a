# Windsurf adapter
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


class WindsurfAdapter(JSONServerAdapter):
    """Adapter for Windsurf (~/.windsurf/mcp.json).

    ABOUTME: Remote servers are written with serverUrl
    ABOUTME: Global rules are joined into ~/.windsurfrules
    """

    name = "windsurf"
    supported_resources = frozenset({RESOURCE_SERVERS, RESOURCE_RULES})

    def default_config_path(self) -> Path:
        return self.home / ".windsurf" / "mcp.json"

    @property
    def rules_path(self) -> Path:
        return self.home / ".windsurfrules"

    def encode_server(self, server: Server) -> dict[str, Any]:
        if server.is_remote:
            result: dict[str, Any] = {"serverUrl": server.url}
            if server.headers:
                result["headers"] = dict(server.headers)
            return result
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data, url_keys=("serverUrl", "url"))

    def read_rules(self) -> list[Rule]:
        return read_rules_file(self.rules_path)

    def write_rules(self, rules: list[Rule]) -> None:
        write_rules_file(self.rules_path, rules)
