# Zed editor adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import JSONServerAdapter, decode_common, stdio_fields
from agentctl.models import Server


class ZedAdapter(JSONServerAdapter):
    """Adapter for Zed (~/.config/zed/settings.json).

    ABOUTME: Uses snake_case mcp_servers key, stdio only
    """

    name = "zed"
    servers_key = "mcp_servers"
    supports_remote = False

    def default_config_path(self) -> Path:
        return self.home / ".config" / "zed" / "settings.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)
