# Cline adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import JSONServerAdapter, decode_common, stdio_fields
from agentctl.models import Server


class ClineAdapter(JSONServerAdapter):
    """Adapter for Cline (~/.cline/mcp_settings.json).

    ABOUTME: Every entry carries disabled and autoApprove, which Cline expects
    """

    name = "cline"

    def default_config_path(self) -> Path:
        return self.home / ".cline" / "mcp_settings.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        result: dict[str, Any]
        if server.is_remote:
            result = {"url": server.url}
            if server.headers:
                result["headers"] = dict(server.headers)
        else:
            result = stdio_fields(server)
        result["disabled"] = server.disabled
        result["autoApprove"] = []
        return result

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)
