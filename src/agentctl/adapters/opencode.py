# OpenCode adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import JSONServerAdapter
from agentctl.models import Server, string_field, string_list, string_map


class OpenCodeAdapter(JSONServerAdapter):
    """Adapter for OpenCode (~/.config/opencode/opencode.json).

    ABOUTME: Servers live under "mcp" as {type: local, command: [cmd, *args]} or {type: remote, url}
    ABOUTME: enabled: false maps to a disabled server
    """

    name = "opencode"
    servers_key = "mcp"

    def default_config_path(self) -> Path:
        return self.home / ".config" / "opencode" / "opencode.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        result: dict[str, Any]
        if server.is_remote:
            result = {"type": "remote", "url": server.url, "enabled": True}
            if server.headers:
                result["headers"] = dict(server.headers)
        else:
            result = {"type": "local", "command": [server.command, *server.args], "enabled": True}
            if server.env:
                result["environment"] = dict(server.env)
        return result

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        """Decode a local or remote entry.

        Raises:
            ValueError: If a field has the wrong type
        """
        disabled = data.get("enabled") is False
        if data.get("type") == "remote":
            return Server(
                name=name,
                transport="http",
                url=string_field(name, "url", data.get("url")),
                headers=string_map(name, "headers", data.get("headers")),
                disabled=disabled,
            )

        command = data.get("command")
        if isinstance(command, str):
            command = [command]
        command = string_list(name, "command", command)
        return Server(
            name=name,
            command=command[0] if command else "",
            args=command[1:],
            env=string_map(name, "environment", data.get("environment")),
            disabled=disabled,
        )
