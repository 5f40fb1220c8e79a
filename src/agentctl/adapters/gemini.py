# Gemini CLI adapter
from pathlib import Path
from typing import Any

from agentctl.adapters.base import JSONServerAdapter, WorkspaceMixin, decode_common, stdio_fields
from agentctl.models import Server


class GeminiAdapter(WorkspaceMixin, JSONServerAdapter):
    """Adapter for Gemini CLI (~/.gemini/settings.json).

    ABOUTME: Preserves other settings like selectedAuthType, theme
    ABOUTME: Streamable HTTP servers use httpUrl, SSE servers use url
    ABOUTME: Project-level settings live in .gemini/settings.json
    """

    name = "gemini"
    workspace_file = ".gemini/settings.json"

    def default_config_path(self) -> Path:
        return self.home / ".gemini" / "settings.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        if server.is_remote:
            url_key = "httpUrl" if server.transport == "http" else "url"
            result: dict[str, Any] = {url_key: server.url}
            if server.headers:
                result["headers"] = dict(server.headers)
            return result
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        if data.get("httpUrl"):
            return decode_common(name, data, url_keys=("httpUrl",), default_remote="http")
        return decode_common(name, data, url_keys=("url",), default_remote="sse")
