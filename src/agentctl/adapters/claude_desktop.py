# Claude Desktop adapter
import os
import sys
from pathlib import Path
from typing import Any

from agentctl.adapters.base import JSONServerAdapter, decode_common, stdio_fields
from agentctl.models import Server


class ClaudeDesktopAdapter(JSONServerAdapter):
    """Adapter for Claude Desktop (claude_desktop_config.json).

    ABOUTME: Only stdio servers; the desktop app has no remote transport support
    ABOUTME: Config location depends on the operating system
    """

    name = "claude-desktop"
    supports_remote = False

    def default_config_path(self) -> Path:
        if sys.platform == "darwin":
            base = self.home / "Library" / "Application Support"
        elif sys.platform == "win32":
            appdata = os.environ.get("APPDATA")
            base = Path(appdata) if appdata else self.home / "AppData" / "Roaming"
        else:
            base = self.home / ".config"
        return base / "Claude" / "claude_desktop_config.json"

    def encode_server(self, server: Server) -> dict[str, Any]:
        return stdio_fields(server)

    def decode_server(self, name: str, data: dict[str, Any]) -> Server:
        return decode_common(name, data)
