# ABOUTME: Utility modules for agentctl
# ABOUTME: Exports env expansion, backup, and file helpers (validation imports agentctl.config, import it directly)

from agentctl.utils.backup import cleanup_old_backups, create_backup
from agentctl.utils.env import expand_env_vars, find_env_references
from agentctl.utils.fileio import atomic_write_text, read_json_file, sanitize_name, write_json_file

__all__ = [
    "expand_env_vars",
    "find_env_references",
    "create_backup",
    "cleanup_old_backups",
    "atomic_write_text",
    "read_json_file",
    "write_json_file",
    "sanitize_name",
]
