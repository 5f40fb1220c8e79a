# Configuration scope handling for agentctl
from enum import Enum
from pathlib import Path

# ABOUTME: Marker file that identifies a project root (same schema as the global config)
PROJECT_CONFIG_NAME = ".agentctl.json"


class InvalidScopeError(ValueError):
    """Raised for scope strings that are not local, global or all."""


class ProjectNotFoundError(FileNotFoundError):
    """Raised when local scope is requested but no project marker exists."""

    def __init__(self, start: Path) -> None:
        super().__init__(
            f"No {PROJECT_CONFIG_NAME} found in {start} or any parent directory "
            "(run init to create a project config)"
        )
        self.start = start


class Scope(str, Enum):
    """Configuration scope.

    ABOUTME: LOCAL is the project config, GLOBAL the user config
    ABOUTME: ALL is a read-only union used for listing and sync
    """
    LOCAL = "local"
    GLOBAL = "global"
    ALL = "all"

    def __str__(self) -> str:
        return self.value

    @property
    def short(self) -> str:
        """Short indicator for display, e.g. [G] or [L]."""
        if self is Scope.LOCAL:
            return "[L]"
        if self is Scope.GLOBAL:
            return "[G]"
        return "[?]"

    @property
    def description(self) -> str:
        if self is Scope.LOCAL:
            return f"project config ({PROJECT_CONFIG_NAME})"
        if self is Scope.GLOBAL:
            return "global config (~/.config/agentctl/agentctl.json)"
        return "all configs"


# ABOUTME: Accepted spellings, including the project/user aliases
_SCOPE_ALIASES: dict[str, Scope] = {
    "local": Scope.LOCAL,
    "project": Scope.LOCAL,
    "global": Scope.GLOBAL,
    "user": Scope.GLOBAL,
    "all": Scope.ALL,
    "": Scope.ALL,
}


def parse_scope(value: str) -> Scope:
    """Parse a scope string.

    ABOUTME: {local, project} -> LOCAL, {global, user} -> GLOBAL, {all, ""} -> ALL
    ABOUTME: Anything else raises InvalidScopeError

    Examples:
        >>> parse_scope("project")
        <Scope.LOCAL: 'local'>
        >>> parse_scope("")
        <Scope.ALL: 'all'>
    """
    try:
        return _SCOPE_ALIASES[value]
    except KeyError:
        raise InvalidScopeError(
            f"invalid scope: {value!r} (use local, global, or all)"
        ) from None


def find_project_config(start: Path) -> Path | None:
    """Walk up from start looking for the project marker.

    ABOUTME: Stops at the filesystem root
    ABOUTME: Returns None when no marker exists

    Args:
        start: Directory to begin the search in

    Returns:
        Path to the marker file, or None
    """
    current = start.resolve()
    while True:
        candidate = current / PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def require_project_config(start: Path) -> Path:
    """Like find_project_config, but raises ProjectNotFoundError when absent."""
    path = find_project_config(start)
    if path is None:
        raise ProjectNotFoundError(start)
    return path
