# agentctl - MCP server resource lifecycle manager
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models and scope handling
from agentctl.models import BuildConfig, Server, Source
from agentctl.scope import InvalidScopeError, ProjectNotFoundError, Scope, parse_scope

# ABOUTME: Export config loading functions
from agentctl.config import (
    Config,
    ConfigError,
    default_cache_dir,
    default_config_dir,
    load,
    load_scoped,
    load_with_project,
)

# ABOUTME: Export sync, build and lockfile entry points
from agentctl.adapters import UnknownToolError, default_registry
from agentctl.builder import Builder, BuildError
from agentctl.lockfile import Lockfile
from agentctl.state import SyncState, load_state
from agentctl.sync import SyncReport, compute_server_diff, plan_sync, sync_all
from agentctl.targets import parse_add_target
from agentctl.utils.validation import ValidationError, validate_config, validate_server

__all__ = [
    "__version__",
    "BuildConfig",
    "Server",
    "Source",
    "Scope",
    "parse_scope",
    "InvalidScopeError",
    "ProjectNotFoundError",
    "Config",
    "ConfigError",
    "default_cache_dir",
    "default_config_dir",
    "load",
    "load_scoped",
    "load_with_project",
    "UnknownToolError",
    "default_registry",
    "Builder",
    "BuildError",
    "Lockfile",
    "SyncState",
    "load_state",
    "SyncReport",
    "compute_server_diff",
    "plan_sync",
    "sync_all",
    "parse_add_target",
    "ValidationError",
    "validate_config",
    "validate_server",
]
