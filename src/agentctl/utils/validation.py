# ABOUTME: Validation utilities for agentctl server configurations
# ABOUTME: Side-effect free: never starts servers or touches tool config files
import os
import shutil
from dataclasses import dataclass
from urllib.parse import urlparse

from agentctl.config import Config
from agentctl.models import Server
from agentctl.utils.env import find_env_references


@dataclass(frozen=True)
class ValidationError:
    """A problem found in a server definition.

    ABOUTME: severity "error" blocks a sync, "warning" is only reported
    """
    server_name: str
    message: str
    severity: str  # 'error' or 'warning'

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


def validate_command_exists(command: str) -> ValidationError | None:
    """None when command resolves on PATH.

    Examples:
        >>> validate_command_exists("nonexistent_cmd")
        ValidationError(server_name='', message='Command not found: nonexistent_cmd', severity='error')
    """
    if shutil.which(command):
        return None
    return ValidationError("", f"Command not found: {command}", "error")


def validate_url(url: str) -> ValidationError | None:
    """None for an http(s) URL with a host."""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        return ValidationError("", f"Invalid URL format '{url}': {e}", "error")

    if parsed.scheme not in ("http", "https"):
        return ValidationError("", f"URL must use HTTP or HTTPS scheme: {url}", "error")
    if not parsed.netloc:
        return ValidationError("", f"URL missing host/domain: {url}", "error")
    return None


def _command_is_deferred(server: Server) -> bool:
    # Cloned servers only get their command after a build
    return server.source.is_vcs or "${" in server.command


def _transport_problem(server: Server) -> ValidationError | None:
    if server.is_remote:
        if not server.url:
            return ValidationError("", f"{server.transport} server requires a url", "error")
        return validate_url(server.url)

    if not server.command:
        if server.source.is_vcs:
            return None
        return ValidationError("", "stdio server requires a command", "error")

    if _command_is_deferred(server) or os.path.isabs(server.command):
        return None
    return validate_command_exists(server.command)


def validate_server(server: Server) -> list[ValidationError]:
    """Validate one server definition.

    ABOUTME: stdio: requires a command and checks it is on PATH (unless it will be built)
    ABOUTME: http/sse: requires an http(s) URL with a host
    ABOUTME: Unset ${VAR} references are warnings

    Examples:
        >>> validate_server(Server(name="api", transport="http", url="https://api.example.com/mcp"))
        []
    """
    errors: list[ValidationError] = []

    problem = _transport_problem(server)
    if problem is not None:
        errors.append(ValidationError(server.name, problem.message, problem.severity))

    for var_name, fields in find_env_references(server).items():
        if var_name not in os.environ:
            errors.append(ValidationError(
                server.name,
                f"Environment variable '${var_name}' not set (referenced in {', '.join(fields)})",
                "warning",
            ))

    return errors


def validate_config(config: Config) -> list[ValidationError]:
    """Validate every server in config plus cross-server constraints.

    ABOUTME: Two enabled servers writing under the same key (namespace or name) is an error
    ABOUTME: Entries under a map key different from the server's name are errors
    """
    errors: list[ValidationError] = []
    owners: dict[str, str] = {}

    for name in sorted(config.servers):
        server = config.servers[name]
        if server.name != name:
            errors.append(ValidationError(name, f"Server stored under '{name}' is named '{server.name}'", "error"))
        errors.extend(validate_server(server))

        if server.disabled:
            continue
        if server.key in owners:
            errors.append(ValidationError(
                name, f"Key '{server.key}' is already used by server '{owners[server.key]}'", "error"
            ))
        else:
            owners[server.key] = name

    return errors
