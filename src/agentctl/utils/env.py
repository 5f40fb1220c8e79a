# ABOUTME: ${VAR} references in server definitions and build steps
# ABOUTME: Expansion happens at build time only; configs keep the raw references
import os
import re
import warnings

from agentctl.models import Server

# ABOUTME: ${NAME} where NAME is uppercase letters, digits and underscores
ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')


def _lookup(match: re.Match[str]) -> str:
    name = match.group(1)
    value = os.environ.get(name)
    if value is None:
        warnings.warn(f"${{{name}}} is not set, leaving it unexpanded", UserWarning, stacklevel=3)
        return match.group(0)
    return value


def expand_env_vars(value: str) -> str:
    """Substitute ${VAR} references from the environment.

    ABOUTME: Unset variables stay as written and raise a UserWarning

    Examples:
        >>> expand_env_vars("make TOKEN=${API_TOKEN}")
        'make TOKEN=abc123'
    """
    return ENV_VAR_PATTERN.sub(_lookup, value)


def find_env_references(server: Server) -> dict[str, list[str]]:
    """Collect ${VAR} references in a server definition.

    ABOUTME: Maps variable name -> fields it appears in (command, args, env.KEY, url, headers.KEY)
    """
    fields: list[tuple[str, str]] = []
    if server.is_remote:
        fields.append(("url", server.url))
        fields.extend((f"headers.{key}", value) for key, value in server.headers.items())
    else:
        fields.append(("command", server.command))
        fields.extend(("args", arg) for arg in server.args)
    fields.extend((f"env.{key}", value) for key, value in server.env.items())

    references: dict[str, list[str]] = {}
    for field_name, value in fields:
        for match in ENV_VAR_PATTERN.finditer(value):
            locations = references.setdefault(match.group(1), [])
            if field_name not in locations:
                locations.append(field_name)
    return references
