# ABOUTME: Tests for scope parsing and project marker discovery
# ABOUTME: Covers parse_scope, find_project_config and require_project_config
from pathlib import Path

import pytest

from agentctl.scope import (
    PROJECT_CONFIG_NAME,
    InvalidScopeError,
    ProjectNotFoundError,
    Scope,
    find_project_config,
    parse_scope,
    require_project_config,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("local", Scope.LOCAL),
        ("project", Scope.LOCAL),
        ("global", Scope.GLOBAL),
        ("user", Scope.GLOBAL),
        ("all", Scope.ALL),
        ("", Scope.ALL),
    ],
)
def test_parse_scope(value: str, expected: Scope) -> None:
    """Test every accepted scope spelling."""
    assert parse_scope(value) is expected


@pytest.mark.parametrize("value", ["LOCAL", "workspace", "globals", " all", "both"])
def test_parse_scope_rejects_unknown(value: str) -> None:
    """Test anything outside the accepted spellings is rejected."""
    with pytest.raises(InvalidScopeError, match="invalid scope"):
        parse_scope(value)


def test_invalid_scope_is_value_error() -> None:
    with pytest.raises(ValueError):
        parse_scope("nope")


def test_scope_str_and_short() -> None:
    assert str(Scope.LOCAL) == "local"
    assert Scope.LOCAL.short == "[L]"
    assert Scope.GLOBAL.short == "[G]"


def test_find_project_config_walks_up(tmp_path: Path) -> None:
    """Test the marker is found from a nested directory."""
    marker = tmp_path / PROJECT_CONFIG_NAME
    marker.write_text("{}")
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)

    assert find_project_config(nested) == marker.resolve()


def test_find_project_config_nearest_wins(tmp_path: Path) -> None:
    """Test a nested marker shadows one higher up."""
    (tmp_path / PROJECT_CONFIG_NAME).write_text("{}")
    inner = tmp_path / "inner"
    inner.mkdir()
    (inner / PROJECT_CONFIG_NAME).write_text("{}")

    assert find_project_config(inner) == (inner / PROJECT_CONFIG_NAME).resolve()


def test_find_project_config_none(tmp_path: Path) -> None:
    """Test the walk stops at the filesystem root and returns None."""
    assert find_project_config(tmp_path) is None


def test_find_project_config_ignores_directory_named_like_marker(tmp_path: Path) -> None:
    (tmp_path / PROJECT_CONFIG_NAME).mkdir()
    assert find_project_config(tmp_path) is None


def test_require_project_config_fails_fast(tmp_path: Path) -> None:
    """Test local scope without a marker raises instead of using cwd."""
    with pytest.raises(ProjectNotFoundError) as exc_info:
        require_project_config(tmp_path)

    assert exc_info.value.start == tmp_path
    assert isinstance(exc_info.value, FileNotFoundError)
