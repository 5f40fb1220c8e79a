# ABOUTME: Shared pytest fixtures for agentctl tests
# ABOUTME: Every test gets its own HOME, config dir and cache dir under tmp_path
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME, AGENTCTL_HOME and XDG dirs at tmp_path so no test touches real configs."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("AGENTCTL_HOME", str(home / ".config" / "agentctl"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    return home


@pytest.fixture
def config_dir(isolated_home: Path) -> Path:
    directory = isolated_home / ".config" / "agentctl"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory holding an empty .agentctl.json marker."""
    directory = tmp_path / "project"
    directory.mkdir()
    (directory / ".agentctl.json").write_text('{"version": "1"}\n')
    return directory
