# ABOUTME: Acquisition and build pipeline for MCP servers from git sources
# ABOUTME: Clones into the cache dir, auto-detects the ecosystem, builds and resolves the entry point
import json
import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import replace
from enum import Enum
from pathlib import Path

from agentctl.config import default_cache_dir
from agentctl.models import BuildConfig, Server
from agentctl.utils.env import expand_env_vars

logger = logging.getLogger(__name__)

# ABOUTME: Entry points probed by resolve_command, first existing wins
ENTRY_POINTS: tuple[tuple[str, ...], ...] = (
    ("server",),
    ("dist", "index.js"),
    ("build", "index.js"),
    ("index.js",),
    ("main.py",),
    ("src", "main.py"),
)

# ABOUTME: Node lockfiles mapped to the package manager that wrote them, checked in order
NODE_LOCKFILES: tuple[tuple[str, str], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
)

# ABOUTME: Directories that only exist after a build step ran
_BUILD_ARTIFACTS: tuple[tuple[str, ...], ...] = (
    ("node_modules",),
    (".venv",),
    ("target", "release"),
)


class BuildError(RuntimeError):
    """Raised when cloning or building one server fails."""

    def __init__(self, server: str, message: str) -> None:
        super().__init__(f"{server}: {message}")
        self.server = server


class BuildState(str, Enum):
    """Where a server is in NotCloned -> Cloned -> Built -> CommandResolved."""
    NOT_CLONED = "not-cloned"
    CLONED = "cloned"
    BUILT = "built"
    COMMAND_RESOLVED = "command-resolved"


def _normalize_git_url(url: str) -> str:
    """Prefix https:// when url has no scheme (github.com/org/repo style).

    Examples:
        >>> _normalize_git_url("github.com/org/repo")
        'https://github.com/org/repo'
        >>> _normalize_git_url("git@github.com:org/repo.git")
        'git@github.com:org/repo.git'
    """
    if "://" in url or url.startswith("git@") or url.startswith("/") or url.startswith("file:"):
        return url
    return f"https://{url}"


class Builder:
    """Clones, builds and locates MCP servers under <cache>/servers.

    ABOUTME: External tools run synchronously with inherited stdio and no timeout
    ABOUTME: Missing tools and non-zero exits raise BuildError for that server only
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        self.cache_dir = cache_dir if cache_dir is not None else default_cache_dir()

    @property
    def servers_dir(self) -> Path:
        return self.cache_dir / "servers"

    def server_dir(self, server: Server) -> Path:
        if server.namespace:
            return self.servers_dir / server.namespace / server.name
        return self.servers_dir / server.name

    def installed(self, server: Server) -> bool:
        return self.server_dir(server).exists()

    def remove(self, server: Server) -> None:
        """Delete the server's install directory (no error if absent)."""
        directory = self.server_dir(server)
        if directory.exists():
            shutil.rmtree(directory)
            logger.debug(f"Removed {directory}")

    def _run(self, server: Server, args: list[str], cwd: Path | None) -> None:
        """Run an external command with inherited stdio.

        Raises:
            BuildError: If the executable is missing or exits non-zero
        """
        logger.debug(f"Running {shlex.join(args)} in {cwd or '.'}")
        try:
            completed = subprocess.run(args, cwd=cwd, check=False)
        except FileNotFoundError:
            raise BuildError(server.name, f"command not found: {args[0]}") from None
        except OSError as e:
            raise BuildError(server.name, f"failed to run {args[0]}: {e}") from e

        if completed.returncode != 0:
            raise BuildError(
                server.name, f"{shlex.join(args)} exited with status {completed.returncode}"
            )

    def _run_shell_step(self, server: Server, command: str, cwd: Path) -> None:
        self._run(server, shlex.split(expand_env_vars(command)), cwd)

    def _git_output(self, server: Server, *args: str) -> subprocess.CompletedProcess[str]:
        directory = self.server_dir(server)
        if not directory.is_dir():
            raise BuildError(server.name, f"not installed: {directory} does not exist")
        try:
            return subprocess.run(
                ["git", *args],
                cwd=directory,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            raise BuildError(server.name, "command not found: git") from None

    def clone(self, server: Server) -> None:
        """Clone a git or alias source into server_dir.

        ABOUTME: No-op when <dir>/.git already exists
        ABOUTME: Shallow clone; ref selects a branch or tag

        Raises:
            BuildError: For non-VCS sources, a missing url, or a failed clone
        """
        if not server.source.is_vcs:
            raise BuildError(server.name, f"cannot clone a {server.source.type} source")
        if not server.source.url:
            raise BuildError(server.name, "source has no url")

        directory = self.server_dir(server)
        if (directory / ".git").exists():
            logger.debug(f"{server.name} already cloned at {directory}")
            return

        directory.parent.mkdir(parents=True, exist_ok=True)
        args = ["git", "clone", "--depth", "1"]
        if server.source.ref:
            args += ["--branch", server.source.ref]
        args += [_normalize_git_url(server.source.url), str(directory)]
        self._run(server, args, cwd=None)

    def update(self, server: Server) -> None:
        """Fetch and check out the pinned ref, or origin/HEAD when unpinned."""
        directory = self.server_dir(server)
        self._run(server, ["git", "fetch", "--depth", "1", "origin"], cwd=directory)
        self._run(server, ["git", "checkout", server.source.ref or "origin/HEAD"], cwd=directory)

    def build(self, server: Server) -> Server:
        """Build server and return it with a default command filled in.

        ABOUTME: Explicit BuildConfig wins over auto-detection
        ABOUTME: No recognized ecosystem marker means no build, not an error
        """
        directory = self.server_dir(server)
        if server.build is not None:
            self._run_build_config(server, directory, server.build)
            return server

        for marker, step in self._ecosystems():
            if (directory / marker).exists():
                logger.debug(f"{server.name}: detected {marker}")
                return step(server, directory)

        logger.debug(f"{server.name}: no build system detected")
        return server

    def _ecosystems(self) -> tuple[tuple[str, Callable[[Server, Path], Server]], ...]:
        return (
            ("package.json", self._build_node),
            ("go.mod", self._build_go),
            ("Cargo.toml", self._build_rust),
            ("pyproject.toml", self._build_python),
            ("setup.py", self._build_python),
        )

    def _run_build_config(self, server: Server, directory: Path, build: BuildConfig) -> None:
        workdir = directory / build.workdir if build.workdir else directory
        if build.install:
            self._run_shell_step(server, build.install, workdir)
        if build.build:
            self._run_shell_step(server, build.build, workdir)

    def _build_node(self, server: Server, directory: Path) -> Server:
        try:
            package = json.loads((directory / "package.json").read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BuildError(server.name, f"failed to read package.json: {e}") from e

        manager = "npm"
        for lockfile, name in NODE_LOCKFILES:
            if (directory / lockfile).exists():
                manager = name
                break

        self._run(server, [manager, "install"], cwd=directory)
        if "build" in (package.get("scripts") or {}):
            self._run(server, [manager, "run", "build"], cwd=directory)

        if server.command:
            return server
        return replace(server, command="bun" if manager == "bun" else "node")

    def _build_go(self, server: Server, directory: Path) -> Server:
        self._run(server, ["go", "build", "-o", "server", "."], cwd=directory)
        if server.command:
            return server
        return replace(server, command=str(directory / "server"))

    def _build_rust(self, server: Server, directory: Path) -> Server:
        self._run(server, ["cargo", "build", "--release"], cwd=directory)
        if server.command:
            return server
        return replace(server, command=str(directory / "target" / "release" / server.name))

    def _build_python(self, server: Server, directory: Path) -> Server:
        if shutil.which("uv"):
            self._run(server, ["uv", "sync"], cwd=directory)
            return server

        venv = directory / ".venv"
        if not venv.exists():
            self._run(server, ["python3", "-m", "venv", ".venv"], cwd=directory)

        pip = str(venv / "bin" / "pip")
        if (directory / "pyproject.toml").exists() or (directory / "setup.py").exists():
            self._run(server, [pip, "install", "-e", "."], cwd=directory)
        elif (directory / "requirements.txt").exists():
            self._run(server, [pip, "install", "-r", "requirements.txt"], cwd=directory)
        return server

    def resolve_command(self, server: Server) -> str:
        """Find the command that starts an installed server.

        ABOUTME: local sources return the configured command unchanged
        ABOUTME: Otherwise the first existing ENTRY_POINTS path, else the configured command
        """
        if server.source.type == "local":
            return server.command

        directory = self.server_dir(server)
        for parts in ENTRY_POINTS:
            candidate = directory.joinpath(*parts)
            if candidate.exists():
                return str(candidate)
        return server.command

    def state(self, server: Server) -> BuildState:
        directory = self.server_dir(server)
        if not directory.exists():
            return BuildState.NOT_CLONED
        if any(directory.joinpath(*parts).exists() for parts in ENTRY_POINTS):
            return BuildState.COMMAND_RESOLVED
        if any(directory.joinpath(*parts).exists() for parts in _BUILD_ARTIFACTS):
            return BuildState.BUILT
        return BuildState.CLONED

    def get_commit(self, server: Server) -> str:
        """Return HEAD's commit hash.

        Raises:
            BuildError: If the directory is not a git checkout
        """
        result = self._git_output(server, "rev-parse", "HEAD")
        if result.returncode != 0:
            raise BuildError(server.name, f"git rev-parse failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def get_version(self, server: Server) -> str:
        """Return the tag exactly at HEAD, or "" when HEAD is untagged."""
        result = self._git_output(server, "describe", "--tags", "--exact-match", "HEAD")
        if result.returncode != 0:
            return ""
        return result.stdout.strip()

    def install(self, server: Server) -> Server:
        """Clone (or reuse) and build; returns the server ready to launch.

        ABOUTME: A command configured by the user is kept as is
        ABOUTME: Otherwise the resolved entry point becomes the command (scripts run via node or python)
        """
        self.clone(server)
        built = self.build(server)
        if server.command:
            return built

        entry = self.resolve_command(built)
        if not entry or entry == built.command:
            return built
        if entry.endswith(".js"):
            return replace(built, command=built.command or "node", args=[entry, *built.args])
        if entry.endswith(".py"):
            venv_python = self.server_dir(server) / ".venv" / "bin" / "python"
            python = str(venv_python) if venv_python.exists() else "python3"
            return replace(built, command=python, args=[entry, *built.args])
        return replace(built, command=entry)
