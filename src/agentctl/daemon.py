# ABOUTME: Background update-check daemon with a Unix-socket control channel
# ABOUTME: One lock guards the status snapshot, which is persisted after every change
import json
import logging
import os
import re
import socket
import socketserver
import tempfile
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from agentctl.builder import Builder, BuildError
from agentctl.config import Config, default_config_dir
from agentctl.lockfile import Lockfile, check_for_updates, lock_installed
from agentctl.utils.fileio import read_json_file, write_json_file

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(hours=24)
DEFAULT_DIAL_TIMEOUT = 5.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


class DaemonNotRunning(ConnectionError):
    """Raised by the client when nothing is listening on the socket."""


def parse_interval(value: str) -> timedelta:
    """Parse "24h", "30m", "90s" or combinations like "1h30m".

    ABOUTME: Empty or unparseable values fall back to DEFAULT_INTERVAL

    Examples:
        >>> parse_interval("30m")
        datetime.timedelta(seconds=1800)
        >>> parse_interval("1h30m")
        datetime.timedelta(seconds=5400)
    """
    text = value.strip()
    if not text:
        return DEFAULT_INTERVAL

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()

    if position != len(text) or seconds <= 0:
        logger.warning(f"Invalid auto-update interval {value!r}, using 24h")
        return DEFAULT_INTERVAL
    return timedelta(seconds=seconds)


@dataclass(frozen=True)
class DaemonPaths:
    socket: Path
    pid: Path
    status: Path

    @classmethod
    def default(cls, config_dir: Path | None = None) -> "DaemonPaths":
        directory = config_dir or default_config_dir()
        return cls(
            socket=Path(tempfile.gettempdir()) / "agentctl.sock",
            pid=directory / "daemon.pid",
            status=directory / "daemon.status",
        )


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class Status:
    """Snapshot reported by the status command."""
    running: bool = False
    pid: int = 0
    started_at: datetime | None = None
    last_check: datetime | None = None
    check_count: int = 0
    updates_available: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"running": self.running, "pid": self.pid}
        if self.started_at:
            data["startedAt"] = _format_time(self.started_at)
        if self.last_check:
            data["lastCheck"] = _format_time(self.last_check)
        data["checkCount"] = self.check_count
        if self.updates_available:
            data["updatesAvailable"] = list(self.updates_available)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Status":
        return cls(
            running=bool(data.get("running", False)),
            pid=int(data.get("pid", 0)),
            started_at=_parse_time(data.get("startedAt")),
            last_check=_parse_time(data.get("lastCheck")),
            check_count=int(data.get("checkCount", 0)),
            updates_available=[str(n) for n in data.get("updatesAvailable", [])],
        )


class StatusStore:
    """Lock-guarded status snapshot, written to disk after every mutation."""

    def __init__(self, path: Path | None = None, status: Status | None = None) -> None:
        self.path = path
        self._status = status or Status()
        self._lock = threading.Lock()

    @staticmethod
    def load(path: Path) -> Status:
        """Read a persisted snapshot; missing or unreadable files give a default Status."""
        try:
            return Status.from_dict(read_json_file(path))
        except (OSError, ValueError, TypeError) as e:
            logger.debug(f"Ignoring unreadable daemon status {path}: {e}")
            return Status()

    def snapshot(self) -> Status:
        with self._lock:
            return self._status

    def update(self, **changes: Any) -> Status:
        with self._lock:
            self._status = replace(self._status, **changes)
            self._persist()
            return self._status

    def record_check(self, updates: list[str], now: datetime | None = None) -> Status:
        with self._lock:
            self._status = replace(
                self._status,
                check_count=self._status.check_count + 1,
                last_check=now or datetime.now(timezone.utc),
                updates_available=list(updates),
            )
            self._persist()
            return self._status

    def _persist(self) -> None:
        if self.path is None:
            return
        try:
            write_json_file(self.path, self._status.to_dict())
        except OSError as e:
            logger.warning(f"Failed to write daemon status {self.path}: {e}")


class _DaemonServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    daemon_threads = True

    def __init__(self, path: str, owner: "Daemon") -> None:
        self.owner = owner
        super().__init__(path, _CommandHandler)


class _CommandHandler(socketserver.BaseRequestHandler):
    """One request: read a command word, write one JSON reply, close."""

    server: _DaemonServer

    def handle(self) -> None:
        try:
            data = self.request.recv(1024)
        except OSError as e:
            logger.debug(f"Daemon read failed: {e}")
            return

        command = data.decode("utf-8", errors="replace").strip()
        response, should_stop = self.server.owner.handle_command(command)
        try:
            self.request.sendall(response)
        except OSError as e:
            logger.debug(f"Daemon write failed: {e}")

        if should_stop:
            self.server.owner.stop()


class Daemon:
    """Periodic update checker serving status over a Unix socket.

    ABOUTME: start() blocks until stop() is called (from a command or another thread)
    ABOUTME: checker defaults to the lockfile-based upstream check
    """

    def __init__(
        self,
        config: Config,
        paths: DaemonPaths | None = None,
        checker: Callable[[], list[str]] | None = None,
        interval: timedelta | None = None,
    ) -> None:
        self.config = config
        self.paths = paths or DaemonPaths.default(config.config_dir)
        self.interval = interval or parse_interval(config.settings.auto_update.interval)
        self.store = StatusStore(self.paths.status)
        self._checker = checker or self._check_lockfile
        self._stop = threading.Event()
        self._check_lock = threading.Lock()
        self._server: _DaemonServer | None = None
        self._check_thread: threading.Thread | None = None

    def start(self) -> None:
        """Listen on the socket and serve until stopped.

        Raises:
            OSError: If the socket cannot be created or the PID file written
        """
        self.paths.socket.unlink(missing_ok=True)
        self._server = _DaemonServer(str(self.paths.socket), self)

        try:
            self.paths.pid.parent.mkdir(parents=True, exist_ok=True)
            self.paths.pid.write_text(str(os.getpid()), encoding="utf-8")
            self.store.update(running=True, pid=os.getpid(), started_at=datetime.now(timezone.utc))

            self._stop.clear()
            self._check_thread = threading.Thread(target=self._check_loop, daemon=True)
            self._check_thread.start()

            logger.debug(f"Daemon listening on {self.paths.socket}")
            self._server.serve_forever(poll_interval=0.2)
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Ask the daemon to stop; safe to call from any thread except the one running start()."""
        self._stop.set()
        if self._server is not None:
            self._server.shutdown()

    def _cleanup(self) -> None:
        self._stop.set()
        if self._server is not None:
            self._server.server_close()
        self.paths.socket.unlink(missing_ok=True)
        self.paths.pid.unlink(missing_ok=True)
        self.store.update(running=False)

    def _check_loop(self) -> None:
        self.check_now()
        while not self._stop.wait(self.interval.total_seconds()):
            self.check_now()

    def check_now(self) -> Status:
        """Run one update check and record it.

        ABOUTME: Check failures are logged and recorded as "no updates"
        ABOUTME: Checks never overlap: a "check" command waits for a running periodic check
        """
        with self._check_lock:
            try:
                updates = self._checker()
            except Exception as e:
                logger.warning(f"Update check failed: {e}")
                updates = []
            return self.store.record_check(updates)

    def _check_lockfile(self) -> list[str]:
        """Upstream check for every locked server; applies updates for "auto" servers."""
        lockfile = Lockfile.load(self.config.config_dir)
        builder = Builder()
        updates = check_for_updates(self.config, lockfile, builder)

        policies = self.config.settings.auto_update.servers
        pending: list[str] = []
        for name in updates:
            if policies.get(name) != "auto":
                pending.append(name)
                continue
            server = self.config.servers[name]
            try:
                builder.update(server)
                builder.build(server)
                lock_installed(lockfile, builder, server)
                logger.info(f"Auto-updated {name}")
            except BuildError as e:
                logger.warning(f"Auto-update of {name} failed: {e}")
                pending.append(name)

        lockfile.save()
        return pending

    def handle_command(self, command: str) -> tuple[bytes, bool]:
        """Reply for one control command, and whether the daemon should stop afterwards."""
        if command == "status":
            return json.dumps(self.store.snapshot().to_dict()).encode("utf-8"), False
        if command == "updates":
            return json.dumps(self.store.snapshot().updates_available).encode("utf-8"), False
        if command == "check":
            self.check_now()
            return b'{"ok": true}', False
        if command == "stop":
            return b'{"ok": true}', True
        return b'{"error": "unknown command"}', False


def send_command(
    command: str,
    socket_path: Path | None = None,
    timeout: float = DEFAULT_DIAL_TIMEOUT,
    read_timeout: float | None = None,
) -> bytes:
    """Send one command to the daemon and return its raw reply.

    ABOUTME: timeout bounds the connect only; read_timeout bounds the wait for the reply
    ABOUTME: read_timeout=None waits as long as the command takes ("check" runs a full update check)

    Raises:
        DaemonNotRunning: If nothing is listening on the socket
        TimeoutError: If the connect or the reply exceeds its timeout
    """
    path = socket_path or DaemonPaths.default().socket
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as conn:
        conn.settimeout(timeout)
        try:
            conn.connect(str(path))
        except (FileNotFoundError, ConnectionRefusedError) as e:
            raise DaemonNotRunning(f"daemon not running (no listener on {path})") from e

        conn.settimeout(read_timeout)
        conn.sendall(command.encode("utf-8"))
        chunks: list[bytes] = []
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def get_status(socket_path: Path | None = None, timeout: float = DEFAULT_DIAL_TIMEOUT) -> Status:
    return Status.from_dict(json.loads(send_command("status", socket_path, timeout, read_timeout=timeout)))


def is_running(socket_path: Path | None = None, timeout: float = 1.0) -> bool:
    path = socket_path or DaemonPaths.default().socket
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as conn:
        conn.settimeout(timeout)
        try:
            conn.connect(str(path))
        except OSError:
            return False
    return True
