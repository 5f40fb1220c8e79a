# ABOUTME: Tests for the update-check daemon and its socket client
# ABOUTME: The daemon runs in a background thread against a short temp socket path
import json
import shutil
import socket
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from agentctl.config import Config
from agentctl.daemon import (
    DEFAULT_INTERVAL,
    Daemon,
    DaemonNotRunning,
    DaemonPaths,
    Status,
    StatusStore,
    get_status,
    is_running,
    parse_interval,
    send_command,
)

requires_unix_sockets = pytest.mark.skipif(
    not hasattr(socket, "AF_UNIX"), reason="Unix domain sockets not available"
)


@pytest.fixture
def paths():
    # Unix socket paths are limited to ~100 bytes, so stay out of tmp_path
    directory = Path(tempfile.mkdtemp(prefix="agentctl-"))
    yield DaemonPaths(
        socket=directory / "d.sock",
        pid=directory / "daemon.pid",
        status=directory / "daemon.status",
    )
    shutil.rmtree(directory, ignore_errors=True)


class TestParseInterval:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("24h", timedelta(hours=24)),
            ("30m", timedelta(minutes=30)),
            ("90s", timedelta(seconds=90)),
            ("1h30m", timedelta(minutes=90)),
            ("500ms", timedelta(milliseconds=500)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_interval(value) == expected

    @pytest.mark.parametrize("value", ["", "daily", "10", "5x", "0s", "h1"])
    def test_invalid_falls_back(self, value):
        assert parse_interval(value) == DEFAULT_INTERVAL


class TestStatus:
    def test_round_trip(self):
        status = Status(
            running=True,
            pid=42,
            started_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            check_count=3,
            updates_available=["fs"],
        )

        data = status.to_dict()

        assert data["startedAt"] == "2026-01-01T00:00:00+00:00"
        assert data["updatesAvailable"] == ["fs"]
        assert Status.from_dict(data) == status

    def test_store_persists_every_mutation(self, tmp_path):
        """Test the snapshot file is rewritten after each change."""
        path = tmp_path / "daemon.status"
        store = StatusStore(path)

        store.update(running=True, pid=7)
        assert json.loads(path.read_text())["pid"] == 7

        store.record_check(["fs"])
        store.record_check([])
        loaded = StatusStore.load(path)
        assert loaded.check_count == 2
        assert loaded.updates_available == []
        assert loaded.running

    def test_load_missing_or_broken(self, tmp_path):
        assert StatusStore.load(tmp_path / "missing") == Status()

        (tmp_path / "broken").write_text("{")
        assert StatusStore.load(tmp_path / "broken") == Status()

    def test_default_paths(self, tmp_path):
        default = DaemonPaths.default(tmp_path)

        assert default.pid == tmp_path / "daemon.pid"
        assert default.status == tmp_path / "daemon.status"
        assert default.socket.name == "agentctl.sock"


class TestHandleCommand:
    @pytest.fixture
    def daemon(self, paths):
        return Daemon(Config(), paths=paths, checker=lambda: ["fs"], interval=timedelta(hours=1))

    def test_status(self, daemon):
        reply, stop = daemon.handle_command("status")

        assert not stop
        assert json.loads(reply) == {"running": False, "pid": 0, "checkCount": 0}

    def test_check_then_updates(self, daemon):
        assert daemon.handle_command("check") == (b'{"ok": true}', False)

        reply, _ = daemon.handle_command("updates")
        assert json.loads(reply) == ["fs"]
        assert daemon.store.snapshot().check_count == 1

    def test_stop(self, daemon):
        assert daemon.handle_command("stop") == (b'{"ok": true}', True)

    def test_unknown(self, daemon):
        reply, stop = daemon.handle_command("reboot")

        assert json.loads(reply) == {"error": "unknown command"}
        assert not stop

    def test_check_failure_recorded_as_no_updates(self, paths):
        def failing() -> list[str]:
            raise RuntimeError("network down")

        daemon = Daemon(Config(), paths=paths, checker=failing, interval=timedelta(hours=1))

        status = daemon.check_now()

        assert status.check_count == 1
        assert status.updates_available == []

    def test_checks_never_overlap(self, paths):
        """Test a "check" command waits for a running check instead of running alongside it."""
        active = []
        overlaps = []
        entered = threading.Event()

        def slow_checker() -> list[str]:
            active.append(1)
            overlaps.append(len(active))
            entered.set()
            time.sleep(0.2)
            active.pop()
            return []

        daemon = Daemon(Config(), paths=paths, checker=slow_checker, interval=timedelta(hours=1))
        periodic = threading.Thread(target=daemon.check_now)
        periodic.start()
        assert entered.wait(5)

        daemon.handle_command("check")
        periodic.join(timeout=5)

        assert overlaps == [1, 1]
        assert daemon.store.snapshot().check_count == 2


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


@requires_unix_sockets
class TestDaemonLifecycle:
    def test_serve_and_stop(self, paths):
        """Test status, check and stop over the socket, then cleanup of socket and PID files."""
        checks = []

        def checker() -> list[str]:
            checks.append(1)
            return ["fs"]

        daemon = Daemon(Config(), paths=paths, checker=checker, interval=timedelta(hours=1))
        thread = threading.Thread(target=daemon.start, daemon=True)
        thread.start()

        assert _wait_for(lambda: is_running(paths.socket))
        assert paths.pid.exists()

        status = get_status(paths.socket)
        assert status.running
        assert status.started_at is not None

        assert json.loads(send_command("check", paths.socket)) == {"ok": True}
        assert _wait_for(lambda: len(checks) >= 2)
        assert json.loads(send_command("updates", paths.socket)) == ["fs"]
        assert json.loads(send_command("bogus", paths.socket)) == {"error": "unknown command"}

        assert json.loads(send_command("stop", paths.socket)) == {"ok": True}
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert not paths.socket.exists()
        assert not paths.pid.exists()
        assert not StatusStore.load(paths.status).running

    def test_stop_from_another_thread(self, paths):
        daemon = Daemon(Config(), paths=paths, checker=list, interval=timedelta(hours=1))
        thread = threading.Thread(target=daemon.start, daemon=True)
        thread.start()
        assert _wait_for(lambda: is_running(paths.socket))

        daemon.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert not paths.socket.exists()

    def test_stale_socket_replaced(self, paths):
        paths.socket.write_text("stale")
        daemon = Daemon(Config(), paths=paths, checker=list, interval=timedelta(hours=1))
        thread = threading.Thread(target=daemon.start, daemon=True)
        thread.start()

        assert _wait_for(lambda: is_running(paths.socket))

        daemon.stop()
        thread.join(timeout=5)

    def test_slow_check_outlives_dial_timeout(self, paths):
        """Test the dial timeout does not cut off a check that takes longer to answer."""

        def slow_checker() -> list[str]:
            time.sleep(0.3)
            return ["fs"]

        daemon = Daemon(Config(), paths=paths, checker=slow_checker, interval=timedelta(hours=1))
        thread = threading.Thread(target=daemon.start, daemon=True)
        thread.start()
        assert _wait_for(lambda: is_running(paths.socket))

        try:
            assert json.loads(send_command("check", paths.socket, timeout=0.1)) == {"ok": True}
        finally:
            daemon.stop()
            thread.join(timeout=5)

    def test_read_timeout(self, paths):
        release = threading.Event()

        def blocked_checker() -> list[str]:
            release.wait(5)
            return []

        daemon = Daemon(Config(), paths=paths, checker=blocked_checker, interval=timedelta(hours=1))
        thread = threading.Thread(target=daemon.start, daemon=True)
        thread.start()
        assert _wait_for(lambda: is_running(paths.socket))

        try:
            with pytest.raises(TimeoutError):
                send_command("check", paths.socket, timeout=1.0, read_timeout=0.1)
        finally:
            release.set()
            daemon.stop()
            thread.join(timeout=5)

    def test_client_without_daemon(self, paths):
        """Test dialing a stopped daemon fails fast."""
        assert not is_running(paths.socket)

        with pytest.raises(DaemonNotRunning):
            send_command("status", paths.socket, timeout=1.0)
