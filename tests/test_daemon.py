from __future__ import annotations

import logging
import os
import signal
import threading
from pathlib import Path

import pytest

from wifimenu.core.cache import StateCache
from wifimenu.core.daemon import RefreshDaemon, request_refresh, stop_daemon, wait_for_generation
from wifimenu.core.errors import (
    AdapterError,
    DaemonAlreadyRunningError,
    DaemonNotRunningError,
    DaemonStopTimeoutError,
)
from wifimenu.core.lock import DaemonLock
from wifimenu.core.model import EMPTY


def _script_scans(adapter, actions: dict) -> None:
    """Run ``actions[n]`` during the n-th scan, before it returns."""
    original = adapter.scan

    def scan():
        records = original()
        action = actions.get(adapter.count("scan"))
        if action is not None:
            action()
        return records

    adapter.scan = scan


def _daemon(adapter, tmp_path: Path, interval_s: float = 3600.0) -> RefreshDaemon:
    return RefreshDaemon(
        adapter,
        StateCache(tmp_path / "cache.json"),
        DaemonLock(tmp_path / "daemon.pid"),
        interval_s=interval_s,
    )


def test_first_cycle_runs_immediately(adapter, record_factory, tmp_path: Path) -> None:
    adapter.records = [record_factory("HomeNet"), record_factory("Office")]
    daemon = _daemon(adapter, tmp_path)
    _script_scans(adapter, {1: daemon.stop})

    daemon.run(install_signals=False)

    snapshot = daemon.cache.read()
    assert snapshot.generation == 1
    assert [r.ssid for r in snapshot.records] == ["HomeNet", "Office"]
    assert not (tmp_path / "daemon.pid").exists()


def test_piled_up_refresh_requests_collapse_into_one_cycle(adapter, tmp_path: Path) -> None:
    daemon = _daemon(adapter, tmp_path)
    for _ in range(3):
        daemon.request_refresh()
    _script_scans(adapter, {2: daemon.stop})

    daemon.run(install_signals=False)

    # One forced cycle for the three requests, then the scheduled one.
    assert adapter.count("scan") == 2
    assert daemon.cache.generation() == 2


def test_requests_during_a_cycle_yield_exactly_one_more(adapter, tmp_path: Path) -> None:
    daemon = _daemon(adapter, tmp_path)

    def pile_up() -> None:
        daemon.request_refresh()
        daemon.request_refresh()

    _script_scans(adapter, {1: pile_up, 2: daemon.stop})

    daemon.run(install_signals=False)

    assert adapter.count("scan") == 2


def test_late_tick_is_rescheduled_from_now(adapter, tmp_path: Path) -> None:
    now = [0.0]
    daemon = RefreshDaemon(
        adapter,
        StateCache(tmp_path / "cache.json"),
        DaemonLock(tmp_path / "daemon.pid"),
        interval_s=30.0,
        clock=lambda: now[0],
    )
    assert daemon._advance(0.0) == 30.0
    now[0] = 100.0
    # A late tick is rescheduled from now instead of firing a burst of catch-up cycles.
    assert daemon._advance(30.0) == 130.0


def test_interval_timer_drives_cycles(adapter, tmp_path: Path) -> None:
    daemon = _daemon(adapter, tmp_path, interval_s=0.01)
    _script_scans(adapter, {3: daemon.stop})

    daemon.run(install_signals=False)

    assert adapter.count("scan") == 3
    assert daemon.cache.generation() == 3


def test_scan_failure_is_not_fatal(adapter, tmp_path: Path) -> None:
    daemon = _daemon(adapter, tmp_path)

    def fail_once() -> None:
        daemon.request_refresh()
        raise AdapterError("Wi-Fi device is unavailable")

    _script_scans(adapter, {1: fail_once, 2: daemon.stop})

    daemon.run(install_signals=False)

    assert daemon.cycles == 2
    assert daemon.failed_cycles == 1
    assert daemon.cache.generation() == 1


def test_unexpected_scan_error_keeps_loop_alive(adapter, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    daemon = _daemon(adapter, tmp_path)

    def undecodable_output() -> None:
        daemon.request_refresh()
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

    _script_scans(adapter, {1: undecodable_output, 2: daemon.stop})

    with caplog.at_level(logging.ERROR, logger="wifimenu.core.daemon"):
        daemon.run(install_signals=False)

    assert daemon.cycles == 2
    assert daemon.failed_cycles == 1
    assert daemon.cache.generation() == 1
    assert "Unexpected error in scan cycle" in caplog.text
    assert not (tmp_path / "daemon.pid").exists()


def test_signals_refresh_and_stop(adapter, tmp_path: Path) -> None:
    daemon = _daemon(adapter, tmp_path, interval_s=5.0)
    previous_usr1 = signal.getsignal(signal.SIGUSR1)
    previous_term = signal.getsignal(signal.SIGTERM)
    _script_scans(
        adapter,
        {
            1: lambda: os.kill(os.getpid(), signal.SIGUSR1),
            2: lambda: os.kill(os.getpid(), signal.SIGTERM),
        },
    )

    daemon.run()

    assert adapter.count("scan") >= 2
    assert daemon.cache.generation() >= 2
    assert not (tmp_path / "daemon.pid").exists()
    assert signal.getsignal(signal.SIGUSR1) == previous_usr1
    assert signal.getsignal(signal.SIGTERM) == previous_term


def test_run_refuses_when_lock_is_held(adapter, tmp_path: Path) -> None:
    holder = DaemonLock(tmp_path / "daemon.pid")
    holder.acquire()
    try:
        with pytest.raises(DaemonAlreadyRunningError):
            _daemon(adapter, tmp_path).run(install_signals=False)
    finally:
        holder.release()
    assert adapter.count("scan") == 0


def test_request_refresh_without_daemon_leaves_cache_untouched(tmp_path: Path) -> None:
    cache = StateCache(tmp_path / "cache.json")
    with pytest.raises(DaemonNotRunningError):
        request_refresh(tmp_path / "daemon.pid")
    assert cache.read() is EMPTY
    assert list(tmp_path.iterdir()) == []


def test_request_refresh_signals_lock_holder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sent: list[tuple[int, int]] = []

    def fake_kill(pid: int, sig: int) -> None:
        if sig != 0:
            sent.append((pid, sig))

    monkeypatch.setattr(os, "kill", fake_kill)
    with DaemonLock(tmp_path / "daemon.pid"):
        assert request_refresh(tmp_path / "daemon.pid") == os.getpid()

    assert sent == [(os.getpid(), signal.SIGUSR1)]


def test_stop_daemon_waits_for_release(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    lock = DaemonLock(tmp_path / "daemon.pid")
    lock.acquire()

    def fake_kill(pid: int, sig: int) -> None:
        if sig == signal.SIGTERM:
            lock.release()

    monkeypatch.setattr(os, "kill", fake_kill)
    assert stop_daemon(tmp_path / "daemon.pid", poll_s=0.01) == os.getpid()
    assert not lock.held


def test_stop_daemon_times_out(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "kill", lambda pid, sig: None)
    with DaemonLock(tmp_path / "daemon.pid"):
        with pytest.raises(DaemonStopTimeoutError):
            stop_daemon(tmp_path / "daemon.pid", timeout_s=0.05, poll_s=0.01)


def test_stop_daemon_without_daemon(tmp_path: Path) -> None:
    with pytest.raises(DaemonNotRunningError):
        stop_daemon(tmp_path / "daemon.pid")


def test_wait_for_generation(adapter, tmp_path: Path) -> None:
    cache = StateCache(tmp_path / "cache.json")
    assert wait_for_generation(cache, 0, timeout_s=0.05, poll_s=0.01) is None

    def write_later() -> None:
        cache.write(cache.next_snapshot([]))

    timer = threading.Timer(0.05, write_later)
    timer.start()
    try:
        snapshot = wait_for_generation(cache, 0, timeout_s=2.0, poll_s=0.01)
    finally:
        timer.join()
    assert snapshot is not None
    assert snapshot.generation == 1
