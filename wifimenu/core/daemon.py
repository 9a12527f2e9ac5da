"""Background refresh daemon and the helpers foreground commands use to reach it.

The loop races two sources: the interval timer and an event queue fed by
signal handlers (SIGUSR1 asks for a refresh, SIGTERM/SIGINT ask to stop).
Whichever fires first wins. A refresh runs one extra cycle without moving the
interval schedule, and refresh requests that pile up, including ones that
arrive while a cycle is running, collapse into a single cycle.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import time
from collections.abc import Callable
from pathlib import Path
from types import FrameType
from typing import Any

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.core.cache import StateCache
from wifimenu.core.errors import AdapterError, CacheWriteError, DaemonNotRunningError, DaemonStopTimeoutError
from wifimenu.core.lock import DaemonLock, live_holder
from wifimenu.core.model import CacheSnapshot, EmptySnapshot

REFRESH_SIGNAL = signal.SIGUSR1
STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)
_REFRESH = "refresh"
_STOP = "stop"
LOGGER = logging.getLogger(__name__)


class RefreshDaemon:
    def __init__(
        self,
        adapter: NetworkAdapter,
        cache: StateCache,
        lock: DaemonLock,
        *,
        interval_s: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.adapter = adapter
        self.cache = cache
        self.lock = lock
        self.interval_s = interval_s
        self._clock = clock
        # SimpleQueue.put is reentrant, so signal handlers may call it.
        self._events: queue.SimpleQueue[str] = queue.SimpleQueue()
        self.cycles = 0
        self.failed_cycles = 0

    def request_refresh(self) -> None:
        self._events.put(_REFRESH)

    def stop(self) -> None:
        self._events.put(_STOP)

    def run_cycle(self) -> CacheSnapshot | None:
        self.cycles += 1
        try:
            records = self.adapter.scan()
            snapshot = self.cache.next_snapshot(records)
            self.cache.write(snapshot)
        except (AdapterError, CacheWriteError) as exc:
            self.failed_cycles += 1
            LOGGER.warning("Scan cycle skipped: %s", exc)
            return None
        except Exception:
            self.failed_cycles += 1
            LOGGER.exception("Unexpected error in scan cycle")
            return None
        LOGGER.info(
            "Cache refreshed: %d networks (generation %d)",
            len(snapshot.records),
            snapshot.generation,
        )
        return snapshot

    def run(self, *, install_signals: bool = True) -> None:
        with self.lock:
            previous = self._install_signal_handlers() if install_signals else {}
            LOGGER.info("Daemon started (PID %d), refreshing every %ss", os.getpid(), self.interval_s)
            try:
                self._loop()
            finally:
                for signum, handler in previous.items():
                    signal.signal(signum, handler)
        LOGGER.info("Daemon stopped; lock released")

    def _loop(self) -> None:
        next_due = self._clock()
        while True:
            try:
                event = self._events.get(timeout=max(0.0, next_due - self._clock()))
            except queue.Empty:
                self.run_cycle()
                next_due = self._advance(next_due)
                continue

            if event == _STOP or self._drain_pending():
                return
            LOGGER.info("Immediate refresh requested")
            self.run_cycle()

    def _drain_pending(self) -> bool:
        """Swallow queued refresh requests; True if a stop was among them."""
        stop = False
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return stop
            stop = stop or event == _STOP

    def _advance(self, due: float) -> float:
        due += self.interval_s
        now = self._clock()
        if due <= now:
            due = now + self.interval_s
        return due

    def _install_signal_handlers(self) -> dict[int, Any]:
        def _on_signal(signum: int, _frame: FrameType | None) -> None:
            self._events.put(_REFRESH if signum == REFRESH_SIGNAL else _STOP)

        previous: dict[int, Any] = {}
        for signum in (REFRESH_SIGNAL, *STOP_SIGNALS):
            previous[signum] = signal.signal(signum, _on_signal)
        return previous


def request_refresh(lock_path: Path) -> int:
    """Signal the running daemon to scan now; returns its PID."""
    pid = live_holder(lock_path)
    if pid is None:
        raise DaemonNotRunningError("wifimenu daemon is not running; start it with 'wifimenu daemon'")
    os.kill(pid, REFRESH_SIGNAL)
    return pid


def stop_daemon(lock_path: Path, *, timeout_s: float = 5.0, poll_s: float = 0.1) -> int:
    """Send SIGTERM to the daemon and wait for it to release the lock."""
    pid = live_holder(lock_path)
    if pid is None:
        raise DaemonNotRunningError("wifimenu daemon is not running")
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + timeout_s
    while live_holder(lock_path) is not None:
        if time.monotonic() >= deadline:
            raise DaemonStopTimeoutError(f"Daemon (PID {pid}) did not stop within {timeout_s:g}s")
        time.sleep(poll_s)
    return pid


def wait_for_generation(
    cache: StateCache,
    after: int,
    *,
    timeout_s: float,
    poll_s: float = 0.2,
) -> CacheSnapshot | None:
    """Poll until the cache holds a generation newer than ``after``."""
    deadline = time.monotonic() + timeout_s
    while True:
        snapshot: CacheSnapshot | EmptySnapshot = cache.read()
        if isinstance(snapshot, CacheSnapshot) and snapshot.generation > after:
            return snapshot
        if time.monotonic() >= deadline:
            return None
        time.sleep(poll_s)
