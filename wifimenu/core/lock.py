"""Single-holder daemon lock backed by a pid file and ``flock``."""

from __future__ import annotations

import errno
import fcntl
import logging
import os
from pathlib import Path

from wifimenu.core.errors import DaemonAlreadyRunningError, DaemonError

LOGGER = logging.getLogger(__name__)


def pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def read_pid(path: Path) -> int | None:
    try:
        return int(Path(path).read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


def _lock_is_held(path: Path) -> bool:
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return False
    try:
        fcntl.flock(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
    except OSError:
        return True
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    finally:
        os.close(fd)


def live_holder(path: Path) -> int | None:
    """Pid of the daemon currently holding the lock, or None for a free/stale lock."""
    pid = read_pid(path)
    if pid is None or not pid_alive(pid):
        return None
    if not _lock_is_held(path):
        return None
    return pid


class DaemonLock:
    """Exclusive lock held for the lifetime of one daemon process.

    The kernel drops the ``flock`` when its holder dies, so a pid file left by
    a crashed daemon is reclaimed on the next ``acquire``.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = self._open_locked()
        previous = read_pid(self.path)
        if previous is not None and previous != os.getpid():
            LOGGER.info("Reclaiming stale daemon lock left by PID %s", previous)
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        os.fsync(fd)
        self._fd = fd

    def _open_locked(self) -> int:
        while True:
            try:
                fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
            except OSError as exc:
                raise DaemonError(f"Could not open lock file {self.path}: {exc}") from exc

            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as exc:
                os.close(fd)
                if exc.errno in (errno.EWOULDBLOCK, errno.EACCES):
                    holder = read_pid(self.path)
                    where = f" (PID {holder})" if holder else ""
                    raise DaemonAlreadyRunningError(f"wifimenu daemon is already running{where}") from None
                raise DaemonError(f"Could not lock {self.path}: {exc}") from exc

            # The previous holder may have unlinked the file between our open and flock.
            try:
                same_file = os.fstat(fd).st_ino == os.stat(self.path).st_ino
            except FileNotFoundError:
                same_file = False
            if same_file:
                return fd
            os.close(fd)

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def __enter__(self) -> DaemonLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
