"""
Advisory lock for epic documents.

Uses flock on a sidecar ``<epic>.lock`` file so the document itself can be
atomically replaced while the lock is held.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path

from agentpm.lib.constants import LOCK_TIMEOUT
from agentpm.workflow.errors import StorageError

POLL_INTERVAL = 0.1


class LockTimeout(StorageError):
    """Lock acquisition timed out."""


def lock_path_for(epic_path: Path) -> Path:
    return epic_path.with_name(epic_path.name + ".lock")


@contextmanager
def epic_lock(epic_path: Path, timeout: float = LOCK_TIMEOUT):
    """
    Hold an exclusive lock on ``epic_path`` for the duration of the block.

    Note: the lock file is never deleted. Deleting it would let two
    processes hold "exclusive" locks on different inodes at the same path.

    Raises:
        LockTimeout: If another process holds the lock past ``timeout``
    """
    lock_file = lock_path_for(Path(epic_path))
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, 'a+')
    start = time.monotonic()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.monotonic() - start > timeout:
                fd.close()
                raise LockTimeout(f"Could not lock epic within {timeout}s", str(epic_path))
            time.sleep(POLL_INTERVAL)

    try:
        fd.seek(0)
        fd.truncate()
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()
