import os
import platform
import time
from pathlib import Path
from typing import Optional

import structlog

from .errors import IOFailure, VaultBusy

logger = structlog.get_logger(__name__)

POLL_INTERVAL = 0.1

if platform.system() == "Windows":
    import msvcrt

    def _try_lock(fd: int) -> bool:
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            return True
        except OSError:
            return False

    def _unlock(fd: int):
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _try_lock(fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return True
        except BlockingIOError:
            return False

    def _unlock(fd: int):
        fcntl.flock(fd, fcntl.LOCK_UN)


def lock_path_for(vault_path: Path) -> Path:
    return vault_path.with_name(vault_path.name + ".lock")


class VaultLock:
    """
    Exclusive cross-process lock on a vault, held through a sibling
    "<vault>.lock" file.

    The lock file is never deleted: unlinking it while another process
    waits on the old inode would let two sessions hold "the" lock at once.

    Args:
        vault_path: Vault file being protected
        timeout: Seconds to keep retrying; 0 fails immediately with VaultBusy
    """

    def __init__(self, vault_path: Path, timeout: float = 0.0):
        self.vault_path = vault_path
        self.path = lock_path_for(vault_path)
        self.timeout = timeout
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self):
        if self._fd is not None:
            raise RuntimeError("VaultLock is not reentrant")

        try:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise IOFailure(f"Failed to open lock file {self.path}: {e.strerror}") from e

        deadline = time.monotonic() + self.timeout
        try:
            while not _try_lock(fd):
                if time.monotonic() >= deadline:
                    raise VaultBusy(f"Vault {self.vault_path} is in use by another process")
                time.sleep(POLL_INTERVAL)
        except BaseException:
            os.close(fd)
            raise

        self._fd = fd
        logger.debug("lock.acquired", path=str(self.path))

    def release(self):
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            _unlock(fd)
        except OSError as e:
            logger.warning("lock.unlock_failed", path=str(self.path), error=e.strerror or str(e))
        finally:
            try:
                os.close(fd)
            except OSError as e:
                logger.warning("lock.close_failed", path=str(self.path), error=e.strerror or str(e))
        logger.debug("lock.released", path=str(self.path))

    def __enter__(self) -> "VaultLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
