import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from .errors import IOFailure

logger = structlog.get_logger(__name__)

FILE_MODE = 0o600


def read_vault(path: Path) -> Optional[bytes]:
    """
    Read the raw vault blob.

    Returns:
        File contents, or None if the vault does not exist yet. A zero-byte
        file is treated as missing (nothing was ever committed to it).
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IOFailure(f"Failed to read vault {path}: {e.strerror}") from e

    if not data:
        logger.warning("vault.empty_file", path=str(path))
        return None
    return data


def _fsync_dir(directory: Path):
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def write_atomic(path: Path, data: bytes):
    """
    Replace path with data so readers see either the old or the new file.

    The blob goes to a temp file in the same directory (owner-only mode),
    is fsynced, then renamed over path with os.replace. On any failure the
    temp file is removed and the original file is untouched.

    Raises:
        IOFailure: If writing or renaming fails
    """
    directory = path.parent
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise IOFailure(f"Failed to create temp file in {directory}: {e.strerror}") from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            if hasattr(os, "fchmod"):
                os.fchmod(f.fileno(), FILE_MODE)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        if not hasattr(os, "fchmod"):
            os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, path)
    except BaseException as e:
        tmp_path.unlink(missing_ok=True)
        if isinstance(e, OSError):
            raise IOFailure(f"Failed to write vault {path}: {e.strerror or e}") from e
        raise

    # os.replace has already committed the new vault
    try:
        _fsync_dir(directory)
    except OSError as e:
        logger.warning("vault.dir_fsync_failed", path=str(directory), error=e.strerror or str(e))
    logger.info("vault.replaced", path=str(path), size=len(data))
