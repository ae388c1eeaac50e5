"""
Wipeable container for secret material.

Security Note:
    Python str and bytes are immutable and cannot be wiped. A SecretBuffer
    keeps its bytes in a private bytearray that is overwritten in place on
    release(). Any str the caller produced before handing the value over
    (getpass input, json parsing) is outside its control.
"""
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zero bytes in place."""
    for i in range(len(buf)):
        buf[i] = 0


class SecretBuffer:
    """
    Holds one secret value (password or passphrase) as bytes.

    Use as a context manager or call release() from a finally block;
    never rely on garbage collection to clear it.
    """

    __slots__ = ("_buf", "_released")

    def __init__(self, value: Union[str, BytesLike]):
        if isinstance(value, str):
            self._buf = bytearray(value.encode("utf-8"))
        else:
            self._buf = bytearray(value)
        self._released = False

    def read(self) -> memoryview:
        """Borrow a read-only view of the secret bytes (no copy)."""
        if self._released:
            raise ValueError("secret buffer already released")
        return memoryview(self._buf).toreadonly()

    def copy(self) -> "SecretBuffer":
        return SecretBuffer(self.read())

    def release(self) -> None:
        """Zero the backing storage. Safe to call more than once."""
        if self._released:
            return
        wipe(self._buf)
        self._released = True

    @property
    def released(self) -> bool:
        return self._released

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __repr__(self) -> str:
        state = "released" if self._released else f"{len(self._buf)} bytes"
        return f"SecretBuffer(<redacted>, {state})"
