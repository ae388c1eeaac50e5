#!/usr/bin/env python3
"""
Tests for vault/secret_buffer.py

Run: python -m pytest tests/secret_buffer_test.py -v
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vault.secret_buffer import SecretBuffer, wipe


def test_read_is_a_readonly_view_of_the_secret():
    buf = SecretBuffer("hunter2-but-longer")
    view = buf.read()

    assert bytes(view) == b"hunter2-but-longer"
    assert view.readonly
    with pytest.raises(TypeError):
        view[0] = 0


def test_read_does_not_copy():
    buf = SecretBuffer(b"abc")
    view = buf.read()
    buf.release()
    # The borrowed view sees the zeroed storage, not a private copy
    assert bytes(view) == b"\x00\x00\x00"


def test_release_zeroes_backing_storage():
    buf = SecretBuffer("correct horse battery staple")
    backing = buf._buf
    length = len(backing)

    buf.release()

    assert buf.released
    assert backing == bytearray(length)
    assert b"horse" not in backing


def test_release_is_idempotent():
    buf = SecretBuffer("secret")
    buf.release()
    buf.release()
    assert buf.released


def test_read_after_release_raises():
    buf = SecretBuffer("secret")
    buf.release()
    with pytest.raises(ValueError):
        buf.read()


def test_context_manager_releases_on_error():
    buf = SecretBuffer("secret")
    with pytest.raises(RuntimeError):
        with buf:
            raise RuntimeError("boom")
    assert buf.released
    assert buf._buf == bytearray(len("secret"))


def test_copy_is_independent():
    original = SecretBuffer("Aa1!aaaaaaaaaaaaaaaa")
    clone = original.copy()
    original.release()

    assert bytes(clone.read()) == b"Aa1!aaaaaaaaaaaaaaaa"
    assert clone._buf is not original._buf


def test_bytes_input_is_copied():
    source = bytearray(b"pw-bytes")
    buf = SecretBuffer(source)
    wipe(source)
    assert bytes(buf.read()) == b"pw-bytes"


def test_utf8_text_is_encoded():
    buf = SecretBuffer("päss")
    assert bytes(buf.read()) == "päss".encode("utf-8")
    assert len(buf) == 5


def test_repr_never_shows_content():
    buf = SecretBuffer("TopSecretValue")
    assert "TopSecretValue" not in repr(buf)
    assert "redacted" in repr(buf)


def test_wipe_helper():
    data = bytearray(b"\x01\x02\x03")
    wipe(data)
    assert data == bytearray(3)
