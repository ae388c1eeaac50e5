#!/usr/bin/env python3
"""
Tests for vault/generator.py

Run: python -m pytest tests/generator_test.py -v
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from vault import generator as generator_module
from vault.errors import GenerationExhausted
from vault.generator import DEFAULT_CHARSET, PasswordGenerator
from vault.strength import StrengthPolicy, evaluate


def test_generated_password_passes_policy():
    gen = PasswordGenerator()
    for _ in range(20):
        with gen.generate() as pw:
            assert len(pw) == 32
            assert evaluate(pw.read())


def test_generated_password_uses_unambiguous_charset():
    gen = PasswordGenerator(length=64)
    with gen.generate() as pw:
        text = bytes(pw.read()).decode("ascii")
    assert set(text) <= set(DEFAULT_CHARSET)
    for ambiguous in "IOlo01'\"`\\| ":
        assert ambiguous not in DEFAULT_CHARSET


def test_rejected_candidates_are_redrawn(monkeypatch):
    weak = "a" * 20
    strong = "Aa1!" + "a" * 16
    stream = iter(weak + strong)
    monkeypatch.setattr(generator_module.secrets, "choice", lambda seq: next(stream))

    gen = PasswordGenerator(length=20, max_attempts=2)
    with gen.generate() as pw:
        assert bytes(pw.read()) == strong.encode("ascii")


def test_exhaustion_with_charset_that_cannot_pass():
    gen = PasswordGenerator(charset="abc", max_attempts=5)
    with pytest.raises(GenerationExhausted) as exc:
        gen.generate()
    assert exc.value.attempts == 5


def test_length_below_policy_minimum_exhausts():
    gen = PasswordGenerator(policy=StrengthPolicy(min_length=40), length=32, max_attempts=3)
    with pytest.raises(GenerationExhausted):
        gen.generate()


def test_invalid_configuration_rejected():
    with pytest.raises(ValueError):
        PasswordGenerator(charset="")
    with pytest.raises(ValueError):
        PasswordGenerator(charset="abcé")
    with pytest.raises(ValueError):
        PasswordGenerator(max_attempts=0)
