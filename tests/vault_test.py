#!/usr/bin/env python3
"""
Integration Test Suite for Vault Manager
Tests vault/manager.py and vault/config.py against real vault files.

Run: python -m pytest tests/vault_test.py -v
"""

import io
import platform
import sys
import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from schemas.commands import GeneratedPassword, SuppliedPassword
from vault.config import VaultSettings, get_app_data_dir
from vault.errors import ErrorKind
from vault.manager import VaultManager
from vault.secret_buffer import SecretBuffer
from vault.session import Failed, Success

MASTER = "TestPassword123!@#"

ENV_KEYS = (
    "VAULT_FILE",
    "VAULT_MIN_PASSWORD_LENGTH",
    "VAULT_PASSWORD_LENGTH",
    "VAULT_MAX_GENERATION_ATTEMPTS",
    "VAULT_LOCK_TIMEOUT",
    "VAULT_REWRITE_ON_READ",
)


def master() -> SecretBuffer:
    return SecretBuffer(MASTER)


def supplied(password: str) -> SuppliedPassword:
    return SuppliedPassword(secret=SecretBuffer(password))


@pytest.fixture
def manager():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = VaultSettings(vault_file=Path(tmpdir) / "test_vault.enc")
        yield VaultManager(settings)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


# ============ VAULT MANAGER TESTS ============

def test_manager_creates_vault_on_first_add(manager):
    assert not manager.vault_exists()

    outcome = manager.add_account(master(), "openai_api", supplied("sk-1234567890abcdef-XYZ!"), username="user@example.com")

    assert isinstance(outcome, Success)
    assert manager.vault_exists()
    assert oct(manager.vault_file.stat().st_mode)[-3:] == "600"


def test_manager_vault_is_encrypted(manager):
    plaintext_data = "SuperSecretAPIKey123456789!"
    manager.add_account(master(), "secret_service", supplied(plaintext_data), username="someuser")

    encrypted_bytes = manager.vault_file.read_bytes()
    assert plaintext_data.encode() not in encrypted_bytes
    assert b"secret_service" not in encrypted_bytes
    assert b"someuser" not in encrypted_bytes

    outcome = manager.list_accounts(SecretBuffer("WrongPassword!"))
    assert isinstance(outcome, Failed)
    assert outcome.kind is ErrorKind.WRONG_PASSPHRASE


def test_manager_persistence_across_sessions(manager):
    manager.add_account(master(), "openai", supplied("sk-key123-Secret-Value!"))
    manager.add_account(master(), "github", GeneratedPassword())
    assert manager.list_accounts(master()) == Success("github\nopenai")

    # A new manager over the same file sees the same accounts
    other = VaultManager(manager.settings)
    other.add_account(master(), "aws", GeneratedPassword())
    assert manager.list_accounts(master()) == Success("aws\ngithub\nopenai")


def test_manager_get_account_hides_password(manager):
    password = "ghp_secret-Token-1234567"
    manager.add_account(master(), "github", supplied(password), username="octocat", url="https://github.com")

    outcome = manager.get_account(master(), "github")
    assert outcome.output == "name: github\nusername: octocat\nurl: https://github.com"

    sink = io.BytesIO()
    assert manager.get_password(master(), "github", sink) == Success(None)
    assert sink.getvalue() == password.encode()


def test_manager_update_and_delete(manager):
    manager.add_account(master(), "github", GeneratedPassword(), username="old")
    assert isinstance(manager.update_account(master(), "github", username="new"), Success)
    assert "username: new" in manager.get_account(master(), "github").output

    assert isinstance(manager.delete_account(master(), "github"), Success)
    outcome = manager.delete_account(master(), "github")
    assert outcome.kind is ErrorKind.ACCOUNT_NOT_FOUND


def test_manager_applies_configured_policy():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = VaultSettings(
            vault_file=Path(tmpdir) / "v.enc",
            min_password_length=24,
            generated_length=24,
        )
        vm = VaultManager(settings)

        weak = vm.add_account(master(), "a", supplied("Aa1!aaaaaaaaaaaaaaaa"))
        assert weak.kind is ErrorKind.WEAK_PASSWORD

        assert isinstance(vm.add_account(master(), "b", GeneratedPassword()), Success)
        sink = io.BytesIO()
        vm.get_password(master(), "b", sink)
        assert len(sink.getvalue()) == 24


def test_settings_reject_generated_length_below_policy(tmp_path):
    with pytest.raises(ValidationError):
        VaultSettings(vault_file=tmp_path / "v.enc", min_password_length=64, generated_length=32)

    settings = VaultSettings(vault_file=tmp_path / "v.enc", min_password_length=40, generated_length=40)
    assert settings.generated_length == 40


# ============ CONFIG TESTS ============

def test_settings_from_env(clean_env, tmp_path):
    clean_env.setenv("VAULT_FILE", str(tmp_path / "custom.enc"))
    clean_env.setenv("VAULT_PASSWORD_LENGTH", "40")
    clean_env.setenv("VAULT_LOCK_TIMEOUT", "2.5")
    clean_env.setenv("VAULT_REWRITE_ON_READ", "yes")

    settings = VaultSettings.from_env()

    assert settings.vault_file == tmp_path / "custom.enc"
    assert settings.generated_length == 40
    assert settings.lock_timeout == 2.5
    assert settings.rewrite_on_read is True
    assert settings.min_password_length == 20


def test_settings_reject_weaker_policy(clean_env):
    clean_env.setenv("VAULT_MIN_PASSWORD_LENGTH", "10")
    with pytest.raises(ValidationError):
        VaultSettings.from_env()


def test_default_vault_location(clean_env):
    settings = VaultSettings.from_env()
    assert settings.vault_file == get_app_data_dir() / "vault.enc"
    assert settings.vault_file.parent.name == "passvault"


@pytest.mark.skipif(platform.system() != "Linux", reason="XDG layout is Linux-only")
def test_app_data_dir_honors_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    assert get_app_data_dir() == tmp_path / "passvault"
