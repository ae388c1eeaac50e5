from typing import BinaryIO, Optional
from pathlib import Path

from schemas.commands import (
    AddCommand,
    Command,
    DeleteCommand,
    GetCommand,
    GetPasswordCommand,
    ListCommand,
    PasswordChoice,
    UpdateCommand,
)
from .config import VaultSettings
from .generator import PasswordGenerator
from .secret_buffer import SecretBuffer
from .session import SessionOutcome, VaultSession
from .strength import StrengthPolicy


class VaultManager:
    """
    Facade for the application: builds one VaultSession per call from the
    settings. Holds no secrets and no decrypted state between calls.
    """

    def __init__(self, settings: Optional[VaultSettings] = None, cipher=None):
        self.settings = settings or VaultSettings.from_env()
        self.policy = StrengthPolicy(min_length=self.settings.min_password_length)
        self.cipher = cipher

    @property
    def vault_file(self) -> Path:
        return self.settings.vault_file

    def vault_exists(self) -> bool:
        path = self.vault_file
        return path.exists() and path.stat().st_size > 0

    def make_generator(self) -> PasswordGenerator:
        return PasswordGenerator(
            policy=self.policy,
            length=self.settings.generated_length,
            max_attempts=self.settings.max_generation_attempts,
        )

    def session(self, passphrase: SecretBuffer, secret_sink: Optional[BinaryIO] = None) -> VaultSession:
        kwargs = {}
        if self.cipher is not None:
            kwargs["cipher"] = self.cipher
        return VaultSession(
            self.vault_file,
            passphrase,
            policy=self.policy,
            generator=self.make_generator(),
            lock_timeout=self.settings.lock_timeout,
            rewrite_on_read=self.settings.rewrite_on_read,
            secret_sink=secret_sink,
            **kwargs,
        )

    def run(self, command: Command, passphrase: SecretBuffer, secret_sink: Optional[BinaryIO] = None) -> SessionOutcome:
        """Run one command in a fresh session. Releases passphrase."""
        return self.session(passphrase, secret_sink=secret_sink).run(command)

    def add_account(
        self,
        passphrase: SecretBuffer,
        name: str,
        password: PasswordChoice,
        username: Optional[str] = None,
        url: Optional[str] = None,
    ) -> SessionOutcome:
        """
        Add an account.

        Example:
            vm.add_account(master, "Github", GeneratedPassword(), username="octocat")
        """
        command = AddCommand(name=name, password=password, username=username, url=url)
        return self.run(command, passphrase)

    def update_account(
        self,
        passphrase: SecretBuffer,
        name: str,
        password: Optional[PasswordChoice] = None,
        username: Optional[str] = None,
        url: Optional[str] = None,
    ) -> SessionOutcome:
        """Update an account; omitted or blank fields keep their values."""
        command = UpdateCommand(name=name, password=password, username=username, url=url)
        return self.run(command, passphrase)

    def get_account(self, passphrase: SecretBuffer, name: str) -> SessionOutcome:
        """Username and URL of an account (never the password)."""
        return self.run(GetCommand(name=name), passphrase)

    def get_password(self, passphrase: SecretBuffer, name: str, sink: BinaryIO) -> SessionOutcome:
        """Write an account's password to sink, which must not be a terminal."""
        return self.run(GetPasswordCommand(name=name), passphrase, secret_sink=sink)

    def delete_account(self, passphrase: SecretBuffer, name: str) -> SessionOutcome:
        return self.run(DeleteCommand(name=name), passphrase)

    def list_accounts(self, passphrase: SecretBuffer) -> SessionOutcome:
        return self.run(ListCommand(), passphrase)
