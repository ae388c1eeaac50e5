"""
Vault session: one decrypt -> apply one command -> re-encrypt cycle.

    IDLE -> LOCKED -> DECRYPTED -> (MUTATED | READ_ONLY) -> ENCRYPTED -> RELEASED
                 \\________________ FAILED ________________/

Every path ends in RELEASED: the passphrase, all passwords in the store,
any password carried by the command and the file lock are released in a
finally block whether the session succeeded, failed or was interrupted.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

import structlog

from schemas.commands import (
    AddCommand,
    Command,
    DeleteCommand,
    GeneratedPassword,
    GetCommand,
    GetPasswordCommand,
    ListCommand,
    MUTATING,
    UpdateCommand,
    command_secrets,
)
from . import codec
from . import crypto
from .errors import ErrorKind, InsecureSink, IOFailure, VaultError
from .generator import PasswordGenerator
from .lock import VaultLock
from .secret_buffer import SecretBuffer
from .storage import read_vault, write_atomic
from .store import AccountRecord, AccountStore
from .strength import StrengthPolicy, DEFAULT_POLICY

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    LOCKED = "locked"
    DECRYPTED = "decrypted"
    MUTATED = "mutated"
    READ_ONLY = "read_only"
    ENCRYPTED = "encrypted"
    FAILED = "failed"
    RELEASED = "released"


@dataclass(frozen=True)
class Success:
    output: Optional[str] = None

@dataclass(frozen=True)
class Cancelled:
    pass

@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str

SessionOutcome = Union[Success, Cancelled, Failed]


class VaultSession:
    """
    Runs exactly one command against the vault file.

    The session takes ownership of the passphrase buffer and of any
    SecretBuffer inside the command; both are released when run() returns.

    Args:
        vault_path: Vault file (created on the first mutating session)
        passphrase: Master passphrase
        policy: Strength policy for add/update
        generator: Password generator for GeneratedPassword choices
        cipher: Object with encrypt(plaintext, passphrase) and
                decrypt(blob, passphrase); defaults to vault.crypto
        lock_timeout: Seconds to wait for the vault lock (0 = fail fast)
        rewrite_on_read: Re-encrypt the vault after read-only commands too
        secret_sink: Binary stream get_password writes to; must not be a TTY
    """

    def __init__(
        self,
        vault_path: Path,
        passphrase: SecretBuffer,
        *,
        policy: Optional[StrengthPolicy] = None,
        generator: Optional[PasswordGenerator] = None,
        cipher=crypto,
        lock_timeout: float = 0.0,
        rewrite_on_read: bool = False,
        secret_sink: Optional[BinaryIO] = None,
    ):
        self.vault_path = Path(vault_path)
        self.passphrase = passphrase
        self.policy = policy or DEFAULT_POLICY
        self.generator = generator or PasswordGenerator(policy=self.policy)
        self.cipher = cipher
        self.rewrite_on_read = rewrite_on_read
        self.secret_sink = secret_sink
        self.state = SessionState.IDLE

        self._lock = VaultLock(self.vault_path, timeout=lock_timeout)
        self._store: Optional[AccountStore] = None
        self._generated: Optional[SecretBuffer] = None
        self._vault_existed = False

    def _transition(self, state: SessionState):
        logger.debug("session.transition", src=self.state.value, dst=state.value)
        self.state = state

    def run(self, command: Command) -> SessionOutcome:
        """
        Execute one command and return the outcome.

        Never raises VaultError: failures come back as Failed(kind, message).
        KeyboardInterrupt comes back as Cancelled.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A VaultSession can only run once")

        log = logger.bind(command=type(command).__name__, vault=str(self.vault_path))
        try:
            if isinstance(command, GetPasswordCommand):
                self._check_sink()

            self._lock.acquire()
            self._transition(SessionState.LOCKED)

            self._store = self._open()
            self._transition(SessionState.DECRYPTED)

            output = self._apply(self._store, command)
            mutated = isinstance(command, MUTATING) and self._store.mutations > 0
            self._transition(SessionState.MUTATED if mutated else SessionState.READ_ONLY)

            if mutated or (self.rewrite_on_read and self._vault_existed):
                self._commit(self._store)
                self._transition(SessionState.ENCRYPTED)

            log.info("session.succeeded", mutated=mutated)
            return Success(output)

        except VaultError as e:
            self._transition(SessionState.FAILED)
            log.warning("session.failed", kind=e.kind.value)
            return Failed(e.kind, str(e))

        except KeyboardInterrupt:
            self._transition(SessionState.FAILED)
            log.warning("session.cancelled")
            return Cancelled()

        finally:
            self._release(command)

    def _check_sink(self):
        sink = self.secret_sink
        if sink is None:
            raise InsecureSink()
        isatty = getattr(sink, "isatty", None)
        if isatty is not None and isatty():
            raise InsecureSink()

    def _open(self) -> AccountStore:
        blob = read_vault(self.vault_path)
        if blob is None:
            logger.info("vault.new", vault=str(self.vault_path))
            return AccountStore(policy=self.policy)

        self._vault_existed = True
        plaintext = self.cipher.decrypt(blob, self.passphrase)
        try:
            return codec.decode(plaintext, policy=self.policy)
        finally:
            plaintext.release()

    def _commit(self, store: AccountStore):
        plaintext = codec.encode(store)
        try:
            blob = self.cipher.encrypt(plaintext, self.passphrase)
        finally:
            plaintext.release()
        write_atomic(self.vault_path, blob)

    def _password_for(self, choice) -> SecretBuffer:
        if isinstance(choice, GeneratedPassword):
            self._generated = self.generator.generate()
            return self._generated
        return choice.secret

    # executes the single command against the decrypted store
    def _apply(self, store: AccountStore, command: Command) -> Optional[str]:
        if isinstance(command, AddCommand):
            password = self._password_for(command.password)
            store.add(
                command.name,
                AccountRecord(password=password, username=command.username, url=command.url),
            )
            return f"Added account '{command.name}'"

        elif isinstance(command, UpdateCommand):
            password = None
            if command.password is not None:
                password = self._password_for(command.password)
            store.update(
                command.name,
                username=command.username,
                url=command.url,
                password=password,
            )
            return f"Updated account '{command.name}'"

        elif isinstance(command, GetCommand):
            view = store.get(command.name)
            lines = [f"name: {view.name}"]
            if view.username is not None:
                lines.append(f"username: {view.username}")
            if view.url is not None:
                lines.append(f"url: {view.url}")
            return "\n".join(lines)

        elif isinstance(command, GetPasswordCommand):
            secret = store.get_password(command.name)
            try:
                self.secret_sink.write(secret.read())
                self.secret_sink.flush()
            except OSError as e:
                raise IOFailure(f"Could not write password: {e.strerror or e}") from e
            return None

        elif isinstance(command, DeleteCommand):
            store.delete(command.name)
            return f"Deleted account '{command.name}'"

        elif isinstance(command, ListCommand):
            return "\n".join(store.list())

        else:
            raise TypeError(f"Unknown command type: {type(command)}")

    def _release(self, command: Command):
        try:
            if self._store is not None:
                self._store.release()
            if self._generated is not None:
                self._generated.release()
            for secret in command_secrets(command):
                secret.release()
            self.passphrase.release()
        finally:
            self._lock.release()
            self._transition(SessionState.RELEASED)
