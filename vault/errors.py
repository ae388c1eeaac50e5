from enum import Enum


class ErrorKind(str, Enum):
    WRONG_PASSPHRASE = "wrong_passphrase"
    CORRUPT_VAULT = "corrupt_vault"
    DUPLICATE_ACCOUNT = "duplicate_account"
    ACCOUNT_NOT_FOUND = "account_not_found"
    WEAK_PASSWORD = "weak_password"
    GENERATION_EXHAUSTED = "generation_exhausted"
    VAULT_BUSY = "vault_busy"
    IO_FAILURE = "io_failure"
    INSECURE_SINK = "insecure_sink"


class VaultError(Exception):
    """Base exception for vault operations.

    Messages must never contain secret material. Account names and file
    paths are fine, passwords and passphrases are not.
    """

    kind: ErrorKind = ErrorKind.IO_FAILURE


class WrongPassphrase(VaultError):
    kind = ErrorKind.WRONG_PASSPHRASE

    def __init__(self):
        super().__init__("Failed to unlock vault (wrong master password?)")


class CorruptVault(VaultError):
    kind = ErrorKind.CORRUPT_VAULT


class DuplicateAccount(VaultError):
    kind = ErrorKind.DUPLICATE_ACCOUNT

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Account '{name}' already exists")


class AccountNotFound(VaultError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Account '{name}' not found")


class WeakPassword(VaultError):
    kind = ErrorKind.WEAK_PASSWORD

    def __init__(self, failures=()):
        self.failures = tuple(failures)
        detail = ", ".join(self.failures) or "policy"
        super().__init__(f"Password does not meet the strength policy ({detail})")


class GenerationExhausted(VaultError):
    kind = ErrorKind.GENERATION_EXHAUSTED

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"No generated password passed the strength policy after {attempts} attempts"
        )


class VaultBusy(VaultError):
    kind = ErrorKind.VAULT_BUSY


class IOFailure(VaultError):
    kind = ErrorKind.IO_FAILURE


class InsecureSink(VaultError):
    kind = ErrorKind.INSECURE_SINK

    def __init__(self):
        super().__init__("Refusing to write a password to an interactive terminal")
