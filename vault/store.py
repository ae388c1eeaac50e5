from dataclasses import dataclass
from typing import Dict, ItemsView, List, Optional, Union

import structlog

from .errors import AccountNotFound, DuplicateAccount, WeakPassword
from .secret_buffer import SecretBuffer
from .strength import StrengthPolicy, DEFAULT_POLICY

logger = structlog.get_logger(__name__)


@dataclass
class AccountRecord:
    password: SecretBuffer
    username: Optional[str] = None
    url: Optional[str] = None

    def release(self):
        self.password.release()


@dataclass(frozen=True)
class AccountView:
    """Non-secret projection of a record, returned by AccountStore.get()."""

    name: str
    username: Optional[str] = None
    url: Optional[str] = None


def _blank(value: Optional[Union[str, SecretBuffer]]) -> bool:
    return value is None or len(value) == 0


class AccountStore:
    """
    In-memory account map for the lifetime of one session.

    Each name is either absent or present. add() moves a name from absent
    to present, delete() moves it back; update/get/get_password require it
    present. Names are case-sensitive. list() is lexicographic.

    Passwords live in SecretBuffers owned by the store. Incoming buffers
    are copied, so callers keep (and release) their own.
    """

    def __init__(self, policy: Optional[StrengthPolicy] = None):
        self.policy = policy or DEFAULT_POLICY
        self._records: Dict[str, AccountRecord] = {}
        self.mutations = 0

    def load(self, records: Dict[str, AccountRecord]):
        """Take ownership of already-validated records (used by the codec)."""
        if self._records:
            raise RuntimeError("AccountStore.load() on a non-empty store")
        self._records = dict(records)

    def _require(self, name: str) -> AccountRecord:
        record = self._records.get(name)
        if record is None:
            raise AccountNotFound(name)
        return record

    def _check_password(self, password: SecretBuffer):
        verdict = self.policy.evaluate(password.read())
        if not verdict:
            raise WeakPassword(verdict.failures)

    def add(self, name: str, record: AccountRecord):
        """
        Add a new account.

        Raises:
            ValueError: If name is empty
            DuplicateAccount: If name is already present
            WeakPassword: If the password is empty or fails the policy
        """
        if not name:
            raise ValueError("Account name must be non-empty")
        if name in self._records:
            raise DuplicateAccount(name)
        self._check_password(record.password)

        self._records[name] = AccountRecord(
            password=record.password.copy(),
            username=record.username or None,
            url=record.url or None,
        )
        self.mutations += 1
        logger.info("account.added", account=name)

    def update(
        self,
        name: str,
        username: Optional[str] = None,
        url: Optional[str] = None,
        password: Optional[SecretBuffer] = None,
    ):
        """
        Merge supplied fields over an existing account.

        Blank or omitted fields keep their previous value. A new password
        is validated before anything is written, so a WeakPassword leaves
        the record untouched. An update that changes nothing does not
        count as a mutation.

        Raises:
            AccountNotFound: If name is absent
            WeakPassword: If a supplied password fails the policy
        """
        record = self._require(name)
        if not _blank(password):
            self._check_password(password)

        changed = []
        if not _blank(username):
            record.username = username
            changed.append("username")
        if not _blank(url):
            record.url = url
            changed.append("url")
        if not _blank(password):
            old = record.password
            record.password = password.copy()
            old.release()
            changed.append("password")

        if not changed:
            logger.info("account.unchanged", account=name)
            return
        self.mutations += 1
        logger.info("account.updated", account=name, fields=changed)

    def get(self, name: str) -> AccountView:
        record = self._require(name)
        return AccountView(name=name, username=record.username, url=record.url)

    def get_password(self, name: str) -> SecretBuffer:
        """
        Borrow an account's password buffer.

        The buffer stays owned by the store: do not release it, and only
        write it to non-interactive sinks.
        """
        return self._require(name).password

    def delete(self, name: str):
        record = self._require(name)
        del self._records[name]
        record.release()
        self.mutations += 1
        logger.info("account.deleted", account=name)

    def list(self) -> List[str]:
        return sorted(self._records)

    def items(self) -> ItemsView[str, AccountRecord]:
        return self._records.items()

    def release(self):
        """Zero every password and empty the store."""
        for record in self._records.values():
            record.release()
        self._records.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)
