"""
Vault codec: account map <-> canonical JSON plaintext.

Canonical form is compact JSON with sorted keys, UTF-8 encoded:
    {"accounts":{"Github":{"password":"...","username":"octocat"}},"version":1}

Optional fields are normalized: an empty string is stored as absent, and
an absent field decodes to None.
"""
import json
from typing import Dict, Optional, Union

from pydantic import ValidationError

from schemas.account import VaultDocument
from .errors import CorruptVault
from .secret_buffer import SecretBuffer, BytesLike, wipe
from .store import AccountRecord, AccountStore
from .strength import StrengthPolicy

FORMAT_VERSION = 1


def _normalize(value: Optional[str]) -> Optional[str]:
    return value if value else None


def decode(
    plaintext: Optional[Union[SecretBuffer, BytesLike]],
    policy: Optional[StrengthPolicy] = None,
) -> AccountStore:
    """
    Build an AccountStore from decrypted vault bytes.

    Args:
        plaintext: Decrypted bytes; None or empty yields an empty store
        policy: Strength policy for later add/update on the returned store

    Raises:
        CorruptVault: If the bytes are not a valid account map
    """
    store = AccountStore(policy=policy)
    if plaintext is None:
        return store

    view = plaintext.read() if isinstance(plaintext, SecretBuffer) else memoryview(plaintext)
    if len(view) == 0:
        return store

    raw = bytearray(view)
    try:
        data = json.loads(raw.decode("utf-8"))
        doc = VaultDocument.model_validate(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        # Never echo the document: the exception text can quote plaintext
        raise CorruptVault(f"Vault contents are not valid JSON ({type(e).__name__})") from None
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise CorruptVault(f"Vault contents failed schema validation: {', '.join(fields)}") from None
    finally:
        wipe(raw)

    if doc.version != FORMAT_VERSION:
        raise CorruptVault(f"Unsupported vault format version: {doc.version}")

    records: Dict[str, AccountRecord] = {}
    try:
        for name, model in doc.accounts.items():
            if not name:
                raise CorruptVault("Vault contains an account with an empty name")
            records[name] = AccountRecord(
                password=SecretBuffer(model.password),
                username=_normalize(model.username),
                url=_normalize(model.url),
            )
    except CorruptVault:
        for record in records.values():
            record.release()
        raise

    store.load(records)
    return store


def encode(store: AccountStore) -> SecretBuffer:
    """
    Serialize the store to canonical plaintext bytes.

    Returns:
        SecretBuffer owned by the caller
    """
    accounts = {}
    for name, record in store.items():
        entry = {"password": record.password.read().tobytes().decode("utf-8")}
        if record.username:
            entry["username"] = record.username
        if record.url:
            entry["url"] = record.url
        accounts[name] = entry

    document = {"version": FORMAT_VERSION, "accounts": accounts}
    text = json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return SecretBuffer(text)
