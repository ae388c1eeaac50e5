"""
Vault cipher: Scrypt key derivation + AES-256-GCM.

File layout: [salt 16B][nonce 12B][ciphertext + GCM tag 16B]

A fresh salt and nonce are drawn on every encrypt, so two writes of the
same plaintext never produce the same file.

Security Note:
    The derived key and AESGCM's returned plaintext are immutable bytes and
    cannot be wiped; the plaintext is copied into a SecretBuffer right away
    and the intermediate is dropped.
"""
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CorruptVault, WrongPassphrase
from .secret_buffer import SecretBuffer

SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256

SCRYPT_N = 2**14  # CPU/memory cost
SCRYPT_R = 8      # Block size parameter
SCRYPT_P = 1      # Parallelization parameter

HEADER_SIZE = SALT_SIZE + NONCE_SIZE


def derive_key(passphrase: SecretBuffer, salt: bytes) -> bytes:
    """
    Derive a 256-bit key from the master passphrase.

    Args:
        passphrase: Master passphrase
        salt: 16 random bytes stored at the head of the vault file

    Returns:
        32-byte key
    """
    kdf = Scrypt(
        salt=salt,
        length=KEY_LENGTH,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    return kdf.derive(passphrase.read())


def encrypt(plaintext: SecretBuffer, passphrase: SecretBuffer) -> bytes:
    """Encrypt serialized vault contents into the on-disk blob."""
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    cipher = AESGCM(derive_key(passphrase, salt))
    ciphertext = cipher.encrypt(nonce, plaintext.read(), None)
    return salt + nonce + ciphertext


def decrypt(blob: bytes, passphrase: SecretBuffer) -> SecretBuffer:
    """
    Decrypt an on-disk blob.

    Returns:
        Plaintext in a SecretBuffer owned by the caller

    Raises:
        CorruptVault: If the blob is too short to hold a header and tag
        WrongPassphrase: If GCM authentication fails
    """
    if len(blob) < HEADER_SIZE + TAG_SIZE:
        raise CorruptVault("Invalid vault file (corrupted or too small)")

    salt = blob[:SALT_SIZE]
    nonce = blob[SALT_SIZE:HEADER_SIZE]
    ciphertext = blob[HEADER_SIZE:]

    cipher = AESGCM(derive_key(passphrase, salt))
    try:
        plaintext = cipher.decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise WrongPassphrase() from None
    return SecretBuffer(plaintext)
