import secrets
import string
from typing import Optional

import structlog

from .errors import GenerationExhausted
from .secret_buffer import SecretBuffer, wipe
from .strength import StrengthPolicy, DEFAULT_POLICY

logger = structlog.get_logger(__name__)

# Printable, unambiguous: no I/O/l/o/0/1, no quotes, backslash, backtick, pipe or space
UPPER = "".join(c for c in string.ascii_uppercase if c not in "IO")
LOWER = "".join(c for c in string.ascii_lowercase if c not in "lo")
DIGITS = "23456789"
SYMBOLS = "!#$%&()*+,-./:;<=>?@[]^_{}~"
DEFAULT_CHARSET = UPPER + LOWER + DIGITS + SYMBOLS

DEFAULT_LENGTH = 32
MAX_ATTEMPTS = 1000


class PasswordGenerator:
    """
    Draws random passwords until one satisfies the strength policy.

    Candidates are uniform over the charset (no per-class seeding), so a
    rejected draw is simply wiped and redrawn.
    """

    def __init__(
        self,
        policy: Optional[StrengthPolicy] = None,
        length: int = DEFAULT_LENGTH,
        charset: str = DEFAULT_CHARSET,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        if not charset or not charset.isascii():
            raise ValueError("charset must be a non-empty ASCII string")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.policy = policy or DEFAULT_POLICY
        self.length = length
        self.charset = charset
        self.max_attempts = max_attempts

    def _draw(self) -> bytearray:
        candidate = bytearray(self.length)
        for i in range(self.length):
            candidate[i] = ord(secrets.choice(self.charset))
        return candidate

    def generate(self) -> SecretBuffer:
        """
        Generate a password that passes the policy.

        Returns:
            SecretBuffer owned by the caller (release it when done)

        Raises:
            GenerationExhausted: If max_attempts candidates all failed
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._draw()
            try:
                if self.policy.evaluate(candidate):
                    logger.debug("password.generated", attempts=attempt, length=self.length)
                    return SecretBuffer(candidate)
            finally:
                wipe(candidate)

        logger.warning("password.generation_exhausted", attempts=self.max_attempts)
        raise GenerationExhausted(self.max_attempts)
