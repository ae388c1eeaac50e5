from dataclasses import dataclass, field
from typing import Iterable, Tuple, Union

from .secret_buffer import BytesLike

MIN_LENGTH = 20

RULE_LENGTH = "length"
RULE_UPPER = "uppercase"
RULE_LOWER = "lowercase"
RULE_DIGIT = "digit"
RULE_SYMBOL = "symbol"


@dataclass(frozen=True)
class StrengthVerdict:
    """Outcome of a policy check. Truthy when every rule passed."""

    failures: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return not self.failures

    def __bool__(self) -> bool:
        return self.passed


def _code_points(candidate: Union[str, BytesLike]) -> Iterable[int]:
    # For UTF-8 bytes, skip continuation bytes so each character is seen once;
    # a multi-byte lead byte is >= 0x80 and falls in the symbol class.
    if isinstance(candidate, str):
        return (ord(c) for c in candidate)
    return (b for b in memoryview(candidate).cast("B") if b & 0xC0 != 0x80)


@dataclass(frozen=True)
class StrengthPolicy:
    """
    Password quality rules. All are required:

    - at least min_length characters
    - at least one of [A-Z], one of [a-z] and one of [0-9]
    - at least one character outside [A-Za-z0-9]
    """

    min_length: int = MIN_LENGTH

    def evaluate(self, candidate: Union[str, BytesLike]) -> StrengthVerdict:
        """
        Check a candidate against the rules.

        Args:
            candidate: Password text, or its UTF-8 bytes (e.g. a
                       SecretBuffer view) so secrets need not be decoded.

        Returns:
            StrengthVerdict listing the names of the failed rules
        """
        length = 0
        upper = lower = digit = symbol = False
        for cp in _code_points(candidate):
            length += 1
            if 65 <= cp <= 90:
                upper = True
            elif 97 <= cp <= 122:
                lower = True
            elif 48 <= cp <= 57:
                digit = True
            else:
                symbol = True

        failures = []
        if length < self.min_length:
            failures.append(RULE_LENGTH)
        if not upper:
            failures.append(RULE_UPPER)
        if not lower:
            failures.append(RULE_LOWER)
        if not digit:
            failures.append(RULE_DIGIT)
        if not symbol:
            failures.append(RULE_SYMBOL)
        return StrengthVerdict(tuple(failures))


DEFAULT_POLICY = StrengthPolicy()


def evaluate(candidate: Union[str, BytesLike]) -> StrengthVerdict:
    """Evaluate against the default 20-character policy."""
    return DEFAULT_POLICY.evaluate(candidate)
