"""Password hashing and password rules.

Pipeline:
- PasswordHasher.hash / verify: bcrypt with a configurable cost factor
- PasswordHasher.verify_dummy: constant work for the user-not-found path
- validate_password_strength: format rules (sync, no network)
"""

import re
from functools import lru_cache

import bcrypt

from account_service.core.errors import CorruptCredentialError, ValidationError

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72

_MIN_PASSWORD_LENGTH = 8

# Fixed plaintext for the dummy hash. Never a real credential.
_DUMMY_PASSWORD = b"account-service-dummy-password"  # nosec B105


class PasswordHasher:
    """One-way password hashing with bcrypt.

    Every call to hash() embeds a fresh random salt, so hashing the same
    password twice yields different strings. Compare with verify(), never
    with string equality.

    Args:
        rounds: bcrypt cost factor (log2 of the iteration count).
    """

    def __init__(self, rounds: int) -> None:
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password.

        Args:
            plaintext: Password as typed by the user.

        Returns:
            bcrypt hash string (includes algorithm, cost, and salt).
        """
        return bcrypt.hashpw(
            plaintext.encode(), bcrypt.gensalt(rounds=self._rounds)
        ).decode()

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Check a plaintext password against a stored hash.

        Comparison is constant-time inside bcrypt.

        Args:
            plaintext: Candidate password.
            hashed: Stored bcrypt hash.

        Returns:
            True if the password matches, False otherwise.

        Raises:
            CorruptCredentialError: If the stored hash cannot be parsed.
        """
        encoded = plaintext.encode()
        # hash() never accepts inputs this long, so they cannot match
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode())
        except ValueError as exc:
            raise CorruptCredentialError() from exc

    def verify_dummy(self, plaintext: str) -> None:
        """Spend one bcrypt comparison without a stored hash.

        Security: called when the account is missing or has no password so
        the response time does not reveal which branch was taken.
        """
        candidate = plaintext.encode()[:BCRYPT_MAX_PASSWORD_BYTES]
        bcrypt.checkpw(candidate, dummy_hash(self._rounds))


@lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> bytes:
    """Process-wide dummy hash for a cost factor.

    Computed once per cost factor. Hashers are built per request, so an
    instance-level cache would add a hashpw to every missing-account login.
    """
    return bcrypt.hashpw(_DUMMY_PASSWORD, bcrypt.gensalt(rounds=rounds))


def validate_password_strength(password: str, field_name: str = "Password") -> None:
    """Validate password meets strength requirements.

    8-72 bytes, at least one uppercase letter, one lowercase letter, and
    one number. The upper bound is bcrypt's input limit.

    Args:
        password: Plain-text password to validate.
        field_name: Name used in error messages (e.g., "New password").

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{field_name} must be at least {_MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"{field_name} must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
        )
    if not re.search(r"[A-Z]", password):
        raise ValidationError(
            f"{field_name} must contain at least one uppercase letter"
        )
    if not re.search(r"[a-z]", password):
        raise ValidationError(
            f"{field_name} must contain at least one lowercase letter"
        )
    if not re.search(r"\d", password):
        raise ValidationError(f"{field_name} must contain at least one number")
