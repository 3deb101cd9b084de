"""
auth/passwords.py -- Password hashing for the local identity backend.

bcrypt is used directly (no passlib wrapper). Its cost factor makes brute
force expensive, which is what low-entropy secrets like passwords need.

check_credentials() always runs one bcrypt comparison, whether or not the
account exists, so response time does not reveal which emails are registered.
"""

from __future__ import annotations

import bcrypt


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes of its input.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


# Computed once at module load so the first failed lookup is not measurably
# faster than later ones.
_DUMMY_HASH: str = hash_password("account_timing_dummy")


def check_credentials(plain: str, hashed: str | None) -> bool:
    """Verify plain against hashed, spending the same bcrypt work when hashed is None."""
    if hashed is None:
        verify_password(plain, _DUMMY_HASH)
        return False
    return verify_password(plain, hashed)
