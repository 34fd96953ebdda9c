"""Argon2id hashing of user passwords for the principal store."""

import argon2

# Hashes stored with weaker parameters are replaced on the next good login.
TIME_COST = 2
MEMORY_COST_KIB = 64 * 1024
PARALLELISM = 1

_hasher = argon2.PasswordHasher(
    time_cost=TIME_COST,
    memory_cost=MEMORY_COST_KIB,
    parallelism=PARALLELISM,
)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """True if ``plain`` matches ``hashed``; unparsable hashes never match."""
    try:
        return _hasher.verify(hashed, plain)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def check_password(plain: str, hashed: str) -> tuple[bool, str | None]:
    """Verify a login password.

    Returns whether it matched and, when ``hashed`` predates the current
    parameters, a fresh hash of ``plain`` to store in its place.
    """
    if not verify_password(plain, hashed):
        return False, None
    if _hasher.check_needs_rehash(hashed):
        return True, hash_password(plain)
    return True, None
