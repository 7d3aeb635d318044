"""
Verification code and credential primitives.

Codes are stored only as bcrypt hashes. Comparisons are constant time:
when no code is stored, the candidate is still checked against a dummy
hash so response time does not reveal whether a code is active.
"""

import secrets

import bcrypt

CODE_LENGTH = 6

# Hash of a value no generated code can equal (codes are digits only).
_DUMMY_CODE_HASH = bcrypt.hashpw(b"no-active-code", bcrypt.gensalt(10)).decode()


def generate_code() -> str:
    """
    Generate a cryptographically secure 6-digit verification code.

    Returns string to preserve leading zeros.
    """
    return "".join(secrets.choice("0123456789") for _ in range(CODE_LENGTH))


def hash_code(code: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(code.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def check_code(code: str, code_hash: str | None) -> bool:
    """Constant-time check of `code` against the stored hash (or the dummy)."""
    stored = code_hash if code_hash is not None else _DUMMY_CODE_HASH
    matched = bcrypt.checkpw(code.encode(), stored.encode())
    return matched and code_hash is not None


def same_identifier(expected: str, supplied: str) -> bool:
    """Constant-time membership number comparison."""
    return secrets.compare_digest(expected.strip().encode(), supplied.strip().encode())


def generate_credential() -> str:
    """Unguessable ticket credential (256 bits, URL safe for QR payloads)."""
    return secrets.token_urlsafe(32)
