"""
Share password hashing.

New digests are bcrypt hashes, which carry their own salt and cost factor.
Unsalted 64-character SHA-256 hex digests, as written by earlier releases,
are still accepted by verify().
"""

import hashlib
import hmac

import bcrypt

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72
_LEGACY_DIGEST_LENGTH = 64


def new_salt() -> str:
    return bcrypt.gensalt().decode("ascii")


def digest(plaintext: str, salt: str | None = None) -> str:
    """Hash `plaintext` with `salt` (a fresh bcrypt salt when omitted)."""
    salt = new_salt() if salt is None else salt
    return bcrypt.hashpw(_encode(plaintext), salt.encode("ascii")).decode("ascii")


def verify(plaintext: str, stored: str | None) -> bool:
    if not stored:
        return False

    if stored.startswith("$2"):
        try:
            return bcrypt.checkpw(_encode(plaintext), stored.encode("ascii"))
        except ValueError:
            return False

    if len(stored) == _LEGACY_DIGEST_LENGTH:
        legacy = hashlib.sha256(plaintext.encode("utf-8")).hexdigest()
        return hmac.compare_digest(legacy, stored.lower())

    return False


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]
