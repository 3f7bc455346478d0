"""bcrypt password hashing for ``User.password_hash``."""

import bcrypt

BCRYPT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(plain_password: str) -> str:
    digest = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return digest.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """False for an empty or non-bcrypt hash instead of raising."""
    if not password_hash or not password_hash.startswith(_BCRYPT_PREFIXES):
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
