"""Password hashing helpers."""

from functools import lru_cache

from passlib.context import CryptContext


@lru_cache
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=max(int(rounds), 4))


def hash_password(password: str, rounds: int) -> str:
    return _pwd_context(rounds).hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Cost is read from ``hashed`` itself, so no rounds are needed to check."""
    if not password or not hashed:
        return False
    return _pwd_context(4).verify(password, hashed)


def password_too_long(password: str) -> bool:
    """bcrypt only looks at the first 72 bytes."""
    return len(password.encode("utf-8")) > 72
