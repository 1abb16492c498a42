"""
Credential Store

argon2id password hashing and the password strength policy.
Pure functions; the hasher is built once from Settings.
"""

import logging
import re
from functools import lru_cache
from typing import List

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from app.config.settings import get_settings


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """argon2id hasher with the configured cost parameters."""
    settings = get_settings()
    return PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


def hash_password(password: str) -> str:
    """
    Hash a password with argon2id.

    Returns:
        Encoded hash string including salt and parameters
    """
    return get_password_hasher().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a password against a stored hash.

    Returns False for a wrong password and for a malformed hash.
    """
    try:
        return get_password_hasher().verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.warning(f"Password verification failed on stored hash: {e}")
        return False


def validate_password_strength(password: str) -> List[str]:
    """
    Check the strength policy.

    Returns:
        Human-readable violations, empty when the password is acceptable
    """
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    return errors
