"""Intake tokens and form access passwords.

Tokens use an alphabet without look-alike characters (no 0/O, 1/l/I) so they
survive being read aloud or retyped from an email.

Passwords are short access PINs shared out of band, not user account
credentials, so a plain SHA-256 digest is stored.
"""

import hashlib
import hmac
import secrets

TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
TOKEN_LENGTH = 24


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Generate a random intake token.

    Examples:
        >>> len(generate_token())
        24
        >>> set(generate_token(64)) <= set(TOKEN_ALPHABET)
        True
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def hash_password(password: str) -> str:
    """Hex SHA-256 digest of ``password``."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of ``password`` against a stored digest."""
    return hmac.compare_digest(hash_password(password), password_hash)
