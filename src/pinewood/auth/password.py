"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.

Accounts created before hashing was introduced still hold the plaintext
password. Those are verified with a constant-time compare and upgraded to
bcrypt on the next successful login (see UserService.login).
"""

import secrets

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Passwords are truncated to 72 bytes
    (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored value (bcrypt or legacy plaintext)."""
    if _is_legacy(password_hash):
        return secrets.compare_digest(
            password.encode("utf-8"), password_hash.encode("utf-8")
        )
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def needs_upgrade(password_hash: str) -> bool:
    """Check if a stored password should be re-hashed with bcrypt."""
    return _is_legacy(password_hash)


def _is_legacy(password_hash: str) -> bool:
    return not password_hash.startswith("$2")
