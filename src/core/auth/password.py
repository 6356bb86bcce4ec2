from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(plain: str, method: str = "pbkdf2:sha256", salt_length: int = 16) -> str:
    """Hash a plain-text password for storage."""
    return generate_password_hash(plain, method=method, salt_length=salt_length)


def verify_password(plain: str, password_hash: str | None) -> bool:
    """Check a plain-text password against a stored hash."""
    if not password_hash:
        return False
    return check_password_hash(password_hash, plain)
