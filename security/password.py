import bcrypt

ADMIN_PASSWORD_MIN_LEN = 12
_ADMIN_ROUNDS = 12

# Compared against when the admin email is unknown, so a miss costs the same
# bcrypt work as a wrong password.
_DUMMY_HASH = bcrypt.hashpw(b"fortivault-dummy", bcrypt.gensalt(rounds=_ADMIN_ROUNDS)).decode("utf-8")


def hash_admin_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) < ADMIN_PASSWORD_MIN_LEN:
        raise ValueError(f"Admin password must be at least {ADMIN_PASSWORD_MIN_LEN} characters")

    salt = bcrypt.gensalt(rounds=_ADMIN_ROUNDS)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def check_admin_password(plain_password: str, password_hash) -> bool:
    """Fails closed on empty input or anything that is not a bcrypt hash."""
    if not plain_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            (password_hash or _DUMMY_HASH).encode("utf-8"),
        ) and bool(password_hash)
    except ValueError:
        return False
