import functools
from typing import Tuple

import bcrypt
from werkzeug.security import check_password_hash

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


@functools.lru_cache(maxsize=None)
def dummy_hash(rounds: int = 10) -> str:
    """Hash checked when the email is unknown, at the same cost as real accounts."""
    return hash_password("plantgenius-dummy-password", rounds)


def burn_password_check(password: str, rounds: int = 10) -> None:
    bcrypt.checkpw((password or "").encode("utf-8"), dummy_hash(rounds).encode("utf-8"))


def verify_and_upgrade_password(stored_hash: str | None, provided_password: str,
                                rounds: int = 10) -> Tuple[bool, str | None]:
    """Verify a password against a bcrypt or legacy werkzeug hash.

    Returns (is_valid, new_hash_or_None). A matching legacy werkzeug hash is
    re-hashed with bcrypt so the caller can store the upgrade.
    """
    if not stored_hash or provided_password is None:
        burn_password_check(provided_password, rounds)
        return False, None

    if stored_hash.startswith(BCRYPT_PREFIXES):
        try:
            ok = bcrypt.checkpw(provided_password.encode("utf-8"), stored_hash.encode("utf-8"))
        except ValueError:
            return False, None
        return ok, None

    try:
        if check_password_hash(stored_hash, provided_password):
            return True, hash_password(provided_password, rounds)
    except ValueError:
        # Not a werkzeug hash either
        pass

    return False, None
