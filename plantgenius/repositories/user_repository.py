import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateEmail, NotFoundError
from ..models.user import User, PasswordResetToken
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "avatar_url")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(email: str) -> Optional[User]:
    return User.query.filter_by(email=normalize_email(email)).first()


def get_user_by_id(user_id: str) -> Optional[User]:
    return db.session.get(User, user_id)


def create_user(email: str, password_hash: Optional[str], full_name: Optional[str] = None,
                auth_provider: str = "password") -> User:
    now = utcnow()
    user = User(
        email=normalize_email(email),
        password_hash=password_hash,
        full_name=full_name,
        auth_provider=auth_provider,
        created_at=now,
        updated_at=now,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail()
    return user


def update_password(user_id: str, new_hash: str) -> None:
    user = get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    user.password_hash = new_hash
    user.updated_at = utcnow()
    db.session.commit()


def update_profile(user_id: str, fields: dict) -> User:
    user = get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    for key in PROFILE_FIELDS:
        if key in fields:
            setattr(user, key, fields[key])
    user.updated_at = utcnow()
    db.session.commit()
    return user


# ----------------- PASSWORD RESET TOKENS -----------------

def create_reset_token(user_id: str, token_hash: str, ttl, now=None) -> PasswordResetToken:
    created_at = now or utcnow()
    record = PasswordResetToken(
        user_id=user_id,
        token_hash=token_hash,
        created_at=created_at,
        expires_at=created_at + ttl,
    )
    db.session.add(record)
    db.session.commit()
    return record


def find_valid_reset_token(token_hash: str, now=None) -> Optional[PasswordResetToken]:
    return PasswordResetToken.query.filter(
        PasswordResetToken.token_hash == token_hash,
        PasswordResetToken.expires_at > (now or utcnow()),
    ).first()


def consume_reset_token(record: PasswordResetToken, new_hash: str) -> bool:
    """Set the new password and delete the user's reset tokens in one commit.

    Returns False when the token was already consumed by a concurrent request,
    in which case nothing is written.
    """
    user_id = record.user_id
    deleted = PasswordResetToken.query.filter_by(id=record.id).delete(synchronize_session=False)
    if deleted != 1:
        db.session.rollback()
        return False

    PasswordResetToken.query.filter_by(user_id=user_id).delete(synchronize_session=False)

    user = get_user_by_id(user_id)
    if not user:
        db.session.rollback()
        return False
    user.password_hash = new_hash
    user.updated_at = utcnow()
    db.session.commit()
    logger.info("Password reset completed for user %s", user_id)
    return True
