import datetime
import hashlib
import logging
import secrets
from typing import Optional, Tuple
from urllib.parse import urlencode

import requests

from ..errors import (
    EmailRequired,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFoundError,
    PasswordRequired,
    ValidationError,
)
from ..repositories import user_repository
from ..schemas.user_schema import serialize_user
from ..utils.passwords import dummy_hash, hash_password, verify_and_upgrade_password
from ..utils.security import is_valid_email, sanitize_input, validate_password, MAX_NAME_LENGTH

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If account exists, reset email sent"


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class AuthService:
    """Signup, signin and password reset on top of the credential store.

    Signout has no server side: tokens are stateless and the client drops them.
    """

    def __init__(self, config, token_service, mailer):
        self.token_service = token_service
        self.mailer = mailer
        self.bcrypt_rounds = config.get("BCRYPT_ROUNDS", 10)
        # Warm the unknown-email check at the configured cost
        dummy_hash(self.bcrypt_rounds)
        self.min_password_length = config.get("MIN_PASSWORD_LENGTH", 6)
        self.reset_ttl = datetime.timedelta(minutes=config.get("RESET_TOKEN_TTL_MINUTES", 60))
        self.reset_url_base = config.get("RESET_URL_BASE")

    def _session(self, user) -> Tuple[dict, str]:
        token = self.token_service.issue(user.id, user.email)
        return serialize_user(user), token

    def sign_up(self, email: Optional[str], password: Optional[str],
                full_name: Optional[str] = None) -> Tuple[dict, str]:
        if not email:
            raise EmailRequired()
        if not password:
            raise PasswordRequired()
        if not is_valid_email(email):
            raise ValidationError("Valid email required", field="email")
        validate_password(password, self.min_password_length)

        full_name = sanitize_input(full_name) or None
        if full_name is not None and (not isinstance(full_name, str) or len(full_name) > MAX_NAME_LENGTH):
            raise ValidationError("Name too long", field="fullName")

        password_hash = hash_password(password, self.bcrypt_rounds)
        user = user_repository.create_user(email, password_hash, full_name)
        logger.info("User signed up: %s", user.email)

        try:
            self.mailer.send_welcome(user.email, user.full_name)
        except requests.RequestException as exc:
            logger.warning("Welcome email to %s failed: %s", user.email, exc)

        return self._session(user)

    def sign_in(self, email: Optional[str], password: Optional[str]) -> Tuple[dict, str]:
        if not email or not password or not isinstance(email, str) or not isinstance(password, str):
            raise ValidationError("Email and password required")

        user = user_repository.get_user_by_email(email)
        stored_hash = user.password_hash if user else None
        is_valid, new_hash = verify_and_upgrade_password(stored_hash, password, self.bcrypt_rounds)
        if not user or not is_valid:
            # Same error for unknown email and wrong password
            raise InvalidCredentials()

        if new_hash:
            user_repository.update_password(user.id, new_hash)
            logger.info("Upgraded legacy password hash for user %s", user.id)

        return self._session(user)

    def request_password_reset(self, email: Optional[str]) -> str:
        if not email or not isinstance(email, str):
            raise EmailRequired()

        user = user_repository.get_user_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return RESET_REQUESTED_MESSAGE

        raw_token = secrets.token_hex(32)
        user_repository.create_reset_token(
            user.id, hash_reset_token(raw_token), self.reset_ttl
        )
        reset_url = f"{self.reset_url_base}?{urlencode({'token': raw_token})}"
        try:
            self.mailer.send_password_reset(user.email, reset_url)
        except requests.RequestException as exc:
            # The response must not differ for existing accounts
            logger.error("Password reset email to %s failed: %s", user.email, exc)

        return RESET_REQUESTED_MESSAGE

    def confirm_password_reset(self, raw_token: Optional[str], new_password: Optional[str]) -> None:
        if not raw_token or not isinstance(raw_token, str):
            raise InvalidOrExpiredToken()
        if not new_password:
            raise PasswordRequired()
        validate_password(new_password, self.min_password_length)

        record = user_repository.find_valid_reset_token(hash_reset_token(raw_token))
        if not record:
            raise InvalidOrExpiredToken()

        new_hash = hash_password(new_password, self.bcrypt_rounds)
        if not user_repository.consume_reset_token(record, new_hash):
            raise InvalidOrExpiredToken()

    def get_user(self, user_id: str) -> dict:
        user = user_repository.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return serialize_user(user)

    def update_profile(self, user_id: str, fields: dict) -> dict:
        return serialize_user(user_repository.update_profile(user_id, fields))
