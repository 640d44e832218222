"""Unit tests for signup, signin and password reset"""

import datetime
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import bcrypt
import pytest
import requests
from werkzeug.security import generate_password_hash

from plantgenius.errors import (
    ConflictError,
    DuplicateEmail,
    EmailRequired,
    InvalidCredentials,
    InvalidOrExpiredToken,
    PasswordRequired,
    ValidationError,
)
from plantgenius.extensions import db
from plantgenius.models.user import PasswordResetToken, User
from plantgenius.repositories import user_repository
from plantgenius.services.auth_service import RESET_REQUESTED_MESSAGE
from plantgenius.utils.dates import utcnow
from plantgenius.utils.passwords import dummy_hash


def _cost(bcrypt_hash):
    return int(bcrypt_hash.split("$")[2])


def _raw_token(mailer):
    _, reset_url = mailer.sent[-1]
    return parse_qs(urlparse(reset_url).query)["token"][0]


class TestSignUp:
    def test_returns_user_without_password_and_token(self, app_ctx, auth_service):
        user, token = auth_service.sign_up("Grower@Example.com", "secret1", "Ada")

        assert user["email"] == "grower@example.com"
        assert user["fullName"] == "Ada"
        assert user["authProvider"] == "password"
        assert not any("password" in key.lower() for key in user)
        assert auth_service.token_service.verify(token)["userId"] == user["id"]

    def test_password_is_bcrypt_hashed(self, app_ctx, auth_service):
        user, _ = auth_service.sign_up("a@x.com", "secret1")
        stored = db.session.get(User, user["id"])
        assert stored.password_hash.startswith("$2")
        assert "secret1" not in stored.password_hash

    def test_duplicate_email_is_case_insensitive(self, app_ctx, auth_service):
        auth_service.sign_up("a@x.com", "secret1")

        with pytest.raises(DuplicateEmail) as exc:
            auth_service.sign_up("A@X.COM", "another-pass")
        assert isinstance(exc.value, ConflictError)

        # First user's password still works
        user, _ = auth_service.sign_in("a@x.com", "secret1")
        assert user["email"] == "a@x.com"
        with pytest.raises(InvalidCredentials):
            auth_service.sign_in("a@x.com", "another-pass")
        assert User.query.count() == 1

    def test_missing_fields(self, app_ctx, auth_service):
        with pytest.raises(EmailRequired):
            auth_service.sign_up(None, "secret1")
        with pytest.raises(PasswordRequired):
            auth_service.sign_up("a@x.com", "")

    def test_rejects_bad_email_and_short_password(self, app_ctx, auth_service):
        with pytest.raises(ValidationError):
            auth_service.sign_up("not-an-email", "secret1")
        with pytest.raises(ValidationError):
            auth_service.sign_up("a@x.com", "12345")

    def test_name_is_sanitized(self, app_ctx, auth_service):
        user, _ = auth_service.sign_up("a@x.com", "secret1", "<script>alert(1)</script>Ada")
        assert user["fullName"] == "Ada"


class TestSignIn:
    def test_wrong_password_and_unknown_email_are_identical(self, app_ctx, auth_service):
        auth_service.sign_up("a@x.com", "secret1")

        with pytest.raises(InvalidCredentials) as wrong_password:
            auth_service.sign_in("a@x.com", "wrong-password")
        with pytest.raises(InvalidCredentials) as unknown_email:
            auth_service.sign_in("nobody@x.com", "secret1")

        assert type(wrong_password.value) is type(unknown_email.value)
        assert wrong_password.value.message == unknown_email.value.message
        assert wrong_password.value.status_code == unknown_email.value.status_code == 401

    def test_unknown_email_checks_a_hash_of_the_configured_cost(self, app_ctx, auth_service):
        auth_service.sign_up("a@x.com", "secret1")
        real_hash = User.query.one().password_hash

        with patch("plantgenius.utils.passwords.bcrypt.checkpw", wraps=bcrypt.checkpw) as checkpw:
            with pytest.raises(InvalidCredentials):
                auth_service.sign_in("ghost@x.com", "secret1")

        checked = checkpw.call_args[0][1].decode("utf-8")
        assert _cost(checked) == _cost(real_hash) == auth_service.bcrypt_rounds

    def test_dummy_hash_follows_rounds(self):
        assert _cost(dummy_hash(4)) == 4
        assert _cost(dummy_hash(10)) == 10
        assert dummy_hash(10) is dummy_hash(10)

    def test_user_without_password_cannot_sign_in(self, app_ctx, auth_service):
        user_repository.create_user("g@x.com", None, "G", auth_provider="google")
        with pytest.raises(InvalidCredentials):
            auth_service.sign_in("g@x.com", "anything")

    def test_legacy_werkzeug_hash_is_upgraded(self, app_ctx, auth_service):
        user = user_repository.create_user("old@x.com", generate_password_hash("secret1"))
        assert not user.password_hash.startswith("$2")

        auth_service.sign_in("old@x.com", "secret1")

        refreshed = db.session.get(User, user.id)
        assert refreshed.password_hash.startswith("$2")
        auth_service.sign_in("old@x.com", "secret1")

    def test_each_signin_yields_a_valid_token(self, app_ctx, auth_service):
        user, first = auth_service.sign_up("a@x.com", "secret1")
        _, second = auth_service.sign_in("a@x.com", "secret1")
        for token in (first, second):
            assert auth_service.token_service.verify(token) == {"userId": user["id"], "email": "a@x.com"}


class TestPasswordReset:
    def test_same_response_for_known_and_unknown_email(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")

        assert auth_service.request_password_reset("a@x.com") == RESET_REQUESTED_MESSAGE
        assert auth_service.request_password_reset("ghost@x.com") == RESET_REQUESTED_MESSAGE
        assert len(mailer.sent) == 1
        assert mailer.sent[0][0] == "a@x.com"

    def test_only_the_hash_is_stored(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")
        auth_service.request_password_reset("a@x.com")

        raw = _raw_token(mailer)
        record = PasswordResetToken.query.one()
        assert record.token_hash != raw
        assert len(record.token_hash) == 64
        assert record.expires_at - record.created_at == datetime.timedelta(hours=1)

    def test_confirm_sets_new_password_once(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")
        auth_service.request_password_reset("a@x.com")
        raw = _raw_token(mailer)

        auth_service.confirm_password_reset(raw, "new-secret")

        auth_service.sign_in("a@x.com", "new-secret")
        with pytest.raises(InvalidCredentials):
            auth_service.sign_in("a@x.com", "secret1")
        assert PasswordResetToken.query.count() == 0

        with pytest.raises(InvalidOrExpiredToken):
            auth_service.confirm_password_reset(raw, "third-secret")

    def test_expired_token_is_rejected(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")
        auth_service.request_password_reset("a@x.com")
        raw = _raw_token(mailer)

        record = PasswordResetToken.query.one()
        record.expires_at = utcnow() - datetime.timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(InvalidOrExpiredToken):
            auth_service.confirm_password_reset(raw, "new-secret")
        auth_service.sign_in("a@x.com", "secret1")

    def test_new_password_invalidates_other_outstanding_tokens(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")
        auth_service.request_password_reset("a@x.com")
        older = _raw_token(mailer)
        auth_service.request_password_reset("a@x.com")
        newer = _raw_token(mailer)

        auth_service.confirm_password_reset(newer, "new-secret")

        with pytest.raises(InvalidOrExpiredToken):
            auth_service.confirm_password_reset(older, "other-secret")

    def test_unknown_token(self, app_ctx, auth_service):
        with pytest.raises(InvalidOrExpiredToken):
            auth_service.confirm_password_reset("deadbeef", "new-secret")


class TestWelcomeEmail:
    def test_sent_after_signup(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1", "Ada")
        assert mailer.welcomed == [("a@x.com", "Ada")]

    def test_not_sent_for_rejected_signup(self, app_ctx, auth_service, mailer):
        auth_service.sign_up("a@x.com", "secret1")
        with pytest.raises(DuplicateEmail):
            auth_service.sign_up("a@x.com", "secret1")
        assert len(mailer.welcomed) == 1

    def test_mail_outage_does_not_fail_signup(self, app_ctx, auth_service, mailer):
        mailer.send_welcome = MagicMock(side_effect=requests.ConnectionError("smtp down"))

        user, token = auth_service.sign_up("a@x.com", "secret1")

        assert token
        assert User.query.filter_by(id=user["id"]).count() == 1
