import datetime

import jwt
import pytest

from plantgenius.errors import ExpiredToken, InvalidToken
from plantgenius.utils.jwt_helper import TokenService
from plantgenius.utils.dates import utcnow

SECRET = "test-secret-key-with-enough-length-for-hs256"


@pytest.fixture
def tokens():
    return TokenService(SECRET, ttl_days=30)


def test_issue_then_verify(tokens):
    token = tokens.issue("user-1", "a@x.com")
    assert tokens.verify(token) == {"userId": "user-1", "email": "a@x.com"}


def test_lifetime_is_thirty_days(tokens):
    issued = datetime.datetime(2025, 1, 1, 12, 0, 0)
    token = tokens.issue("user-1", "a@x.com", now=issued)
    claims = jwt.decode(token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
    assert claims["exp"] - claims["iat"] == 30 * 24 * 3600


def test_expired_token(tokens):
    token = tokens.issue("user-1", "a@x.com", now=utcnow() - datetime.timedelta(days=31))
    with pytest.raises(ExpiredToken) as exc:
        tokens.verify(token)
    assert exc.value.status_code == 401
    assert exc.value.message == "Invalid or expired token"


def test_token_signed_with_other_secret(tokens):
    forged = TokenService("another-secret-key-with-enough-length").issue("user-1", "a@x.com")
    with pytest.raises(InvalidToken):
        tokens.verify(forged)


def test_tampered_payload(tokens):
    header, payload, signature = tokens.issue("user-1", "a@x.com").split(".")
    other_payload = tokens.issue("user-2", "b@x.com").split(".")[1]
    with pytest.raises(InvalidToken):
        tokens.verify(".".join([header, other_payload, signature]))


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed(tokens, token):
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_missing_claims_are_rejected(tokens):
    now = datetime.datetime.now(datetime.timezone.utc)
    no_email = jwt.encode(
        {"userId": "user-1", "iat": now, "exp": now + datetime.timedelta(days=1)}, SECRET, algorithm="HS256"
    )
    no_exp = jwt.encode({"userId": "user-1", "email": "a@x.com", "iat": now}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        tokens.verify(no_email)
    with pytest.raises(InvalidToken):
        tokens.verify(no_exp)


def test_requires_secret():
    with pytest.raises(RuntimeError):
        TokenService("")
