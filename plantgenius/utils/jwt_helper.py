import datetime
import jwt

from ..errors import ExpiredToken, InvalidToken
from .dates import utcnow

ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies stateless HS256 session tokens.

    There is no revocation list: a token stays valid until its exp claim.
    """

    def __init__(self, secret: str, ttl_days: int = 30):
        if not secret:
            raise RuntimeError("TokenService requires a signing secret")
        self.secret = secret
        self.ttl = datetime.timedelta(days=ttl_days)

    def issue(self, user_id: str, email: str, now: datetime.datetime | None = None) -> str:
        issued_at = now or utcnow()
        payload = {
            "userId": user_id,
            "email": email,
            "iat": issued_at.replace(tzinfo=datetime.timezone.utc),
            "exp": (issued_at + self.ttl).replace(tzinfo=datetime.timezone.utc),
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredToken()
        except jwt.InvalidTokenError:
            raise InvalidToken()

        user_id = payload.get("userId")
        email = payload.get("email")
        if not user_id or not email:
            raise InvalidToken()
        return {"userId": user_id, "email": email}
