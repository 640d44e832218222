import uuid
from ..extensions import db
from ..utils.dates import utcnow


AUTH_PROVIDERS = ("password", "google", "apple")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(254), unique=True, nullable=False, index=True)
    # Null for accounts created through Google / Apple sign-in
    password_hash = db.Column(db.String(200), nullable=True)

    full_name = db.Column(db.String(100), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    auth_provider = db.Column(db.String(20), default="password", nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    reset_tokens = db.relationship("PasswordResetToken", backref="user", lazy=True)

    def __repr__(self):
        return f"<User {self.email}>"


class PasswordResetToken(db.Model):
    __tablename__ = "password_resets"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    # sha256 of the raw token; the raw value only ever travels in the email link
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f"<PasswordResetToken user={self.user_id} expires={self.expires_at}>"
