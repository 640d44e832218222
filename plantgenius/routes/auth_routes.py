import logging
from functools import wraps

from flask import Blueprint, current_app, g, request

from ..errors import AuthenticationError, AuthorizationError, InvalidToken
from ..repositories.user_repository import get_user_by_id
from ..utils.response import api_response

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _auth_service():
    return current_app.extensions["auth_service"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        token = None
        if auth_header.startswith("Bearer "):
            token = auth_header[len("Bearer "):].strip()

        if not token:
            raise AuthenticationError("Authentication required")

        claims = current_app.extensions["token_service"].verify(token)
        current_user = get_user_by_id(claims["userId"])
        if not current_user:
            # Same answer as a bad signature
            raise InvalidToken()

        g.current_user = current_user
        return f(current_user, *args, **kwargs)

    return decorated


def ensure_owner(current_user, user_id: str) -> None:
    if current_user.id != user_id:
        logger.warning("User %s tried to access resources of %s", current_user.id, user_id)
        raise AuthorizationError()


@auth_bp.route('/signup', methods=['POST'])
def signup():
    data = _json_body()
    user, token = _auth_service().sign_up(
        data.get('email'),
        data.get('password'),
        data.get('fullName'),
    )
    return api_response({"user": user, "token": token})


@auth_bp.route('/signin', methods=['POST'])
def signin():
    data = _json_body()
    user, token = _auth_service().sign_in(data.get('email'), data.get('password'))
    return api_response({"user": user, "token": token})


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = _json_body()
    message = _auth_service().request_password_reset(data.get('email'))
    return api_response({"message": message})


@auth_bp.route('/reset-password-confirm', methods=['POST'])
def reset_password_confirm():
    data = _json_body()
    _auth_service().confirm_password_reset(data.get('token'), data.get('newPassword'))
    return api_response({"message": "Password reset successful"})
