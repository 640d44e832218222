from flask import Blueprint, current_app

from ..utils.response import api_response
from ..utils.security import validate_profile_fields, validate_user_id
from .auth_routes import _json_body, ensure_owner, token_required

user_bp = Blueprint("users", __name__)


@user_bp.route('/<user_id>', methods=['GET'])
@token_required
def get_user(current_user, user_id):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    return api_response(current_app.extensions["auth_service"].get_user(user_id))


@user_bp.route('/<user_id>', methods=['PATCH'])
@token_required
def update_user(current_user, user_id):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    fields = validate_profile_fields(_json_body())
    return api_response(current_app.extensions["auth_service"].update_profile(user_id, fields))
