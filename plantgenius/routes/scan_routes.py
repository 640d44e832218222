from flask import Blueprint, current_app

from ..errors import ValidationError
from ..utils.dates import is_scan_date
from ..utils.response import api_response
from ..utils.security import validate_user_id
from .auth_routes import ensure_owner, token_required

scan_bp = Blueprint("scans", __name__)


def _entitlements():
    return current_app.extensions["entitlement_service"]


def _check_scan_path(current_user, user_id, date):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    if not is_scan_date(date):
        raise ValidationError("Invalid date, expected YYYY-MM-DD", field="date")


@scan_bp.route('/<user_id>/status', methods=['GET'])
@token_required
def scan_status(current_user, user_id):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    return api_response(_entitlements().scan_status(user_id))


@scan_bp.route('/<user_id>/<date>', methods=['GET'])
@token_required
def get_scan(current_user, user_id, date):
    _check_scan_path(current_user, user_id, date)
    return api_response(_entitlements().get_scan(user_id, date))


@scan_bp.route('/<user_id>/<date>/increment', methods=['POST'])
@token_required
def increment_scan(current_user, user_id, date):
    _check_scan_path(current_user, user_id, date)
    return api_response(_entitlements().increment_scan(user_id, date))
