from flask import Blueprint, current_app

from ..errors import PaymentVerificationFailed
from ..utils.response import api_response
from ..utils.security import validate_payment_reference
from .auth_routes import _json_body, token_required

payment_bp = Blueprint("payments", __name__)


@payment_bp.route('/verify', methods=['POST'])
@token_required
def verify_payment(current_user):
    reference = _json_body().get('reference')
    validate_payment_reference(reference)

    result = current_app.extensions["payment_verifier"].verify(reference)
    if not result.success:
        raise PaymentVerificationFailed(reference=reference)
    return api_response(result.to_dict())
