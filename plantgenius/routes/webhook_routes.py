import json
import logging

from flask import Blueprint, request, current_app

from ..services.payment_verifier import verify_webhook_signature
from ..services.webhook_service import process_webhook_event
from ..utils.response import api_response, error_response

logger = logging.getLogger(__name__)

webhook_bp = Blueprint('webhooks', __name__)


@webhook_bp.route('/paystack', methods=['POST'])
def paystack_webhook():
    """
    Paystack webhook endpoint - authenticated by signature, not bearer token
    """
    # Raw body, the signature covers the exact bytes sent
    payload_body = request.get_data()
    signature = request.headers.get('X-Paystack-Signature')

    if not verify_webhook_signature(payload_body, signature, current_app.config.get('PAYSTACK_SECRET_KEY')):
        logger.warning("Rejected webhook with invalid signature")
        return error_response('Invalid signature', 400)

    try:
        event_data = json.loads(payload_body)
    except ValueError:
        return error_response('Invalid JSON', 400)
    if not isinstance(event_data, dict):
        return error_response('Invalid JSON', 400)

    logger.info("Received webhook event: %s", event_data.get('event', 'unknown'))

    success, message = process_webhook_event(event_data, current_app.extensions["entitlement_service"])
    if not success:
        # Non-2xx so the gateway redelivers; the failure is stored on the event row
        return error_response(message, 500)

    return api_response({'success': True, 'message': message})
