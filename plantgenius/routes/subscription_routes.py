from flask import Blueprint, current_app

from ..errors import ValidationError
from ..utils.response import api_response
from ..utils.security import validate_payment_reference, validate_user_id
from .auth_routes import _json_body, ensure_owner, token_required

subscription_bp = Blueprint("subscriptions", __name__)


def _entitlements():
    return current_app.extensions["entitlement_service"]


@subscription_bp.route("/active/<user_id>", methods=["GET"])
@token_required
def active_subscription(current_user, user_id):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    return api_response({"subscription": _entitlements().get_active_subscription(user_id)})


@subscription_bp.route("", methods=["POST"])
@token_required
def create_subscription(current_user):
    """Activate a plan for the caller from a payment reference.

    Status and dates in the body are ignored; only a payment the gateway
    confirms can create a subscription.
    """
    data = _json_body()
    reference = data.get("paymentReference") or data.get("reference")
    validate_payment_reference(reference)

    plan_type = data.get("planType")
    billing_cycle = data.get("billingCycle") or "monthly"
    if not plan_type:
        raise ValidationError("planType is required", field="planType")

    subscription = _entitlements().verify_and_activate_subscription(
        current_user.id, reference, plan_type, billing_cycle
    )
    return api_response(subscription)


@subscription_bp.route("/<user_id>/cancel", methods=["POST"])
@token_required
def cancel_subscription(current_user, user_id):
    validate_user_id(user_id)
    ensure_owner(current_user, user_id)
    return api_response(_entitlements().cancel_subscription(user_id))
