import json
import logging

from sqlalchemy.exc import IntegrityError

from ..errors import AppError
from ..extensions import db
from ..models.webhook_events import WebhookEvent
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)


def store_webhook_event(event_data):
    """
    Store webhook event in database

    Paystack events carry no unique id, so the event type plus the transaction
    reference identifies a delivery.

    Returns:
        WebhookEvent: Created record, or None if this delivery was already stored
    """
    event_type = event_data.get('event', 'unknown')
    data = event_data.get('data') if isinstance(event_data.get('data'), dict) else {}
    reference = data.get('reference')
    customer = data.get('customer') if isinstance(data.get('customer'), dict) else {}

    unique_event_id = f"{event_type}:{reference or data.get('id') or utcnow().timestamp()}"

    existing_event = WebhookEvent.query.filter_by(event_id=unique_event_id).first()
    if existing_event and existing_event.processed:
        logger.info("Webhook event %s already processed, skipping", unique_event_id)
        return None
    if existing_event:
        # Earlier delivery failed; try again on the same record
        return existing_event

    webhook_event = WebhookEvent(
        event_id=unique_event_id,
        event_type=event_type,
        reference=reference,
        customer_email=customer.get('email'),
        payload=json.dumps(event_data),
        processed=False,
        created_at=utcnow(),
    )
    db.session.add(webhook_event)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent delivery stored it first
        db.session.rollback()
        return None

    logger.info("Stored webhook event %s", unique_event_id)
    return webhook_event


def _mark_processed(webhook_event, error_message=None):
    webhook_event.processed = error_message is None
    webhook_event.processed_at = utcnow()
    webhook_event.error_message = error_message
    db.session.commit()


def process_webhook_event(event_data, entitlement_service):
    """
    Route a verified webhook event to its handler.

    Returns:
        tuple: (success, message)
    """
    webhook_event = store_webhook_event(event_data)
    if webhook_event is None:
        return True, "Event already processed"

    event_type = event_data.get('event')
    data = event_data.get('data') if isinstance(event_data.get('data'), dict) else {}

    try:
        if event_type == 'charge.success':
            sub = entitlement_service.activate_from_charge(data)
            message = f"Subscription {sub['id']} activated" if sub else "Payment already applied"
        elif event_type == 'charge.failed':
            logger.warning("Payment failed: %s (%s)", data.get('reference'), data.get('gateway_response', 'Unknown'))
            message = "Payment failure recorded"
        elif event_type in ('subscription.create', 'subscription.enable', 'subscription.disable'):
            logger.info("Gateway subscription event %s for %s", event_type, data.get('subscription_code'))
            message = "Acknowledged"
        else:
            logger.info("Unhandled webhook event: %s", event_type)
            message = "Ignored"
    except AppError as exc:
        db.session.rollback()
        _mark_processed(webhook_event, exc.message)
        logger.error("Webhook %s failed: %s", webhook_event.event_id, exc.message)
        return False, exc.message

    _mark_processed(webhook_event)
    return True, message
