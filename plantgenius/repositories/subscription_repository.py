import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicatePaymentReference
from ..models.subscription import Subscription
from ..models.user import User
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)


def get_active_subscription(user_id: str, now=None) -> Optional[Subscription]:
    """Latest subscription that is neither cancelled nor past its end date."""
    return Subscription.query.filter(
        Subscription.user_id == user_id,
        Subscription.status == 'active',
        Subscription.end_date > (now or utcnow()),
    ).order_by(Subscription.end_date.desc()).first()


def get_by_payment_reference(reference: str) -> Optional[Subscription]:
    return Subscription.query.filter_by(payment_reference=reference).first()


def user_lock_statement(user_id: str):
    """SELECT .. FOR UPDATE on the user row; a no-op lock on SQLite's single writer."""
    return select(User.id).where(User.id == user_id).with_for_update()


def activate_subscription(user_id: str, plan_type: str, billing_cycle: str, start_date, end_date,
                          payment_reference: Optional[str], amount: int = 0) -> Subscription:
    """Replace the user's active subscription with a new one in a single commit.

    The unique index on payment_reference rejects a second activation for the
    same payment even when two requests race past the application-level check.
    """
    now = utcnow()
    # Concurrent activations for one user queue here, so only one row stays active
    db.session.execute(user_lock_statement(user_id))
    Subscription.query.filter_by(user_id=user_id, status='active').update(
        {"status": "expired", "updated_at": now}, synchronize_session=False
    )

    sub = Subscription(
        user_id=user_id,
        plan_type=plan_type,
        billing_cycle=billing_cycle,
        status='active',
        start_date=start_date,
        end_date=end_date,
        payment_reference=payment_reference,
        amount=amount,
        created_at=now,
        updated_at=now,
    )
    db.session.add(sub)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Payment reference %s already activated a subscription", payment_reference)
        raise DuplicatePaymentReference(payment_reference)
    return sub


def cancel_active_subscription(user_id: str) -> Optional[Subscription]:
    sub = get_active_subscription(user_id)
    if not sub:
        return None
    sub.status = 'cancelled'
    sub.updated_at = utcnow()
    db.session.commit()
    return sub


def expire_past_due(now=None) -> int:
    now = now or utcnow()
    updated = Subscription.query.filter(
        Subscription.status == 'active',
        Subscription.end_date <= now,
    ).update({"status": "expired", "updated_at": now}, synchronize_session=False)
    db.session.commit()
    return updated
