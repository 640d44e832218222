import datetime
import logging
from typing import Optional

from ..errors import (
    DuplicatePaymentReference,
    NotFoundError,
    PaymentVerificationFailed,
    ValidationError,
)
from ..models.subscription import BILLING_CYCLES, PLAN_TYPES
from ..repositories import scan_repository, subscription_repository, user_repository
from ..utils.dates import today_str, utcnow

logger = logging.getLogger(__name__)

CYCLE_DAYS = {"monthly": 30, "yearly": 365}


class EntitlementService:
    """Decides who may scan, and turns verified payments into subscriptions."""

    def __init__(self, config, verifier, clock=utcnow):
        self.verifier = verifier
        self.clock = clock
        self.free_daily_limit = config.get("FREE_DAILY_LIMIT", 5)
        self.plan_prices = config.get("PLAN_PRICES") or {}

    # ----------------- SCANS -----------------

    def _has_unlimited_scans(self, user_id: str, now) -> bool:
        sub = subscription_repository.get_active_subscription(user_id, now)
        return sub is not None and sub.grants_access(now)

    def can_scan(self, user_id: str, scan_date: Optional[str] = None) -> bool:
        now = self.clock()
        if self._has_unlimited_scans(user_id, now):
            return True
        count = scan_repository.get_scan_count(user_id, scan_date or today_str(now))
        return count < self.free_daily_limit

    def scan_status(self, user_id: str, scan_date: Optional[str] = None) -> dict:
        now = self.clock()
        scan_date = scan_date or today_str(now)
        unlimited = self._has_unlimited_scans(user_id, now)
        count = scan_repository.get_scan_count(user_id, scan_date)
        return {
            "scanDate": scan_date,
            "scanCount": count,
            "limit": None if unlimited else self.free_daily_limit,
            "remaining": None if unlimited else max(0, self.free_daily_limit - count),
            "unlimited": unlimited,
            "canScan": unlimited or count < self.free_daily_limit,
        }

    def get_scan(self, user_id: str, scan_date: str) -> Optional[dict]:
        scan = scan_repository.get_scan(user_id, scan_date)
        return scan.to_dict() if scan else None

    def increment_scan(self, user_id: str, scan_date: Optional[str] = None) -> dict:
        # Counted before identification runs; a failed identification still uses the scan
        scan = scan_repository.increment_scan(user_id, scan_date or today_str(self.clock()))
        logger.info("Scan %s recorded for user %s on %s", scan["scanCount"], user_id, scan["scanDate"])
        return scan

    # ----------------- SUBSCRIPTIONS -----------------

    def get_active_subscription(self, user_id: str) -> Optional[dict]:
        now = self.clock()
        sub = subscription_repository.get_active_subscription(user_id, now)
        if not sub or not sub.grants_access(now):
            return None
        return sub.to_dict(now)

    def _expected_price(self, plan_type: str, billing_cycle: str) -> int:
        return int((self.plan_prices.get(plan_type) or {}).get(billing_cycle) or 0)

    def verify_and_activate_subscription(self, user_id: str, payment_reference: str,
                                         plan_type: str, billing_cycle: str,
                                         payer_email: Optional[str] = None) -> dict:
        """Activate a subscription only after the gateway confirms the payment.

        Fails closed: any verifier error propagates and nothing is written.
        With payer_email set, the customer on the verified transaction must match it.
        """
        if plan_type not in PLAN_TYPES:
            raise ValidationError("Invalid plan type", field="planType")
        if billing_cycle not in BILLING_CYCLES:
            raise ValidationError("Invalid billing cycle", field="billingCycle")

        if subscription_repository.get_by_payment_reference(payment_reference):
            raise DuplicatePaymentReference(payment_reference)

        result = self.verifier.verify(payment_reference)
        if not result.success:
            logger.warning("Payment %s for user %s was not successful", payment_reference, user_id)
            raise PaymentVerificationFailed(reference=payment_reference)

        if payer_email and result.customer_email and result.customer_email.lower() != payer_email.lower():
            logger.warning("Payment %s was made by a different customer than %s", payment_reference, payer_email)
            raise PaymentVerificationFailed("Payment customer does not match", reference=payment_reference)

        expected = self._expected_price(plan_type, billing_cycle)
        if result.amount < expected:
            logger.warning(
                "Payment %s amount %s is below the %s/%s price %s",
                payment_reference, result.amount, plan_type, billing_cycle, expected,
            )
            raise PaymentVerificationFailed("Payment amount does not match the selected plan",
                                            reference=payment_reference)

        start_date = self.clock()
        end_date = start_date + datetime.timedelta(days=CYCLE_DAYS[billing_cycle])
        sub = subscription_repository.activate_subscription(
            user_id, plan_type, billing_cycle, start_date, end_date,
            payment_reference, amount=result.amount,
        )
        logger.info("Subscription %s (%s/%s) activated for user %s", sub.id, plan_type, billing_cycle, user_id)
        return sub.to_dict(start_date)

    def cancel_subscription(self, user_id: str) -> dict:
        sub = subscription_repository.cancel_active_subscription(user_id)
        if not sub:
            raise NotFoundError("No active subscription")
        logger.info("Subscription %s cancelled for user %s", sub.id, user_id)
        return sub.to_dict(self.clock())

    def expire_subscriptions(self, now=None) -> int:
        count = subscription_repository.expire_past_due(now or self.clock())
        logger.info("Marked %s subscriptions as expired", count)
        return count

    # ----------------- WEBHOOKS -----------------

    def activate_from_charge(self, data: dict) -> Optional[dict]:
        """Handle a signed charge.success event.

        The event is only a trigger: the payment is still verified with the
        gateway before anything is granted. Redelivery of an already applied
        reference is a no-op.
        """
        reference = data.get("reference")
        customer = data.get("customer") or {}
        email = customer.get("email") if isinstance(customer, dict) else None
        if not reference or not email:
            raise ValidationError("Webhook event is missing reference or customer email")

        user = user_repository.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found for payment")

        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        plan_type = metadata.get("planType") or "premium"
        billing_cycle = metadata.get("billingCycle") or "monthly"

        try:
            return self.verify_and_activate_subscription(
                user.id, reference, plan_type, billing_cycle, payer_email=user.email
            )
        except DuplicatePaymentReference:
            logger.info("Payment %s already applied, ignoring redelivery", reference)
            return None
