"""Server-to-server payment verification against the Paystack transaction API."""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests

from ..errors import PaymentVerifierUnavailable

logger = logging.getLogger(__name__)


@dataclass
class PaymentVerification:
    success: bool
    reference: str
    amount: int = 0  # kobo
    currency: Optional[str] = None
    paid_at: Optional[str] = None
    channel: Optional[str] = None
    customer_email: Optional[str] = None

    def to_dict(self):
        return {
            "success": self.success,
            "reference": self.reference,
            "amount": self.amount,
            "currency": self.currency,
            "paidAt": self.paid_at,
            "channel": self.channel,
        }


class PaystackVerifier:
    def __init__(self, secret_key: str, base_url: str = "https://api.paystack.co", timeout: int = 10):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def verify(self, reference: str) -> PaymentVerification:
        """Ask Paystack whether the transaction succeeded.

        Anything short of an explicit, well-formed success is reported as a
        failed verification. Network errors, timeouts and 5xx answers raise
        PaymentVerifierUnavailable so the caller can retry; they are never
        treated as success.
        """
        url = f"{self.base_url}/transaction/verify/{quote(reference, safe='')}"
        try:
            resp = requests.get(
                url,
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Paystack verification for %s failed: %s", reference, exc)
            raise PaymentVerifierUnavailable(reference=reference)

        if resp.status_code >= 500:
            logger.error("Paystack returned %s for %s", resp.status_code, reference)
            raise PaymentVerifierUnavailable(reference=reference)

        try:
            body = resp.json()
        except ValueError:
            logger.error("Paystack returned a non-JSON body for %s", reference)
            return PaymentVerification(success=False, reference=reference)

        data = body.get("data") if isinstance(body, dict) else None
        if not resp.ok or not body.get("status") or not isinstance(data, dict):
            logger.warning("Paystack rejected reference %s: %s", reference, body.get("message") if isinstance(body, dict) else None)
            return PaymentVerification(success=False, reference=reference)

        try:
            amount = int(data.get("amount") or 0)
        except (TypeError, ValueError):
            return PaymentVerification(success=False, reference=reference)

        # The gateway must echo the reference we asked about
        if data.get("reference") != reference:
            logger.warning("Paystack answered for %s while verifying %s", data.get("reference"), reference)
            return PaymentVerification(success=False, reference=reference)

        customer = data.get("customer") or {}
        return PaymentVerification(
            success=data.get("status") == "success",
            reference=reference,
            amount=amount,
            currency=data.get("currency"),
            paid_at=data.get("paid_at"),
            channel=data.get("channel"),
            customer_email=customer.get("email") if isinstance(customer, dict) else None,
        )


def verify_webhook_signature(payload_body, signature, secret):
    """
    Verify a Paystack webhook signature (HMAC-SHA512 of the raw body)

    Returns:
        bool: True if signature is valid, False otherwise
    """
    if not signature or not secret:
        return False
    if isinstance(payload_body, str):
        payload_body = payload_body.encode('utf-8')

    expected_signature = hmac.new(
        secret.encode('utf-8'),
        payload_body,
        hashlib.sha512
    ).hexdigest()

    return hmac.compare_digest(expected_signature, signature)
