import hashlib
import hmac
from unittest.mock import MagicMock, patch

import pytest
import requests

from plantgenius.errors import PaymentVerifierUnavailable
from plantgenius.services.payment_verifier import PaystackVerifier, verify_webhook_signature

REFERENCE = "PAY_1700000000_abc"


def _response(status_code=200, body=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    if json_error:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body
    return resp


def _paystack_body(status="success", reference=REFERENCE, amount=49900):
    return {
        "status": True,
        "message": "Verification successful",
        "data": {
            "status": status,
            "reference": reference,
            "amount": amount,
            "currency": "NGN",
            "paid_at": "2025-01-01T10:00:00.000Z",
            "channel": "card",
            "customer": {"email": "a@x.com"},
        },
    }


@pytest.fixture
def verifier():
    return PaystackVerifier("sk_test_secret", "https://api.paystack.co/", timeout=3)


class TestVerify:
    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_success(self, mock_get, verifier):
        mock_get.return_value = _response(body=_paystack_body())

        result = verifier.verify(REFERENCE)

        assert result.success is True
        assert result.amount == 49900
        assert result.customer_email == "a@x.com"
        assert result.to_dict() == {
            "success": True,
            "reference": REFERENCE,
            "amount": 49900,
            "currency": "NGN",
            "paidAt": "2025-01-01T10:00:00.000Z",
            "channel": "card",
        }
        url = mock_get.call_args[0][0]
        assert url == f"https://api.paystack.co/transaction/verify/{REFERENCE}"
        assert mock_get.call_args[1]["headers"] == {"Authorization": "Bearer sk_test_secret"}
        assert mock_get.call_args[1]["timeout"] == 3

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_reference_is_path_escaped(self, mock_get, verifier):
        mock_get.return_value = _response(body=_paystack_body(reference="../../x"))
        verifier.verify("../../x")
        assert mock_get.call_args[0][0].endswith("/transaction/verify/..%2F..%2Fx")

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_abandoned_transaction_is_not_success(self, mock_get, verifier):
        mock_get.return_value = _response(body=_paystack_body(status="abandoned"))
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_unknown_reference(self, mock_get, verifier):
        mock_get.return_value = _response(404, {"status": False, "message": "Transaction reference not found"})
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_non_json_body_is_not_success(self, mock_get, verifier):
        mock_get.return_value = _response(json_error=True)
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_missing_data_is_not_success(self, mock_get, verifier):
        mock_get.return_value = _response(body={"status": True, "data": None})
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_mismatched_reference_is_not_success(self, mock_get, verifier):
        mock_get.return_value = _response(body=_paystack_body(reference="PAY_someone_else"))
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_bad_amount_is_not_success(self, mock_get, verifier):
        mock_get.return_value = _response(body=_paystack_body(amount="lots"))
        assert verifier.verify(REFERENCE).success is False

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_timeout_raises_unavailable(self, mock_get, verifier):
        mock_get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(PaymentVerifierUnavailable) as exc:
            verifier.verify(REFERENCE)
        assert exc.value.retryable is True
        assert exc.value.status_code == 502

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_connection_error_raises_unavailable(self, mock_get, verifier):
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(PaymentVerifierUnavailable):
            verifier.verify(REFERENCE)

    @patch("plantgenius.services.payment_verifier.requests.get")
    def test_gateway_5xx_raises_unavailable(self, mock_get, verifier):
        mock_get.return_value = _response(503, {"status": True, "data": {"status": "success"}})
        with pytest.raises(PaymentVerifierUnavailable):
            verifier.verify(REFERENCE)


class TestWebhookSignature:
    def test_valid_signature(self):
        body = b'{"event":"charge.success"}'
        signature = hmac.new(b"sk_test_secret", body, hashlib.sha512).hexdigest()
        assert verify_webhook_signature(body, signature, "sk_test_secret") is True
        assert verify_webhook_signature(body.decode(), signature, "sk_test_secret") is True

    def test_invalid_signature(self):
        body = b'{"event":"charge.success"}'
        signature = hmac.new(b"other", body, hashlib.sha512).hexdigest()
        assert verify_webhook_signature(body, signature, "sk_test_secret") is False

    def test_missing_signature_or_secret(self):
        assert verify_webhook_signature(b"{}", None, "sk_test_secret") is False
        assert verify_webhook_signature(b"{}", "abc", None) is False
