"""Outbound email. Delivery itself belongs to SMTP2GO; this module only hands messages over."""

import logging

import requests

logger = logging.getLogger(__name__)

SMTP2GO_API_URL = "https://api.smtp2go.com/v3/email/send"


class LoggingMailer:
    """Used when no email provider is configured. Never logs the reset link."""

    def send_password_reset(self, email: str, reset_url: str) -> None:
        logger.warning("Email provider not configured; password reset email for %s not sent", email)

    def send_welcome(self, email: str, full_name=None) -> None:
        logger.info("Email provider not configured; welcome email for %s not sent", email)


class Smtp2GoMailer:
    def __init__(self, api_key: str, sender: str, timeout: int = 10):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def _send(self, email: str, subject: str, text_body: str) -> None:
        payload = {
            "api_key": self.api_key,
            "to": [email],
            "sender": self.sender,
            "subject": subject,
            "text_body": text_body,
        }
        resp = requests.post(SMTP2GO_API_URL, json=payload, timeout=self.timeout)
        resp.raise_for_status()

    def send_password_reset(self, email: str, reset_url: str) -> None:
        text_body = (
            "You requested to reset your password for PlantGenius.\n\n"
            "Open the link below to choose a new password:\n"
            f"{reset_url}\n\n"
            "This link will expire in 1 hour.\n\n"
            "If you didn't request this, please ignore this email."
        )
        self._send(email, "PlantGenius - Password Reset Request", text_body)
        logger.info("Password reset email sent to %s", email)

    def send_welcome(self, email: str, full_name=None) -> None:
        text_body = (
            f"Hi {full_name or 'there'}!\n\n"
            "Welcome to PlantGenius, your personal plant identification and care assistant.\n\n"
            "Start exploring by taking a photo of any plant!\n\n"
            "Best regards,\n"
            "PlantGenius Team"
        )
        self._send(email, "Welcome to PlantGenius!", text_body)
        logger.info("Welcome email sent to %s", email)


def build_mailer(config):
    api_key = config.get("SMTP2GO_API_KEY")
    if not api_key:
        return LoggingMailer()
    return Smtp2GoMailer(api_key, config.get("EMAIL_FROM"))
