import re
import uuid

from ..errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Patterns stripped from free-text profile fields before storage
_SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=\s*[\"'][^\"']*[\"']", re.IGNORECASE)

MAX_NAME_LENGTH = 100
MAX_URL_LENGTH = 500
MIN_REFERENCE_LENGTH = 10
MAX_REFERENCE_LENGTH = 100


def sanitize_input(value):
    """Strip script tags, javascript: URLs and inline event handlers."""
    if not isinstance(value, str):
        return value
    value = _SCRIPT_TAG_RE.sub("", value)
    value = _JS_SCHEME_RE.sub("", value)
    value = _EVENT_HANDLER_RE.sub("", value)
    return value.strip()


def is_valid_email(email) -> bool:
    return isinstance(email, str) and len(email) <= 254 and bool(EMAIL_RE.match(email.strip()))


def validate_password(password, min_length: int) -> None:
    if not isinstance(password, str) or len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters", field="password")


def validate_user_id(user_id) -> None:
    try:
        uuid.UUID(str(user_id))
    except ValueError:
        raise ValidationError("Invalid user ID", field="userId")


def validate_payment_reference(reference) -> None:
    if (not isinstance(reference, str)
            or not MIN_REFERENCE_LENGTH <= len(reference) <= MAX_REFERENCE_LENGTH):
        raise ValidationError("Invalid payment reference", field="reference")


def validate_profile_fields(data: dict) -> dict:
    """Map the PATCH body onto storable profile fields."""
    fields = {}
    if "fullName" in data:
        full_name = sanitize_input(data["fullName"])
        if full_name is not None and not isinstance(full_name, str):
            raise ValidationError("fullName must be a string", field="fullName")
        if full_name and len(full_name) > MAX_NAME_LENGTH:
            raise ValidationError("Name too long", field="fullName")
        fields["full_name"] = full_name or None
    if "avatarUrl" in data:
        avatar_url = sanitize_input(data["avatarUrl"])
        if avatar_url is not None and not isinstance(avatar_url, str):
            raise ValidationError("avatarUrl must be a string", field="avatarUrl")
        if avatar_url and len(avatar_url) > MAX_URL_LENGTH:
            raise ValidationError("Avatar URL too long", field="avatarUrl")
        fields["avatar_url"] = avatar_url or None
    return fields
