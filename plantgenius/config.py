import os
from dotenv import load_dotenv

from .utils.plan_limits import FREE_DAILY_SCANS, PLAN_PRICES

load_dotenv()


REQUIRED_KEYS = ("SECRET_KEY", "SQLALCHEMY_DATABASE_URI", "PAYSTACK_SECRET_KEY")
MIN_BCRYPT_ROUNDS = 10


def _int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"Environment variable {key} must be an integer, got {value!r}")


def validate_config(config) -> None:
    """Fail fast at startup when a required secret is absent."""
    for key in REQUIRED_KEYS:
        if not config.get(key):
            raise RuntimeError(f"Missing required configuration value: {key}")

    min_rounds = 4 if config.get("TESTING") else MIN_BCRYPT_ROUNDS
    if config.get("BCRYPT_ROUNDS", 10) < min_rounds:
        raise RuntimeError(f"BCRYPT_ROUNDS must be at least {min_rounds}")


class Config:
    SECRET_KEY = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///plantgenius.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TOKEN_TTL_DAYS = 30
    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 10)
    MIN_PASSWORD_LENGTH = _int_env("MIN_PASSWORD_LENGTH", 6)
    RESET_TOKEN_TTL_MINUTES = 60
    RESET_URL_BASE = os.getenv("RESET_URL_BASE", "plantsgenius://reset-password")

    FREE_DAILY_LIMIT = _int_env("FREE_DAILY_LIMIT", FREE_DAILY_SCANS)

    PLAN_PRICES = PLAN_PRICES
    PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
    PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
    PAYMENT_VERIFY_TIMEOUT = _int_env("PAYMENT_VERIFY_TIMEOUT", 10)

    SMTP2GO_API_KEY = os.getenv("SMTP2GO_API_KEY")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@plantsgenius.app")

    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*")

    RATE_LIMIT_ENABLED = True
    RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000) // 1000
    RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 100)

    REDIS_URL = os.getenv("REDIS_URL")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    ENV_NAME = os.getenv("APP_ENV", "development")
    PORT = _int_env("PORT", 3000)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    PAYSTACK_SECRET_KEY = "sk_test_secret"
    BCRYPT_ROUNDS = 4
    REDIS_URL = None
    SMTP2GO_API_KEY = None
