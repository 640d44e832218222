# plantgenius/__init__.py

import logging
import time

import click
from flask import Flask, g, request
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config, validate_config
from .extensions import db, cors, init_redis
from .utils.error_handler import register_error_handlers
from .utils.jwt_helper import TokenService
from .utils.rate_limiter import init_rate_limiter
from .routes.auth_routes import auth_bp
from .routes.core_routes import core_bp
from .routes.payment_routes import payment_bp
from .routes.scan_routes import scan_bp
from .routes.subscription_routes import subscription_bp
from .routes.user_routes import user_bp
from .routes.webhook_routes import webhook_bp
from .services.auth_service import AuthService
from .services.email_service import build_mailer
from .services.entitlement_service import EntitlementService
from .services.payment_verifier import PaystackVerifier


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def _register_request_logging(app):
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            "%s %s %s %.1fms", request.method, request.path, response.status_code, duration_ms
        )
        return response


def _register_security_headers(app):
    @app.after_request
    def _security_headers(response):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Cross-Origin-Resource-Policy", "same-site")
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        # ProxyFix has already applied X-Forwarded-Proto
        if request.is_secure:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _register_commands(app):
    @app.cli.command("expire-subscriptions")
    def expire_subscriptions():
        """Mark subscriptions past their end date as expired."""
        count = app.extensions["entitlement_service"].expire_subscriptions()
        click.echo(f"Expired {count} subscription(s)")


def create_app(config_object=Config, payment_verifier=None, mailer=None) -> Flask:
    app = Flask(__name__)

    # Load configuration, refuse to start without the secrets
    app.config.from_object(config_object)
    validate_config(app.config)
    _configure_logging(app)

    # Initialize extensions
    origins = app.config.get("ALLOWED_ORIGINS", "*")
    cors.init_app(app, origins=origins.split(",") if origins != "*" else "*")
    db.init_app(app)
    redis_client = init_redis(app)

    # Fix proxy headers so remote_addr is the real client
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    token_service = TokenService(app.config["SECRET_KEY"], app.config.get("TOKEN_TTL_DAYS", 30))
    verifier = payment_verifier or PaystackVerifier(
        app.config["PAYSTACK_SECRET_KEY"],
        app.config.get("PAYSTACK_BASE_URL", "https://api.paystack.co"),
        timeout=app.config.get("PAYMENT_VERIFY_TIMEOUT", 10),
    )
    app.extensions["token_service"] = token_service
    app.extensions["payment_verifier"] = verifier
    app.extensions["auth_service"] = AuthService(app.config, token_service, mailer or build_mailer(app.config))
    app.extensions["entitlement_service"] = EntitlementService(app.config, verifier)

    _register_request_logging(app)
    _register_security_headers(app)
    init_rate_limiter(app, redis_client)
    register_error_handlers(app)
    _register_commands(app)

    # Register blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(user_bp, url_prefix="/api/users")
    app.register_blueprint(subscription_bp, url_prefix="/api/subscriptions")
    app.register_blueprint(scan_bp, url_prefix="/api/scans")
    app.register_blueprint(payment_bp, url_prefix="/api/payments")
    app.register_blueprint(webhook_bp, url_prefix="/api/webhooks")

    # Create tables (with their unique indexes) if not exists
    with app.app_context():
        from .models.user import User, PasswordResetToken  # noqa: F401
        from .models.subscription import Subscription  # noqa: F401
        from .models.daily_scan import DailyScan  # noqa: F401
        from .models.webhook_events import WebhookEvent  # noqa: F401
        db.create_all()

    return app
