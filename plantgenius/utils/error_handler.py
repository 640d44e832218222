from flask import request
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException

from ..errors import AppError
from .rate_limiter import RATE_LIMIT_MESSAGE
from .response import error_response


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def app_error(e):
        extra = {}
        if e.retryable:
            extra["retryable"] = True
        return error_response(e.message, e.status_code, **extra)

    @app.errorhandler(RateLimitExceeded)
    def rate_limited(e):
        # X-RateLimit-* and Retry-After are added by the limiter after the request
        app.logger.warning("Rate limit %s exceeded for %s on %s", e.description, request.remote_addr, request.path)
        return error_response(RATE_LIMIT_MESSAGE, 429)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("Bad Request", 400)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("Not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("Method not allowed", 405)

    @app.errorhandler(Exception)
    def server_error(e):
        if isinstance(e, HTTPException):
            return error_response(e.name, e.code or 500)
        app.logger.exception("Unhandled error: %s", e)
        return error_response("Internal server error", 500)
