from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..utils.dates import isoformat, utcnow
from ..utils.response import api_response

core_bp = Blueprint("core", __name__)


@core_bp.route("/health")
def health():
    health = {
        "status": "ok",
        "timestamp": isoformat(utcnow()),
        "environment": "testing" if current_app.testing else current_app.config.get("ENV_NAME", "production"),
    }
    try:
        db.session.execute(text("SELECT 1"))
        health["database"] = "connected"
    except SQLAlchemyError:
        db.session.rollback()
        health["database"] = "disconnected"
        health["status"] = "degraded"

    return api_response(health, 200 if health["status"] == "ok" else 503)
