import logging

from flask import Blueprint, jsonify

from models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    try:
        db.session.execute(db.text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        return jsonify(status="degraded", database=False), 503
    return jsonify(status="ok", database=True), 200
