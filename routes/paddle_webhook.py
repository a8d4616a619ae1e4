import json
import logging

from flask import Blueprint, request, jsonify, current_app

from security.webhook_signature import is_valid_paddle_signature
from services.statements import apply_paddle_event

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__, url_prefix="/api/paddle")


@webhook_bp.post("/webhook")
def paddle_webhook():
    # signature covers the exact bytes Paddle sent
    payload = request.get_data(cache=False)
    sig_header = request.headers.get("Paddle-Signature")

    valid = is_valid_paddle_signature(
        payload,
        sig_header,
        current_app.config.get("PADDLE_WEBHOOK_SECRET"),
        max_age_seconds=current_app.config.get("PADDLE_WEBHOOK_MAX_AGE_SECONDS", 0),
    )
    if not valid:
        return jsonify(error="Invalid webhook signature"), 401

    try:
        event = json.loads(payload)
    except ValueError:
        return jsonify(error="Invalid JSON payload"), 400
    if not isinstance(event, dict):
        return jsonify(error="Invalid JSON payload"), 400

    data = event.get("data")
    logger.info("Paddle webhook: %s %s", event.get("event_type"), data.get("id") if isinstance(data, dict) else None)

    outcome = apply_paddle_event(event)
    return jsonify(ok=True, result=outcome), 200
