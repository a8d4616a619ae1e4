import hmac
import logging

from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.monthly_statement import MonthlyStatement
from models.profile import ROLE_ADMIN
from security.rbac import require_roles
from services import statements
from utils.audit import log_event

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__)


@payments_bp.post("/api/paddle/create-checkout")
@require_roles(ROLE_ADMIN)
def create_checkout():
    data = request.get_json(silent=True) or {}
    statement_id = data.get("statementId")
    if not statement_id:
        return jsonify(error="statementId required"), 400

    try:
        statement = db.session.get(MonthlyStatement, int(statement_id))
    except (TypeError, ValueError):
        statement = None
    if not statement or not statement.field or statement.field.owner_id != g.user.id:
        return jsonify(error="Statement not found"), 404

    try:
        tx = statements.begin_checkout(statement)
    except statements.StatementError as exc:
        if exc.status_code >= 500:
            logger.error("Paddle create-checkout error: %s", exc.message)
        return jsonify(error=exc.message), exc.status_code

    log_event("STATEMENT_CHECKOUT_CREATED", user_id=g.user.id, entity="statement", entity_id=statement.id,
              metadata={"transaction_id": tx["transaction_id"]})
    return jsonify(checkoutUrl=tx["checkout_url"], transactionId=tx["transaction_id"]), 200


@payments_bp.post("/functions/v1/handle-overdue")
def handle_overdue():
    """Nightly sweep entry point for the platform scheduler."""
    secret = current_app.config.get("CRON_SECRET")
    auth = request.headers.get("Authorization", "")
    if not secret or not hmac.compare_digest(auth, f"Bearer {secret}"):
        return jsonify(error="Unauthorized"), 401

    overdue_ids = statements.mark_overdue_statements()
    return jsonify(success=True, overdue=overdue_ids), 200
