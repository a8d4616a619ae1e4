"""
Monthly commission statement lifecycle.

    pending -> processing -> paid
    pending -> processing -> failed
    pending -> overdue            (nightly sweep, field deactivated)

Transitions are driven by checkout creation, Paddle webhooks, the nightly
sweep and manual admin confirmation.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from models import db
from models.booking import Booking, STATUS_ACTIVE
from models.field import Field
from models.monthly_statement import (
    MonthlyStatement,
    STATUS_FAILED,
    STATUS_OVERDUE,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_PROCESSING,
)
from utils import paddle
from utils.audit import log_event
from utils.dates import month_bounds, next_month

logger = logging.getLogger(__name__)

EVENT_COMPLETED = "transaction.completed"
EVENT_PAYMENT_FAILED = "transaction.payment_failed"


class StatementError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ---------- nightly sweep ----------

def is_overdue(statement: MonthlyStatement, now: datetime, grace_days: int) -> bool:
    """Strictly more than grace_days past due; exactly grace_days is still fine."""
    return statement.status == STATUS_PENDING and (now - statement.due_date) > timedelta(days=grace_days)


def mark_overdue_statements(now: datetime = None, grace_days: int = None) -> list:
    """Flag late pending statements as overdue and deactivate their fields. Returns statement ids."""
    now = now or datetime.utcnow()
    if grace_days is None:
        grace_days = current_app.config.get("OVERDUE_GRACE_DAYS", 5)

    pending = MonthlyStatement.query.filter_by(status=STATUS_PENDING).all()
    overdue = [s for s in pending if is_overdue(s, now, grace_days)]

    for s in overdue:
        s.status = STATUS_OVERDUE
        field = db.session.get(Field, s.field_id)
        if field:
            field.active = False
    db.session.commit()

    for s in overdue:
        log_event("STATEMENT_OVERDUE", entity="statement", entity_id=s.id,
                  metadata={"field_id": s.field_id, "due_date": s.due_date.isoformat()})

    logger.info("Overdue sweep: %d of %d pending statements overdue", len(overdue), len(pending))
    return [s.id for s in overdue]


# ---------- statement generation ----------

def commission_per_booking() -> Decimal:
    return Decimal(str(current_app.config.get("COMMISSION_USD", "1.00")))


def due_date_for(year: int, month: int, due_day: int = None) -> datetime:
    """Statements for a month fall due on due_day of the following month, 00:00 UTC."""
    if due_day is None:
        due_day = current_app.config.get("STATEMENT_DUE_DAY", 10)
    ny, nm = next_month(year, month)
    last = month_bounds(ny, nm)[1].day
    return datetime(ny, nm, max(1, min(due_day, last)))


def generate_statements(year: int, month: int) -> list:
    """
    One pending statement per field with active bookings in the month.

    Re-running refreshes pending statements and leaves the rest untouched.
    """
    first, last = month_bounds(year, month)
    counts = (
        db.session.query(Booking.field_id, func.count(Booking.id))
        .filter(Booking.status == STATUS_ACTIVE, Booking.date >= first, Booking.date <= last)
        .group_by(Booking.field_id)
        .all()
    )

    rate = commission_per_booking()
    due = due_date_for(year, month)
    touched = []
    for field_id, count in counts:
        amount = (rate * count).quantize(Decimal("0.01"))
        st = MonthlyStatement.query.filter_by(field_id=field_id, month=month, year=year).first()
        if st is None:
            st = MonthlyStatement(field_id=field_id, month=month, year=year, status=STATUS_PENDING)
            db.session.add(st)
        elif st.status != STATUS_PENDING:
            continue
        st.reservations_count = count
        st.amount_due = amount
        st.due_date = due
        touched.append(st)
    db.session.commit()

    logger.info("Generated %d statements for %04d-%02d", len(touched), year, month)
    return touched


# ---------- payment transitions ----------

def begin_checkout(statement: MonthlyStatement) -> dict:
    """Create the Paddle transaction and move the statement to processing."""
    if statement.status == STATUS_PAID:
        raise StatementError("Statement already paid")

    field = statement.field
    app_url = current_app.config.get("APP_URL", "https://golplay.app").rstrip("/")
    try:
        tx = paddle.create_transaction(
            statement_id=statement.id,
            field_id=statement.field_id,
            field_name=field.name if field else "Cancha",
            amount=statement.amount_due,
            owner_email=field.owner_email if field else "",
            month=statement.month,
            year=statement.year,
            success_url=f"{app_url}/admin/payments?paid={statement.id}",
        )
    except paddle.PaddleError as exc:
        raise StatementError(str(exc), status_code=500) from exc

    statement.status = STATUS_PROCESSING
    statement.transaction_id = tx["transaction_id"]
    db.session.commit()
    return tx


def mark_paid(statement: MonthlyStatement, transaction_id: str = None, payment_method: str = None,
              reactivate_field: bool = False) -> MonthlyStatement:
    statement.status = STATUS_PAID
    statement.paid_at = datetime.utcnow()
    if transaction_id:
        statement.transaction_id = transaction_id
    if payment_method:
        statement.payment_method = payment_method
    if reactivate_field and statement.field is not None:
        still_overdue = (
            MonthlyStatement.query
            .filter(MonthlyStatement.field_id == statement.field_id,
                    MonthlyStatement.status == STATUS_OVERDUE,
                    MonthlyStatement.id != statement.id)
            .first()
        )
        if still_overdue is None:
            statement.field.active = True
    db.session.commit()
    return statement


def mark_failed(statement: MonthlyStatement) -> MonthlyStatement:
    statement.status = STATUS_FAILED
    db.session.commit()
    return statement


def _payment_method(data: dict) -> str:
    payments = data.get("payments")
    if isinstance(payments, list) and payments and isinstance(payments[0], dict):
        details = payments[0].get("method_details")
        if isinstance(details, dict) and details.get("type"):
            return details["type"]
    return "card"


def apply_paddle_event(event: dict) -> str:
    """Apply a verified Paddle notification. Returns a short outcome label."""
    event_type = event.get("event_type")
    data = event.get("data")
    custom = data.get("custom_data") if isinstance(data, dict) else None
    statement_id = custom.get("statement_id") if isinstance(custom, dict) else None
    if not statement_id:
        return "ignored"

    try:
        statement = db.session.get(MonthlyStatement, int(statement_id))
    except (TypeError, ValueError):
        statement = None
    if statement is None:
        logger.warning("Paddle %s for unknown statement %r", event_type, statement_id)
        return "unknown_statement"

    if event_type not in (EVENT_COMPLETED, EVENT_PAYMENT_FAILED):
        return "ignored"

    if statement.status == STATUS_PAID:
        return "already_paid"

    transaction_id = data.get("id") if isinstance(data.get("id"), str) else None
    if event_type == EVENT_COMPLETED:
        mark_paid(statement, transaction_id=transaction_id, payment_method=_payment_method(data))
        log_event("STATEMENT_PAID", entity="statement", entity_id=statement.id,
                  metadata={"transaction_id": statement.transaction_id, "via": "webhook"})
        logger.info("Statement %s paid (%s)", statement.id, statement.transaction_id)
        return "paid"

    mark_failed(statement)
    log_event("STATEMENT_PAYMENT_FAILED", entity="statement", entity_id=statement.id,
              metadata={"transaction_id": transaction_id})
    logger.info("Statement %s payment failed", statement.id)
    return "failed"
