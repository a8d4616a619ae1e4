from datetime import datetime
from models.db import db


class AuditLog(db.Model):
    """Append-only trail of security and billing events (logins, bookings, statement changes)."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)  # null for system jobs
    action = db.Column(db.String(80), nullable=False, index=True)  # BOOKING_CREATE, STATEMENT_OVERDUE, ...
    entity = db.Column(db.String(40), nullable=True)  # booking, field, statement
    entity_id = db.Column(db.String(40), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
