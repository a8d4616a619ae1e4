from datetime import datetime
from models.db import db


class BookingHold(db.Model):
    """Short-lived claim on a slot while a player fills in the booking form."""

    __tablename__ = "booking_holds"

    id = db.Column(db.Integer, primary_key=True)
    field_id = db.Column(db.Integer, db.ForeignKey("fields.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    hour = db.Column(db.String(5), nullable=False)  # "HH:MM"

    # random per-browser token; only its owner may refresh, release or book through it
    session_token = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("field_id", "date", "hour", name="uq_booking_holds_slot"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def blocks(self, session_token, now: datetime) -> bool:
        """True when someone else holds the slot right now."""
        return not self.is_expired(now) and self.session_token != session_token
