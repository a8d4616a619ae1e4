from datetime import datetime
from models.db import db

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    field_id = db.Column(db.Integer, db.ForeignKey("fields.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    hour = db.Column(db.String(5), nullable=False)  # "HH:MM"

    email = db.Column(db.String(255), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(120), nullable=True)
    customer_phone = db.Column(db.String(30), nullable=True)
    price = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    # status values: active, cancelled

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    field = db.relationship("Field")

    __table_args__ = (
        # One active booking per slot; cancelled rows don't hold the slot
        db.Index(
            "uq_bookings_active_slot",
            "field_id", "date", "hour",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
    )

    def starts_at(self) -> datetime:
        h, m = (int(p) for p in self.hour.split(":"))
        return datetime(self.date.year, self.date.month, self.date.day, h, m)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "field_id": self.field_id,
            "date": self.date.isoformat(),
            "hour": self.hour,
            "email": self.email,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "price": self.price,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }
