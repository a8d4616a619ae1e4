from datetime import datetime
from models.db import db

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_PAID = "paid"
STATUS_FAILED = "failed"
STATUS_OVERDUE = "overdue"


class MonthlyStatement(db.Model):
    __tablename__ = "monthly_statements"

    id = db.Column(db.Integer, primary_key=True)
    field_id = db.Column(db.Integer, db.ForeignKey("fields.id"), nullable=False, index=True)

    month = db.Column(db.Integer, nullable=False)  # 1-12
    year = db.Column(db.Integer, nullable=False)
    reservations_count = db.Column(db.Integer, nullable=False, default=0)
    amount_due = db.Column(db.Numeric(10, 2), nullable=False, default=0)  # USD
    currency = db.Column(db.String(10), nullable=False, default="USD")

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    # status values: pending, processing, paid, failed, overdue
    due_date = db.Column(db.DateTime, nullable=False)

    paid_at = db.Column(db.DateTime, nullable=True)
    transaction_id = db.Column(db.String(64), nullable=True, index=True)
    payment_method = db.Column(db.String(40), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    field = db.relationship("Field")

    __table_args__ = (
        db.UniqueConstraint("field_id", "month", "year", name="uq_statement_field_period"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "field_id": self.field_id,
            "field_name": self.field.name if self.field else None,
            "month": self.month,
            "year": self.year,
            "reservations_count": self.reservations_count,
            "amount_due": float(self.amount_due),
            "currency": self.currency,
            "status": self.status,
            "due_date": self.due_date.isoformat(),
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "transaction_id": self.transaction_id,
            "payment_method": self.payment_method,
        }
