from datetime import datetime
from models.db import db

DEFAULT_NIGHT_FROM_HOUR = 18


class Field(db.Model):
    __tablename__ = "fields"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(160), nullable=True)
    sport = db.Column(db.String(40), nullable=True)
    description = db.Column(db.Text, nullable=True)

    price_per_hour = db.Column(db.Integer, nullable=False, default=0)  # day tariff, local currency
    price_night = db.Column(db.Integer, nullable=True)
    night_from_hour = db.Column(db.Integer, nullable=False, default=DEFAULT_NIGHT_FROM_HOUR)
    hours = db.Column(db.JSON, nullable=True)  # ["08:00", "09:00", ...]

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    active = db.Column(db.Boolean, default=True, nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)
    owner_email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    images = db.relationship(
        "FieldImage",
        backref="field",
        cascade="all, delete-orphan",
        order_by=lambda: [FieldImage.is_main.desc(), FieldImage.id],
    )

    def price_for_hour(self, hour: str) -> int:
        """Night tariff applies from night_from_hour when the field has one."""
        if self.price_night is not None and int(hour.split(":")[0]) >= self.night_from_hour:
            return self.price_night
        return self.price_per_hour


class FieldImage(db.Model):
    __tablename__ = "field_images"

    id = db.Column(db.Integer, primary_key=True)
    field_id = db.Column(db.Integer, db.ForeignKey("fields.id"), nullable=False, index=True)
    url = db.Column(db.String(500), nullable=False)
    is_main = db.Column(db.Boolean, default=False, nullable=False)
