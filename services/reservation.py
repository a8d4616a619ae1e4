"""
Booking reservation flow.

Checks a (field, date, hour) slot is offered and free, records the booking and
leaves notification to the caller. Players may hold a slot for a few minutes
while they fill in the form; a live hold blocks everyone but its owner.

The availability check is only a fast path: the partial unique index
``uq_bookings_active_slot`` is what guarantees two concurrent requests can't
both book the same slot.
"""

import logging
from datetime import date as date_cls, datetime, timedelta

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, STATUS_ACTIVE, STATUS_CANCELLED
from models.booking_hold import BookingHold
from models.field import Field
from models.profile import Profile, ROLE_USER
from utils.dates import parse_date, parse_hour

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("email", "field_id", "date", "hour")
SLOT_TAKEN_MESSAGE = "Horario no disponible"


class ReservationError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class SlotUnavailable(ReservationError):
    status_code = 409

    def __init__(self):
        super().__init__(SLOT_TAKEN_MESSAGE)


class FieldUnavailable(ReservationError):
    status_code = 404

    def __init__(self):
        super().__init__("Field not found")


def _clean(value):
    return value.strip() if isinstance(value, str) else value


def parse_slot(data: dict, today: date_cls = None):
    """(date, "HH:MM") from a request body; past dates are refused."""
    try:
        day = parse_date(data.get("date"))
    except ValueError:
        raise ReservationError("Invalid date. Use YYYY-MM-DD")

    try:
        hour = parse_hour(data.get("hour"))
    except ValueError:
        raise ReservationError("Invalid hour. Use HH:MM")

    if day < (today or date_cls.today()):
        raise ReservationError("Cannot book past dates")
    return day, hour


def validate_request(data: dict, today: date_cls = None) -> dict:
    """Returns the normalised request or raises ReservationError (400)."""
    if any(not data.get(k) for k in REQUIRED_FIELDS):
        raise ReservationError("Missing required fields")

    email = str(data["email"]).strip().lower()
    if "@" not in email or len(email) > 255:
        raise ReservationError("Invalid email")

    try:
        field_id = int(data["field_id"])
    except (TypeError, ValueError):
        raise ReservationError("Invalid field_id")

    day, hour = parse_slot(data, today=today)

    return {
        "email": email,
        "field_id": field_id,
        "date": day,
        "hour": hour,
        "name": (_clean(data.get("name")) or None),
        "phone": (_clean(data.get("phone")) or None),
        "hold_token": (_clean(data.get("hold_token")) or None),
    }


def find_active_booking(field_id: int, day: date_cls, hour: str):
    return (
        Booking.query
        .filter_by(field_id=field_id, date=day, hour=hour, status=STATUS_ACTIVE)
        .first()
    )


def booked_hours(field_id: int, day: date_cls) -> set:
    rows = (
        Booking.query
        .with_entities(Booking.hour)
        .filter_by(field_id=field_id, date=day, status=STATUS_ACTIVE)
        .all()
    )
    return {r.hour for r in rows}


def bookable_field(field_id: int, hour: str) -> Field:
    """Active field that offers hour; raises FieldUnavailable (404) or ReservationError (400)."""
    field = db.session.get(Field, field_id)
    if not field or not field.active:
        raise FieldUnavailable()
    if hour not in (field.hours or []):
        raise ReservationError("Hour not offered")
    return field


# ---------- slot holds ----------

def find_hold(field_id: int, day: date_cls, hour: str):
    return BookingHold.query.filter_by(field_id=field_id, date=day, hour=hour).first()


def held_hours(field_id: int, day: date_cls, session_token: str = None, now: datetime = None) -> set:
    """Hours on day held by someone other than session_token."""
    now = now or datetime.utcnow()
    rows = (
        BookingHold.query
        .filter(BookingHold.field_id == field_id, BookingHold.date == day, BookingHold.expires_at > now)
        .all()
    )
    return {h.hour for h in rows if h.blocks(session_token, now)}


def place_hold(field_id: int, day: date_cls, hour: str, session_token: str, ttl_seconds: int,
               now: datetime = None) -> BookingHold:
    """
    Claim a free slot for ttl_seconds, or extend our own claim.

    An expired hold is taken over. Raises SlotUnavailable when the slot is booked
    or someone else holds it.
    """
    now = now or datetime.utcnow()
    bookable_field(field_id, hour)
    if find_active_booking(field_id, day, hour):
        raise SlotUnavailable()

    hold = find_hold(field_id, day, hour)
    if hold is not None and hold.blocks(session_token, now):
        raise SlotUnavailable()
    if hold is None:
        hold = BookingHold(field_id=field_id, date=day, hour=hour)
        db.session.add(hold)
    hold.session_token = session_token
    hold.expires_at = now + timedelta(seconds=ttl_seconds)

    try:
        db.session.commit()
    except IntegrityError:
        # another browser inserted the same slot first
        db.session.rollback()
        raise SlotUnavailable()
    return hold


def release_hold(field_id: int, day: date_cls, hour: str, session_token: str) -> bool:
    hold = find_hold(field_id, day, hour)
    if hold is None or hold.session_token != session_token:
        return False
    db.session.delete(hold)
    db.session.commit()
    return True


def get_or_create_customer(email: str, name: str = None, phone: str = None) -> Profile:
    """Bookings don't need an account: unknown emails get a password-less profile."""
    profile = Profile.query.filter_by(email=email).first()
    if profile:
        return profile

    first_name, _, last_name = (name or "").partition(" ")
    profile = Profile(
        email=email,
        role=ROLE_USER,
        first_name=first_name or None,
        last_name=last_name or None,
        phone=phone,
    )
    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        # Someone created it between our lookup and insert
        db.session.rollback()
        profile = Profile.query.filter_by(email=email).first()
        if profile is None:
            raise
    else:
        logger.info("Created customer profile %s for %s", profile.id, email)
    return profile


def create_booking(data: dict, today: date_cls = None, now: datetime = None):
    """
    Reserve a slot. Returns (booking, field).

    Raises ReservationError (400), FieldUnavailable (404) or SlotUnavailable (409).
    A live hold by another session counts as taken; the caller's own hold is consumed.
    """
    req = validate_request(data, today=today)
    field = bookable_field(req["field_id"], req["hour"])

    if find_active_booking(field.id, req["date"], req["hour"]):
        raise SlotUnavailable()
    hold = find_hold(field.id, req["date"], req["hour"])
    if hold is not None and hold.blocks(req["hold_token"], now or datetime.utcnow()):
        raise SlotUnavailable()

    customer = get_or_create_customer(req["email"], req["name"], req["phone"])

    booking = Booking(
        field_id=field.id,
        date=req["date"],
        hour=req["hour"],
        email=req["email"],
        user_id=customer.id,
        customer_name=req["name"] or customer.full_name or None,
        customer_phone=req["phone"] or customer.phone,
        price=field.price_for_hour(req["hour"]),
        status=STATUS_ACTIVE,
    )
    db.session.add(booking)
    if hold is not None:
        db.session.delete(hold)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.info("Slot race lost: field=%s %s %s", field.id, req["date"], req["hour"])
        raise SlotUnavailable()

    return booking, field


def cancel_booking(booking: Booking, reason: str = None) -> Booking:
    if booking.status != STATUS_ACTIVE:
        raise ReservationError("Booking not cancellable")

    booking.status = STATUS_CANCELLED
    booking.cancelled_at = datetime.utcnow()
    booking.cancel_reason = reason
    db.session.commit()
    return booking
