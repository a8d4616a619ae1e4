import logging
from datetime import date as date_cls, timedelta
from decimal import Decimal

from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking, STATUS_ACTIVE
from models.field import Field, FieldImage
from models.monthly_statement import MonthlyStatement, STATUS_OVERDUE, STATUS_PAID
from models.profile import ROLE_ADMIN
from routes.fields import serialize_field
from security.rbac import require_roles
from services import reservation, statements
from utils.audit import log_event
from utils.dates import parse_date, parse_hour, week_days

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

EDITABLE_FIELD_ATTRS = ("name", "location", "sport", "description", "owner_email")

# fields without configured hours count as open this many hours a day
DEFAULT_HOURS_PER_DAY = 17


def _owned_fields(user):
    return (
        Field.query
        .filter_by(owner_id=user.id)
        .order_by(Field.name.asc())
        .all()
    )


def _owned_field_or_none(field_id: int):
    field = db.session.get(Field, field_id)
    if not field or field.owner_id != g.user.id:
        return None
    return field


def _has_overdue_statement(field_id: int) -> bool:
    return MonthlyStatement.query.filter_by(field_id=field_id, status=STATUS_OVERDUE).first() is not None


def _date_arg(name: str):
    """Optional YYYY-MM-DD query arg; raises ValueError on bad input."""
    value = request.args.get(name)
    return parse_date(value) if value else None


def _apply_field_payload(field: Field, data: dict):
    """Copy validated attributes onto field; returns an error message or None."""
    for attr in EDITABLE_FIELD_ATTRS:
        if attr in data:
            value = data.get(attr)
            value = value.strip() if isinstance(value, str) else value
            setattr(field, attr, value or None)

    for attr in ("price_per_hour", "price_night", "night_from_hour"):
        if attr in data:
            value = data.get(attr)
            if value in (None, "") and attr == "price_night":
                field.price_night = None
                continue
            try:
                value = int(value)
            except (TypeError, ValueError):
                return f"Invalid {attr}"
            if value < 0 or (attr == "night_from_hour" and value > 23):
                return f"Invalid {attr}"
            setattr(field, attr, value)

    if "hours" in data:
        hours = data.get("hours") or []
        if not isinstance(hours, list):
            return "hours must be a list of HH:MM"
        try:
            field.hours = sorted({parse_hour(h) for h in hours})
        except ValueError:
            return "hours must be a list of HH:MM"

    for attr in ("latitude", "longitude"):
        if attr in data:
            value = data.get(attr)
            try:
                setattr(field, attr, float(value) if value not in (None, "") else None)
            except (TypeError, ValueError):
                return f"Invalid {attr}"

    if "active" in data:
        field.active = bool(data.get("active"))

    if not field.name:
        return "Field name required"
    return None


# ---------- ADMIN: manage fields ----------
@admin_bp.get("/fields")
@require_roles(ROLE_ADMIN)
def list_fields():
    return jsonify([serialize_field(f, private=True) for f in _owned_fields(g.user)]), 200


@admin_bp.post("/fields")
@require_roles(ROLE_ADMIN)
def create_field():
    data = request.get_json(silent=True) or {}
    if not (data.get("name") or "").strip():
        return jsonify(error="Field name required"), 400
    if data.get("price_per_hour") in (None, ""):
        return jsonify(error="price_per_hour required"), 400

    field = Field(owner_id=g.user.id, owner_email=g.user.email, active=True)
    error = _apply_field_payload(field, data)
    if error:
        return jsonify(error=error), 400

    db.session.add(field)
    db.session.commit()

    log_event("FIELD_CREATE", user_id=g.user.id, entity="field", entity_id=field.id)
    return jsonify(serialize_field(field, private=True)), 201


@admin_bp.patch("/fields/<int:field_id>")
@require_roles(ROLE_ADMIN)
def update_field(field_id: int):
    field = _owned_field_or_none(field_id)
    if not field:
        return jsonify(error="Field not found"), 404

    data = request.get_json(silent=True) or {}
    if data.get("active") and not field.active and _has_overdue_statement(field.id):
        # only paying the statement (mark-paid) brings the field back
        return jsonify(error="Field has an overdue statement; pay it to reactivate the field"), 409

    error = _apply_field_payload(field, data)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400
    db.session.commit()

    log_event("FIELD_UPDATE", user_id=g.user.id, entity="field", entity_id=field.id,
              metadata={"keys": sorted(data.keys())})
    return jsonify(serialize_field(field, private=True)), 200


@admin_bp.delete("/fields/<int:field_id>")
@require_roles(ROLE_ADMIN)
def delete_field(field_id: int):
    field = _owned_field_or_none(field_id)
    if not field:
        return jsonify(error="Field not found"), 404

    has_history = (
        Booking.query.filter_by(field_id=field.id).first() is not None
        or MonthlyStatement.query.filter_by(field_id=field.id).first() is not None
    )
    if has_history:
        return jsonify(error="Field has bookings or statements; deactivate it instead"), 409

    db.session.delete(field)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Field is still referenced; deactivate it instead"), 409

    log_event("FIELD_DELETE", user_id=g.user.id, entity="field", entity_id=field_id)
    return jsonify(message="Field deleted"), 200


@admin_bp.post("/fields/<int:field_id>/images")
@require_roles(ROLE_ADMIN)
def add_field_image(field_id: int):
    field = _owned_field_or_none(field_id)
    if not field:
        return jsonify(error="Field not found"), 404

    data = request.get_json(silent=True) or {}
    url = (data.get("url") or "").strip()
    if not url.startswith(("http://", "https://")):
        return jsonify(error="A http(s) url is required"), 400

    is_main = bool(data.get("is_main"))
    if is_main:
        FieldImage.query.filter_by(field_id=field.id, is_main=True).update({"is_main": False})

    img = FieldImage(field_id=field.id, url=url, is_main=is_main)
    db.session.add(img)
    db.session.commit()
    return jsonify(id=img.id, url=img.url, is_main=img.is_main), 201


# ---------- ADMIN: bookings ----------
def _bookings_query(field_ids):
    return Booking.query.filter(Booking.field_id.in_(field_ids or [-1]))


def _booking_row(b: Booking, names: dict) -> dict:
    row = b.to_dict()
    row["field_name"] = names.get(b.field_id)
    return row


@admin_bp.get("/bookings")
@require_roles(ROLE_ADMIN)
def list_bookings():
    fields = _owned_fields(g.user)
    names = {f.id: f.name for f in fields}

    try:
        date_from = _date_arg("from")
        date_to = _date_arg("to")
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    q = _bookings_query(list(names))
    field_id = request.args.get("field_id", type=int)
    if field_id:
        q = q.filter(Booking.field_id == field_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Booking.status == status)
    if date_from:
        q = q.filter(Booking.date >= date_from)
    if date_to:
        q = q.filter(Booking.date <= date_to)

    rows = q.order_by(Booking.date.desc(), Booking.hour.asc()).limit(500).all()
    return jsonify([_booking_row(b, names) for b in rows]), 200


@admin_bp.post("/bookings/<int:booking_id>/cancel")
@require_roles(ROLE_ADMIN)
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or "Admin cancellation"

    booking = db.session.get(Booking, booking_id)
    if not booking or not _owned_field_or_none(booking.field_id):
        return jsonify(error="Booking not found"), 404

    try:
        reservation.cancel_booking(booking, reason)
    except reservation.ReservationError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("ADMIN_BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"reason": reason})
    return jsonify(message="Cancelled by admin"), 200


@admin_bp.get("/calendar")
@require_roles(ROLE_ADMIN)
def calendar():
    view = (request.args.get("view") or "daily").lower()
    if view not in ("daily", "week"):
        return jsonify(error="view must be daily or week"), 400
    try:
        day = _date_arg("date") or date_cls.today()
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    fields = _owned_fields(g.user)
    names = {f.id: f.name for f in fields}
    field_ids = list(names)
    field_id = request.args.get("field_id", type=int)
    if field_id:
        field_ids = [field_id] if field_id in names else []

    days = [day] if view == "daily" else week_days(day)
    rows = (
        _bookings_query(field_ids)
        .filter(Booking.status == STATUS_ACTIVE, Booking.date >= days[0], Booking.date <= days[-1])
        .order_by(Booking.date.asc(), Booking.hour.asc())
        .all()
    )

    by_day = {d.isoformat(): [] for d in days}
    for b in rows:
        by_day[b.date.isoformat()].append(_booking_row(b, names))

    return jsonify(
        view=view,
        start=days[0].isoformat(),
        end=days[-1].isoformat(),
        days=[{"date": d, "bookings": items} for d, items in by_day.items()],
    ), 200


@admin_bp.get("/dashboard")
@require_roles(ROLE_ADMIN)
def dashboard():
    try:
        date_to = _date_arg("to") or date_cls.today()
        date_from = _date_arg("from") or (date_to - timedelta(days=29))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    fields = _owned_fields(g.user)
    rows = (
        _bookings_query([f.id for f in fields])
        .filter(Booking.date >= date_from, Booking.date <= date_to)
        .all()
    )
    active = [b for b in rows if b.status == STATUS_ACTIVE]
    gross = sum(b.price or 0 for b in active)
    commission = statements.commission_per_booking() * len(active)

    today_count = (
        _bookings_query([f.id for f in fields])
        .filter(Booking.status == STATUS_ACTIVE, Booking.date == date_cls.today())
        .count()
    )

    # offered slots across active fields for every day in range
    period_days = max(0, (date_to - date_from).days + 1)
    total_slots = period_days * sum(len(f.hours or []) or DEFAULT_HOURS_PER_DAY for f in fields if f.active)
    occupancy = min(100, round(len(active) * 100 / total_slots)) if total_slots else 0

    by_hour = {}
    for b in active:
        by_hour[b.hour] = by_hour.get(b.hour, 0) + 1
    peak = min(by_hour.items(), key=lambda kv: (-kv[1], kv[0]))[0] if by_hour else None

    return jsonify(
        range={"from": date_from.isoformat(), "to": date_to.isoformat()},
        fields=len(fields),
        active_fields=sum(1 for f in fields if f.active),
        bookings=len(active),
        cancelled=len(rows) - len(active),
        gross_revenue=gross,
        commission_usd=float(commission.quantize(Decimal("0.01"))),
        today=today_count,
        occupancy_pct=occupancy,
        total_slots=total_slots,
        bookings_by_hour=dict(sorted(by_hour.items())),
        peak_hour=peak,
    ), 200


# ---------- ADMIN: commission statements ----------
def _owned_statement_or_none(statement_id: int):
    st = db.session.get(MonthlyStatement, statement_id)
    if not st or not st.field or st.field.owner_id != g.user.id:
        return None
    return st


@admin_bp.get("/statements")
@require_roles(ROLE_ADMIN)
def list_statements():
    field_ids = [f.id for f in _owned_fields(g.user)]
    q = MonthlyStatement.query.filter(MonthlyStatement.field_id.in_(field_ids or [-1]))
    status = request.args.get("status")
    if status:
        q = q.filter(MonthlyStatement.status == status)

    rows = q.order_by(MonthlyStatement.year.desc(), MonthlyStatement.month.desc()).all()
    return jsonify([s.to_dict() for s in rows]), 200


@admin_bp.get("/statements/<int:statement_id>")
@require_roles(ROLE_ADMIN)
def get_statement(statement_id: int):
    st = _owned_statement_or_none(statement_id)
    if not st:
        return jsonify(error="Statement not found"), 404
    return jsonify(st.to_dict()), 200


@admin_bp.post("/statements/<int:statement_id>/mark-paid")
@require_roles(ROLE_ADMIN)
def mark_statement_paid(statement_id: int):
    st = _owned_statement_or_none(statement_id)
    if not st:
        return jsonify(error="Statement not found"), 404
    if st.status == STATUS_PAID:
        return jsonify(error="Statement already paid"), 400

    statements.mark_paid(st, reactivate_field=True)
    log_event("STATEMENT_PAID", user_id=g.user.id, entity="statement", entity_id=st.id,
              metadata={"via": "manual"})
    logger.info("Statement %s marked paid manually by %s", st.id, g.user.id)
    return jsonify(st.to_dict()), 200
