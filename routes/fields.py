import secrets

from flask import Blueprint, current_app, jsonify, request

from models import db
from models.field import Field, FieldImage
from services import reservation
from utils.dates import parse_date, parse_hour

fields_bp = Blueprint("fields", __name__)

NO_LOCATION = "Sin ubicación"


def serialize_field(f: Field, private: bool = False) -> dict:
    out = {
        "id": f.id,
        "name": f.name,
        "location": f.location,
        "sport": f.sport,
        "description": f.description,
        "price_per_hour": f.price_per_hour,
        "price_night": f.price_night,
        "night_from_hour": f.night_from_hour,
        "hours": sorted(f.hours or []),
        "latitude": f.latitude,
        "longitude": f.longitude,
        "images": [img.url for img in f.images],
    }
    if private:
        out.update(active=f.active, owner_email=f.owner_email, created_at=f.created_at.isoformat())
    return out


def _active_field_or_none(field_id: int):
    field = db.session.get(Field, field_id)
    if not field or not field.active:
        return None
    return field


@fields_bp.get("/api/home-fields")
def home_fields():
    fields = Field.query.filter_by(active=True).order_by(Field.name.asc()).all()

    images = {}
    if fields:
        rows = (
            FieldImage.query
            .filter(FieldImage.field_id.in_([f.id for f in fields]))
            .order_by(FieldImage.is_main.desc(), FieldImage.id.asc())
            .all()
        )
        for img in rows:
            if img.url:
                images.setdefault(img.field_id, []).append(img.url)

    grouped = {}
    for f in fields:
        loc = (f.location or "").strip() or NO_LOCATION
        grouped.setdefault(loc, []).append({
            "id": f.id,
            "name": f.name,
            "price": f.price_per_hour,
            "location": f.location,
            "images": images.get(f.id, []),
        })
    return jsonify(grouped), 200


@fields_bp.get("/fields")
def list_fields():
    location_query = (request.args.get("location") or "").strip()
    sport = (request.args.get("sport") or "").strip()

    q = Field.query.filter(Field.active.is_(True))
    if location_query:
        q = q.filter(Field.location.ilike(f"%{location_query}%"))
    if sport:
        q = q.filter(Field.sport == sport)

    rows = q.order_by(Field.name.asc()).limit(200).all()
    return jsonify([serialize_field(f) for f in rows]), 200


@fields_bp.get("/fields/<int:field_id>")
def get_field(field_id: int):
    field = _active_field_or_none(field_id)
    if not field:
        return jsonify(error="Field not found"), 404
    data = serialize_field(field)
    data["map_token"] = current_app.config.get("MAPBOX_TOKEN")
    return jsonify(data), 200


@fields_bp.get("/fields/<int:field_id>/availability")
def field_availability(field_id: int):
    field = _active_field_or_none(field_id)
    if not field:
        return jsonify(error="Field not found"), 404

    try:
        day = parse_date(request.args.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    taken = reservation.booked_hours(field.id, day)
    # the caller's own hold is not reported as held
    held = reservation.held_hours(field.id, day, request.args.get("hold_token"))
    return jsonify(
        field_id=field.id,
        date=day.isoformat(),
        hours=[
            {
                "hour": h,
                "booked": h in taken,
                "held": h in held,
                "available": h not in taken and h not in held,
                "price": field.price_for_hour(h),
            }
            for h in sorted(field.hours or [])
        ],
    ), 200


# ---------- slot holds while the booking form is open ----------
HOLD_TOKEN_MAX_LENGTH = 64


@fields_bp.post("/fields/<int:field_id>/holds")
def hold_slot(field_id: int):
    data = request.get_json(silent=True) or {}
    token = (data.get("hold_token") or "").strip() or secrets.token_urlsafe(24)
    if len(token) > HOLD_TOKEN_MAX_LENGTH:
        return jsonify(error="Invalid hold_token"), 400

    try:
        day, hour = reservation.parse_slot(data)
        hold = reservation.place_hold(
            field_id, day, hour, token,
            ttl_seconds=current_app.config.get("HOLD_TTL_SECONDS", 600),
        )
    except reservation.ReservationError as exc:
        return jsonify(error=exc.message), exc.status_code

    return jsonify(
        hold_token=hold.session_token,
        field_id=hold.field_id,
        date=hold.date.isoformat(),
        hour=hold.hour,
        expires_at=hold.expires_at.isoformat(),
    ), 201


@fields_bp.delete("/fields/<int:field_id>/holds")
def release_slot(field_id: int):
    data = request.get_json(silent=True) or {}
    token = (data.get("hold_token") or "").strip()
    try:
        day = parse_date(data.get("date"))
        hour = parse_hour(data.get("hour"))
    except ValueError:
        return jsonify(error="date and hour required"), 400

    if not token or not reservation.release_hold(field_id, day, hour, token):
        return jsonify(error="Hold not found"), 404
    return jsonify(message="Hold released"), 200
