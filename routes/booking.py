import logging
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import or_

from models import db
from models.booking import Booking
from services import reservation
from utils.audit import log_event
from utils.auth_context import login_required
from utils import notifications

logger = logging.getLogger(__name__)

booking_bp = Blueprint("booking", __name__)


# ---------- PUBLIC: reserve a slot ----------
@booking_bp.route("/functions/v1/create-booking", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def create_booking():
    if request.method != "POST":
        return jsonify(ok=False, error="Method not allowed"), 405

    data = request.get_json(silent=True) or {}
    try:
        booking, field = reservation.create_booking(data)
    except reservation.ReservationError as exc:
        if isinstance(exc, reservation.SlotUnavailable):
            log_event("BOOKING_FAIL_SLOT_TAKEN", entity="field", entity_id=data.get("field_id"),
                      metadata={"date": data.get("date"), "hour": data.get("hour")})
        return jsonify(ok=False, error=exc.message), exc.status_code
    except Exception:
        db.session.rollback()
        logger.exception("create-booking failed")
        return jsonify(ok=False, error="Error interno"), 500

    log_event("BOOKING_CREATE", user_id=booking.user_id, entity="booking", entity_id=booking.id,
              metadata={"field_id": field.id, "date": booking.date.isoformat(), "hour": booking.hour})

    # notification problems never undo a booking
    notifications.notify_booking_created(booking, field)

    return jsonify(ok=True, booking_id=booking.id, message="Reserva creada correctamente"), 200


# ---------- PUBLIC: confirmation email ----------
@booking_bp.post("/api/send-booking-email")
def send_booking_email():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    field_name = data.get("fieldName")
    date = data.get("date")
    hour = data.get("hour")

    if not email or not field_name or not date or not hour:
        return jsonify(ok=False, error="email, fieldName, date and hour are required"), 400

    sent, error = notifications.send_customer_confirmation(email, field_name, date, hour)
    if not sent:
        return jsonify(ok=False, error=error), 500

    admin_sent, admin_error = notifications.send_admin_notice(field_name, date, hour, email)
    if not admin_sent:
        return jsonify(ok=False, error=admin_error), 500

    return jsonify(ok=True), 200


# ---------- USERS: view my bookings ----------
@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    status = request.args.get("status")  # active/cancelled
    q = Booking.query.filter(or_(Booking.user_id == g.user.id, Booking.email == g.user.email))
    if status:
        q = q.filter(Booking.status == status)

    rows = q.order_by(Booking.date.desc(), Booking.hour.desc()).all()
    out = []
    for b in rows:
        item = b.to_dict()
        item["field_name"] = b.field.name if b.field else None
        out.append(item)
    return jsonify(out), 200


# ---------- USERS: cancel booking (policy window) ----------
@booking_bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    booking = db.session.get(Booking, booking_id)
    if not booking or (booking.user_id != g.user.id and booking.email != g.user.email):
        return jsonify(error="Booking not found"), 404

    cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 12)
    if (booking.starts_at() - datetime.utcnow()).total_seconds() < cutoff_hours * 3600:
        return jsonify(error=f"Cancellation not allowed within {cutoff_hours} hours of start"), 403

    try:
        reservation.cancel_booking(booking, reason)
    except reservation.ReservationError as exc:
        return jsonify(error=exc.message), exc.status_code

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(message="Cancelled"), 200
