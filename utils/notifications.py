import logging
from html import escape

from flask import current_app

from utils.emailer import send_email

logger = logging.getLogger(__name__)


def _booking_html(field_name: str, date: str, hour: str) -> str:
    return (
        "<h2>Reserva confirmada ⚽</h2>"
        f"<p><strong>Cancha:</strong> {escape(str(field_name))}</p>"
        f"<p><strong>Fecha:</strong> {escape(str(date))}</p>"
        f"<p><strong>Hora:</strong> {escape(str(hour))}</p>"
        "<p>Gracias por usar GolPlay</p>"
    )


def _booking_text(field_name: str, date: str, hour: str) -> str:
    return f"Cancha: {field_name}\nFecha: {date}\nHora: {hour}\n\nGracias por usar GolPlay"


def platform_admin_email():
    return current_app.config.get("PLATFORM_ADMIN_EMAIL") or current_app.config.get("SMTP_FROM_EMAIL")


def send_customer_confirmation(email: str, field_name: str, date: str, hour: str):
    return send_email(
        email,
        "Reserva confirmada - GolPlay",
        _booking_text(field_name, date, hour),
        html=_booking_html(field_name, date, hour),
    )


def send_admin_notice(field_name: str, date: str, hour: str, customer_email: str):
    text = _booking_text(field_name, date, hour) + f"\nCliente: {customer_email}"
    return send_email(
        platform_admin_email(),
        "Nueva reserva recibida",
        text,
        html=_booking_html(field_name, date, hour) + f"<p><strong>Cliente:</strong> {escape(customer_email)}</p>",
    )


def send_owner_notice(owner_email: str, field_name: str, date: str, hour: str, customer_email: str):
    text = _booking_text(field_name, date, hour) + f"\nCliente: {customer_email}"
    return send_email(
        owner_email,
        f"Nueva reserva en {field_name}",
        text,
        html=_booking_html(field_name, date, hour) + f"<p><strong>Cliente:</strong> {escape(customer_email)}</p>",
    )


def notify_booking_created(booking, field) -> dict:
    """
    Customer, platform admin and field owner emails for a new booking.

    Best-effort: a failure to send is logged and reported in the result, never raised.
    """
    date, hour = booking.date.isoformat(), booking.hour
    jobs = {
        "customer": lambda: send_customer_confirmation(booking.email, field.name, date, hour),
        "admin": lambda: send_admin_notice(field.name, date, hour, booking.email),
        "owner": lambda: send_owner_notice(field.owner_email, field.name, date, hour, booking.email),
    }

    results = {}
    for recipient, job in jobs.items():
        try:
            sent, error = job()
        except Exception:
            logger.exception("Booking %s: %s email crashed", booking.id, recipient)
            sent, error = False, "exception"
        if not sent:
            logger.warning("Booking %s: %s email not sent (%s)", booking.id, recipient, error)
        results[recipient] = sent
    return results
