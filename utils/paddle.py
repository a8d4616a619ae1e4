"""
Paddle Billing (v2 API) client for GolPlay commission payments.

Only the two calls the statement lifecycle needs: create a one-time
transaction and read the checkout URL back.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

import httpx
from flask import current_app

from utils.dates import month_label

logger = logging.getLogger(__name__)


class PaddleError(Exception):
    """Raised when Paddle rejects a request or can't be reached"""


def _to_cents(amount) -> str:
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return str(int(cents))


def paddle_request(method: str, path: str, body: dict = None) -> dict:
    api_key = current_app.config.get("PADDLE_API_KEY")
    if not api_key:
        raise PaddleError("Paddle API key missing (PADDLE_API_KEY)")

    base = current_app.config.get("PADDLE_API_BASE", "https://api.paddle.com").rstrip("/")
    timeout = current_app.config.get("PADDLE_TIMEOUT_SECONDS", 15)

    try:
        with httpx.Client(timeout=timeout) as http_client:
            response = http_client.request(
                method,
                f"{base}{path}",
                json=body,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )
    except httpx.HTTPError as exc:
        logger.error("Paddle %s %s failed: %s", method, path, exc)
        raise PaddleError(f"Paddle unreachable: {exc}") from exc

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if response.status_code >= 400:
        detail = (payload.get("error") or {}).get("detail") if isinstance(payload, dict) else None
        logger.error("Paddle %s %s -> %s: %s", method, path, response.status_code, detail or response.text)
        raise PaddleError(detail or f"Paddle API error {response.status_code}")

    return payload


def create_transaction(statement_id, field_id, field_name: str, amount, owner_email: str,
                       month: int, year: int, success_url: str) -> dict:
    """Create a one-time USD charge; returns {"transaction_id", "checkout_url"}."""
    period = month_label(year, month)
    body = {
        "items": [{
            "price": {
                "description": f"Comisión GolPlay - {field_name} - {period}",
                "name": f"Comisión {period}",
                "unit_price": {
                    "amount": _to_cents(amount),
                    "currency_code": "USD",
                },
                "product": {
                    "name": "GolPlay - Comisión mensual",
                    "description": "Comisión por uso de la plataforma GolPlay",
                    "tax_category": "saas",
                },
                "billing_cycle": None,
                "trial_period": None,
                "tax_mode": "account_setting",
                "quantity": {"minimum": 1, "maximum": 1},
            },
            "quantity": 1,
        }],
        "checkout": {"url": success_url},
        "custom_data": {
            "statement_id": str(statement_id),
            "field_id": str(field_id),
        },
        "currency_code": "USD",
    }
    if owner_email:
        body["customer"] = {"email": owner_email}

    data = paddle_request("POST", "/transactions", body).get("data") or {}
    transaction_id = data.get("id")
    if not transaction_id:
        raise PaddleError("Paddle response has no transaction id")

    return {
        "transaction_id": transaction_id,
        "checkout_url": (data.get("checkout") or {}).get("url"),
    }
