import secrets
from flask import request, jsonify, current_app

from utils.auth_context import current_user

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

# Auth bootstrap and server-to-server callers never carry our cookies
CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/health",
    "/api/paddle/webhook",
    "/functions/v1/create-booking",
    "/functions/v1/handle-overdue",
}


def issue_csrf_token(resp):
    token = secrets.token_urlsafe(32)
    resp.set_cookie(
        CSRF_COOKIE,
        token,
        httponly=False,  # must be readable by client JS
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed"), 403
    return None


def csrf_protect():
    """before_request hook: only state-changing requests from cookie sessions."""
    if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
        return None
    if request.path in CSRF_EXEMPT_PATHS:
        return None
    if current_user() is None:
        return None
    return require_csrf()
