import hmac
import logging
import secrets
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.password_reset import PasswordReset
from models.profile import Profile, ROLE_ADMIN, ROLE_USER
from security.csrf import issue_csrf_token
from security.password import hash_password, verify_password, validate_password
from security.session import (
    client_ip,
    create_session,
    hash_token,
    revoke_all_sessions,
    revoke_session,
    set_session_cookie,
)
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import send_email

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

PROFILE_LIMITS = {"first_name": 80, "last_name": 80, "phone": 30}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _profile_payload(user: Profile) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
    }


def _apply_profile_fields(user: Profile, data: dict):
    for name, limit in PROFILE_LIMITS.items():
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str) or len(value.strip()) > limit:
            return f"Invalid {name}"
        setattr(user, name, value.strip() or None)
    return None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role = (data.get("role") or ROLE_USER).strip().lower()

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if role not in (ROLE_ADMIN, ROLE_USER):
        return jsonify(error="Invalid role"), 400
    if role == ROLE_ADMIN:
        expected = current_app.config.get("ADMIN_SIGNUP_CODE")
        provided = data.get("admin_signup_code") or ""
        if not expected or not hmac.compare_digest(str(provided), expected):
            log_event("REGISTER_FAIL_ADMIN_CODE", metadata={"email": email})
            return jsonify(error="Invalid admin signup code"), 403

    user = Profile.query.filter_by(email=email).first()
    if user and user.password_hash:
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    # a profile created by an earlier booking is claimed here
    if user is None:
        user = Profile(email=email)
        db.session.add(user)
    user.role = role
    user.password_hash = hash_password(password)

    error = _apply_profile_fields(user, data)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role})

    return jsonify(message="Registered successfully"), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = Profile.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    # Rotate: revoke any existing sessions for this user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    resp = jsonify(message="Login OK", role=user.role)
    set_session_cookie(resp, raw_token)
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_profile_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "golplay_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200


@auth_bp.post("/profile")
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    error = _apply_profile_fields(g.user, data)
    if error:
        db.session.rollback()
        return jsonify(error=error), 400

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=g.user.id)
    return jsonify(message="Profile updated", profile=_profile_payload(g.user)), 200


@auth_bp.post("/forgot-password")
def forgot_password():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()

    # Same answer whether or not the account exists
    response = jsonify(message="If the email is registered, a reset link was sent")

    user = Profile.query.filter_by(email=email).first() if _is_valid_email(email) else None
    if not user:
        return response, 200

    raw_token = secrets.token_urlsafe(32)
    ttl = current_app.config.get("PASSWORD_RESET_TTL_SECONDS", 3600)
    db.session.add(PasswordReset(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=ttl),
        ip=client_ip(),
    ))
    db.session.commit()

    link = f"{current_app.config.get('APP_URL', '').rstrip('/')}/reset-password?token={raw_token}"
    sent, error = send_email(
        user.email,
        "Restablecer contraseña - GolPlay",
        f"Para restablecer tu contraseña abre este enlace:\n\n{link}\n\n"
        f"El enlace vence en {ttl // 60} minutos.",
    )
    if not sent:
        logger.warning("Password reset email to %s not sent: %s", user.email, error)
    log_event("PASSWORD_RESET_REQUESTED", user_id=user.id, metadata={"sent": sent})
    return response, 200


@auth_bp.post("/reset-password")
def reset_password():
    data = request.get_json(silent=True) or {}
    raw_token = data.get("token") or ""
    password = data.get("password") or ""

    row = PasswordReset.query.filter_by(token_hash=hash_token(raw_token)).first() if raw_token else None
    if not row or row.consumed_at is not None or row.expires_at <= datetime.utcnow():
        return jsonify(error="Invalid or expired token"), 400

    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    user = db.session.get(Profile, row.user_id)
    if not user:
        return jsonify(error="Invalid or expired token"), 400

    user.password_hash = hash_password(password)
    row.consumed_at = datetime.utcnow()
    db.session.commit()

    revoked = revoke_all_sessions(user.id)
    log_event("PASSWORD_RESET", user_id=user.id, metadata={"revoked_sessions": revoked})
    return jsonify(message="Password updated"), 200
