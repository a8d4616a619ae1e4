import logging
from functools import wraps

from flask import jsonify, request

from models.profile import ROLES
from utils.audit import log_event
from utils.auth_context import current_user

logger = logging.getLogger(__name__)


def require_roles(*role_names: str):
    """
    Usage: @require_roles(ROLE_ADMIN)

    401 without a live session, 403 when the profile's role isn't one of role_names.
    """
    unknown = set(role_names) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}")

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify(error="Authentication required"), 401

            if user.role not in role_names:
                logger.info("Profile %s (%s) denied %s %s", user.id, user.role, request.method, request.path)
                log_event("ACCESS_DENIED", user_id=user.id, metadata={"path": request.path})
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
