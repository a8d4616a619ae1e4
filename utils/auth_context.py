from functools import wraps
from flask import g, jsonify
from models import db
from models.profile import Profile
from security.session import get_session_from_request


def load_current_user():
    """before_request: resolve the session cookie into g.session and g.user (both None when anonymous)."""
    g.session = get_session_from_request()
    g.user = db.session.get(Profile, g.session.user_id) if g.session else None


def current_user():
    return getattr(g, "user", None)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
