from .health import health_bp
from .auth import auth_bp
from .fields import fields_bp
from .booking import booking_bp
from .favorites import favorites_bp
from .admin import admin_bp
from .payments import payments_bp
from .paddle_webhook import webhook_bp
