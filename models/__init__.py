from .db import db
from .profile import Profile
from .audit_log import AuditLog
from .session import Session
from .password_reset import PasswordReset
from .field import Field, FieldImage
from .booking import Booking
from .booking_hold import BookingHold
from .monthly_statement import MonthlyStatement
from .favorite import Favorite
