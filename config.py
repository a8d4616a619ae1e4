import os

from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

load_dotenv(os.path.join(BASE_DIR, ".env"))


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as golplay.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "golplay.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Public app URL (checkout return, password reset links)
    APP_URL = os.getenv("APP_URL", "https://golplay.app").rstrip("/")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "golplay_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 2 hours
    IDLE_TIMEOUT_SECONDS = 2 * 60 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Password reset links
    PASSWORD_RESET_TTL_SECONDS = int(os.getenv("PASSWORD_RESET_TTL_SECONDS", "3600"))

    # Cancellation policy
    CANCEL_CUTOFF_HOURS = 12

    # Slot holds placed while a player fills in the booking form
    HOLD_TTL_SECONDS = int(os.getenv("HOLD_TTL_SECONDS", "600"))

    # Admin signup (field owners); unset disables self-service admin signup
    ADMIN_SIGNUP_CODE = os.getenv("ADMIN_SIGNUP_CODE")

    # Shared secret the platform scheduler sends to the overdue sweep endpoint
    CRON_SECRET = os.getenv("CRON_SECRET")

    # Commission billing
    COMMISSION_USD = os.getenv("COMMISSION_USD", "1.00")
    STATEMENT_DUE_DAY = int(os.getenv("STATEMENT_DUE_DAY", "10"))
    OVERDUE_GRACE_DAYS = int(os.getenv("OVERDUE_GRACE_DAYS", "5"))

    # Paddle Billing
    PADDLE_API_KEY = os.getenv("PADDLE_API_KEY")
    PADDLE_API_BASE = os.getenv("PADDLE_API_BASE", "https://api.paddle.com")
    PADDLE_WEBHOOK_SECRET = os.getenv("PADDLE_WEBHOOK_SECRET")
    PADDLE_WEBHOOK_MAX_AGE_SECONDS = int(os.getenv("PADDLE_WEBHOOK_MAX_AGE_SECONDS", "0"))  # 0 = no age check
    PADDLE_TIMEOUT_SECONDS = float(os.getenv("PADDLE_TIMEOUT_SECONDS", "15"))

    # Map provider token, handed to clients as-is
    MAPBOX_TOKEN = os.getenv("MAPBOX_TOKEN")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Receives a copy of every new booking
    PLATFORM_ADMIN_EMAIL = os.getenv("PLATFORM_ADMIN_EMAIL")

    # Basic app settings
    DEBUG = False
