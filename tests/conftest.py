from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from models import db as _db
from models.field import Field
from models.monthly_statement import MonthlyStatement
from models.profile import Profile
from security.password import hash_password

PASSWORD = "Passw0rd123"

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret",
    "LOG_LEVEL": "WARNING",
    "APP_URL": "https://golplay.test",
    "PADDLE_API_KEY": "pdl_test_key",
    "PADDLE_API_BASE": "https://sandbox-api.paddle.test",
    "PADDLE_WEBHOOK_SECRET": "pdl_ntfset_test_secret",
    "PADDLE_WEBHOOK_MAX_AGE_SECONDS": 0,
    "CRON_SECRET": "cron-secret",
    "ADMIN_SIGNUP_CODE": "owner-code",
    "SMTP_HOST": None,
    "PLATFORM_ADMIN_EMAIL": "ops@golplay.test",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


def make_profile(email, role="user", password=PASSWORD, **kwargs):
    profile = Profile(
        email=email,
        role=role,
        password_hash=hash_password(password) if password else None,
        **kwargs
    )
    _db.session.add(profile)
    _db.session.commit()
    return profile


def make_field(owner=None, **kwargs):
    values = {
        "name": "Cancha Central",
        "location": "San José",
        "price_per_hour": 15000,
        "hours": ["08:00", "09:00", "18:00", "19:00"],
        "active": True,
    }
    values.update(kwargs)
    field = Field(
        owner_id=owner.id if owner else None,
        owner_email=owner.email if owner else None,
        **values
    )
    _db.session.add(field)
    _db.session.commit()
    return field


def make_statement(field, status="pending", due_date=None, **kwargs):
    values = {
        "month": 2,
        "year": 2026,
        "reservations_count": 30,
        "amount_due": Decimal("30.00"),
    }
    values.update(kwargs)
    st = MonthlyStatement(
        field_id=field.id,
        status=status,
        due_date=due_date or datetime(2026, 3, 10),
        **values
    )
    _db.session.add(st)
    _db.session.commit()
    return st


def fresh(model, pk):
    """Re-read a row after a request committed through another session."""
    _db.session.expire_all()
    return _db.session.get(model, pk)


def login(client, email, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    # double-submit CSRF: echo the cookie back as a header on every request
    client.environ_base["HTTP_X_CSRF_TOKEN"] = client.get_cookie("csrf_token").value
    return client


@pytest.fixture
def owner(app):
    return make_profile("owner@golplay.test", role="admin", first_name="Ana", last_name="Mora")


@pytest.fixture
def player(app):
    return make_profile("player@golplay.test", role="user", first_name="Luis")


@pytest.fixture
def field(owner):
    return make_field(owner, price_night=20000, night_from_hour=18)


@pytest.fixture
def owner_client(app, owner):
    return login(app.test_client(), owner.email)


@pytest.fixture
def player_client(app, player):
    return login(app.test_client(), player.email)


@pytest.fixture
def next_week():
    return date.today() + timedelta(days=7)


@pytest.fixture
def helpers(app):
    return SimpleNamespace(
        profile=make_profile,
        field=make_field,
        statement=make_statement,
        fresh=fresh,
        login=login,
    )
