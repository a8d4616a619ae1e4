from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from models import db
from models.booking import Booking, STATUS_ACTIVE, STATUS_CANCELLED
from models.field import Field
from models.monthly_statement import MonthlyStatement
from models.profile import Profile
from services import statements

NOW = datetime(2026, 3, 20, 12, 0, 0)
CRON_URL = "/functions/v1/handle-overdue"


def add_booking(field, day, hour, status=STATUS_ACTIVE, email="cliente@golplay.test"):
    booking = Booking(field_id=field.id, date=day, hour=hour, email=email, status=status, price=15000)
    db.session.add(booking)
    db.session.commit()
    return booking


# ---------- overdue sweep ----------

def test_statement_past_grace_becomes_overdue_and_field_goes_dark(field, helpers):
    st = helpers.statement(field, due_date=NOW - timedelta(days=5, seconds=1))

    overdue = statements.mark_overdue_statements(now=NOW)

    assert overdue == [st.id]
    assert helpers.fresh(MonthlyStatement, st.id).status == "overdue"
    assert helpers.fresh(Field, field.id).active is False


def test_statement_exactly_at_grace_is_left_alone(field, helpers):
    st = helpers.statement(field, due_date=NOW - timedelta(days=5))

    overdue = statements.mark_overdue_statements(now=NOW)

    assert overdue == []
    assert helpers.fresh(MonthlyStatement, st.id).status == "pending"
    assert helpers.fresh(Field, field.id).active is True


@pytest.mark.parametrize("status", ["processing", "failed", "paid", "overdue"])
def test_sweep_only_touches_pending(field, helpers, status):
    st = helpers.statement(field, status=status, due_date=NOW - timedelta(days=60))

    assert statements.mark_overdue_statements(now=NOW) == []
    assert helpers.fresh(MonthlyStatement, st.id).status == status
    assert helpers.fresh(Field, field.id).active is True


def test_grace_days_come_from_config(app, field, helpers):
    app.config["OVERDUE_GRACE_DAYS"] = 1
    st = helpers.statement(field, due_date=NOW - timedelta(days=2))

    assert statements.mark_overdue_statements(now=NOW) == [st.id]


def test_is_overdue_boundary(field, helpers):
    st = helpers.statement(field, due_date=datetime(2026, 3, 10))

    assert not statements.is_overdue(st, datetime(2026, 3, 15), 5)
    assert statements.is_overdue(st, datetime(2026, 3, 15, 0, 0, 1), 5)


def test_handle_overdue_endpoint_requires_cron_secret(client, field, helpers):
    helpers.statement(field, due_date=datetime(2020, 1, 10))

    assert client.post(CRON_URL).status_code == 401
    assert client.post(CRON_URL, headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert helpers.fresh(Field, field.id).active is True


def test_handle_overdue_endpoint_runs_sweep(client, field, helpers):
    st = helpers.statement(field, due_date=datetime(2020, 1, 10))

    resp = client.post(CRON_URL, headers={"Authorization": "Bearer cron-secret"})

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "overdue": [st.id]}
    assert helpers.fresh(Field, field.id).active is False


def test_handle_overdue_cli(app, field, helpers):
    helpers.statement(field, due_date=datetime(2020, 1, 10))

    result = app.test_cli_runner().invoke(args=["handle-overdue"])

    assert result.exit_code == 0
    assert "1 statement(s) marked overdue" in result.output


# ---------- generation ----------

def test_generate_counts_active_bookings_in_month(field):
    add_booking(field, date(2026, 2, 3), "09:00")
    add_booking(field, date(2026, 2, 3), "18:00")
    add_booking(field, date(2026, 2, 28), "09:00")
    add_booking(field, date(2026, 2, 14), "09:00", status=STATUS_CANCELLED)
    add_booking(field, date(2026, 3, 1), "09:00")

    rows = statements.generate_statements(2026, 2)

    assert len(rows) == 1
    st = rows[0]
    assert st.field_id == field.id
    assert st.reservations_count == 3
    assert st.amount_due == Decimal("3.00")
    assert st.status == "pending"
    assert st.due_date == datetime(2026, 3, 10)


def test_generate_uses_configured_commission(app, field):
    app.config["COMMISSION_USD"] = "1.50"
    add_booking(field, date(2026, 2, 3), "09:00")
    add_booking(field, date(2026, 2, 4), "09:00")

    st = statements.generate_statements(2026, 2)[0]

    assert st.amount_due == Decimal("3.00")


def test_generate_refreshes_pending_and_skips_settled(field, helpers):
    add_booking(field, date(2026, 2, 3), "09:00")
    st = statements.generate_statements(2026, 2)[0]

    add_booking(field, date(2026, 2, 4), "09:00")
    refreshed = statements.generate_statements(2026, 2)
    assert [s.id for s in refreshed] == [st.id]
    assert helpers.fresh(MonthlyStatement, st.id).reservations_count == 2

    statements.mark_paid(helpers.fresh(MonthlyStatement, st.id))
    add_booking(field, date(2026, 2, 5), "09:00")
    assert statements.generate_statements(2026, 2) == []
    assert helpers.fresh(MonthlyStatement, st.id).reservations_count == 2
    assert MonthlyStatement.query.count() == 1


def test_generate_statements_cli(app, field):
    add_booking(field, date(2026, 2, 3), "09:00")

    result = app.test_cli_runner().invoke(args=["generate-statements", "--year", "2026", "--month", "2"])

    assert result.exit_code == 0
    assert "1 statement(s) generated for 2026-02" in result.output


@pytest.mark.parametrize("year, month, due_day, expected", [
    (2026, 2, 10, datetime(2026, 3, 10)),
    (2026, 12, 10, datetime(2027, 1, 10)),
    (2026, 1, 31, datetime(2026, 2, 28)),
])
def test_due_date_for(app, year, month, due_day, expected):
    assert statements.due_date_for(year, month, due_day) == expected


# ---------- payment transitions ----------

def test_mark_paid_can_reactivate_field(field, helpers):
    field.active = False
    db.session.commit()
    st = helpers.statement(field, status="overdue")

    statements.mark_paid(st, transaction_id="manual-1", reactivate_field=True)

    st = helpers.fresh(MonthlyStatement, st.id)
    assert st.status == "paid"
    assert st.paid_at is not None
    assert st.transaction_id == "manual-1"
    assert helpers.fresh(Field, field.id).active is True


def test_make_admin_cli(app, player, helpers):
    result = app.test_cli_runner().invoke(args=["make-admin", player.email])

    assert result.exit_code == 0
    assert helpers.fresh(Profile, player.id).role == "admin"
