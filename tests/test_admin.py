from datetime import date, datetime, timedelta

from models import db
from models.booking import Booking, STATUS_ACTIVE, STATUS_CANCELLED
from models.field import Field
from models.monthly_statement import MonthlyStatement
from services import statements


def add_booking(field, day, hour, status=STATUS_ACTIVE, price=15000):
    booking = Booking(field_id=field.id, date=day, hour=hour, email="cliente@golplay.test", status=status, price=price)
    db.session.add(booking)
    db.session.commit()
    return booking


def test_admin_routes_need_admin_role(client, player_client):
    assert client.get("/admin/fields").status_code == 401
    assert player_client.get("/admin/fields").status_code == 403
    assert player_client.get("/admin/statements").status_code == 403
    assert player_client.post("/admin/fields", json={"name": "X", "price_per_hour": 1}).status_code == 403


def test_create_and_update_field(owner_client, owner, helpers):
    resp = owner_client.post("/admin/fields", json={
        "name": "Cancha Norte",
        "location": "Alajuela",
        "price_per_hour": "18000",
        "price_night": 22000,
        "hours": ["19:00", "8:00", "08:00"],
        "latitude": "10.01",
        "longitude": -84.2,
    })

    assert resp.status_code == 201
    data = resp.get_json()
    assert data["price_per_hour"] == 18000
    assert data["hours"] == ["08:00", "19:00"]
    assert data["owner_email"] == owner.email
    assert data["active"] is True

    resp = owner_client.patch(f"/admin/fields/{data['id']}", json={"active": False, "price_night": None})
    assert resp.status_code == 200
    field = helpers.fresh(Field, data["id"])
    assert field.active is False
    assert field.price_night is None


def test_create_field_validation(owner_client):
    assert owner_client.post("/admin/fields", json={"price_per_hour": 1}).status_code == 400
    assert owner_client.post("/admin/fields", json={"name": "Sin precio"}).status_code == 400
    assert owner_client.post("/admin/fields", json={"name": "X", "price_per_hour": -5}).status_code == 400
    assert owner_client.post("/admin/fields", json={"name": "X", "price_per_hour": 1, "hours": ["noon"]}).status_code == 400


def test_admins_only_see_their_own_fields(owner_client, field, helpers):
    rival = helpers.profile("rival@golplay.test", role="admin")
    rival_field = helpers.field(rival, name="Cancha Rival")

    names = [f["name"] for f in owner_client.get("/admin/fields").get_json()]
    assert names == ["Cancha Central"]
    assert owner_client.patch(f"/admin/fields/{rival_field.id}", json={"name": "Mía"}).status_code == 404
    assert owner_client.delete(f"/admin/fields/{rival_field.id}").status_code == 404


def test_delete_field_with_history_is_409(owner_client, field, next_week):
    add_booking(field, next_week, "09:00")

    assert owner_client.delete(f"/admin/fields/{field.id}").status_code == 409


def test_delete_unused_field(owner_client, owner, helpers):
    spare = helpers.field(owner, name="Sobrante")

    assert owner_client.delete(f"/admin/fields/{spare.id}").status_code == 200
    assert helpers.fresh(Field, spare.id) is None


def test_add_images_keeps_single_main(owner_client, field):
    url = f"/admin/fields/{field.id}/images"
    assert owner_client.post(url, json={"url": "https://img.test/a.jpg", "is_main": True}).status_code == 201
    assert owner_client.post(url, json={"url": "https://img.test/b.jpg", "is_main": True}).status_code == 201
    assert owner_client.post(url, json={"url": "ftp://img.test/c.jpg"}).status_code == 400

    images = owner_client.get("/admin/fields").get_json()[0]["images"]
    assert images == ["https://img.test/b.jpg", "https://img.test/a.jpg"]


def test_bookings_filters(owner_client, field):
    day = date(2026, 5, 4)
    add_booking(field, day, "09:00")
    add_booking(field, day, "18:00", status=STATUS_CANCELLED)
    add_booking(field, day + timedelta(days=10), "09:00")

    rows = owner_client.get("/admin/bookings?from=2026-05-01&to=2026-05-07").get_json()
    assert len(rows) == 2
    assert all(r["field_name"] == "Cancha Central" for r in rows)

    rows = owner_client.get("/admin/bookings?status=active").get_json()
    assert len(rows) == 2

    assert owner_client.get("/admin/bookings?from=ayer").status_code == 400


def test_admin_cancel_booking(owner_client, field, next_week, helpers):
    booking = add_booking(field, next_week, "09:00")

    resp = owner_client.post(f"/admin/bookings/{booking.id}/cancel", json={})

    assert resp.status_code == 200
    booking = helpers.fresh(Booking, booking.id)
    assert booking.status == STATUS_CANCELLED
    assert booking.cancel_reason == "Admin cancellation"


def test_week_calendar_runs_monday_to_sunday(owner_client, field):
    # 2026-05-06 is a Wednesday
    add_booking(field, date(2026, 5, 4), "09:00")
    add_booking(field, date(2026, 5, 10), "19:00")
    add_booking(field, date(2026, 5, 11), "09:00")
    add_booking(field, date(2026, 5, 6), "08:00", status=STATUS_CANCELLED)

    data = owner_client.get(f"/admin/calendar?view=week&date=2026-05-06&field_id={field.id}").get_json()

    assert data["start"] == "2026-05-04"
    assert data["end"] == "2026-05-10"
    assert len(data["days"]) == 7
    counts = {d["date"]: len(d["bookings"]) for d in data["days"]}
    assert counts["2026-05-04"] == 1
    assert counts["2026-05-06"] == 0
    assert counts["2026-05-10"] == 1


def test_daily_calendar(owner_client, field):
    add_booking(field, date(2026, 5, 6), "09:00")

    data = owner_client.get("/admin/calendar?date=2026-05-06").get_json()

    assert data["view"] == "daily"
    assert [d["date"] for d in data["days"]] == ["2026-05-06"]
    assert data["days"][0]["bookings"][0]["hour"] == "09:00"
    assert owner_client.get("/admin/calendar?view=month").status_code == 400


def test_dashboard_totals(owner_client, field):
    add_booking(field, date(2026, 5, 4), "09:00", price=15000)
    add_booking(field, date(2026, 5, 4), "19:00", price=20000)
    add_booking(field, date(2026, 5, 5), "09:00", status=STATUS_CANCELLED)

    data = owner_client.get("/admin/dashboard?from=2026-05-01&to=2026-05-31").get_json()

    assert data["bookings"] == 2
    assert data["cancelled"] == 1
    assert data["gross_revenue"] == 35000
    assert data["commission_usd"] == 2.0
    assert data["fields"] == 1


def test_statements_listing_and_detail(owner_client, field, helpers):
    st = helpers.statement(field)

    rows = owner_client.get("/admin/statements").get_json()
    assert [r["id"] for r in rows] == [st.id]
    assert rows[0]["field_name"] == "Cancha Central"
    assert rows[0]["amount_due"] == 30.0

    assert owner_client.get(f"/admin/statements/{st.id}").status_code == 200
    assert owner_client.get("/admin/statements?status=paid").get_json() == []


def test_mark_paid_reactivates_field(owner_client, field, helpers):
    field.active = False
    db.session.commit()
    st = helpers.statement(field, status="overdue")

    resp = owner_client.post(f"/admin/statements/{st.id}/mark-paid")

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "paid"
    assert helpers.fresh(MonthlyStatement, st.id).paid_at is not None
    assert helpers.fresh(Field, field.id).active is True

    assert owner_client.post(f"/admin/statements/{st.id}/mark-paid").status_code == 400


def test_cannot_touch_other_owners_statement(owner_client, helpers):
    rival = helpers.profile("rival@golplay.test", role="admin")
    st = helpers.statement(helpers.field(rival, name="Cancha Rival"))

    assert owner_client.get(f"/admin/statements/{st.id}").status_code == 404
    assert owner_client.post(f"/admin/statements/{st.id}/mark-paid").status_code == 404


def test_overdue_field_cannot_be_reactivated_by_owner(owner_client, field, helpers):
    st = helpers.statement(field, due_date=datetime(2020, 1, 10))
    statements.mark_overdue_statements()
    assert helpers.fresh(Field, field.id).active is False

    resp = owner_client.patch(f"/admin/fields/{field.id}", json={"active": True})

    assert resp.status_code == 409
    assert helpers.fresh(Field, field.id).active is False

    assert owner_client.post(f"/admin/statements/{st.id}/mark-paid").status_code == 200
    assert helpers.fresh(Field, field.id).active is True


def test_owner_can_toggle_field_in_good_standing(owner_client, field, helpers):
    assert owner_client.patch(f"/admin/fields/{field.id}", json={"active": False}).status_code == 200
    assert owner_client.patch(f"/admin/fields/{field.id}", json={"active": True}).status_code == 200
    assert helpers.fresh(Field, field.id).active is True


def test_mark_paid_keeps_field_dark_while_other_statements_are_overdue(owner_client, field, helpers):
    field.active = False
    db.session.commit()
    january = helpers.statement(field, status="overdue", month=1)
    helpers.statement(field, status="overdue", month=2)

    assert owner_client.post(f"/admin/statements/{january.id}/mark-paid").status_code == 200

    assert helpers.fresh(Field, field.id).active is False


def test_dashboard_occupancy_and_hour_breakdown(owner_client, field):
    add_booking(field, date(2026, 5, 4), "09:00")
    add_booking(field, date(2026, 5, 5), "09:00")
    add_booking(field, date(2026, 5, 5), "19:00")
    add_booking(field, date(2026, 5, 6), "18:00", status=STATUS_CANCELLED)

    data = owner_client.get("/admin/dashboard?from=2026-05-01&to=2026-05-31").get_json()

    # 4 offered hours x 31 days
    assert data["total_slots"] == 124
    assert data["occupancy_pct"] == 2
    assert data["bookings_by_hour"] == {"09:00": 2, "19:00": 1}
    assert data["peak_hour"] == "09:00"


def test_dashboard_counts_todays_active_bookings(owner_client, field):
    today = date.today()
    add_booking(field, today, "08:00")
    add_booking(field, today, "09:00", status=STATUS_CANCELLED)

    data = owner_client.get("/admin/dashboard").get_json()

    assert data["today"] == 1


def test_dashboard_without_bookings(owner_client, field):
    data = owner_client.get("/admin/dashboard?from=2026-05-01&to=2026-05-01").get_json()

    assert data["occupancy_pct"] == 0
    assert data["bookings_by_hour"] == {}
    assert data["peak_hour"] is None
