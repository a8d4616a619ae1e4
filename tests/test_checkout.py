import json
from decimal import Decimal

import httpx
import pytest

from models.monthly_statement import MonthlyStatement
from utils import paddle

URL = "/api/paddle/create-checkout"


@pytest.fixture
def statement(field, helpers):
    return helpers.statement(field)


@pytest.fixture
def fake_paddle(monkeypatch):
    calls = []

    def create_transaction(**kwargs):
        calls.append(kwargs)
        return {"transaction_id": "txn_123", "checkout_url": "https://pay.paddle.test/checkout?_ptxn=txn_123"}

    monkeypatch.setattr(paddle, "create_transaction", create_transaction)
    return calls


def test_checkout_moves_statement_to_processing(owner_client, statement, fake_paddle, helpers):
    resp = owner_client.post(URL, json={"statementId": statement.id})

    assert resp.status_code == 200
    assert resp.get_json() == {
        "checkoutUrl": "https://pay.paddle.test/checkout?_ptxn=txn_123",
        "transactionId": "txn_123",
    }

    st = helpers.fresh(MonthlyStatement, statement.id)
    assert st.status == "processing"
    assert st.transaction_id == "txn_123"

    (call,) = fake_paddle
    assert call["statement_id"] == statement.id
    assert call["amount"] == Decimal("30.00")
    assert call["owner_email"] == "owner@golplay.test"
    assert call["success_url"].startswith("https://golplay.test/")


def test_failed_statement_can_be_retried(owner_client, field, fake_paddle, helpers):
    st = helpers.statement(field, status="failed")

    assert owner_client.post(URL, json={"statementId": st.id}).status_code == 200
    assert helpers.fresh(MonthlyStatement, st.id).status == "processing"


def test_statement_id_required(owner_client, fake_paddle):
    resp = owner_client.post(URL, json={})

    assert resp.status_code == 400
    assert fake_paddle == []


def test_unknown_statement_is_404(owner_client, fake_paddle):
    assert owner_client.post(URL, json={"statementId": 4242}).status_code == 404


def test_other_owners_statement_is_404(owner_client, fake_paddle, helpers):
    rival = helpers.profile("rival@golplay.test", role="admin")
    rival_field = helpers.field(rival, name="Cancha Rival")
    st = helpers.statement(rival_field)

    assert owner_client.post(URL, json={"statementId": st.id}).status_code == 404
    assert fake_paddle == []


def test_paid_statement_cannot_be_charged_again(owner_client, field, fake_paddle, helpers):
    st = helpers.statement(field, status="paid")

    resp = owner_client.post(URL, json={"statementId": st.id})

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Statement already paid"
    assert fake_paddle == []


def test_paddle_failure_leaves_statement_untouched(owner_client, statement, monkeypatch, helpers):
    def broken(**kwargs):
        raise paddle.PaddleError("Paddle API error 400")

    monkeypatch.setattr(paddle, "create_transaction", broken)

    resp = owner_client.post(URL, json={"statementId": statement.id})

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Paddle API error 400"
    assert helpers.fresh(MonthlyStatement, statement.id).status == "pending"


def test_players_cannot_create_checkouts(player_client, statement, fake_paddle):
    assert player_client.post(URL, json={"statementId": statement.id}).status_code == 403


def test_anonymous_cannot_create_checkouts(client, statement, fake_paddle):
    assert client.post(URL, json={"statementId": statement.id}).status_code == 401


# ---------- Paddle client ----------

@pytest.fixture
def paddle_transport(monkeypatch):
    """Route the Paddle client through an httpx MockTransport; returns the captured requests."""
    seen = []
    responses = []
    real_client = httpx.Client

    def handler(request):
        seen.append(request)
        return responses.pop(0)

    monkeypatch.setattr(paddle.httpx, "Client", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs))
    return seen, responses


def create_tx():
    return paddle.create_transaction(
        statement_id=7,
        field_id=3,
        field_name="Cancha Central",
        amount=Decimal("12.50"),
        owner_email="owner@golplay.test",
        month=2,
        year=2026,
        success_url="https://golplay.test/admin/payments?paid=7",
    )


def test_create_transaction_request(app, paddle_transport):
    seen, responses = paddle_transport
    responses.append(httpx.Response(201, json={
        "data": {"id": "txn_abc", "checkout": {"url": "https://pay.paddle.test/checkout?_ptxn=txn_abc"}},
    }))

    result = create_tx()

    assert result == {"transaction_id": "txn_abc", "checkout_url": "https://pay.paddle.test/checkout?_ptxn=txn_abc"}
    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == "https://sandbox-api.paddle.test/transactions"
    assert request.headers["Authorization"] == "Bearer pdl_test_key"

    body = json.loads(request.content)
    price = body["items"][0]["price"]
    assert price["unit_price"] == {"amount": "1250", "currency_code": "USD"}
    assert "Febrero 2026" in price["name"]
    assert body["custom_data"] == {"statement_id": "7", "field_id": "3"}
    assert body["customer"] == {"email": "owner@golplay.test"}
    assert body["checkout"] == {"url": "https://golplay.test/admin/payments?paid=7"}


def test_create_transaction_surfaces_paddle_error_detail(app, paddle_transport):
    _, responses = paddle_transport
    responses.append(httpx.Response(400, json={"error": {"type": "request_error", "detail": "Invalid price"}}))

    with pytest.raises(paddle.PaddleError, match="Invalid price"):
        create_tx()


def test_create_transaction_without_id_is_an_error(app, paddle_transport):
    _, responses = paddle_transport
    responses.append(httpx.Response(201, json={"data": {}}))

    with pytest.raises(paddle.PaddleError):
        create_tx()


def test_missing_api_key(app):
    app.config["PADDLE_API_KEY"] = None

    with pytest.raises(paddle.PaddleError, match="PADDLE_API_KEY"):
        create_tx()


@pytest.mark.parametrize("amount, cents", [(Decimal("30.00"), "3000"), (1, "100"), ("0.5", "50"), (Decimal("1.005"), "101")])
def test_to_cents(amount, cents):
    assert paddle._to_cents(amount) == cents
