import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_polling_policy, get_split_payment_store, get_terminal_gateway
from application.services.status_poller import PollingPolicy
from infrastructure.repositories.split_payment_store import InMemorySplitPaymentStore
from main import app

from conftest import RecordingSleep, StubGateway, approved, reply, started


BASE = {
    "terminal_id": "T-01",
    "station_number": "1234",
    "cashier_id": "0001",
    "reference": "100",
    "last_reference": "99",
    "session_id": "SESSION-1",
    "amounts": {"total": "100.00"},
    "splits": [
        {"payment_method": "card", "percentage": 50},
        {"payment_method": "ath-movil", "percentage": 50},
    ],
}


@pytest.fixture
def wired():
    store = InMemorySplitPaymentStore(cleanup_probability=0)
    gateway = StubGateway()
    app.dependency_overrides[get_split_payment_store] = lambda: store
    app.dependency_overrides[get_terminal_gateway] = lambda: gateway
    app.dependency_overrides[get_polling_policy] = lambda: PollingPolicy(sleep=RecordingSleep())
    yield TestClient(app), gateway
    app.dependency_overrides.clear()


def test_routes_registered():
    paths = app.openapi()["paths"]
    assert "/api/v1/ecr/sales/split-payment" in paths
    assert "/api/v1/ecr/transaction/split-payment-status" in paths


def test_health():
    res = TestClient(app).get("/health")
    assert res.status_code == 200
    assert res.json()["data"] == {"status": "healthy"}


def test_completed_split_then_status_query(wired):
    client, gateway = wired
    gateway.start_replies = [started("A"), started("B")]
    gateway.status_replies = {"A": [approved("A")], "B": [approved("B")]}

    res = client.post("/api/v1/ecr/sales/split-payment", json=BASE)
    assert res.status_code == 200
    body = res.json()
    assert body["code"] == 0
    data = body["data"]
    assert data["status"] == "completed"
    assert [p["amounts"]["total"] for p in data["parts"]] == ["50.00", "50.00"]
    assert data["split_trx_id"].startswith("SPT-")

    query = {"split_trx_id": data["split_trx_id"], "session_id": "SESSION-1",
             "terminal_id": "T-01", "station_number": "1234", "cashier_id": "0001"}
    first = client.post("/api/v1/ecr/transaction/split-payment-status", json=query)
    second = client.post("/api/v1/ecr/transaction/split-payment-status", json=query)
    assert first.status_code == 200
    assert first.json()["data"] == data
    assert first.json()["data"] == second.json()["data"]


def test_failed_split_is_still_200(wired):
    client, gateway = wired
    gateway.start_replies = [started("A"), reply({"error_code": "E9", "error_message": "Wallet offline"}, 400)]
    gateway.status_replies = {"A": [approved("A")]}

    res = client.post("/api/v1/ecr/sales/split-payment", json=BASE)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "failed"
    assert data["message"] == "Part 2 failed to start: Error E9: Wallet offline"
    assert [p["status"] for p in data["parts"]] == ["approved", "error"]


def test_invalid_split_config_is_400(wired):
    client, gateway = wired
    payload = dict(BASE, splits=[{"payment_method": "card", "percentage": 95}])
    res = client.post("/api/v1/ecr/sales/split-payment", json=payload)
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["details"]["error_code"] == "INVALID_SPLIT_CONFIG"
    assert "95" in res.json()["message"]
    assert gateway.calls == []


def test_missing_field_is_400(wired):
    client, _ = wired
    payload = {k: v for k, v in BASE.items() if k != "last_reference"}
    res = client.post("/api/v1/ecr/sales/split-payment", json=payload)
    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "last_reference is required"
    assert body["error"]["field"] == "last_reference"
    assert body["error"]["details"]["error_code"] == "MISSING_FIELD"


def test_tax_pairing_is_400(wired):
    client, _ = wired
    payload = dict(BASE, amounts={"total": "100.00", "base_state_tax": "90.00", "state_tax": "10.00"})
    res = client.post("/api/v1/ecr/sales/split-payment", json=payload)
    assert res.status_code == 400
    assert res.json()["error"]["details"]["error_code"] == "TAX_VALIDATION_ERROR"


def test_non_numeric_tip_is_400(wired):
    client, gateway = wired
    payload = dict(BASE, amounts={"total": "10.00", "tip": "abc"})
    res = client.post("/api/v1/ecr/sales/split-payment", json=payload)
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "amounts.tip"
    assert res.json()["error"]["details"]["error_code"] == "TAX_VALIDATION_ERROR"
    assert gateway.calls == []


def test_nan_percentage_is_422(wired):
    client, gateway = wired
    splits = [{"payment_method": "card", "percentage": "NaN"}, {"payment_method": "card", "percentage": 50}]
    res = client.post("/api/v1/ecr/sales/split-payment", json=dict(BASE, splits=splits))
    assert res.status_code == 422
    assert gateway.calls == []


def test_schema_error_is_422(wired):
    client, _ = wired
    res = client.post("/api/v1/ecr/sales/split-payment", json=dict(BASE, polling_interval=0))
    assert res.status_code == 422
    assert res.json()["error"]["type"] == "ValidationError"


def test_unknown_split_is_404(wired):
    client, _ = wired
    res = client.post(
        "/api/v1/ecr/transaction/split-payment-status",
        json={"split_trx_id": "SPT-0-UNKNOWN", "session_id": "SESSION-1",
              "terminal_id": "T-01", "station_number": "1234", "cashier_id": "0001"},
    )
    assert res.status_code == 404
    assert res.json()["error"]["details"]["error_code"] == "NOT_FOUND"


def test_status_query_without_terminal_identity(wired):
    client, gateway = wired
    gateway.start_replies = [started("A")]
    gateway.status_replies = {"A": [approved("A")]}
    payload = dict(BASE, splits=[{"payment_method": "card", "percentage": 100}])
    data = client.post("/api/v1/ecr/sales/split-payment", json=payload).json()["data"]

    res = client.post(
        "/api/v1/ecr/transaction/split-payment-status",
        json={"split_trx_id": data["split_trx_id"], "session_id": "SESSION-1"},
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "completed"
