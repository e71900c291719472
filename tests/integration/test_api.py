"""Integration tests for API endpoints"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import sms_samples
from pesalog.infrastructure.database.models import Category, RawMessage

pytestmark = pytest.mark.integration


def post_message(client: TestClient, body: str, sender: str = "MPESA", timestamp: str = "2026-01-17T05:35:00"):
    return client.post("/v1/messages", json={"sender": sender, "body": body, "timestamp": timestamp})


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    post_message(client, sms_samples.SEND_MONEY)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "pesalog_messages_total" in response.text


def test_request_id_header(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_process_message_endpoint(client: TestClient):
    response = post_message(client, sms_samples.SEND_MONEY)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "processed"
    assert data["dialect"] == "mpesa_send"
    assert data["needs_classification"] is True
    assert data["is_person_to_person"] is True
    assert data["transaction_id"] is not None

    duplicate = post_message(client, sms_samples.SEND_MONEY).json()
    assert duplicate["status"] == "duplicate"
    assert duplicate["transaction_id"] == data["transaction_id"]


def test_process_message_validation(client: TestClient):
    response = client.post("/v1/messages", json={"sender": "MPESA", "body": ""})
    assert response.status_code == 422


def test_import_endpoint(client: TestClient):
    response = client.post(
        "/v1/messages/import",
        json={
            "messages": [
                {"sender": "MPESA", "body": sms_samples.SEND_MONEY, "timestamp": "2026-01-17T05:35:00"},
                {"sender": "MPESA", "body": sms_samples.RECEIVED, "timestamp": "2026-01-17T05:36:00"},
                {"sender": "Mum", "body": "See you at 5pm", "timestamp": "2026-01-17T06:00:00"},
            ]
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["processed"] == 2
    assert data["skipped"] == 1
    assert data["cancelled"] is False


def test_message_stats_endpoint(client: TestClient):
    post_message(client, sms_samples.SEND_MONEY)
    post_message(client, "Your M-PESA PIN reset request was received.")

    response = client.get("/v1/messages/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["parsed"] == 1
    assert data["failed"] == 1
    assert data["pending"] == 0


def test_poll_endpoint(client: TestClient):
    recent = (datetime.now() - timedelta(hours=1)).isoformat()
    response = client.post(
        "/v1/messages/poll",
        json={"messages": [{"sender": "MPESA", "body": sms_samples.AIRTIME, "timestamp": recent}]},
    )

    assert response.status_code == 200
    assert response.json()["processed"] == 1


def test_transactions_list_and_get(client: TestClient):
    transaction_id = post_message(client, sms_samples.SEND_MONEY).json()["transaction_id"]

    pending = client.get("/v1/transactions", params={"status": "pending_classification"}).json()
    assert [t["id"] for t in pending["transactions"]] == [transaction_id]

    response = client.get(f"/v1/transactions/{transaction_id}")
    assert response.status_code == 200
    assert response.json()["amount_cents"] == 33000

    assert client.get("/v1/transactions/9999").status_code == 404


def test_classify_and_archive(client: TestClient, db: Session):
    transaction_id = post_message(client, sms_samples.SEND_MONEY).json()["transaction_id"]
    category = Category(name="Family")
    db.add(category)
    db.commit()

    response = client.post(
        f"/v1/transactions/{transaction_id}/classify",
        json={"category_id": category.id, "confidence": 0.9},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "classified"
    assert response.json()["category_id"] == category.id

    missing_category = client.post(f"/v1/transactions/{transaction_id}/classify", json={"category_id": 9999})
    assert missing_category.status_code == 404

    assert client.post(f"/v1/transactions/{transaction_id}/archive").status_code == 200
    archived = client.post(f"/v1/transactions/{transaction_id}/classify", json={"category_id": category.id})
    assert archived.status_code == 409


def test_facility_debt_endpoints(client: TestClient, fuliza_draw):
    post_message(client, fuliza_draw(due_in_days=3))
    post_message(client, sms_samples.fuliza_repayment("UAH3H46G3Q", "500.00"), timestamp="2026-01-17T06:00:00")

    debts = client.get("/v1/debts").json()["debts"]
    assert len(debts) == 1
    assert debts[0]["kind"] == "revolving_facility"
    assert debts[0]["total_outstanding_cents"] == 21662
    assert debts[0]["status"] == "partially_paid"

    detail = client.get(f"/v1/debts/{debts[0]['id']}").json()
    assert len(detail["payments"]) == 1
    assert detail["payments"][0]["amount_cents"] == 50000

    summary = client.get("/v1/debts/summary").json()
    assert summary["facility"]["outstanding_cents"] == 21662
    assert summary["total_facility_fees_cents"] == 717

    due_soon = client.get("/v1/debts/due-soon", params={"days": 7}).json()["debts"]
    assert [d["id"] for d in due_soon] == [debts[0]["id"]]


def test_peer_debt_endpoints(client: TestClient):
    response = client.post(
        "/v1/debts",
        json={
            "kind": "owed_by_person",
            "amount_cents": 100000,
            "counterparty": "JOHN DOE",
            "due_date": (datetime.now() - timedelta(days=1)).isoformat(),
        },
    )
    assert response.status_code == 201
    debt_id = response.json()["id"]

    paid = client.post(f"/v1/debts/{debt_id}/payments", json={"amount_cents": 40000}).json()
    assert paid["total_outstanding_cents"] == 60000
    assert paid["status"] == "partially_paid"

    sweep = client.post("/v1/debts/overdue-sweep").json()
    assert sweep["promoted_debt_ids"] == [debt_id]
    assert client.post("/v1/debts/overdue-sweep").json()["promoted_debt_ids"] == []

    assert client.post(f"/v1/debts/{debt_id}/write-off").json()["status"] == "written_off"
    assert client.get("/v1/debts").json()["debts"] == []

    assert client.post("/v1/debts/9999/mark-paid").status_code == 404
    assert client.post("/v1/debts/9999/payments", json={"amount_cents": 100}).status_code == 404


def test_debt_status_endpoints_report_unexpected_errors(client: TestClient, monkeypatch):
    def broken(self, db, debt_id):
        raise RuntimeError("boom")

    monkeypatch.setattr("pesalog.services.debts.DebtReconciler.mark_paid", broken)
    monkeypatch.setattr("pesalog.services.debts.DebtReconciler.write_off", broken)

    assert client.post("/v1/debts/1/mark-paid").status_code == 500
    assert client.post("/v1/debts/1/write-off").status_code == 500


def test_peer_debt_rejects_facility_kind(client: TestClient):
    response = client.post(
        "/v1/debts",
        json={"kind": "revolving_facility", "amount_cents": 100, "counterparty": "X"},
    )
    assert response.status_code == 422


def test_reset_keeps_messages_for_replay(client: TestClient, db: Session):
    post_message(client, sms_samples.SEND_MONEY)

    response = client.post("/v1/data/reset", json={"keep_messages": True})
    assert response.status_code == 200
    assert response.json()["deleted"]["transactions"] == 1

    raw = db.query(RawMessage).one()
    db.refresh(raw)
    assert raw.parse_status == "pending"
    assert client.get("/v1/transactions").json()["transactions"] == []

    # Replaying the kept message rebuilds the ledger
    assert post_message(client, sms_samples.SEND_MONEY).json()["status"] == "processed"


def test_reset_everything(client: TestClient, db: Session):
    post_message(client, sms_samples.SEND_MONEY)

    response = client.post("/v1/data/reset", json={})
    assert response.status_code == 200
    assert response.json()["deleted"]["raw_messages"] == 1
    assert db.query(RawMessage).count() == 0
