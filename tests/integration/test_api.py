"""Integration tests for the HTTP API (in-memory storage, fake email transport)."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

PNG_1X1 = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def contract_body(clock) -> dict:
    return {
        "title": "Summer Jazz Night",
        "artist_id": "artist-1",
        "venue_id": "venue-1",
        "event_date": (clock.now + timedelta(days=10)).isoformat(),
        "event_venue": "Blue Note Hall",
        "performance_fee": 1500,
        "payment_terms": "50% deposit",
        "performance_details": {"duration": "90 minutes"},
    }


@pytest.fixture
def booking_body(clock) -> dict:
    return {
        "booking_id": "booking-api-1",
        "artist_name": "John Doe",
        "artist_email": "artist@example.com",
        "venue_name": "Blue Note Hall",
        "venue_email": "venue@example.com",
        "contract_title": "Summer Jazz Night",
        "event_date": (clock.now + timedelta(days=10)).isoformat(),
        "event_venue": "Blue Note Hall",
        "artist_id": "artist-1",
        "venue_id": "venue-1",
        "performance_fee": "1500.00",
    }


def _create_contract(client: TestClient, body: dict) -> str:
    response = client.post("/api/v1/contracts", json=body)
    assert response.status_code == 201
    return response.json()["contract_id"]


def _sign(client: TestClient, contract_id: str, role: str = "artist", image: str = PNG_1X1):
    return client.post(
        "/api/v1/signatures",
        json={
            "contract_id": contract_id,
            "signer_name": "John Doe" if role == "artist" else "Jane Venue",
            "signer_email": f"{role}@example.com",
            "signer_role": role,
            "signature_image": image,
        },
    )


class TestHealthEndpoints:
    def test_health(self, client: TestClient):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["storage"] == "memory"


class TestContractEndpoints:
    """Test contract creation and lifecycle over HTTP."""

    def test_create_contract(self, client: TestClient, contract_body):
        response = client.post("/api/v1/contracts", json=contract_body)

        assert response.status_code == 201
        data = response.json()
        assert data["errors"] == []
        contract = data["contract"]
        assert contract["contract_id"] == data["contract_id"]
        assert contract["status"] == "draft"
        assert contract["effective_status"] == "draft"
        assert contract["performance_fee"] == "1500.00"
        assert contract["signed_roles"] == []

    def test_incomplete_contract_kept_with_errors(self, client: TestClient):
        response = client.post("/api/v1/contracts", json={"title": "Open mic"})

        assert response.status_code == 201
        data = response.json()
        fields = {error["field"] for error in data["errors"]}
        assert {"artist_id", "venue_id"} <= fields
        assert client.get(f"/api/v1/contracts/{data['contract_id']}").status_code == 200

    def test_unknown_field_rejected(self, client: TestClient, contract_body):
        response = client.post("/api/v1/contracts", json={**contract_body, "fee": 10})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_get_unknown_contract(self, client: TestClient):
        response = client.get("/api/v1/contracts/CONTRACT-MISSING")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_list_contracts_by_status(self, client: TestClient, contract_body):
        draft_id = _create_contract(client, contract_body)
        cancelled_id = _create_contract(client, contract_body)
        client.patch(f"/api/v1/contracts/{cancelled_id}/status", json={"status": "cancelled"})

        response = client.get("/api/v1/contracts", params={"status": "draft"})

        assert response.status_code == 200
        assert [c["contract_id"] for c in response.json()] == [draft_id]

    def test_backward_transition_conflict(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        _sign(client, contract_id)

        response = client.patch(
            f"/api/v1/contracts/{contract_id}/status", json={"status": "draft"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_invalid_status_value(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)

        response = client.patch(
            f"/api/v1/contracts/{contract_id}/status", json={"status": "archived"}
        )

        assert response.status_code == 422

    def test_reschedule_event(self, client: TestClient, contract_body, clock):
        contract_id = _create_contract(client, contract_body)
        new_date = clock.now + timedelta(days=30)

        response = client.patch(
            f"/api/v1/contracts/{contract_id}/event-date",
            json={"event_date": new_date.isoformat()},
        )

        assert response.status_code == 200
        assert response.json()["event_date"].startswith(new_date.date().isoformat())

    def test_expire_overdue(self, client: TestClient, contract_body, clock):
        contract_id = _create_contract(client, contract_body)
        clock.advance(days=11)

        assert client.get(f"/api/v1/contracts/{contract_id}").json()["effective_status"] == (
            "expired"
        )
        response = client.post("/api/v1/contracts/expire")

        assert response.status_code == 200
        assert response.json() == {"expired": [contract_id]}


class TestSignatureEndpoints:
    """Test signature capture and certificate verification over HTTP."""

    def test_sign_and_verify(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)

        response = _sign(client, contract_id)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["tamper_detected"] is False
        assert data["contract_status"] == "pending_signatures"
        assert len(data["signature_hash"]) == 64
        number = data["certificate_number"]

        verify = client.get(f"/api/v1/signatures/certificates/{number}/verify")
        assert verify.json() == {"certificate_number": number, "is_valid": True}

        details = client.get(f"/api/v1/signatures/certificates/{number}").json()
        assert details["signer_role"] == "artist"
        assert details["verification_count"] == 1

    def test_both_signatures_sign_contract(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)

        _sign(client, contract_id, "artist")
        response = _sign(client, contract_id, "venue")

        assert response.json()["contract_status"] == "signed"
        contract = client.get(f"/api/v1/contracts/{contract_id}").json()
        assert contract["signed_roles"] == ["artist", "venue"]

    def test_invalid_capture_returns_field_errors(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)

        response = client.post(
            "/api/v1/signatures",
            json={
                "contract_id": contract_id,
                "signer_name": "",
                "signer_email": "not-an-email",
                "signer_role": "promoter",
                "signature_image": PNG_1X1,
            },
        )

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert {e["field"] for e in data["errors"]} == {
            "signer_name",
            "signer_email",
            "signer_role",
        }

    def test_different_payload_for_same_role_is_rejected(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        first = _sign(client, contract_id).json()

        response = _sign(client, contract_id, image=PNG_1X1 + "AA")

        assert response.status_code == 409
        data = response.json()
        assert data["tamper_detected"] is True
        assert data["certificate_number"] == first["certificate_number"]
        assert data["contract_status"] is None
        verify = client.get(f"/api/v1/signatures/certificates/{first['certificate_number']}/verify")
        assert verify.json()["is_valid"] is True

    def test_same_payload_resubmitted_is_idempotent(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        first = _sign(client, contract_id).json()

        again = _sign(client, contract_id)

        assert again.status_code == 201
        assert again.json()["certificate_number"] == first["certificate_number"]

    def test_sign_unknown_contract(self, client: TestClient):
        assert _sign(client, "CONTRACT-MISSING").status_code == 404

    def test_sign_cancelled_contract_conflict(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        client.patch(f"/api/v1/contracts/{contract_id}/status", json={"status": "cancelled"})

        assert _sign(client, contract_id).status_code == 409

    def test_unknown_certificate(self, client: TestClient):
        verify = client.get("/api/v1/signatures/certificates/SIG-UNKNOWN-1/verify")
        details = client.get("/api/v1/signatures/certificates/SIG-UNKNOWN-1")

        assert verify.status_code == 200
        assert verify.json()["is_valid"] is False
        assert details.status_code == 404

    def test_authenticity_and_signature_check(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        number = _sign(client, contract_id).json()["certificate_number"]
        base = f"/api/v1/signatures/certificates/{number}"

        assert client.post(f"{base}/authenticity", json={}).json()["authentic"] is True
        check = client.post(f"{base}/signature-check", json={"signature_image": PNG_1X1}).json()
        assert check["is_valid"] is True
        assert check["signer_name"] == "John Doe"

        forged = client.post(f"{base}/authenticity", json={"signature_image": "forged"})
        assert forged.json()["authentic"] is False
        assert client.get(f"{base}/verify").json()["is_valid"] is True

    def test_batch_verify(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        number = _sign(client, contract_id).json()["certificate_number"]

        response = client.post(
            "/api/v1/signatures/certificates/batch-verify",
            json={"signatures": {number: PNG_1X1, "SIG-UNKNOWN-1": PNG_1X1}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data[number]["is_valid"] is True
        assert data["SIG-UNKNOWN-1"]["is_valid"] is False
        assert data["SIG-UNKNOWN-1"]["reason"] == "not_found"

    def test_audit_trail_document_and_expiry(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        number = _sign(client, contract_id).json()["certificate_number"]
        base = f"/api/v1/signatures/certificates/{number}"
        client.get(f"{base}/verify")

        trail = client.get(f"{base}/audit-trail").json()
        document = client.get(f"{base}/document")
        expiring = client.get(f"{base}/expiring", params={"days": 30}).json()

        assert [entry["action"] for entry in trail] == ["created", "verified"]
        assert document.headers["content-type"].startswith("text/html")
        assert "VERIFIED" in document.text
        assert f"verify-certificate?cert={number}" in document.text
        assert expiring == {"certificate_number": number, "expiring_soon": False, "days": 30}

    def test_revoke_certificate(self, client: TestClient, contract_body):
        contract_id = _create_contract(client, contract_body)
        number = _sign(client, contract_id).json()["certificate_number"]
        base = f"/api/v1/signatures/certificates/{number}"

        response = client.post(f"{base}/revoke", json={"reason": "Signed by mistake"})

        assert response.json() == {"certificate_number": number, "revoked": True}
        assert client.get(f"{base}/verify").json()["is_valid"] is False

    def test_issue_certificate(self, client: TestClient, contract_body, clock):
        response = client.post(
            "/api/v1/signatures/certificates",
            json={
                "contract_id": "CONTRACT-EXTERNAL-1",
                "signer_name": "Jane Venue",
                "signer_email": "venue@example.com",
                "signer_role": "venue",
                "signature_hash": "a" * 64,
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["expires_at"].startswith((clock.now + timedelta(days=365)).date().isoformat())
        number = data["certificate_number"]
        assert client.get(f"/api/v1/signatures/certificates/{number}/verify").json()["is_valid"]


class TestBookingEndpoints:
    """Test booking event handling over HTTP."""

    def test_booking_created_generates_contract(self, client: TestClient, booking_body, email_sender):
        response = client.post("/api/v1/bookings", json=booking_body)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["notification_sent"] is True
        assert data["scheduled_reminders"] == [7, 3, 1]
        assert data["contract_errors"] == []
        contract = client.get(f"/api/v1/contracts/{data['contract_id']}").json()
        assert contract["booking_id"] == "booking-api-1"
        assert email_sender.recipients() == ["artist@example.com", "venue@example.com"]

    def test_signature_notifies_counterpart(self, client: TestClient, booking_body, email_sender):
        contract_id = client.post("/api/v1/bookings", json=booking_body).json()["contract_id"]
        email_sender.sent.clear()

        response = _sign(client, contract_id, "artist")

        assert response.json()["notification_sent"] is True
        assert email_sender.recipients() == ["venue@example.com"]

    def test_confirm_uses_stored_booking(self, client: TestClient, booking_body, email_sender):
        client.post("/api/v1/bookings", json=booking_body)
        email_sender.sent.clear()

        response = client.post("/api/v1/bookings/booking-api-1/confirm", json={})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert email_sender.recipients() == ["venue@example.com"]

    def test_cancel_then_confirm_conflicts(self, client: TestClient, booking_body, email_sender):
        client.post("/api/v1/bookings", json=booking_body)

        cancelled = client.post(
            "/api/v1/bookings/booking-api-1/cancel", json={"reason": "Venue flooded"}
        )
        repeated = client.post(
            "/api/v1/bookings/booking-api-1/cancel", json={"reason": "Venue flooded"}
        )
        confirmed = client.post("/api/v1/bookings/booking-api-1/confirm", json={})

        assert cancelled.json()["notification_sent"] is True
        assert repeated.status_code == 200
        assert repeated.json()["notification_sent"] is False
        assert confirmed.status_code == 409
        assert confirmed.json()["error"] == "Booking has been cancelled"

    def test_cancel_unknown_booking_without_payload(self, client: TestClient):
        response = client.post("/api/v1/bookings/booking-missing/cancel", json={"reason": "x"})

        assert response.status_code == 404

    def test_invalid_email_rejected(self, client: TestClient, booking_body):
        response = client.post(
            "/api/v1/bookings", json={**booking_body, "artist_email": "not-an-email"}
        )

        assert response.status_code == 422

    def test_queue_booking_event(self, client: TestClient, booking_body):
        booking = {
            key: value
            for key, value in booking_body.items()
            if key != "booking_id"
        }
        booking["contract_id"] = "CONTRACT-1"
        body = {"event": "created", "booking_id": "booking-api-1", "booking": booking}

        with patch(
            "stagebook.api.routes.bookings.enqueue_booking_event",
            new_callable=AsyncMock,
        ) as mock_enqueue:
            mock_enqueue.return_value = "job-1"
            queued = client.post("/api/v1/bookings/events", json=body)

            mock_enqueue.return_value = None
            unavailable = client.post("/api/v1/bookings/events", json=body)

        assert queued.status_code == 202
        assert queued.json() == {"queued": True, "job_id": "job-1"}
        assert unavailable.status_code == 503
        assert unavailable.json() == {"queued": False, "job_id": None}
        event, details, reason = mock_enqueue.await_args_list[0].args
        assert event == "created"
        assert details.booking_id == "booking-api-1"
        assert reason is None


class TestReminderEndpoints:
    """Test contract reminder routes."""

    def test_batch_reminders(self, client: TestClient, clock, email_sender):
        target = {
            "contract_id": "CONTRACT-1",
            "artist_email": "artist@example.com",
            "artist_name": "John Doe",
            "venue_email": "venue@example.com",
            "venue_name": "Blue Note Hall",
            "contract_title": "Summer Jazz Night",
            "event_date": (clock.now + timedelta(days=5)).isoformat(),
            "event_venue": "Blue Note Hall",
        }
        email_sender.fail_for.add("venue@example.com")

        response = client.post("/api/v1/reminders/batch", json={"contracts": [target]})

        assert response.status_code == 200
        assert response.json() == {"success_count": 1, "failure_count": 1, "total": 2}

    def test_reminder_run_not_repeated(self, client: TestClient, booking_body, clock, email_sender):
        client.post("/api/v1/bookings", json=booking_body)
        email_sender.sent.clear()
        clock.advance(days=3)

        first = client.post("/api/v1/reminders/run").json()
        second = client.post("/api/v1/reminders/run").json()

        assert first["contracts_reminded"] == 1
        assert first["success_count"] == 2
        assert second["contracts_reminded"] == 0
        assert second["already_sent"] == 1
        assert len(email_sender.sent) == 2

    def test_queue_reminder_run(self, client: TestClient):
        with patch(
            "stagebook.api.routes.reminders.enqueue_reminder_run",
            new_callable=AsyncMock,
            return_value=None,
        ):
            response = client.post("/api/v1/reminders/run/background")

        assert response.status_code == 503
        assert response.json()["queued"] is False
