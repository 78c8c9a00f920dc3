"""API endpoint integration tests.

Tests the FastAPI endpoints for custody chain operations.
"""

from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from cash_custody.models import utcnow


pytestmark = pytest.mark.asyncio


def as_user(user_id: UUID) -> dict[str, str]:
    return {"X-User-ID": str(user_id)}


async def _collect_shift(client: AsyncClient, staff, shift) -> dict:
    """Open and accept the shift_collection for a shift."""
    response = await client.post(
        f"/api/v1/shifts/{shift.shift_id}/handover", headers=as_user(staff.employee_id)
    )
    assert response.status_code == 201
    handover = response.json()

    response = await client.post(
        f"/api/v1/handovers/{handover['handover_id']}/confirm",
        headers=as_user(staff.manager_id),
        json={"accept_as_is": True},
    )
    assert response.status_code == 200
    return response.json()["handover"]


async def _open_and_accept(
    client: AsyncClient, station, handover_type: str, sender: UUID, receiver: UUID
) -> dict:
    response = await client.post(
        "/api/v1/handovers",
        headers=as_user(sender),
        json={
            "station_id": str(station.station_id),
            "handover_type": handover_type,
            "from_user_id": str(sender),
        },
    )
    assert response.status_code == 201, response.text
    handover = response.json()

    response = await client.post(
        f"/api/v1/handovers/{handover['handover_id']}/confirm",
        headers=as_user(receiver),
        json={"accept_as_is": True},
    )
    assert response.status_code == 200
    return response.json()["handover"]


async def _advance_to_owner(client: AsyncClient, station, staff, shift) -> dict:
    await _collect_shift(client, staff, shift)
    await _open_and_accept(
        client, station, "employee_to_manager", staff.employee_id, staff.manager_id
    )
    return await _open_and_accept(
        client, station, "manager_to_owner", staff.manager_id, staff.owner_id
    )


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestActorHeader:
    """The acting user comes from X-User-ID."""

    async def test_missing_header(self, client: AsyncClient):
        response = await client.get("/api/v1/handovers/pending")
        assert response.status_code == 401

    async def test_malformed_header(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/handovers/pending", headers={"X-User-ID": "not-a-uuid"}
        )
        assert response.status_code == 400


class TestOpenHandover:
    """POST /api/v1/handovers and the shift-end hook."""

    async def test_shift_hook_opens_collection(self, client: AsyncClient, staff, ended_shift):
        response = await client.post(
            f"/api/v1/shifts/{ended_shift.shift_id}/handover",
            headers=as_user(staff.employee_id),
            json={"notes": "end of night shift"},
        )
        assert response.status_code == 201

        data = response.json()
        assert data["handover_type"] == "shift_collection"
        assert data["status"] == "pending"
        assert Decimal(data["expected_amount"]) == Decimal("1500.00")
        assert data["to_user_id"] == str(staff.manager_id)
        assert data["actual_amount"] is None
        assert data["notes"] == "end of night shift"

    async def test_shift_hook_unknown_shift(self, client: AsyncClient, staff, station):
        response = await client.post(
            f"/api/v1/shifts/{uuid4()}/handover", headers=as_user(staff.employee_id)
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_sequence_violation(self, client: AsyncClient, station, staff, ended_shift):
        await _collect_shift(client, staff, ended_shift)

        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(staff.manager_id),
            json={
                "station_id": str(station.station_id),
                "handover_type": "manager_to_owner",
                "from_user_id": str(staff.manager_id),
            },
        )
        assert response.status_code == 400

        data = response.json()
        assert data["code"] == "SEQUENCE_VIOLATION"
        assert data["context"]["handover_type"] == "manager_to_owner"

    async def test_receiver_cannot_be_supplied(self, client: AsyncClient, station, staff):
        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(staff.employee_id),
            json={
                "station_id": str(station.station_id),
                "handover_type": "employee_to_manager",
                "from_user_id": str(staff.employee_id),
                "to_user_id": str(staff.employee_id),
            },
        )
        assert response.status_code == 422

    async def test_unknown_type(self, client: AsyncClient, station, staff):
        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(staff.employee_id),
            json={
                "station_id": str(station.station_id),
                "handover_type": "cash_to_courier",
                "from_user_id": str(staff.employee_id),
            },
        )
        assert response.status_code == 422

    async def test_outsider_forbidden(self, client: AsyncClient, station, staff):
        outsider = uuid4()
        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(outsider),
            json={
                "station_id": str(station.station_id),
                "handover_type": "employee_to_manager",
                "from_user_id": str(staff.employee_id),
            },
        )
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_PERMITTED"

    async def test_employee_cannot_open_for_manager(
        self, client: AsyncClient, station, staff, ended_shift
    ):
        await _collect_shift(client, staff, ended_shift)
        await _open_and_accept(
            client, station, "employee_to_manager", staff.employee_id, staff.manager_id
        )

        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(staff.employee_id),
            json={
                "station_id": str(station.station_id),
                "handover_type": "manager_to_owner",
                "from_user_id": str(staff.manager_id),
            },
        )
        assert response.status_code == 403
        assert response.json()["code"] == "NOT_PERMITTED"

        response = await client.get(
            "/api/v1/handovers/pending", headers=as_user(staff.owner_id)
        )
        assert response.json()["count"] == 0

    async def test_events_published_after_commit(
        self, app, client: AsyncClient, station, staff, ended_shift
    ):
        received: list = []
        app.state.emitter.on_all(received.append)

        response = await client.post(
            "/api/v1/handovers",
            headers=as_user(staff.manager_id),
            json={
                "station_id": str(station.station_id),
                "handover_type": "manager_to_owner",
                "from_user_id": str(staff.manager_id),
            },
        )
        assert response.status_code == 400
        assert received == []

        response = await client.post(
            f"/api/v1/shifts/{ended_shift.shift_id}/handover", headers=as_user(staff.employee_id)
        )
        assert response.status_code == 201
        assert [e.event_type for e in received] == ["HandoverOpened"]
        assert str(received[0].handover_id) == response.json()["handover_id"]


class TestConfirmHandover:
    """POST /api/v1/handovers/{id}/confirm."""

    @pytest.fixture
    async def pending_id(self, client: AsyncClient, staff, ended_shift) -> str:
        response = await client.post(
            f"/api/v1/shifts/{ended_shift.shift_id}/handover",
            headers=as_user(staff.employee_id),
        )
        return response.json()["handover_id"]

    async def test_missing_amount(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_AMOUNT"

    async def test_ambiguous(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={"actual_amount": "1500.00", "accept_as_is": True},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "AMBIGUOUS_CONFIRMATION"

    async def test_confirm_with_amount(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={"actual_amount": "1490.00"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Handover confirmed successfully"
        assert data["handover"]["status"] == "confirmed"
        assert Decimal(data["handover"]["difference"]) == Decimal("-10.00")

    async def test_confirm_with_discrepancy(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={"actual_amount": "1300.00"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["handover"]["status"] == "disputed"
        assert data["message"].startswith("Handover confirmed with discrepancy of")

        # Disputed is terminal
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={"accept_as_is": True},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ALREADY_FINALIZED"

    async def test_wrong_recipient(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.employee_id),
            json={"accept_as_is": True},
        )
        assert response.status_code == 403

    async def test_negative_amount_rejected(self, client: AsyncClient, staff, pending_id):
        response = await client.post(
            f"/api/v1/handovers/{pending_id}/confirm",
            headers=as_user(staff.manager_id),
            json={"actual_amount": "-5.00"},
        )
        assert response.status_code == 422

    async def test_unknown_handover(self, client: AsyncClient, staff, station):
        response = await client.post(
            f"/api/v1/handovers/{uuid4()}/confirm",
            headers=as_user(staff.manager_id),
            json={"accept_as_is": True},
        )
        assert response.status_code == 404


class TestReadEndpoints:
    """Pending inbox, single handover, and chain reads."""

    async def test_pending_for_manager(self, client: AsyncClient, staff, ended_shift):
        await client.post(
            f"/api/v1/shifts/{ended_shift.shift_id}/handover",
            headers=as_user(staff.employee_id),
        )

        response = await client.get("/api/v1/handovers/pending", headers=as_user(staff.manager_id))
        assert response.status_code == 200
        assert response.json()["count"] == 1

        response = await client.get("/api/v1/handovers/pending", headers=as_user(staff.owner_id))
        assert response.json()["count"] == 0

    async def test_get_handover(self, client: AsyncClient, staff, ended_shift):
        created = await _collect_shift(client, staff, ended_shift)

        response = await client.get(
            f"/api/v1/handovers/{created['handover_id']}", headers=as_user(staff.owner_id)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        response = await client.get(
            f"/api/v1/handovers/{created['handover_id']}", headers=as_user(uuid4())
        )
        assert response.status_code == 403

    async def test_get_missing_handover(self, client: AsyncClient, staff):
        response = await client.get(f"/api/v1/handovers/{uuid4()}", headers=as_user(staff.owner_id))
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_chain(self, client: AsyncClient, station, staff, ended_shift):
        to_owner = await _advance_to_owner(client, station, staff, ended_shift)

        response = await client.get(
            f"/api/v1/handovers/{to_owner['handover_id']}/chain",
            headers=as_user(staff.owner_id),
        )
        assert response.status_code == 200
        types = [h["handover_type"] for h in response.json()["items"]]
        assert types == ["shift_collection", "employee_to_manager", "manager_to_owner"]


class TestBankDeposit:
    """POST /api/v1/handovers/bank-deposit."""

    async def test_mismatch_then_deposit(self, client: AsyncClient, station, staff, ended_shift):
        await _advance_to_owner(client, station, staff, ended_shift)
        body = {
            "station_id": str(station.station_id),
            "bank_name": "State Bank",
            "deposit_reference": "DEP-0001",
        }

        response = await client.post(
            "/api/v1/handovers/bank-deposit",
            headers=as_user(staff.owner_id),
            json={**body, "amount": "1000.00"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "AMOUNT_MISMATCH"

        response = await client.post(
            "/api/v1/handovers/bank-deposit",
            headers=as_user(staff.owner_id),
            json={**body, "amount": "1500.00"},
        )
        assert response.status_code == 201

        data = response.json()
        assert data["handover_type"] == "deposit_to_bank"
        assert data["status"] == "confirmed"
        assert data["to_user_id"] is None

    async def test_manager_cannot_deposit(self, client: AsyncClient, station, staff, ended_shift):
        await _advance_to_owner(client, station, staff, ended_shift)

        response = await client.post(
            "/api/v1/handovers/bank-deposit",
            headers=as_user(staff.manager_id),
            json={
                "station_id": str(station.station_id),
                "amount": "1500.00",
                "bank_name": "State Bank",
                "deposit_reference": "DEP-0002",
            },
        )
        assert response.status_code == 403


class TestStationEndpoints:
    """Station listings and reports."""

    async def test_list_and_unconfirmed(self, client: AsyncClient, station, staff, ended_shift):
        await client.post(
            f"/api/v1/shifts/{ended_shift.shift_id}/handover",
            headers=as_user(staff.employee_id),
        )

        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers",
            headers=as_user(staff.owner_id),
            params={"status": "pending", "page": 1, "page_size": 10},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["page_size"] == 10

        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers/unconfirmed",
            headers=as_user(staff.owner_id),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["alert"] is not None

    async def test_summary_and_deposits(self, client: AsyncClient, station, staff, ended_shift):
        await _advance_to_owner(client, station, staff, ended_shift)
        await client.post(
            "/api/v1/handovers/bank-deposit",
            headers=as_user(staff.owner_id),
            json={
                "station_id": str(station.station_id),
                "amount": "1500.00",
                "bank_name": "State Bank",
                "deposit_reference": "DEP-0003",
            },
        )
        today = utcnow().date().isoformat()
        dates = {"start_date": today, "end_date": today}

        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers/summary",
            headers=as_user(staff.owner_id),
            params=dates,
        )
        assert response.status_code == 200
        summary = response.json()
        assert len(summary["by_type"]) == 4
        assert summary["pending_count"] == 0
        assert summary["disputed_count"] == 0

        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers/bank-deposits",
            headers=as_user(staff.owner_id),
            params=dates,
        )
        assert response.status_code == 200
        deposits = response.json()
        assert deposits["count"] == 1
        assert Decimal(deposits["total_deposited"]) == Decimal("1500.00")

    async def test_summary_requires_dates(self, client: AsyncClient, station, staff):
        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers/summary",
            headers=as_user(staff.owner_id),
        )
        assert response.status_code == 422

    async def test_reversed_range(self, client: AsyncClient, station, staff):
        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers/summary",
            headers=as_user(staff.owner_id),
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        )
        assert response.status_code == 400

    async def test_outsider_forbidden(self, client: AsyncClient, station):
        response = await client.get(
            f"/api/v1/stations/{station.station_id}/handovers",
            headers=as_user(uuid4()),
        )
        assert response.status_code == 403
