"""API tests for backfill assignment, decisions, coverage and workload."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from absence_coverage.models.enums import AbsenceType
from absence_coverage.schemas.common import EmployeeRef
from absence_coverage.services import backfill_assignment

if TYPE_CHECKING:
    from httpx import AsyncClient

    from absence_coverage.ports.backfill import InMemoryBackfillManagement

FUNERAL_HOME_ID = uuid.uuid4()
DIRECTOR_ID = uuid.uuid4()
BACKFILL_ID = uuid.uuid4()
ABSENT_ID = uuid.uuid4()
DIRECTOR_HEADERS = {
    "X-Funeral-Home-Id": str(FUNERAL_HOME_ID),
    "X-User-Id": str(DIRECTOR_ID),
    "X-Role": "director",
}
BACKFILL_HEADERS = {
    "X-Funeral-Home-Id": str(FUNERAL_HOME_ID),
    "X-User-Id": str(BACKFILL_ID),
    "X-Role": "embalmer",
}
BASE_URL = f"/funeral-homes/{FUNERAL_HOME_ID}/backfills"


def _payload(absence_id: uuid.UUID | None = None, **overrides: Any) -> dict:  # type: ignore[type-arg]
    data: dict[str, Any] = {
        "absence_id": str(absence_id or uuid.uuid4()),
        "absence_type": "pto",
        "absence_start_date": "2025-01-10",
        "absence_end_date": "2025-01-15",
        "absent_employee": {"id": str(ABSENT_ID), "name": "Ada Lovelace", "role": "embalmer"},
        "backfill_employee": {"id": str(BACKFILL_ID), "name": "Bo Backfill", "role": "embalmer"},
        "premium_multiplier": 1.5,
    }
    data.update(overrides)
    return data


async def _assign(client: AsyncClient, **overrides: Any) -> dict:  # type: ignore[type-arg]
    response = await client.post(BASE_URL, json=_payload(**overrides), headers=DIRECTOR_HEADERS)
    assert response.status_code == 201
    return response.json()["assignment"]


# ---------------------------------------------------------------------------
# Assign
# ---------------------------------------------------------------------------


async def test_assign_backfill(async_client: AsyncClient) -> None:
    response = await async_client.post(BASE_URL, json=_payload(), headers=DIRECTOR_HEADERS)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["estimated_hours"] == 40
    assert body["estimated_cost"] == 1500.0
    assert body["assignment"]["status"] == "suggested"
    assert body["assignment"]["assigned_by"] == str(DIRECTOR_ID)


async def test_assign_requires_manager(async_client: AsyncClient) -> None:
    response = await async_client.post(BASE_URL, json=_payload(), headers=BACKFILL_HEADERS)
    assert response.status_code == 403


async def test_assign_self_coverage_is_rejected(async_client: AsyncClient) -> None:
    payload = _payload(backfill_employee={"id": str(ABSENT_ID), "name": "Ada Lovelace"})
    response = await async_client.post(BASE_URL, json=payload, headers=DIRECTOR_HEADERS)
    assert response.status_code == 422


async def test_double_booking_is_a_conflict(async_client: AsyncClient) -> None:
    await _assign(async_client, send_for_confirmation=True)
    response = await async_client.post(
        BASE_URL,
        json=_payload(absence_start_date="2025-01-12", absence_end_date="2025-01-20"),
        headers=DIRECTOR_HEADERS,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error_type"] == "conflict"
    assert body["errors"] == [
        "Bo Backfill already has a pending or confirmed backfill assignment overlapping this period"
    ]
    assert body["estimated_hours"] == 64


async def test_get_assignment_of_other_funeral_home(
    async_client: AsyncClient, backfill_port: InMemoryBackfillManagement
) -> None:
    foreign = backfill_assignment.create_backfill_assignment(
        funeral_home_id=uuid.uuid4(),
        absence_id=uuid.uuid4(),
        absence_type=AbsenceType.PTO,
        absence_start_date=date(2025, 1, 10),
        absence_end_date=date(2025, 1, 15),
        absent_employee=EmployeeRef(id=uuid.uuid4(), name="A"),
        backfill_employee=EmployeeRef(id=uuid.uuid4(), name="B"),
        assigned_by=uuid.uuid4(),
        estimated_hours=40,
    )
    backfill_port.seed(foreign)
    response = await async_client.get(f"{BASE_URL}/{foreign.id}", headers=DIRECTOR_HEADERS)
    assert response.status_code == 404
    assert response.json()["detail"] == "Backfill assignment not found"


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


async def test_confirm_then_complete(async_client: AsyncClient) -> None:
    assignment = await _assign(async_client, send_for_confirmation=True)

    confirmed = await async_client.post(f"{BASE_URL}/{assignment['id']}/confirm", headers=BACKFILL_HEADERS)
    assert confirmed.status_code == 200
    assert confirmed.json()["assignment"]["status"] == "confirmed"
    assert confirmed.json()["assignment"]["confirmed_by"] == str(BACKFILL_ID)

    completed = await async_client.post(
        f"{BASE_URL}/{assignment['id']}/complete", json={"actual_hours": 38}, headers=DIRECTOR_HEADERS
    )
    assert completed.status_code == 200
    assert completed.json()["assignment"]["status"] == "completed"
    assert completed.json()["assignment"]["actual_hours"] == 38

    again = await async_client.post(
        f"{BASE_URL}/{assignment['id']}/complete", json={"actual_hours": 38}, headers=DIRECTOR_HEADERS
    )
    assert again.status_code == 409
    assert again.json()["errors"] == ["Cannot complete backfill assignment in completed status"]


async def test_backfill_employee_cannot_complete(async_client: AsyncClient) -> None:
    assignment = await _assign(async_client)
    response = await async_client.post(
        f"{BASE_URL}/{assignment['id']}/complete", json={"actual_hours": 8}, headers=BACKFILL_HEADERS
    )
    assert response.status_code == 403


async def test_decline_assignment(async_client: AsyncClient) -> None:
    assignment = await _assign(async_client)
    response = await async_client.post(
        f"{BASE_URL}/{assignment['id']}/decline", json={"reason": "Out of town"}, headers=BACKFILL_HEADERS
    )
    assert response.status_code == 200
    assert response.json()["assignment"]["status"] == "rejected"
    assert response.json()["assignment"]["rejection_reason"] == "Out of town"


async def test_decline_unknown_assignment(async_client: AsyncClient) -> None:
    response = await async_client.post(
        f"{BASE_URL}/{uuid.uuid4()}/decline", json={"reason": "Busy"}, headers=BACKFILL_HEADERS
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Coverage and workload
# ---------------------------------------------------------------------------


async def test_coverage_summary(async_client: AsyncClient) -> None:
    absence_id = uuid.uuid4()
    assignment = await _assign(async_client, absence_id=absence_id)
    await async_client.post(f"{BASE_URL}/{assignment['id']}/confirm", headers=BACKFILL_HEADERS)

    url = f"/funeral-homes/{FUNERAL_HOME_ID}/absences/{absence_id}/coverage"
    response = await async_client.get(url, headers=DIRECTOR_HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["confirmed_count"] == 1
    assert body["pending_count"] == 0
    assert body["coverage_complete"] is True
    assert body["estimated_cost"] == 1500.0


async def test_coverage_summary_of_unknown_absence_is_empty(async_client: AsyncClient) -> None:
    url = f"/funeral-homes/{FUNERAL_HOME_ID}/absences/{uuid.uuid4()}/coverage"
    response = await async_client.get(url, headers=DIRECTOR_HEADERS)
    assert response.status_code == 200
    assert response.json()["confirmed_count"] == 0
    assert response.json()["coverage_complete"] is False


async def test_backfill_workload(async_client: AsyncClient) -> None:
    assignment = await _assign(async_client)
    await async_client.post(f"{BASE_URL}/{assignment['id']}/confirm", headers=BACKFILL_HEADERS)

    url = f"/funeral-homes/{FUNERAL_HOME_ID}/employees/{BACKFILL_ID}/backfill-workload"
    response = await async_client.get(url, params={"month_of": "2025-01-20"}, headers=DIRECTOR_HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["window_start"] == "2025-01-01"
    assert body["window_end"] == "2025-02-01"
    assert body["confirmed_count"] == 1
    assert body["scheduled_hours"] == 40
    assert body["max_capacity_reached"] is False
