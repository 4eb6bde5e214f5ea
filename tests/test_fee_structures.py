from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import AsyncClient


def _structure_payload(catalog: SimpleNamespace, **overrides) -> dict:
    payload = {
        "department_id": str(catalog.department.id),
        "semester_number": 2,
        "session_id": str(catalog.session.id),
        "tuition_fee": "10000",
        "lab_fee": "2000",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_structure_computes_total(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await client.post("/api/v1/fees/structures", json=_structure_payload(catalog))
    assert response.status_code == 201, response.text
    data = response.json()

    components = data["fee_components"]
    assert Decimal(components["total_fee"]) == Decimal("12000")
    assert Decimal(components["library_fee"]) == Decimal("0")
    assert data["department_code"] == "CS"
    assert data["session_name"] == "2025-2029"
    # Default rate from settings
    assert Decimal(data["late_fee_per_day"]) == Decimal("50")


@pytest.mark.asyncio
async def test_total_fee_in_payload_is_ignored(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await client.post(
        "/api/v1/fees/structures",
        json=_structure_payload(catalog, total_fee="999999", exam_fee="500"),
    )
    assert response.status_code == 201
    assert Decimal(response.json()["fee_components"]["total_fee"]) == Decimal("12500")


@pytest.mark.asyncio
async def test_duplicate_scope_is_conflict(client: AsyncClient, catalog: SimpleNamespace) -> None:
    # catalog already holds semester 1 for CS / 2025-2029
    response = await client.post(
        "/api/v1/fees/structures",
        json=_structure_payload(catalog, semester_number=1),
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_negative_component_is_rejected(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await client.post(
        "/api/v1/fees/structures",
        json=_structure_payload(catalog, lab_fee="-1"),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_department_is_not_found(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await client.post(
        "/api/v1/fees/structures",
        json=_structure_payload(catalog, department_id="00000000-0000-0000-0000-000000000001"),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Department not found"


@pytest.mark.asyncio
async def test_update_recomputes_total(client: AsyncClient, catalog: SimpleNamespace, published_events) -> None:
    structure_id = str(catalog.structure.id)
    response = await client.put(
        f"/api/v1/fees/structures/{structure_id}",
        json={"lab_fee": "3000", "sports_fee": "500"},
    )
    assert response.status_code == 200, response.text
    components = response.json()["fee_components"]
    assert Decimal(components["tuition_fee"]) == Decimal("10000")
    assert Decimal(components["total_fee"]) == Decimal("13500")

    updated = [e for e in published_events if e.event_type == "fee_structure.updated"]
    assert len(updated) == 1
    assert Decimal(updated[0].old_value["total_fee"]) == Decimal("12000")
    assert Decimal(updated[0].new_value["total_fee"]) == Decimal("13500")


@pytest.mark.asyncio
async def test_list_filters(client: AsyncClient, catalog: SimpleNamespace) -> None:
    await client.post("/api/v1/fees/structures", json=_structure_payload(catalog))

    response = await client.get(
        "/api/v1/fees/structures",
        params={"department_id": str(catalog.department.id), "semester_number": 2},
    )
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["semester_number"] == 2

    response = await client.get(
        "/api/v1/fees/structures",
        params={"department_id": str(catalog.other_department.id)},
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_get_unknown_structure(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await client.get("/api/v1/fees/structures/00000000-0000-0000-0000-000000000002")
    assert response.status_code == 404
