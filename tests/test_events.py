from types import SimpleNamespace
from typing import List
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy import select

from app.core.events import EventBus, LedgerEvent, get_event_bus
from app.core.models import FeeAccount, FeeAuditLog


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others() -> None:
    seen: List[str] = []

    async def broken(event: LedgerEvent) -> None:
        raise RuntimeError("smtp down")

    async def record(event: LedgerEvent) -> None:
        seen.append(event.event_type)

    bus = EventBus()
    bus.subscribe(broken)
    bus.subscribe(record)
    await bus.publish(LedgerEvent(event_type="payment.recorded", reference_table="fee_payments", reference_id=uuid4()))
    assert seen == ["payment.recorded"]


@pytest.mark.asyncio
async def test_audit_failure_never_fails_the_payment(
    app: FastAPI, client: AsyncClient, fee_account: dict, session_factory
) -> None:
    async def broken_audit(event: LedgerEvent) -> None:
        raise RuntimeError("audit store unavailable")

    bus = EventBus()
    bus.subscribe(broken_audit)
    app.dependency_overrides[get_event_bus] = lambda: bus

    response = await client.post(
        "/api/v1/fees/payments",
        json={"fee_account_id": fee_account["id"], "amount": "5000", "method": "cash"},
    )
    assert response.status_code == 201

    async with session_factory() as db:
        acc = await db.get(FeeAccount, UUID(fee_account["id"]))
    assert acc.status == "partial"


@pytest.mark.asyncio
async def test_assignment_is_audited(
    client: AsyncClient, catalog: SimpleNamespace, fee_account: dict, session_factory, admin_user
) -> None:
    async with session_factory() as db:
        rows = (
            await db.execute(
                select(FeeAuditLog).where(FeeAuditLog.reference_id == UUID(fee_account["id"]))
            )
        ).scalars().all()
    assert len(rows) == 1
    assert rows[0].action_type == "fee_account.assigned"
    assert rows[0].reference_table == "fee_accounts"
    assert rows[0].changed_by == admin_user.id
    assert rows[0].new_value["student_id"] == str(catalog.students[0].id)
