from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update

from app.api.v1.payments import service as payment_service
from app.core.models import FeeAccount, FeeAuditLog, FeePayment


async def _pay(client: AsyncClient, fee_account_id: str, amount: str, method: str = "cash", **extra):
    return await client.post(
        "/api/v1/fees/payments",
        json={"fee_account_id": fee_account_id, "amount": amount, "method": method, **extra},
    )


async def _load_account(session_factory, fee_account_id: str) -> FeeAccount:
    async with session_factory() as db:
        return await db.get(FeeAccount, UUID(fee_account_id))


async def _payment_count(session_factory) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count(FeePayment.id)))).scalar_one()


def _assert_balanced(acc: FeeAccount) -> None:
    assert Decimal(str(acc.total_amount)) == Decimal(str(acc.paid_amount)) + Decimal(str(acc.due_amount))


@pytest.mark.asyncio
async def test_partial_then_full_payment(client: AsyncClient, fee_account: dict, session_factory) -> None:
    first = await _pay(client, fee_account["id"], "5000")
    assert first.status_code == 201, first.text
    data = first.json()
    assert Decimal(data["remaining_balance"]) == Decimal("7000")
    assert data["status"] == "partial"
    assert data["receipt_no"].startswith("RCP-")
    assert data["student"]["roll_no"] == "CS-25-01"
    assert data["voucher_closed"] is False

    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.paid_amount)) == Decimal("5000")
    assert acc.status == "partial"
    _assert_balanced(acc)

    second = await _pay(client, fee_account["id"], "7000", method="bank")
    assert second.status_code == 201
    assert Decimal(second.json()["remaining_balance"]) == Decimal("0")
    assert second.json()["status"] == "paid"

    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.due_amount)) == Decimal("0")
    assert acc.status == "paid"
    _assert_balanced(acc)

    # Paid is terminal
    third = await _pay(client, fee_account["id"], "1")
    assert third.status_code == 400
    assert third.json()["detail"]["due_amount"] == 0
    assert await _payment_count(session_factory) == 2


@pytest.mark.asyncio
async def test_overpayment_is_rejected_not_clipped(
    client: AsyncClient, fee_account: dict, session_factory
) -> None:
    response = await _pay(client, fee_account["id"], "13000")
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Payment amount exceeds due amount"
    assert detail["due_amount"] == 12000
    assert detail["status"] == "pending"

    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.paid_amount)) == Decimal("0")
    assert Decimal(str(acc.due_amount)) == Decimal("12000")
    assert await _payment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_balance_moved_after_locked_read_is_rejected(
    client: AsyncClient, fee_account: dict, session_factory, monkeypatch
) -> None:
    real_move = payment_service._move_balance

    async def move_after_other_cashier(db, fee_account_id, amount):
        # A second cashier's 5000 lands between our read and our conditional update
        async with session_factory() as other:
            await other.execute(
                update(FeeAccount)
                .where(FeeAccount.id == fee_account_id)
                .values(paid_amount=Decimal("5000"), due_amount=Decimal("7000"), status="partial")
            )
            await other.commit()
        return await real_move(db, fee_account_id, amount)

    monkeypatch.setattr(payment_service, "_move_balance", move_after_other_cashier)

    response = await _pay(client, fee_account["id"], "10000")
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Payment amount exceeds due amount"
    assert detail["due_amount"] == 7000
    assert detail["paid_amount"] == 5000

    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.paid_amount)) == Decimal("5000")
    assert Decimal(str(acc.due_amount)) == Decimal("7000")
    _assert_balanced(acc)
    assert await _payment_count(session_factory) == 0


@pytest.mark.asyncio
async def test_non_positive_amount_is_rejected(client: AsyncClient, fee_account: dict) -> None:
    for amount in ("0", "-10"):
        response = await _pay(client, fee_account["id"], amount)
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_account_is_not_found(client: AsyncClient, catalog: SimpleNamespace) -> None:
    response = await _pay(client, "00000000-0000-0000-0000-000000000005", "100")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_due_balance_is_monotonic(client: AsyncClient, fee_account: dict, session_factory) -> None:
    previous = Decimal("12000")
    for amount in ("1000", "2500", "4000", "4500"):
        response = await _pay(client, fee_account["id"], amount)
        assert response.status_code == 201
        remaining = Decimal(response.json()["remaining_balance"])
        assert remaining < previous
        assert (response.json()["status"] == "paid") == (remaining == 0)
        previous = remaining

        acc = await _load_account(session_factory, fee_account["id"])
        _assert_balanced(acc)
    assert previous == Decimal("0")


@pytest.mark.asyncio
async def test_receipt_collision_is_retried(
    client: AsyncClient, fee_account: dict, session_factory, monkeypatch
) -> None:
    numbers = iter(["RCP-202602-11111", "RCP-202602-11111", "RCP-202602-22222"])
    monkeypatch.setattr(payment_service, "generate_receipt_number", lambda *args, **kwargs: next(numbers))

    first = await _pay(client, fee_account["id"], "2000")
    assert first.json()["receipt_no"] == "RCP-202602-11111"

    second = await _pay(client, fee_account["id"], "3000")
    assert second.status_code == 201, second.text
    assert second.json()["receipt_no"] == "RCP-202602-22222"

    # The rolled-back attempt left no trace
    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.paid_amount)) == Decimal("5000")
    assert await _payment_count(session_factory) == 2


@pytest.mark.asyncio
async def test_receipt_number_exhaustion_is_503(
    client: AsyncClient, fee_account: dict, session_factory, monkeypatch
) -> None:
    monkeypatch.setattr(payment_service, "generate_receipt_number", lambda *args, **kwargs: "RCP-202602-11111")
    await _pay(client, fee_account["id"], "2000")

    response = await _pay(client, fee_account["id"], "3000")
    assert response.status_code == 503
    acc = await _load_account(session_factory, fee_account["id"])
    assert Decimal(str(acc.paid_amount)) == Decimal("2000")


@pytest.mark.asyncio
async def test_payment_is_audited_after_commit(
    client: AsyncClient, fee_account: dict, session_factory, published_events, admin_user
) -> None:
    response = await _pay(client, fee_account["id"], "5000", transaction_id="BANK-REF-1")
    payment_id = UUID(response.json()["payment"]["id"])

    recorded = [e for e in published_events if e.event_type == "payment.recorded"]
    assert len(recorded) == 1
    assert recorded[0].reference_id == payment_id
    assert recorded[0].actor_id == admin_user.id

    async with session_factory() as db:
        rows = (
            await db.execute(select(FeeAuditLog).where(FeeAuditLog.reference_id == payment_id))
        ).scalars().all()
    assert len(rows) == 1
    assert rows[0].action_type == "payment.recorded"
    assert rows[0].new_value["remaining_balance"] in ("7000", "7000.00")


@pytest.mark.asyncio
async def test_receipt_and_history(client: AsyncClient, catalog: SimpleNamespace, fee_account: dict, admin_user) -> None:
    paid = await _pay(client, fee_account["id"], "5000", method="cheque")
    payment_id = paid.json()["payment"]["id"]

    receipt = await client.get(f"/api/v1/fees/payments/{payment_id}/receipt")
    assert receipt.status_code == 200
    data = receipt.json()
    assert data["receipt_no"] == paid.json()["receipt_no"]
    assert data["department_name"] == "Computer Science"
    assert data["semester_name"] == "Semester 1"
    assert data["recorded_by"] == str(admin_user.id)
    assert Decimal(data["remaining_balance"]) == Decimal("7000")

    history = await client.get(f"/api/v1/fees/student/{catalog.students[0].id}/payments")
    assert history.status_code == 200
    items = history.json()
    assert len(items) == 1
    assert items[0]["method"] == "cheque"
    assert items[0]["semester_name"] == "Semester 1"

    missing = await client.get("/api/v1/fees/payments/00000000-0000-0000-0000-000000000006/receipt")
    assert missing.status_code == 404
