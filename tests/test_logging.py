import logging
from uuid import uuid4

import pytest

from app.core.config import settings
from app.core.events import EventBus, LedgerEvent
from app.core.logging import get_logger, setup_logging


def test_configured_logger_emits_through_stdlib(caplog: pytest.LogCaptureFixture) -> None:
    setup_logging(settings)
    logger = get_logger("app.tests.ledger")

    with caplog.at_level(logging.INFO):
        logger.info("receipt_issued", receipt_no="RCP-202602-00001", amount="5000")
        try:
            raise RuntimeError("gateway timeout")
        except RuntimeError:
            logger.exception("gateway_call_failed", gateway="jazzcash")

    assert "receipt_issued" in caplog.text
    assert "RCP-202602-00001" in caplog.text
    assert "gateway_call_failed" in caplog.text
    assert any(r.name == "app.tests.ledger" and r.levelno == logging.ERROR for r in caplog.records)


@pytest.mark.asyncio
async def test_failing_subscriber_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    setup_logging(settings)

    async def broken(event: LedgerEvent) -> None:
        raise RuntimeError("smtp down")

    bus = EventBus()
    bus.subscribe(broken)
    with caplog.at_level(logging.INFO):
        await bus.publish(LedgerEvent(event_type="voucher.issued", reference_table="fee_vouchers", reference_id=uuid4()))

    assert "ledger_event_handler_failed" in caplog.text
