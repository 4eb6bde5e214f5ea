"""
Ledger events: emitted after a ledger transaction commits, consumed by best-effort subscribers
(fee audit log, notifications). A failing subscriber is logged and never reaches the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from fastapi import Request

from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LedgerEvent:
    event_type: str  # e.g. payment.recorded, voucher.issued
    reference_table: str
    reference_id: UUID
    actor_id: Optional[UUID] = None
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[LedgerEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    async def publish(self, event: LedgerEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "ledger_event_handler_failed",
                    event_type=event.event_type,
                    reference_id=str(event.reference_id),
                    handler=getattr(handler, "__name__", repr(handler)),
                )


async def log_notification(event: LedgerEvent) -> None:
    """Notification hand-off point. Delivery (email/SMS) belongs to the notification service."""
    logger.info(
        "ledger_event",
        event_type=event.event_type,
        reference_table=event.reference_table,
        reference_id=str(event.reference_id),
    )


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus
