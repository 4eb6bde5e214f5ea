"""
Fee audit log writer. Subscribed to the ledger event bus; runs after the ledger transaction
committed, in its own session, so an audit failure cannot undo or block a ledger change.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.events import EventHandler, LedgerEvent
from app.core.models import FeeAuditLog


def make_fee_audit_writer(session_factory: async_sessionmaker[AsyncSession]) -> EventHandler:
    async def write_fee_audit(event: LedgerEvent) -> None:
        async with session_factory() as db:
            db.add(
                FeeAuditLog(
                    reference_table=event.reference_table,
                    reference_id=event.reference_id,
                    action_type=event.event_type,
                    old_value=event.old_value,
                    new_value=event.new_value,
                    changed_by=event.actor_id,
                    created_at=event.occurred_at,
                )
            )
            await db.commit()

    return write_fee_audit
