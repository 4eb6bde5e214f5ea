"""
Online payment gateway boundary. The ledger only initiates and verifies; a verified
transaction is reconciled by the caller through the payment ledger like any other payment.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from fastapi import Request

from app.core.config import settings
from app.core.enums import GatewayStatus, OnlineGateway
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GatewayTransaction:
    transaction_id: str
    gateway: OnlineGateway
    fee_account_id: UUID
    amount: Decimal
    redirect_url: str
    status: GatewayStatus = GatewayStatus.pending
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    verified_at: Optional[datetime] = None


class PaymentGateway:
    async def initiate(
        self,
        gateway: OnlineGateway,
        fee_account_id: UUID,
        amount: Decimal,
        phone_number: str,
        email: Optional[str] = None,
    ) -> GatewayTransaction:
        raise NotImplementedError

    async def verify(self, transaction_id: str) -> GatewayTransaction:
        raise NotImplementedError


class SimulatedPaymentGateway(PaymentGateway):
    """
    In-process stand-in for JazzCash / Easypaisa / bank checkout.
    Verification succeeds with probability success_rate and the outcome is kept for later lookups.
    """

    def __init__(
        self,
        success_rate: float = 0.9,
        checkout_url: str = "https://payment.{gateway}.com/checkout/{transaction_id}",
        rng: Optional[random.Random] = None,
    ) -> None:
        self.success_rate = success_rate
        self.checkout_url = checkout_url
        self._rng = rng or random.Random()
        self._transactions: Dict[str, GatewayTransaction] = {}

    def _new_transaction_id(self, gateway: OnlineGateway) -> str:
        return f"{gateway.value.upper()}-{int(time.time() * 1000)}-{self._rng.randrange(10000)}"

    async def initiate(
        self,
        gateway: OnlineGateway,
        fee_account_id: UUID,
        amount: Decimal,
        phone_number: str,
        email: Optional[str] = None,
    ) -> GatewayTransaction:
        txn_id = self._new_transaction_id(gateway)
        while txn_id in self._transactions:
            txn_id = self._new_transaction_id(gateway)
        txn = GatewayTransaction(
            transaction_id=txn_id,
            gateway=gateway,
            fee_account_id=fee_account_id,
            amount=amount,
            redirect_url=self.checkout_url.format(gateway=gateway.value, transaction_id=txn_id),
        )
        self._transactions[txn_id] = txn
        return txn

    async def verify(self, transaction_id: str) -> GatewayTransaction:
        txn = self._transactions.get(transaction_id)
        if txn is None:
            raise NotFoundError("Transaction not found")
        if txn.status == GatewayStatus.pending:
            ok = self._rng.random() < self.success_rate
            txn.status = GatewayStatus.success if ok else GatewayStatus.failed
            txn.verified_at = datetime.now(timezone.utc)
            logger.info("gateway_transaction_verified", transaction_id=transaction_id, status=txn.status.value)
        return txn


def build_payment_gateway() -> PaymentGateway:
    return SimulatedPaymentGateway(
        success_rate=settings.gateway_success_rate,
        checkout_url=settings.gateway_checkout_url,
    )


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway
