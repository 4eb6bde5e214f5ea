from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.fee_reports.router import router as fee_reports_router
from app.api.v1.fee_structures.router import router as fee_structures_router
from app.api.v1.fees.audit_service import make_fee_audit_writer
from app.api.v1.fees.router import router as fees_router
from app.api.v1.payments.gateway import build_payment_gateway
from app.api.v1.payments.router import router as payments_router
from app.api.v1.vouchers.router import router as vouchers_router
from app.core.config import settings
from app.core.events import EventBus, log_notification
from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input is a 400 for ledger clients, not FastAPI's default 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    setup_logging(settings)
    app = FastAPI(title="Fee Ledger Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Post-commit subscribers: audit log and notifications
    bus = EventBus()
    bus.subscribe(make_fee_audit_writer(AsyncSessionLocal))
    bus.subscribe(log_notification)
    app.state.event_bus = bus
    app.state.payment_gateway = build_payment_gateway()

    # Routers
    app.include_router(fee_structures_router)
    app.include_router(vouchers_router)
    app.include_router(payments_router)
    app.include_router(fee_reports_router)
    app.include_router(fees_router)

    return app


app = create_app()
