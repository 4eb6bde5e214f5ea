import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import random
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import AsyncGenerator, List
from uuid import uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.fees.audit_service import make_fee_audit_writer
from app.api.v1.payments.gateway import SimulatedPaymentGateway, get_payment_gateway
from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.events import EventBus, LedgerEvent, get_event_bus
from app.core.models import AcademicSession, Department, FeeStructure, Semester, Student
from app.db.session import Base, get_db
from app.main import create_app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """One in-memory database per test, shared by every session through a single connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def admin_user() -> CurrentUser:
    return CurrentUser(id=uuid4(), role="ADMIN")


@pytest.fixture()
def published_events() -> List[LedgerEvent]:
    return []


@pytest.fixture()
def event_bus(session_factory: async_sessionmaker, published_events: List[LedgerEvent]) -> EventBus:
    async def record(event: LedgerEvent) -> None:
        published_events.append(event)

    bus = EventBus()
    bus.subscribe(make_fee_audit_writer(session_factory))
    bus.subscribe(record)
    return bus


@pytest.fixture()
def payment_gateway() -> SimulatedPaymentGateway:
    return SimulatedPaymentGateway(success_rate=1.0, rng=random.Random(7))


@pytest.fixture()
def app(
    session_factory: async_sessionmaker,
    admin_user: CurrentUser,
    event_bus: EventBus,
    payment_gateway: SimulatedPaymentGateway,
) -> FastAPI:
    application = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_current_user] = lambda: admin_user
    application.dependency_overrides[get_event_bus] = lambda: event_bus
    application.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def catalog(db_session: AsyncSession) -> SimpleNamespace:
    """CS department, one session with two semesters, three active students and a 12000 structure."""
    department = Department(code="CS", name="Computer Science")
    other_department = Department(code="EN", name="English")
    session = AcademicSession(name="2025-2029", start_date=date(2025, 9, 1), end_date=date(2029, 6, 30))
    db_session.add_all([department, other_department, session])
    await db_session.flush()

    semester_1 = Semester(session_id=session.id, name="Semester 1", number=1)
    semester_2 = Semester(session_id=session.id, name="Semester 2", number=2)
    students = [
        Student(roll_no=f"CS-25-{i:02d}", name=f"Student {i}", department_id=department.id)
        for i in (1, 2, 3)
    ]
    inactive = Student(roll_no="CS-25-99", name="Left Student", department_id=department.id, status="inactive")
    structure = FeeStructure(
        department_id=department.id,
        semester_number=1,
        session_id=session.id,
        tuition_fee=Decimal("10000"),
        lab_fee=Decimal("2000"),
        total_fee=Decimal("12000"),
        late_fee_per_day=Decimal("50"),
    )
    db_session.add_all([semester_1, semester_2, *students, inactive, structure])
    await db_session.commit()
    return SimpleNamespace(
        department=department,
        other_department=other_department,
        session=session,
        semester_1=semester_1,
        semester_2=semester_2,
        students=students,
        inactive=inactive,
        structure=structure,
    )


@pytest.fixture()
async def fee_account(client: AsyncClient, catalog: SimpleNamespace) -> dict:
    """12000 fee account for the first student, semester 1, due 2026-02-01."""
    response = await client.post(
        "/api/v1/fees/assign/manual",
        json={
            "student_id": str(catalog.students[0].id),
            "semester_id": str(catalog.semester_1.id),
            "fee_structure_id": str(catalog.structure.id),
            "due_date": "2026-02-01",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()
