"""Shared fixtures: a throwaway SQLite database per test."""

import datetime as dt

import pytest
from httpx import AsyncClient, ASGITransport

from bond_master.core.database import Base, create_engine, create_session_factory, get_db
from bond_master.models.db_models import DayCountConvention, IndexType
from bond_master.models.schemas import BondCreate, CashflowCreate
from bond_master.services.bond_service import BondService
from bond_master.services.cashflow_service import CashflowService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(anyio_backend, tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'bond_master.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(anyio_backend, engine):
    factory = create_session_factory(engine)
    async with factory() as session:
        session.add_all([
            IndexType(id=1, code="SOFR", name="Secured Overnight Financing Rate"),
            IndexType(id=2, code="EURIBOR", name="Euro Interbank Offered Rate"),
            DayCountConvention(id=1, convention="ACT/360"),
            DayCountConvention(id=2, convention="30/360"),
        ])
        await session.commit()
    return factory


@pytest.fixture
async def session(anyio_backend, session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def bond_data():
    return BondCreate(
        ticker="AMRT25",
        issue_date=dt.date(2024, 1, 1),
        maturity_date=dt.date(2030, 1, 1),
        coupon="0.05",
        index_code="SOFR",
        offset_days=-2,
        day_count_conv_id=1,
    )


@pytest.fixture
async def bond_id(anyio_backend, session_factory, bond_data):
    async with session_factory() as session:
        bond = await BondService(session).create(bond_data)
    return bond.id


@pytest.fixture
async def schedule(anyio_backend, session_factory, bond_id):
    """Three monthly cashflows amortizing 30 each (residuals 70, 40, 10)."""
    created = []
    async with session_factory() as session:
        service = CashflowService(session)
        for month in (1, 2, 3):
            created.append(await service.insert(bond_id, CashflowCreate(
                date=dt.date(2025, month, 1),
                rate="0.05",
                amort="30",
                amount="1030",
            )))
    return created


@pytest.fixture
async def client(anyio_backend, session_factory):
    from bond_master.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
