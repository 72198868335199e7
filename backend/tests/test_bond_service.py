"""Tests for bond CRUD and identifier allocation."""

import asyncio
import datetime as dt

import pytest

from bond_master.core.exceptions import BondNotFoundError, BondValidationError
from bond_master.models.schemas import BondUpdate
from bond_master.services.bond_service import BondService
from bond_master.services.cashflow_service import CashflowService
from bond_master.services.store import BondStore


@pytest.mark.anyio
async def test_create_allocates_first_identifier(session, bond_data):
    bond = await BondService(session).create(bond_data)

    assert bond.id == 1
    assert bond.ticker == "AMRT25"
    assert bond.index_code == "SOFR"
    assert bond.index_type_id == 1
    assert bond.day_count_conv == "ACT/360"
    assert bond.offset_days == -2
    assert bond.coupon == 0.05
    assert bond.active is True


@pytest.mark.anyio
async def test_identifiers_are_dense(session, bond_data):
    service = BondService(session)
    ids = [(await service.create(bond_data)).id for _ in range(3)]
    assert ids == [1, 2, 3]


@pytest.mark.anyio
async def test_allocate_bond_id_follows_maximum(session, bond_id):
    store = BondStore(session)
    async with store.transaction():
        assert await BondService(session).allocate_bond_id() == bond_id + 1


@pytest.mark.anyio
async def test_concurrent_creation_yields_distinct_dense_ids(session_factory, bond_data):
    async def create():
        async with session_factory() as session:
            return await BondService(session).create(bond_data)

    results = await asyncio.gather(*(create() for _ in range(8)))

    ids = sorted(bond.id for bond in results)
    assert ids == list(range(1, 9))


@pytest.mark.anyio
async def test_unknown_index_code_resolves_to_null(session, bond_data):
    bond = await BondService(session).create(
        bond_data.model_copy(update={"index_code": "LIBOR"}))
    assert bond.index_type_id is None
    assert bond.index_code is None


@pytest.mark.anyio
async def test_maturity_must_follow_issue(session, bond_data):
    with pytest.raises(BondValidationError) as exc_info:
        await BondService(session).create(
            bond_data.model_copy(update={"maturity_date": dt.date(2024, 1, 1)}))
    assert exc_info.value.field == "maturity_date"


@pytest.mark.anyio
async def test_coupon_must_be_a_fraction(session, bond_data):
    with pytest.raises(BondValidationError) as exc_info:
        await BondService(session).create(
            bond_data.model_copy(update={"coupon": 5}))
    assert exc_info.value.field == "coupon"


@pytest.mark.anyio
async def test_unknown_day_count_convention(session, bond_data):
    with pytest.raises(BondValidationError) as exc_info:
        await BondService(session).create(
            bond_data.model_copy(update={"day_count_conv_id": 99}))
    assert exc_info.value.field == "day_count_conv_id"


@pytest.mark.anyio
async def test_update_changes_only_sent_fields(session, bond_id):
    service = BondService(session)

    bond = await service.update(bond_id, BondUpdate(ticker="AMRT26", index_code="EURIBOR"))

    assert bond.ticker == "AMRT26"
    assert bond.index_code == "EURIBOR"
    assert bond.day_count_conv_id == 1
    assert bond.maturity_date == dt.date(2030, 1, 1)


@pytest.mark.anyio
async def test_update_with_null_index_clears_reference(session, bond_id):
    bond = await BondService(session).update(bond_id, BondUpdate(index_code=None))
    assert bond.index_type_id is None


@pytest.mark.anyio
async def test_update_validates_merged_terms(session, bond_id):
    with pytest.raises(BondValidationError):
        await BondService(session).update(
            bond_id, BondUpdate(issue_date=dt.date(2031, 1, 1)))


@pytest.mark.anyio
async def test_get_and_list(session, bond_id):
    service = BondService(session)

    assert (await service.get_by_id(bond_id)).id == bond_id
    assert [bond.id for bond in await service.list_all()] == [bond_id]

    with pytest.raises(BondNotFoundError):
        await service.get_by_id(bond_id + 1)


@pytest.mark.anyio
async def test_delete_removes_schedule(session_factory, session, bond_id, schedule):
    await BondService(session).delete(bond_id)

    async with session_factory() as other:
        with pytest.raises(BondNotFoundError):
            await CashflowService(other).list_for_bond(bond_id)
        store = BondStore(other)
        async with store.transaction():
            assert await store.list_cashflows(bond_id) == []


@pytest.mark.anyio
async def test_delete_unknown_bond(session):
    with pytest.raises(BondNotFoundError):
        await BondService(session).delete(5)
