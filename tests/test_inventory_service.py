import pytest

from app.core.exceptions import InsufficientStockError, InvalidInputError, NotFoundError
from app.services.combination_service import CombinationService
from app.services.inventory_update_service import InventoryUpdateService

RED, BLUE, SMALL, MEDIUM = 1, 2, 10, 11


def selection(*value_ids):
    return [{"option_value_id": value_id} for value_id in value_ids]


@pytest.fixture
async def combos(db_session, catalog):
    """Red/S with 10 units and Blue/M with 3 units"""
    service = CombinationService(db_session)
    red_small = await service.create(100, selection(RED, SMALL), stock_quantity=10)
    blue_medium = await service.create(100, selection(BLUE, MEDIUM), stock_quantity=3)
    return red_small, blue_medium


@pytest.mark.asyncio
async def test_update_stock(db_session, combos):
    """Test setting absolute stock"""
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    updated = await service.update_stock(red_small.combination_id, 75)
    assert updated.stock_quantity == 75

    updated = await service.update_stock(red_small.combination_id, 0)
    assert updated.stock_quantity == 0


@pytest.mark.asyncio
async def test_update_stock_rejects_negative(db_session, combos):
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    with pytest.raises(InvalidInputError):
        await service.update_stock(red_small.combination_id, -1)
    with pytest.raises(NotFoundError):
        await service.update_stock(999, 5)

    assert (await service.update_stock(red_small.combination_id, 10)).stock_quantity == 10


@pytest.mark.asyncio
async def test_bulk_update_stock(db_session, combos):
    red_small, blue_medium = combos
    service = InventoryUpdateService(db_session)

    count = await service.bulk_update_stock([
        {"combination_id": red_small.combination_id, "stock_quantity": 1},
        {"combination_id": blue_medium.combination_id, "stock_quantity": 2},
    ])

    assert count == 2
    assert await service.is_in_stock(red_small.combination_id, 1)
    assert not await service.is_in_stock(red_small.combination_id, 2)
    assert await service.is_in_stock(blue_medium.combination_id, 2)


@pytest.mark.asyncio
async def test_bulk_update_stock_is_all_or_nothing(db_session, combos):
    """An unknown combination undoes the updates before it"""
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    with pytest.raises(NotFoundError):
        await service.bulk_update_stock([
            {"combination_id": red_small.combination_id, "stock_quantity": 99},
            {"combination_id": 999, "stock_quantity": 1},
        ])
    with pytest.raises(InvalidInputError):
        await service.bulk_update_stock([
            {"combination_id": red_small.combination_id, "stock_quantity": -5},
        ])

    combo = await CombinationService(db_session).get_by_id(red_small.combination_id)
    assert combo.stock_quantity == 10


@pytest.mark.asyncio
async def test_adjust_stock_clamps_at_zero(db_session, combos):
    """Test relative stock changes never go negative"""
    _, blue_medium = combos
    service = InventoryUpdateService(db_session)

    assert (await service.adjust_stock(blue_medium.combination_id, 4)).stock_quantity == 7
    assert (await service.adjust_stock(blue_medium.combination_id, -100)).stock_quantity == 0
    assert (await service.adjust_stock(blue_medium.combination_id, 2)).stock_quantity == 2

    with pytest.raises(NotFoundError):
        await service.adjust_stock(999, 1)


@pytest.mark.asyncio
async def test_reserve_and_release_round_trip(db_session, combos):
    """Test stock is held for checkout and returned on cancellation"""
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    reserved = await service.reserve_stock(red_small.combination_id, 4)
    assert reserved.stock_quantity == 6
    assert reserved.reserved_quantity == 4

    released = await service.release_stock(red_small.combination_id, 4)
    assert released.stock_quantity == 10
    assert released.reserved_quantity == 0


@pytest.mark.asyncio
async def test_commit_reservation(db_session, combos):
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    await service.reserve_stock(red_small.combination_id, 3)
    sold = await service.commit_reservation(red_small.combination_id, 3)

    assert sold.stock_quantity == 7
    assert sold.reserved_quantity == 0


@pytest.mark.asyncio
async def test_reserve_insufficient_stock(db_session, combos):
    """Test a reservation larger than the stock is refused without side effects"""
    _, blue_medium = combos
    service = InventoryUpdateService(db_session)

    with pytest.raises(InsufficientStockError) as exc_info:
        await service.reserve_stock(blue_medium.combination_id, 5)

    assert exc_info.value.available == 3
    assert exc_info.value.requested == 5
    assert exc_info.value.details["combination_id"] == blue_medium.combination_id

    combo = await CombinationService(db_session).get_by_id(blue_medium.combination_id)
    assert combo.stock_quantity == 3
    assert combo.reserved_quantity == 0


@pytest.mark.asyncio
async def test_reserve_rejects_bad_quantity(db_session, combos):
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    for quantity in (0, -2, True, "3"):
        with pytest.raises(InvalidInputError):
            await service.reserve_stock(red_small.combination_id, quantity)

    with pytest.raises(NotFoundError):
        await service.reserve_stock(999, 1)


@pytest.mark.asyncio
async def test_reserve_last_units(db_session, combos):
    """Exactly the remaining stock can be reserved, one more cannot"""
    _, blue_medium = combos
    service = InventoryUpdateService(db_session)

    combo = await service.reserve_stock(blue_medium.combination_id, 3)
    assert combo.stock_quantity == 0

    with pytest.raises(InsufficientStockError):
        await service.reserve_stock(blue_medium.combination_id, 1)


@pytest.mark.asyncio
async def test_reserve_order_items(db_session, combos):
    """Test lines for the same combination are summed and reserved together"""
    red_small, blue_medium = combos
    service = InventoryUpdateService(db_session)

    result = await service.reserve_order_items([
        {"combination_id": blue_medium.combination_id, "quantity": 1},
        {"combination_id": red_small.combination_id, "quantity": 2},
        {"combination_id": red_small.combination_id, "quantity": 3},
    ])

    assert result["reserved"] == 2
    assert result["lines"] == [
        {"combination_id": red_small.combination_id, "quantity": 5},
        {"combination_id": blue_medium.combination_id, "quantity": 1},
    ]
    lookup = CombinationService(db_session)
    assert (await lookup.get_by_id(red_small.combination_id)).stock_quantity == 5
    assert (await lookup.get_by_id(blue_medium.combination_id)).stock_quantity == 2

    released = await service.release_order_items([
        {"combination_id": red_small.combination_id, "quantity": 5},
        {"combination_id": blue_medium.combination_id, "quantity": 1},
    ])
    assert released["released"] == 2
    assert (await lookup.get_by_id(red_small.combination_id)).stock_quantity == 10
    assert (await lookup.get_by_id(blue_medium.combination_id)).reserved_quantity == 0


@pytest.mark.asyncio
async def test_reserve_order_items_rolls_back(db_session, combos):
    """Test one short line cancels the whole order reservation"""
    red_small, blue_medium = combos
    service = InventoryUpdateService(db_session)

    with pytest.raises(InsufficientStockError):
        await service.reserve_order_items([
            {"combination_id": red_small.combination_id, "quantity": 2},
            {"combination_id": blue_medium.combination_id, "quantity": 50},
        ])

    lookup = CombinationService(db_session)
    red = await lookup.get_by_id(red_small.combination_id)
    assert red.stock_quantity == 10
    assert red.reserved_quantity == 0
    assert (await lookup.get_by_id(blue_medium.combination_id)).stock_quantity == 3


@pytest.mark.asyncio
async def test_reserve_empty_order(db_session, combos):
    service = InventoryUpdateService(db_session)
    assert await service.reserve_order_items([]) == {"reserved": 0, "lines": []}


@pytest.mark.asyncio
async def test_stock_lookups(db_session, combos):
    red_small, _ = combos
    service = InventoryUpdateService(db_session)

    assert await service.is_in_stock(red_small.combination_id)
    assert await service.is_in_stock(red_small.combination_id, 10)
    assert not await service.is_in_stock(red_small.combination_id, 11)
    assert not await service.is_in_stock(999)

    assert await service.get_stock_by_options(100, selection(SMALL, RED)) == 10
    assert await service.get_stock_by_options(100, selection(BLUE, SMALL)) == 0
    assert await service.get_stock_by_options(100, []) == 0
