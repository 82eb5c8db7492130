import pytest
from decimal import Decimal

from app.services.combination_generator import CombinationGeneratorService
from app.services.combination_service import CombinationService

RED, BLUE, SMALL, MEDIUM = 1, 2, 10, 11
COLOR, SIZE = 1, 2


@pytest.mark.asyncio
async def test_generate_all_combinations(db_session, catalog):
    """Test every color/size pair is created with derived prices"""
    generator = CombinationGeneratorService(db_session)

    created = await generator.generate_all_combinations(100, [COLOR, SIZE], default_stock=5)

    assert len(created) == 4
    by_summary = {c.option_summary: c for c in created}
    assert set(by_summary) == {"Red / S", "Red / M", "Blue / S", "Blue / M"}
    assert by_summary["Red / S"].additional_price == Decimal("0")
    assert by_summary["Red / M"].additional_price == Decimal("2.00")
    assert by_summary["Blue / S"].additional_price == Decimal("5.00")
    assert by_summary["Blue / M"].additional_price == Decimal("7.00")
    assert by_summary["Blue / M"].sku == "TSHIRT-BLU-M"
    assert all(c.stock_quantity == 5 for c in created)


@pytest.mark.asyncio
async def test_generate_is_idempotent(db_session, catalog):
    """Test re-running generation only reports duplicates"""
    generator = CombinationGeneratorService(db_session)
    await generator.generate_all_combinations(100, [COLOR, SIZE])

    report = await generator.generate(100, [COLOR, SIZE])

    assert report.created == []
    assert report.summary() == {"attempted": 4, "created": 0, "duplicates": 4, "failed": 0}
    assert len(await CombinationService(db_session).get_by_product(100)) == 4


@pytest.mark.asyncio
async def test_generate_fills_gaps(db_session, catalog):
    """Existing combinations are skipped, missing ones created"""
    await CombinationService(db_session).create(
        100, [{"option_value_id": BLUE}, {"option_value_id": SMALL}], stock_quantity=9
    )
    generator = CombinationGeneratorService(db_session)

    report = await generator.generate(100, [COLOR, SIZE])

    assert report.summary()["created"] == 3
    assert report.summary()["duplicates"] == 1
    combos = await CombinationService(db_session).get_by_product(100)
    assert {c.option_summary: c.stock_quantity for c in combos}["Blue / S"] == 9


@pytest.mark.asyncio
async def test_generate_with_selected_values(db_session, catalog):
    """Test a type can be restricted to some of its values"""
    generator = CombinationGeneratorService(db_session)

    created = await generator.generate_all_combinations(
        100, [COLOR, SIZE], selected_values={COLOR: [RED]}
    )

    assert sorted(c.option_summary for c in created) == ["Red / M", "Red / S"]


@pytest.mark.asyncio
async def test_generate_drops_empty_types(db_session, catalog):
    """Types with an empty restriction or no values do not block generation"""
    generator = CombinationGeneratorService(db_session)

    created = await generator.generate_all_combinations(
        100, [COLOR, SIZE, 99], selected_values={str(COLOR): []}
    )

    assert sorted(c.option_summary for c in created) == ["M", "S"]


@pytest.mark.asyncio
async def test_generate_nothing_to_combine(db_session, catalog):
    generator = CombinationGeneratorService(db_session)

    report = await generator.generate(100, [])

    assert report.created == []
    assert report.summary()["attempted"] == 0


@pytest.mark.asyncio
async def test_generate_unknown_product_reports_failures(db_session, catalog):
    """Failures are reported per combination instead of aborting"""
    generator = CombinationGeneratorService(db_session)

    report = await generator.generate(999, [COLOR, SIZE])

    assert report.summary() == {"attempted": 4, "created": 0, "duplicates": 0, "failed": 4}
    assert all(a.error for a in report.attempts)


def fail_on_call(monkeypatch, failing_call):
    """Make CombinationService.create raise on the n-th call only"""
    original_create = CombinationService.create
    calls = {"count": 0}

    async def flaky_create(self, *args, **kwargs):
        calls["count"] += 1
        if calls["count"] == failing_call:
            raise RuntimeError("connection dropped")
        return await original_create(self, *args, **kwargs)

    monkeypatch.setattr(CombinationService, "create", flaky_create)


@pytest.mark.asyncio
async def test_generate_keeps_rows_created_before_a_failure(db_session, catalog, monkeypatch):
    """Test a failing tuple neither undoes nor hides the rows created before it"""
    fail_on_call(monkeypatch, 3)
    generator = CombinationGeneratorService(db_session)

    report = await generator.generate(100, [COLOR, SIZE], default_stock=2)

    assert report.summary() == {"attempted": 4, "created": 3, "duplicates": 0, "failed": 1}
    assert [c.option_summary for c in report.created] == ["Red / S", "Red / M", "Blue / M"]
    assert all(c.stock_quantity == 2 for c in report.created)
    assert report.created[2].final_price == Decimal("57.00")
    failed = [a for a in report.attempts if a.status == "failed"]
    assert failed[0].error == "connection dropped"

    responses = await CombinationService(db_session).to_responses(report.created)
    assert [r.options_detail[0].value_name for r in responses] == ["Red", "Red", "Blue"]


@pytest.mark.asyncio
async def test_generate_ignores_repeated_type_ids(db_session, catalog):
    generator = CombinationGeneratorService(db_session)

    created = await generator.generate_all_combinations(100, [COLOR, COLOR, SIZE])

    assert len(created) == 4
