from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.db.database import get_db
from app.schemas.combination import (
    BulkStockUpdate,
    CombinationCreate,
    CombinationUpdate,
    GenerateCombinationsRequest,
    OptionValuesRequest,
    PriceRequest,
    StockUpdate,
)
from app.services.combination_generator import CombinationGeneratorService
from app.services.combination_service import CombinationService
from app.services.inventory_update_service import InventoryUpdateService
from app.services.reporting_service import ReportingService

router = APIRouter()


# Reporting (static paths are registered before /{combination_id})

@router.get("/statistics")
async def get_statistics(db: AsyncSession = Depends(get_db)):
    """Aggregate combination and stock counts"""
    stats = await ReportingService(db).get_statistics()
    return {"success": True, "data": stats}


@router.get("/low-stock")
async def get_low_stock(
    threshold: int = Query(settings.LOW_STOCK_THRESHOLD, ge=0),
    limit: int = Query(settings.STOCK_ALERT_LIMIT, ge=1, le=1000),
    db: AsyncSession = Depends(get_db)
):
    """Active combinations at or below the stock threshold"""
    combinations = await ReportingService(db).get_low_stock(threshold, limit)
    data = await CombinationService(db).to_responses(combinations)
    return {"success": True, "data": data}


@router.get("/out-of-stock")
async def get_out_of_stock(
    limit: int = Query(settings.STOCK_ALERT_LIMIT, ge=1, le=1000),
    db: AsyncSession = Depends(get_db)
):
    """Active combinations with zero stock"""
    combinations = await ReportingService(db).get_out_of_stock(limit)
    data = await CombinationService(db).to_responses(combinations)
    return {"success": True, "data": data}


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_combination(
    combination_in: CombinationCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create a combination for a product"""
    service = CombinationService(db)
    combo = await service.create(
        combination_in.product_id,
        combination_in.option_values,
        sku=combination_in.sku,
        additional_price=combination_in.additional_price,
        stock_quantity=combination_in.stock_quantity,
        is_active=combination_in.is_active,
    )
    data = (await service.to_responses([combo]))[0]
    return {"success": True, "data": data, "message": "Combination created successfully"}


@router.post("/bulk-stock")
async def bulk_update_stock(
    bulk_in: BulkStockUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Set stock for several combinations at once"""
    updated = await InventoryUpdateService(db).bulk_update_stock(
        [item.model_dump() for item in bulk_in.updates]
    )
    return {"success": True, "data": {"updated": updated}, "message": "Stock updated successfully"}


# Product scoped

@router.get("/product/{product_id}")
async def get_combinations_by_product(
    product_id: int,
    is_active: Optional[bool] = Query(None),
    include_out_of_stock: bool = Query(True),
    db: AsyncSession = Depends(get_db)
):
    """Get all combinations of a product"""
    data = await CombinationService(db).get_by_product(
        product_id, is_active=is_active, include_out_of_stock=include_out_of_stock
    )
    return {"success": True, "data": data}


@router.post("/product/{product_id}/generate", status_code=status.HTTP_201_CREATED)
async def generate_combinations(
    product_id: int,
    generate_in: GenerateCombinationsRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create every missing combination of the given option types"""
    report = await CombinationGeneratorService(db).generate(
        product_id,
        generate_in.option_type_ids,
        generate_in.default_stock,
        generate_in.selected_values,
    )
    data = await CombinationService(db).to_responses(report.created)
    return {
        "success": True,
        "data": data,
        "summary": report.summary(),
        "message": f"Created {len(data)} combinations",
    }


@router.post("/product/{product_id}/find")
async def find_combination(
    product_id: int,
    find_in: OptionValuesRequest,
    db: AsyncSession = Depends(get_db)
):
    """Find the combination matching a set of option values"""
    service = CombinationService(db)
    combo = await service.find_by_option_values(product_id, find_in.option_values)
    if combo is None:
        raise NotFoundError("Combination not found")
    data = (await service.to_responses([combo]))[0]
    return {"success": True, "data": data}


@router.post("/product/{product_id}/price")
async def calculate_price(
    product_id: int,
    price_in: PriceRequest,
    db: AsyncSession = Depends(get_db)
):
    """Preview the price of a selection before a combination exists"""
    price = await CombinationService(db).calculate_price(product_id, price_in.option_values)
    return {"success": True, "data": {"price": float(price)}}


@router.get("/product/{product_id}/total-stock")
async def get_total_stock(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    total = await ReportingService(db).get_total_stock(product_id)
    return {"success": True, "data": {"product_id": product_id, "total_stock": total}}


@router.delete("/product/{product_id}")
async def delete_combinations_by_product(
    product_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete (or deactivate, when ordered) every combination of a product"""
    result = await CombinationService(db).delete_by_product(product_id)
    return {"success": True, "data": result, "message": "All combinations deleted successfully"}


# Single combination

@router.get("/{combination_id}")
async def get_combination(
    combination_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Get a combination with option details"""
    data = await CombinationService(db).get_detail(combination_id)
    if data is None:
        raise NotFoundError("Combination not found")
    return {"success": True, "data": data}


@router.put("/{combination_id}")
async def update_combination(
    combination_id: int,
    combination_update: CombinationUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Patch sku, additional price, stock or active flag"""
    service = CombinationService(db)
    combo = await service.update(
        combination_id, combination_update.model_dump(exclude_unset=True)
    )
    data = (await service.to_responses([combo]))[0]
    return {"success": True, "data": data, "message": "Combination updated successfully"}


@router.delete("/{combination_id}")
async def delete_combination(
    combination_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a combination; ordered combinations are only deactivated"""
    result = await CombinationService(db).delete(combination_id)
    return {"success": True, "data": result, "message": "Combination deleted successfully"}


@router.patch("/{combination_id}/stock")
async def update_stock(
    combination_id: int,
    stock_in: StockUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Set the absolute stock of a combination"""
    combo = await InventoryUpdateService(db).update_stock(combination_id, stock_in.stock_quantity)
    data = (await CombinationService(db).to_responses([combo]))[0]
    return {"success": True, "data": data, "message": "Stock updated successfully"}


@router.get("/{combination_id}/price-breakdown")
async def get_price_breakdown(
    combination_id: int,
    db: AsyncSession = Depends(get_db)
):
    breakdown = await CombinationService(db).get_price_breakdown(combination_id)
    if breakdown is None:
        raise NotFoundError("Combination not found")
    return {"success": True, "data": breakdown}
