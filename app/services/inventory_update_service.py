import logging
from collections import OrderedDict
from typing import Any, Dict, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InsufficientStockError, InvalidInputError, NotFoundError
from app.crud.combination import combination_crud
from app.models.combination import ProductOptionCombination
from app.services.combination_service import generate_hash

logger = logging.getLogger(__name__)


def _positive_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidInputError("Quantity must be a positive integer")
    return quantity


def _group_lines(items: Sequence[Mapping[str, Any]]) -> "OrderedDict[int, int]":
    """Sum quantities per combination, keyed in ascending id order"""
    totals: Dict[int, int] = {}
    for item in items:
        combination_id = int(item["combination_id"])
        totals[combination_id] = totals.get(combination_id, 0) + _positive_quantity(item["quantity"])
    return OrderedDict(sorted(totals.items()))


class InventoryUpdateService:
    """Stock arithmetic on option combinations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_stock(self, combination_id: int, quantity: int) -> ProductOptionCombination:
        """Set the absolute stock quantity"""
        if quantity is None or quantity < 0:
            raise InvalidInputError("Stock quantity cannot be negative")

        try:
            updated = await combination_crud.set_stock(self.db, combination_id, quantity)
            if not updated:
                raise NotFoundError("Combination not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await combination_crud.get(self.db, combination_id)

    async def bulk_update_stock(self, updates: Sequence[Mapping[str, Any]]) -> int:
        """Apply [{combination_id, stock_quantity}, ...] together or not at all"""
        for item in updates:
            quantity = item.get("stock_quantity")
            if quantity is None or quantity < 0:
                raise InvalidInputError(
                    f"Invalid stock quantity for combination {item.get('combination_id')}"
                )

        try:
            for item in updates:
                updated = await combination_crud.set_stock(
                    self.db, int(item["combination_id"]), int(item["stock_quantity"])
                )
                if not updated:
                    raise NotFoundError(f"Combination {item['combination_id']} not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return len(updates)

    async def adjust_stock(self, combination_id: int, delta: int) -> ProductOptionCombination:
        """Relative change; stock never drops below zero"""
        try:
            updated = await combination_crud.adjust_stock(self.db, combination_id, int(delta))
            if not updated:
                raise NotFoundError("Combination not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await combination_crud.get(self.db, combination_id)

    async def reserve_stock(self, combination_id: int, quantity: int) -> ProductOptionCombination:
        """
        Hold stock for checkout.

        The availability check and the decrement are one conditional UPDATE, so
        two concurrent reservations can never both take the last units.
        """
        quantity = _positive_quantity(quantity)
        try:
            await self._reserve_one(combination_id, quantity)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await combination_crud.get(self.db, combination_id)

    async def release_stock(self, combination_id: int, quantity: int) -> ProductOptionCombination:
        """Return previously reserved stock (cancelled or failed order)"""
        quantity = _positive_quantity(quantity)
        try:
            updated = await combination_crud.release(self.db, combination_id, quantity)
            if not updated:
                raise NotFoundError("Combination not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await combination_crud.get(self.db, combination_id)

    async def commit_reservation(self, combination_id: int, quantity: int) -> ProductOptionCombination:
        """The reserved units were sold; stop tracking them as reserved"""
        quantity = _positive_quantity(quantity)
        try:
            updated = await combination_crud.consume_reserved(self.db, combination_id, quantity)
            if not updated:
                raise NotFoundError("Combination not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await combination_crud.get(self.db, combination_id)

    async def reserve_order_items(self, order_items: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Reserve every line of an order in one transaction.

        Rows are locked in ascending combination id order so that two orders
        touching the same combinations cannot deadlock. The first line that
        cannot be served rolls the whole reservation back.
        """
        lines = _group_lines(order_items)
        if not lines:
            return {"reserved": 0, "lines": []}

        try:
            await combination_crud.lock_for_update(self.db, lines.keys())
            for combination_id, quantity in lines.items():
                await self._reserve_one(combination_id, quantity)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return {
            "reserved": len(lines),
            "lines": [
                {"combination_id": combination_id, "quantity": quantity}
                for combination_id, quantity in lines.items()
            ],
        }

    async def release_order_items(self, order_items: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """Undo reserve_order_items for a cancelled order"""
        lines = _group_lines(order_items)
        try:
            await combination_crud.lock_for_update(self.db, lines.keys())
            for combination_id, quantity in lines.items():
                updated = await combination_crud.release(self.db, combination_id, quantity)
                if not updated:
                    raise NotFoundError(f"Combination {combination_id} not found")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return {"released": len(lines)}

    async def is_in_stock(self, combination_id: int, required_quantity: int = 1) -> bool:
        combo = await combination_crud.get(self.db, combination_id)
        return combo is not None and combo.stock_quantity >= required_quantity

    async def get_stock_by_options(self, product_id: int, option_values: Sequence[Any]) -> int:
        if not option_values:
            return 0
        combo = await combination_crud.get_by_hash(self.db, product_id, generate_hash(option_values))
        return combo.stock_quantity if combo is not None else 0

    async def _reserve_one(self, combination_id: int, quantity: int) -> None:
        updated = await combination_crud.reserve(self.db, combination_id, quantity)
        if updated:
            return

        combo: Optional[ProductOptionCombination] = await combination_crud.get(self.db, combination_id)
        if combo is None:
            raise NotFoundError("Combination not found")
        logger.info(
            f"Reservation refused for combination {combination_id}: "
            f"requested {quantity}, available {combo.stock_quantity}"
        )
        raise InsufficientStockError(combination_id, combo.stock_quantity, quantity)
