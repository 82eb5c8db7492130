from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.crud.base import CRUDBase
from app.models.order import OrderItem
from app.models.combination import ProductOptionCombination


class OrderItemCRUD(CRUDBase[OrderItem, BaseModel, BaseModel]):
    async def count_by_combination(self, db: AsyncSession, combination_id: int) -> int:
        """Number of order lines that reference a combination"""
        stmt = select(func.count(OrderItem.order_item_id)).where(
            OrderItem.combination_id == combination_id
        )
        result = await db.execute(stmt)
        return result.scalar() or 0

    async def count_by_product_combinations(self, db: AsyncSession, product_id: int) -> int:
        """Number of order lines that reference any combination of a product"""
        stmt = (
            select(func.count(OrderItem.order_item_id))
            .join(
                ProductOptionCombination,
                OrderItem.combination_id == ProductOptionCombination.combination_id,
            )
            .where(ProductOptionCombination.product_id == product_id)
        )
        result = await db.execute(stmt)
        return result.scalar() or 0


order_item_crud = OrderItemCRUD(OrderItem)
