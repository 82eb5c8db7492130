from decimal import Decimal
from typing import Optional
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.crud.base import CRUDBase
from app.models.product import Product


class ProductCRUD(CRUDBase[Product, BaseModel, BaseModel]):
    async def get_base_price(
        self,
        db: AsyncSession,
        product_id: int
    ) -> Optional[Decimal]:
        """Base price of a product, None if the product does not exist"""
        stmt = select(Product.base_price).where(Product.product_id == product_id)
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return Decimal(str(row[0] or 0))


product = ProductCRUD(Product)
