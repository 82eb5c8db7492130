from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from app.crud.base import CRUDBase
from app.models.option import OptionType, OptionValue
from app.schemas.option import OptionTypeCreate, OptionValueCreate


class OptionTypeCRUD(CRUDBase[OptionType, OptionTypeCreate, OptionTypeCreate]):
    async def get_with_values(
        self,
        db: AsyncSession,
        type_id: int
    ) -> Optional[OptionType]:
        """Get an option type with all of its values"""
        stmt = (
            select(OptionType)
            .options(selectinload(OptionType.values))
            .where(OptionType.option_type_id == type_id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_multi_with_values(
        self,
        db: AsyncSession,
        *,
        is_active: Optional[bool] = None
    ) -> List[OptionType]:
        """Get option types in display order with their values"""
        stmt = select(OptionType).options(selectinload(OptionType.values))
        if is_active is not None:
            stmt = stmt.where(OptionType.is_active == is_active)
        stmt = stmt.order_by(OptionType.display_order, OptionType.option_type_id)
        result = await db.execute(stmt)
        return result.scalars().all()


class OptionValueCRUD(CRUDBase[OptionValue, OptionValueCreate, OptionValueCreate]):
    async def get_by_ids(
        self,
        db: AsyncSession,
        value_ids: Iterable[int]
    ) -> List[OptionValue]:
        """Batch lookup reloaded from the database; result order is unspecified"""
        value_ids = list(value_ids)
        if not value_ids:
            return []
        stmt = (
            select(OptionValue)
            .where(OptionValue.option_value_id.in_(value_ids))
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_by_type(
        self,
        db: AsyncSession,
        type_id: int,
        *,
        is_active: Optional[bool] = None,
        value_ids: Optional[Iterable[int]] = None
    ) -> List[OptionValue]:
        """Get values of one option type, optionally restricted to the given ids"""
        stmt = select(OptionValue).where(OptionValue.option_type_id == type_id)
        if is_active is not None:
            stmt = stmt.where(OptionValue.is_active == is_active)
        if value_ids is not None:
            stmt = stmt.where(OptionValue.option_value_id.in_(list(value_ids)))
        stmt = stmt.order_by(OptionValue.display_order, OptionValue.option_value_id)
        result = await db.execute(stmt)
        return result.scalars().all()

    async def sum_additional_price(
        self,
        db: AsyncSession,
        value_ids: Iterable[int]
    ) -> Decimal:
        """Sum of the price deltas of the given values (each id counted once)"""
        value_ids = list(value_ids)
        if not value_ids:
            return Decimal("0")
        stmt = select(func.coalesce(func.sum(OptionValue.additional_price), 0)).where(
            OptionValue.option_value_id.in_(value_ids)
        )
        result = await db.execute(stmt)
        return Decimal(str(result.scalar()))


option_type = OptionTypeCRUD(OptionType)
option_value = OptionValueCRUD(OptionValue)
