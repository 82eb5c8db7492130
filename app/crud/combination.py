from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, update, delete, func, case, distinct

from app.core.exceptions import DuplicateCombinationError, InvalidInputError
from app.crud.base import CRUDBase
from app.models.combination import ProductOptionCombination
from app.schemas.combination import CombinationCreate, CombinationUpdate

PC = ProductOptionCombination


def _clamped(expr):
    return case((expr < 0, 0), else_=expr)


def _select():
    # Stock is changed with UPDATE statements, so always refresh loaded rows
    return select(PC).execution_options(populate_existing=True)


class CombinationCRUD(CRUDBase[ProductOptionCombination, CombinationCreate, CombinationUpdate]):
    async def get(self, db: AsyncSession, id: Any) -> Optional[ProductOptionCombination]:
        """Get a combination (with its product) reloaded from the database"""
        stmt = _select().where(PC.combination_id == id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_hash(
        self,
        db: AsyncSession,
        product_id: int,
        option_values_hash: str
    ) -> Optional[ProductOptionCombination]:
        stmt = _select().where(
            PC.product_id == product_id, PC.option_values_hash == option_values_hash
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_sku(self, db: AsyncSession, sku: str) -> Optional[ProductOptionCombination]:
        stmt = _select().where(PC.sku == sku).order_by(PC.combination_id).limit(1)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_product(
        self,
        db: AsyncSession,
        product_id: int,
        *,
        is_active: Optional[bool] = None,
        include_out_of_stock: bool = True
    ) -> List[ProductOptionCombination]:
        """Get combinations of a product in creation order"""
        stmt = _select().where(PC.product_id == product_id)
        if is_active is not None:
            stmt = stmt.where(PC.is_active == is_active)
        if not include_out_of_stock:
            stmt = stmt.where(PC.stock_quantity > 0)
        stmt = stmt.order_by(PC.created_at.asc(), PC.combination_id.asc())
        result = await db.execute(stmt)
        return result.scalars().all()

    async def create_row(
        self,
        db: AsyncSession,
        *,
        product_id: int,
        option_values_hash: str,
        option_values: List[Dict[str, int]],
        option_summary: str,
        sku: Optional[str],
        additional_price: Decimal,
        stock_quantity: int,
        is_active: bool = True
    ) -> ProductOptionCombination:
        """Insert a combination; the (product_id, hash) unique key guards duplicates"""
        db_obj = PC(
            product_id=product_id,
            option_values_hash=option_values_hash,
            option_values=option_values,
            option_summary=option_summary,
            sku=sku,
            additional_price=additional_price,
            stock_quantity=stock_quantity,
            reserved_quantity=0,
            is_active=is_active,
        )
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            message = str(e.orig).lower()
            if "unique" in message or "uq_combination_product_hash" in message:
                raise DuplicateCombinationError(
                    "This option combination already exists for this product"
                )
            raise
        return await self.get(db, db_obj.combination_id)

    async def update_fields(
        self,
        db: AsyncSession,
        combination_id: int,
        values: Dict[str, Any]
    ) -> Optional[ProductOptionCombination]:
        """Write the given columns as-is (last write wins) and return the fresh row"""
        if values:
            stmt = (
                update(PC)
                .where(PC.combination_id == combination_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await db.execute(stmt)
            await db.commit()
        return await self.get(db, combination_id)

    async def hard_delete(self, db: AsyncSession, combination_id: int) -> bool:
        stmt = delete(PC).where(PC.combination_id == combination_id).execution_options(
            synchronize_session=False
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount > 0

    async def deactivate_by_product(self, db: AsyncSession, product_id: int) -> int:
        stmt = (
            update(PC)
            .where(PC.product_id == product_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount

    async def delete_by_product(self, db: AsyncSession, product_id: int) -> int:
        stmt = delete(PC).where(PC.product_id == product_id).execution_options(
            synchronize_session=False
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount

    # Stock statements below do not commit; the caller owns the transaction.

    async def set_stock(self, db: AsyncSession, combination_id: int, quantity: int) -> int:
        if quantity is None or quantity < 0:
            raise InvalidInputError("Stock quantity cannot be negative")
        stmt = (
            update(PC)
            .where(PC.combination_id == combination_id)
            .values(stock_quantity=quantity)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def adjust_stock(self, db: AsyncSession, combination_id: int, delta: int) -> int:
        """stock = max(0, stock + delta) in a single statement"""
        stmt = (
            update(PC)
            .where(PC.combination_id == combination_id)
            .values(stock_quantity=_clamped(PC.stock_quantity + delta))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def reserve(self, db: AsyncSession, combination_id: int, quantity: int) -> int:
        """Move quantity from stock to reserved only if enough stock is left; 0 rows means no"""
        stmt = (
            update(PC)
            .where(PC.combination_id == combination_id, PC.stock_quantity >= quantity)
            .values(
                stock_quantity=PC.stock_quantity - quantity,
                reserved_quantity=PC.reserved_quantity + quantity,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def release(self, db: AsyncSession, combination_id: int, quantity: int) -> int:
        stmt = (
            update(PC)
            .where(PC.combination_id == combination_id)
            .values(
                stock_quantity=PC.stock_quantity + quantity,
                reserved_quantity=_clamped(PC.reserved_quantity - quantity),
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def consume_reserved(self, db: AsyncSession, combination_id: int, quantity: int) -> int:
        stmt = (
            update(PC)
            .where(PC.combination_id == combination_id)
            .values(reserved_quantity=_clamped(PC.reserved_quantity - quantity))
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount

    async def lock_for_update(self, db: AsyncSession, combination_ids: Iterable[int]) -> Dict[int, int]:
        """Row-lock the combinations in ascending id order; returns {id: stock}"""
        ids = sorted(set(combination_ids))
        if not ids:
            return {}
        stmt = (
            select(PC.combination_id, PC.stock_quantity)
            .where(PC.combination_id.in_(ids))
            .order_by(PC.combination_id)
            .with_for_update()
        )
        result = await db.execute(stmt)
        return {row.combination_id: row.stock_quantity for row in result}

    # Reporting

    async def get_low_stock(
        self,
        db: AsyncSession,
        *,
        threshold: int,
        limit: int
    ) -> List[ProductOptionCombination]:
        stmt = (
            _select()
            .where(PC.stock_quantity <= threshold, PC.is_active == True)  # noqa: E712
            .order_by(PC.stock_quantity.asc(), PC.combination_id.asc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_out_of_stock(self, db: AsyncSession, *, limit: int) -> List[ProductOptionCombination]:
        stmt = (
            _select()
            .where(PC.stock_quantity == 0, PC.is_active == True)  # noqa: E712
            .order_by(PC.updated_at.desc(), PC.combination_id.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_total_stock(self, db: AsyncSession, product_id: int) -> int:
        stmt = select(func.coalesce(func.sum(PC.stock_quantity), 0)).where(
            PC.product_id == product_id, PC.is_active == True  # noqa: E712
        )
        result = await db.execute(stmt)
        return int(result.scalar() or 0)

    async def get_statistics(self, db: AsyncSession, *, low_stock_threshold: int) -> Dict[str, int]:
        active = PC.is_active == True  # noqa: E712
        stmt = select(
            func.count(PC.combination_id).label("total_combinations"),
            func.coalesce(func.sum(case((active, 1), else_=0)), 0).label("active_combinations"),
            func.coalesce(
                func.sum(case(((PC.stock_quantity == 0) & active, 1), else_=0)), 0
            ).label("out_of_stock"),
            func.coalesce(
                func.sum(
                    case(
                        (
                            (PC.stock_quantity > 0)
                            & (PC.stock_quantity <= low_stock_threshold)
                            & active,
                            1,
                        ),
                        else_=0,
                    )
                ),
                0,
            ).label("low_stock"),
            func.coalesce(func.sum(PC.stock_quantity), 0).label("total_stock"),
            func.count(distinct(PC.product_id)).label("products_with_combinations"),
        )
        result = await db.execute(stmt)
        row = result.one()
        return {key: int(value or 0) for key, value in row._mapping.items()}


combination_crud = CombinationCRUD(ProductOptionCombination)
