from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud.combination import combination_crud
from app.models.combination import ProductOptionCombination
from app.schemas.combination import CombinationStatistics


class ReportingService:
    """Stock alerting and aggregate counts across all combinations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_low_stock(
        self,
        threshold: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[ProductOptionCombination]:
        """Active combinations at or below the threshold, lowest stock first"""
        if threshold is None:
            threshold = settings.LOW_STOCK_THRESHOLD
        if limit is None:
            limit = settings.STOCK_ALERT_LIMIT
        return await combination_crud.get_low_stock(self.db, threshold=threshold, limit=limit)

    async def get_out_of_stock(self, limit: Optional[int] = None) -> List[ProductOptionCombination]:
        """Active combinations with no stock, most recently changed first"""
        if limit is None:
            limit = settings.STOCK_ALERT_LIMIT
        return await combination_crud.get_out_of_stock(self.db, limit=limit)

    async def get_statistics(self) -> CombinationStatistics:
        stats = await combination_crud.get_statistics(
            self.db, low_stock_threshold=settings.LOW_STOCK_THRESHOLD
        )
        return CombinationStatistics(**stats)

    async def get_total_stock(self, product_id: int) -> int:
        return await combination_crud.get_total_stock(self.db, product_id)
