import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateCombinationError
from app.crud.combination import combination_crud
from app.crud.option import option_value as option_value_crud
from app.models.combination import ProductOptionCombination
from app.services.combination_service import CombinationService

logger = logging.getLogger(__name__)

CREATED = "created"
DUPLICATE = "duplicate"
FAILED = "failed"


@dataclass
class GenerationAttempt:
    option_values: List[Dict[str, int]]
    status: str
    combination: Optional[ProductOptionCombination] = None
    combination_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class GenerationReport:
    product_id: int
    attempts: List[GenerationAttempt] = field(default_factory=list)

    @property
    def created(self) -> List[ProductOptionCombination]:
        return [a.combination for a in self.attempts if a.status == CREATED]

    def count(self, status: str) -> int:
        return sum(1 for a in self.attempts if a.status == status)

    def summary(self) -> Dict[str, int]:
        return {
            "attempted": len(self.attempts),
            "created": self.count(CREATED),
            "duplicates": self.count(DUPLICATE),
            "failed": self.count(FAILED),
        }


def _restriction_for(selected_values: Optional[Mapping[Any, Any]], type_id: int) -> Optional[List[int]]:
    """Value ids the caller limited a type to, None when the type is unrestricted"""
    if not selected_values:
        return None
    restriction = selected_values.get(type_id)
    if restriction is None:
        restriction = selected_values.get(str(type_id))
    if restriction is None or not isinstance(restriction, (list, tuple, set)):
        return None
    return [int(value_id) for value_id in restriction]


class CombinationGeneratorService:
    """Bulk-create one combination per element of the cartesian product of option types."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.combinations = CombinationService(db)

    async def generate_all_combinations(
        self,
        product_id: int,
        option_type_ids: Sequence[int],
        default_stock: int = 0,
        selected_values: Optional[Mapping[Any, Iterable[int]]] = None,
    ) -> List[ProductOptionCombination]:
        """Create the missing combinations and return only the newly created ones"""
        report = await self.generate(product_id, option_type_ids, default_stock, selected_values)
        return report.created

    async def generate(
        self,
        product_id: int,
        option_type_ids: Sequence[int],
        default_stock: int = 0,
        selected_values: Optional[Mapping[Any, Iterable[int]]] = None,
    ) -> GenerationReport:
        """
        Attempt every combination independently.

        Existing combinations are skipped silently so generation can be re-run
        after a partial run; any other failure is logged and skipped without
        undoing the combinations created before it.
        """
        report = GenerationReport(product_id=product_id)

        candidates = await self._candidate_values(option_type_ids, selected_values)
        if not candidates:
            return report

        for selection in itertools.product(*candidates):
            option_values = [
                {"option_type_id": type_id, "option_value_id": value_id}
                for type_id, value_id in selection
            ]
            try:
                combo = await self.combinations.create(
                    product_id, option_values, stock_quantity=default_stock
                )
            except DuplicateCombinationError:
                report.attempts.append(GenerationAttempt(option_values, DUPLICATE))
                continue
            except Exception as e:
                logger.error(f"Error creating combination {option_values} for product {product_id}: {e}")
                await self.db.rollback()
                report.attempts.append(GenerationAttempt(option_values, FAILED, error=str(e)))
                continue
            report.attempts.append(GenerationAttempt(
                option_values, CREATED, combination=combo, combination_id=combo.combination_id
            ))

        # A rollback after a failed tuple expires the rows created before it
        for attempt in report.attempts:
            if attempt.status == CREATED:
                attempt.combination = await combination_crud.get(self.db, attempt.combination_id)

        logger.info(f"Generated combinations for product {product_id}: {report.summary()}")
        return report

    async def _candidate_values(
        self,
        option_type_ids: Sequence[int],
        selected_values: Optional[Mapping[Any, Iterable[int]]],
    ) -> List[List[tuple]]:
        """Per type, the (type_id, value_id) pairs to combine; empty types are dropped"""
        candidates = []
        for type_id in dict.fromkeys(option_type_ids):
            restriction = _restriction_for(selected_values, type_id)
            if restriction is not None and not restriction:
                continue

            values = await option_value_crud.get_by_type(
                self.db, type_id, is_active=True, value_ids=restriction
            )
            if values:
                candidates.append([(value.option_type_id, value.option_value_id) for value in values])
        return candidates
