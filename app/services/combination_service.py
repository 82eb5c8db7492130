import hashlib
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import DuplicateCombinationError, InvalidInputError, NotFoundError
from app.crud.combination import combination_crud
from app.crud.option import option_value as option_value_crud
from app.crud.order import order_item_crud
from app.crud.product import product as product_crud
from app.models.combination import ProductOptionCombination
from app.models.option import OptionValue
from app.models.product import Product
from app.schemas.combination import (
    CombinationResponse,
    DeleteResult,
    LinePricing,
    OptionDetail,
    PriceBreakdown,
    ProductDeleteResult,
)
from app.utils.numbers import coerce_price, coerce_quantity

logger = logging.getLogger(__name__)

HASH_DELIMITER = ","
SUMMARY_SEPARATOR = " / "
SKU_DELIMITER = "-"
SKU_DEFAULT_SUFFIX = "DEFAULT"
SKU_CODE_LENGTH = 3

UPDATABLE_FIELDS = ("sku", "additional_price", "stock_quantity", "is_active")


def _value_id(ref: Any) -> int:
    if isinstance(ref, Mapping):
        return int(ref["option_value_id"])
    return int(ref.option_value_id)


def normalize_option_values(option_values: Optional[Iterable[Any]]) -> List[Dict[str, Optional[int]]]:
    """Accept dicts or OptionValueRef models; return plain dicts in input order"""
    normalized = []
    for ref in option_values or []:
        if isinstance(ref, Mapping):
            type_id = ref.get("option_type_id")
        else:
            type_id = getattr(ref, "option_type_id", None)
        normalized.append({
            "option_type_id": int(type_id) if type_id is not None else None,
            "option_value_id": _value_id(ref),
        })
    return normalized


def generate_hash(option_values: Iterable[Any]) -> str:
    """
    Stable fingerprint of a set of option values.

    Value ids are sorted ascending and joined with "," before hashing, so the
    same set in any order yields the same 32 character md5 hex digest.
    """
    value_ids = sorted(_value_id(ref) for ref in option_values)
    joined = HASH_DELIMITER.join(str(value_id) for value_id in value_ids)
    return hashlib.md5(joined.encode("utf-8")).hexdigest()


def sku_code(name: Optional[str]) -> str:
    """'Red' -> 'RED', 'x-large' -> 'XL'"""
    return re.sub(r"[^A-Z0-9]", "", (name or "")[:SKU_CODE_LENGTH].upper())


class CombinationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # Identity & summary

    async def generate_summary(self, option_values: Sequence[Any], lang: Optional[str] = None) -> str:
        """Localized value names in input order, e.g. 'Red / M'"""
        refs = normalize_option_values(option_values)
        if not refs:
            return ""

        lang = lang if lang in settings.SUPPORTED_LANGUAGES else settings.DEFAULT_LANGUAGE
        values = await self._values_by_id(ref["option_value_id"] for ref in refs)

        names = []
        for ref in refs:
            value = values.get(ref["option_value_id"])
            if value is not None:
                names.append(value.localized_name(lang, settings.DEFAULT_LANGUAGE))
        return SUMMARY_SEPARATOR.join(names)

    async def generate_sku(self, product_id: int, option_values: Sequence[Any]) -> str:
        """Suggested SKU: product SKU followed by a short code per value, by option type"""
        product = await product_crud.get(self.db, product_id)
        product_sku = product.sku if product is not None and product.sku else f"P{product_id}"

        refs = normalize_option_values(option_values)
        if not refs:
            return f"{product_sku}{SKU_DELIMITER}{SKU_DEFAULT_SUFFIX}"

        values = await self._values_by_id(ref["option_value_id"] for ref in refs)
        ordered = sorted(values.values(), key=lambda v: (v.option_type_id, v.option_value_id))
        codes = [
            sku_code(value.localized_name(settings.DEFAULT_LANGUAGE, settings.DEFAULT_LANGUAGE))
            for value in ordered
        ]
        return SKU_DELIMITER.join([product_sku] + codes)

    # Reads

    async def get_by_id(self, combination_id: int) -> Optional[ProductOptionCombination]:
        return await combination_crud.get(self.db, combination_id)

    async def get_detail(self, combination_id: int) -> Optional[CombinationResponse]:
        """Combination with product info and the names behind each selected value"""
        combo = await combination_crud.get(self.db, combination_id)
        if combo is None:
            return None
        return (await self.to_responses([combo]))[0]

    async def get_by_sku(self, sku: str) -> Optional[ProductOptionCombination]:
        return await combination_crud.get_by_sku(self.db, sku)

    async def get_by_product(
        self,
        product_id: int,
        *,
        is_active: Optional[bool] = None,
        include_out_of_stock: bool = True
    ) -> List[CombinationResponse]:
        combinations = await combination_crud.get_by_product(
            self.db,
            product_id,
            is_active=is_active,
            include_out_of_stock=include_out_of_stock,
        )
        return await self.to_responses(combinations)

    async def find_by_option_values(
        self, product_id: int, option_values: Sequence[Any]
    ) -> Optional[ProductOptionCombination]:
        if not option_values:
            return None
        return await combination_crud.get_by_hash(self.db, product_id, generate_hash(option_values))

    async def get_options_detail(self, option_values: Sequence[Any]) -> List[OptionDetail]:
        refs = normalize_option_values(option_values)
        values = await self._values_by_id(ref["option_value_id"] for ref in refs)
        return self._details_for(refs, values)

    async def to_responses(
        self, combinations: Sequence[ProductOptionCombination]
    ) -> List[CombinationResponse]:
        """Serialize combinations, resolving all their option values in one lookup"""
        value_ids = {
            ref["option_value_id"]
            for combo in combinations
            for ref in normalize_option_values(combo.option_values)
        }
        values = await self._values_by_id(value_ids)

        responses = []
        for combo in combinations:
            response = CombinationResponse.model_validate(combo)
            response.options_detail = self._details_for(
                normalize_option_values(combo.option_values), values
            )
            responses.append(response)
        return responses

    # Writes

    async def create(
        self,
        product_id: int,
        option_values: Sequence[Any],
        sku: Optional[str] = None,
        additional_price: Any = None,
        stock_quantity: Any = None,
        is_active: bool = True,
    ) -> ProductOptionCombination:
        """
        Create one combination for a product.

        Every referenced option value must exist. When ``additional_price`` is
        omitted it is stored as the sum of the values' price deltas; an explicit
        value overrides it. Non-numeric or negative numbers are stored as 0.
        """
        refs = normalize_option_values(option_values)
        if not refs:
            raise InvalidInputError("option_values must be a non-empty list")
        value_ids = [ref["option_value_id"] for ref in refs]
        if len(set(value_ids)) != len(value_ids):
            raise InvalidInputError("option_values must not repeat a value")

        product = await product_crud.get(self.db, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        values = await self._values_by_id(ref["option_value_id"] for ref in refs)
        for ref in refs:
            value = values.get(ref["option_value_id"])
            if value is None:
                raise NotFoundError(f"Option value {ref['option_value_id']} not found")
            ref["option_type_id"] = value.option_type_id

        type_ids = [ref["option_type_id"] for ref in refs]
        if len(set(type_ids)) != len(type_ids):
            raise InvalidInputError("option_values must hold at most one value per option type")

        option_values_hash = generate_hash(refs)
        existing = await combination_crud.get_by_hash(self.db, product_id, option_values_hash)
        if existing is not None:
            raise DuplicateCombinationError("This option combination already exists for this product")

        if additional_price is None:
            additional_price = sum(
                (Decimal(str(v.additional_price or 0)) for v in values.values()), Decimal("0")
            )

        return await combination_crud.create_row(
            self.db,
            product_id=product_id,
            option_values_hash=option_values_hash,
            option_values=refs,
            option_summary=await self.generate_summary(refs),
            sku=sku or await self.generate_sku(product_id, refs),
            additional_price=coerce_price(additional_price),
            stock_quantity=coerce_quantity(stock_quantity),
            is_active=bool(is_active),
        )

    async def get_or_create(
        self, product_id: int, option_values: Sequence[Any], **defaults
    ) -> ProductOptionCombination:
        combo = await self.find_by_option_values(product_id, option_values)
        if combo is not None:
            return combo
        try:
            return await self.create(product_id, option_values, **defaults)
        except DuplicateCombinationError:
            # Lost a race with another creator; the row exists now
            return await self.find_by_option_values(product_id, option_values)

    async def update(self, combination_id: int, data: Mapping[str, Any]) -> ProductOptionCombination:
        """
        Patch sku/additional_price/stock_quantity/is_active; other keys are ignored.
        The hash and summary never change after creation.
        """
        existing = await combination_crud.get(self.db, combination_id)
        if existing is None:
            raise NotFoundError("Combination not found")

        values: Dict[str, Any] = {}
        if "sku" in data and data["sku"] is not None:
            values["sku"] = str(data["sku"])
        if "additional_price" in data:
            values["additional_price"] = coerce_price(data["additional_price"])
        if "stock_quantity" in data:
            values["stock_quantity"] = coerce_quantity(data["stock_quantity"])
        if "is_active" in data and data["is_active"] is not None:
            values["is_active"] = bool(data["is_active"])

        if not values:
            return existing
        return await combination_crud.update_fields(self.db, combination_id, values)

    async def delete(self, combination_id: int) -> DeleteResult:
        """Deactivate if any order line references the combination, otherwise remove it"""
        existing = await combination_crud.get(self.db, combination_id)
        if existing is None:
            raise NotFoundError("Combination not found")

        usage = await order_item_crud.count_by_combination(self.db, combination_id)
        if usage > 0:
            await combination_crud.update_fields(self.db, combination_id, {"is_active": False})
            logger.info(f"Combination {combination_id} soft-deleted ({usage} order lines)")
            return DeleteResult(combination_id=combination_id, mode="soft")

        await combination_crud.hard_delete(self.db, combination_id)
        return DeleteResult(combination_id=combination_id, mode="hard")

    async def delete_by_product(self, product_id: int) -> ProductDeleteResult:
        usage = await order_item_crud.count_by_product_combinations(self.db, product_id)
        if usage > 0:
            affected = await combination_crud.deactivate_by_product(self.db, product_id)
            logger.info(f"Combinations of product {product_id} soft-deleted ({usage} order lines)")
            return ProductDeleteResult(product_id=product_id, mode="soft", affected=affected)

        affected = await combination_crud.delete_by_product(self.db, product_id)
        return ProductDeleteResult(product_id=product_id, mode="hard", affected=affected)

    # Pricing

    async def calculate_price(self, product_id: int, option_values: Sequence[Any]) -> Decimal:
        """Live price preview: base price plus the selected values' deltas"""
        base_price = await product_crud.get_base_price(self.db, product_id)
        if base_price is None:
            raise NotFoundError(f"Product {product_id} not found")

        refs = normalize_option_values(option_values)
        if not refs:
            return base_price
        extra = await option_value_crud.sum_additional_price(
            self.db, {ref["option_value_id"] for ref in refs}
        )
        return base_price + extra

    async def get_price_breakdown(self, combination_id: int) -> Optional[PriceBreakdown]:
        combo = await combination_crud.get(self.db, combination_id)
        if combo is None:
            return None
        return PriceBreakdown(
            base_price=combo.base_price or 0,
            additional_price=combo.additional_price or 0,
            final_price=combo.final_price or 0,
            option_summary=combo.option_summary,
        )

    async def resolve_line(self, product_id: int, combination_id: Optional[int] = None) -> LinePricing:
        """
        Price and stock for a cart/order line.

        A combination's own price and stock take priority over the product's;
        lines without a combination fall back to the product's legacy stock.
        """
        product: Optional[Product] = await product_crud.get(self.db, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        if combination_id is None:
            stock = product.stock_quantity or 0
            return LinePricing(
                product_id=product_id,
                sku=product.sku,
                unit_price=product.base_price or 0,
                available_stock=stock,
                is_available=bool(product.is_active) and stock > 0,
            )

        combo = await combination_crud.get(self.db, combination_id)
        if combo is None or combo.product_id != product_id:
            raise NotFoundError("Combination not found")
        return LinePricing(
            product_id=product_id,
            combination_id=combination_id,
            sku=combo.sku,
            unit_price=combo.final_price,
            available_stock=combo.stock_quantity,
            is_available=combo.is_active and combo.stock_quantity > 0,
        )

    # Helpers

    async def _values_by_id(self, value_ids: Iterable[int]) -> Dict[int, OptionValue]:
        values = await option_value_crud.get_by_ids(self.db, set(value_ids))
        return {value.option_value_id: value for value in values}

    @staticmethod
    def _details_for(
        refs: Sequence[Mapping[str, Any]], values: Mapping[int, OptionValue]
    ) -> List[OptionDetail]:
        details = []
        for ref in refs:
            value = values.get(ref["option_value_id"])
            if value is None:
                continue
            details.append(OptionDetail(
                type_id=value.option_type_id,
                type_name=value.option_type.type_name_en if value.option_type else None,
                value_id=value.option_value_id,
                value_name=value.value_name_en,
                hex_code=value.hex_code,
                additional_price=value.additional_price or 0,
            ))
        return details
