from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Literal
from decimal import Decimal
from datetime import datetime

from app.utils.numbers import coerce_price, coerce_quantity


class OptionValueRef(BaseModel):
    option_value_id: int = Field(..., gt=0, description="Selected option value")
    option_type_id: Optional[int] = Field(None, description="Owning option type (filled in from the value store)")


class CombinationCreate(BaseModel):
    product_id: int = Field(..., gt=0, description="Product this combination belongs to")
    option_values: List[OptionValueRef] = Field(..., min_length=1, description="One value per option type")
    sku: Optional[str] = Field(None, max_length=255, description="SKU (generated if not provided)")
    additional_price: Optional[Decimal] = Field(
        None, description="Price delta over the product base price (sum of the values' deltas if not provided)"
    )
    stock_quantity: Optional[int] = Field(None, description="Initial stock")
    is_active: bool = True

    @validator("additional_price", pre=True)
    def validate_additional_price(cls, v):
        if v is None:
            return v
        return coerce_price(v)

    @validator("stock_quantity", pre=True)
    def validate_stock_quantity(cls, v):
        return coerce_quantity(v)


class CombinationUpdate(BaseModel):
    sku: Optional[str] = Field(None, max_length=255)
    additional_price: Optional[Decimal] = None
    stock_quantity: Optional[int] = None
    is_active: Optional[bool] = None

    @validator("additional_price", pre=True)
    def validate_additional_price(cls, v):
        return coerce_price(v)

    @validator("stock_quantity", pre=True)
    def validate_stock_quantity(cls, v):
        return coerce_quantity(v)


class StockUpdate(BaseModel):
    stock_quantity: int = Field(..., ge=0, description="Absolute stock quantity")


class BulkStockItem(BaseModel):
    combination_id: int = Field(..., gt=0)
    stock_quantity: int = Field(..., ge=0)


class BulkStockUpdate(BaseModel):
    updates: List[BulkStockItem]


class GenerateCombinationsRequest(BaseModel):
    option_type_ids: List[int] = Field(..., description="Option types to combine, in display order")
    selected_values: Optional[Dict[int, List[int]]] = Field(
        None, description="Restrict a type to these value ids: {type_id: [value_id, ...]}"
    )
    default_stock: int = Field(0, ge=0, description="Stock given to every generated combination")


class OptionValuesRequest(BaseModel):
    option_values: List[OptionValueRef]


class PriceRequest(BaseModel):
    option_values: List[OptionValueRef] = []


class OptionDetail(BaseModel):
    type_id: int
    type_name: Optional[str] = None
    value_id: int
    value_name: str
    hex_code: Optional[str] = None
    additional_price: float = 0.0


class Combination(BaseModel):
    combination_id: int
    product_id: int
    option_values: List[OptionValueRef]
    option_values_hash: str
    option_summary: Optional[str] = ""
    sku: Optional[str] = None
    additional_price: float
    stock_quantity: int
    reserved_quantity: int = 0
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CombinationResponse(Combination):
    product_name: Optional[str] = Field(None, description="Product name")
    product_sku: Optional[str] = Field(None, description="Product SKU")
    base_price: Optional[float] = Field(None, description="Product base price")
    final_price: Optional[float] = Field(None, description="Base price plus additional price")
    options_detail: List[OptionDetail] = Field([], description="Type/value names of the selected options")

    class Config:
        from_attributes = True


class PriceBreakdown(BaseModel):
    base_price: float
    additional_price: float
    final_price: float
    option_summary: Optional[str] = ""


class CombinationStatistics(BaseModel):
    total_combinations: int = 0
    active_combinations: int = 0
    out_of_stock: int = 0
    low_stock: int = 0
    total_stock: int = 0
    products_with_combinations: int = 0


class DeleteResult(BaseModel):
    combination_id: int
    mode: Literal["soft", "hard"]


class ProductDeleteResult(BaseModel):
    product_id: int
    mode: Literal["soft", "hard"]
    affected: int


class LinePricing(BaseModel):
    """Price and stock a cart or order line should use."""

    product_id: int
    combination_id: Optional[int] = None
    sku: Optional[str] = None
    unit_price: float
    available_stock: int
    is_available: bool
