from .combination import (
    OptionValueRef, CombinationCreate, CombinationUpdate, Combination, CombinationResponse,
    StockUpdate, BulkStockItem, BulkStockUpdate, GenerateCombinationsRequest,
    OptionValuesRequest, PriceRequest, PriceBreakdown, CombinationStatistics,
    DeleteResult, ProductDeleteResult, LinePricing,
)
from .option import OptionType, OptionTypeCreate, OptionTypeWithValues, OptionValue, OptionValueCreate

__all__ = [
    "OptionValueRef", "CombinationCreate", "CombinationUpdate", "Combination", "CombinationResponse",
    "StockUpdate", "BulkStockItem", "BulkStockUpdate", "GenerateCombinationsRequest",
    "OptionValuesRequest", "PriceRequest", "PriceBreakdown", "CombinationStatistics",
    "DeleteResult", "ProductDeleteResult", "LinePricing",
    "OptionType", "OptionTypeCreate", "OptionTypeWithValues", "OptionValue", "OptionValueCreate",
]
