from .combination import CombinationCRUD, combination_crud
from .option import OptionTypeCRUD, OptionValueCRUD, option_type, option_value
from .order import OrderItemCRUD, order_item_crud
from .product import ProductCRUD, product

__all__ = [
    "CombinationCRUD",
    "combination_crud",
    "OptionTypeCRUD",
    "OptionValueCRUD",
    "option_type",
    "option_value",
    "OrderItemCRUD",
    "order_item_crud",
    "ProductCRUD",
    "product",
]
