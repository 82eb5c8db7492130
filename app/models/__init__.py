from .product import Product
from .option import OptionType, OptionValue
from .combination import ProductOptionCombination
from .order import Order, OrderItem

__all__ = [
    "Product",
    "OptionType",
    "OptionValue",
    "ProductOptionCombination",
    "Order",
    "OrderItem",
]
