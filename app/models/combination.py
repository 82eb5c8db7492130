from decimal import Decimal

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Numeric, ForeignKey, JSON,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.database import Base


class ProductOptionCombination(Base):
    """One stock-keeping row per unique set of option values of a product."""

    __tablename__ = "product_option_combinations"
    __table_args__ = (
        UniqueConstraint("product_id", "option_values_hash", name="uq_combination_product_hash"),
        CheckConstraint("stock_quantity >= 0", name="ck_combination_stock_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_combination_reserved_non_negative"),
    )

    combination_id = Column(Integer, primary_key=True, index=True)
    product_id = Column(
        Integer,
        ForeignKey("products.product_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    option_values_hash = Column(String(32), nullable=False)
    # [{"option_type_id": 1, "option_value_id": 3}, ...] in the order they were selected
    option_values = Column(JSON, nullable=False, default=list)
    option_summary = Column(String(500), default="")  # "Red / M"
    sku = Column(String(255), index=True)
    additional_price = Column(Numeric(10, 2), nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship("Product", back_populates="combinations", lazy="selectin")
    order_items = relationship("OrderItem", back_populates="combination")

    @property
    def product_name(self):
        return self.product.product_name_en if self.product is not None else None

    @property
    def product_sku(self):
        return self.product.sku if self.product is not None else None

    @property
    def base_price(self):
        return self.product.base_price if self.product is not None else None

    @property
    def final_price(self):
        if self.product is None:
            return None
        return Decimal(self.product.base_price or 0) + Decimal(self.additional_price or 0)
