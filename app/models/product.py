from sqlalchemy import Column, String, Integer, Boolean, DateTime, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.database import Base


class Product(Base):
    """Catalog product. Owned by the catalog; read here for SKU, name and base price."""

    __tablename__ = "products"

    product_id = Column(Integer, primary_key=True, index=True)
    product_name_en = Column(String(255), nullable=False)
    product_name_ar = Column(String(255))
    product_name_he = Column(String(255))
    sku = Column(String(100), index=True)
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)  # legacy per-product stock
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    combinations = relationship("ProductOptionCombination", back_populates="product")
