from sqlalchemy import Column, String, Integer, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.database import Base


class OptionType(Base):
    __tablename__ = "product_option_types"

    option_type_id = Column(Integer, primary_key=True, index=True)
    type_name_en = Column(String(100), nullable=False)  # 'Color', 'Size', ...
    type_name_ar = Column(String(100))
    type_name_he = Column(String(100))
    display_order = Column(Integer, default=0)
    display_type = Column(String(20), default="dropdown")  # dropdown, swatch, buttons
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    values = relationship(
        "OptionValue",
        back_populates="option_type",
        order_by="OptionValue.display_order",
        cascade="all, delete-orphan",
    )


class OptionValue(Base):
    __tablename__ = "product_option_values"

    option_value_id = Column(Integer, primary_key=True, index=True)
    option_type_id = Column(
        Integer,
        ForeignKey("product_option_types.option_type_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value_name_en = Column(String(100), nullable=False)  # 'Red', 'M', ...
    value_name_ar = Column(String(100))
    value_name_he = Column(String(100))
    additional_price = Column(Numeric(10, 2), nullable=False, default=0)  # signed delta
    hex_code = Column(String(7))  # swatch colour, '#FF0000'
    color_code = Column(String(50))
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    option_type = relationship("OptionType", back_populates="values", lazy="selectin")

    def localized_name(self, lang: str, default_lang: str = "en") -> str:
        name = getattr(self, f"value_name_{lang}", None)
        if not name:
            name = getattr(self, f"value_name_{default_lang}", None)
        return name or ""
