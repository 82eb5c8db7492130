from pydantic import BaseModel, Field, validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
import re

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class OptionTypeBase(BaseModel):
    type_name_en: str = Field(..., min_length=1, max_length=100, description="Type name, e.g. 'Color'")
    type_name_ar: Optional[str] = Field(None, max_length=100)
    type_name_he: Optional[str] = Field(None, max_length=100)
    display_order: int = 0
    display_type: str = Field("dropdown", max_length=20)
    is_active: bool = True


class OptionTypeCreate(OptionTypeBase):
    pass


class OptionType(OptionTypeBase):
    option_type_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OptionValueBase(BaseModel):
    value_name_en: str = Field(..., min_length=1, max_length=100, description="Value name, e.g. 'Red'")
    value_name_ar: Optional[str] = Field(None, max_length=100)
    value_name_he: Optional[str] = Field(None, max_length=100)
    additional_price: Decimal = Field(Decimal("0"), description="Signed delta added to the product base price")
    hex_code: Optional[str] = None
    color_code: Optional[str] = Field(None, max_length=50)
    display_order: int = 0
    is_active: bool = True

    @validator("hex_code")
    def validate_hex_code(cls, v):
        if v is not None and not HEX_COLOR.match(v):
            raise ValueError("hex_code must look like #RRGGBB")
        return v


class OptionValueCreate(OptionValueBase):
    pass


class OptionValue(OptionValueBase):
    option_value_id: int
    option_type_id: int
    additional_price: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OptionTypeWithValues(OptionType):
    values: List[OptionValue] = []

    class Config:
        from_attributes = True
