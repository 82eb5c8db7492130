from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.exceptions import NotFoundError
from app.crud.option import option_type, option_value
from app.db.database import get_db
from app.schemas.option import (
    OptionType,
    OptionTypeCreate,
    OptionTypeWithValues,
    OptionValue,
    OptionValueCreate,
)

router = APIRouter()


@router.get("/types")
async def get_option_types(
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Get option types with their values"""
    types = await option_type.get_multi_with_values(db, is_active=is_active)
    return {"success": True, "data": [OptionTypeWithValues.model_validate(t) for t in types]}


@router.post("/types", status_code=status.HTTP_201_CREATED)
async def create_option_type(
    type_in: OptionTypeCreate,
    db: AsyncSession = Depends(get_db)
):
    created = await option_type.create(db, obj_in=type_in)
    return {"success": True, "data": OptionType.model_validate(created)}


@router.get("/types/{type_id}")
async def get_option_type(
    type_id: int,
    db: AsyncSession = Depends(get_db)
):
    db_type = await option_type.get_with_values(db, type_id)
    if db_type is None:
        raise NotFoundError("Option type not found")
    return {"success": True, "data": OptionTypeWithValues.model_validate(db_type)}


@router.get("/types/{type_id}/values")
async def get_option_values(
    type_id: int,
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Get the values of an option type in display order"""
    if await option_type.get(db, type_id) is None:
        raise NotFoundError("Option type not found")
    values = await option_value.get_by_type(db, type_id, is_active=is_active)
    return {"success": True, "data": [OptionValue.model_validate(v) for v in values]}


@router.post("/types/{type_id}/values", status_code=status.HTTP_201_CREATED)
async def create_option_value(
    type_id: int,
    value_in: OptionValueCreate,
    db: AsyncSession = Depends(get_db)
):
    if await option_type.get(db, type_id) is None:
        raise NotFoundError("Option type not found")
    created = await option_value.create(db, obj_in=value_in, extra={"option_type_id": type_id})
    return {"success": True, "data": OptionValue.model_validate(created)}


@router.get("/values/{value_id}")
async def get_option_value(
    value_id: int,
    db: AsyncSession = Depends(get_db)
):
    db_value = await option_value.get(db, value_id)
    if db_value is None:
        raise NotFoundError("Option value not found")
    return {"success": True, "data": OptionValue.model_validate(db_value)}
