from fastapi import APIRouter, Depends

from app.api.api_v1.endpoints import combinations, options
from app.core.security import get_current_user

api_router = APIRouter()

api_router.include_router(
    combinations.router,
    prefix="/combinations",
    tags=["combinations"],
    dependencies=[Depends(get_current_user)],
)
api_router.include_router(
    options.router,
    prefix="/options",
    tags=["options"],
    dependencies=[Depends(get_current_user)],
)
