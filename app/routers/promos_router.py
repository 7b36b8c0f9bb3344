# app/routers/promos_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import OWNER_ROLE
from app.core.db import get_db
from app.schemas.promo_schemas import (
    PromoCreate, PromoValidateIn, PromoOut, AppliedPromoOut,
    PromoResponse, PromoListResponse, PromoValidateResponse,
)
from app.services.promo_service import create_promo, list_promos, delete_promo, validate_promo
from app.utils.get_user import get_current_user
from app.utils.check_roles import require_role

router = APIRouter(prefix="/promos", tags=["Promo Codes"])

@router.post("", response_model=PromoResponse, status_code=201)
@require_role([OWNER_ROLE])
async def create_promo_route(data: PromoCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    promo = await create_promo(db, data, _user)
    return PromoResponse(message="Promo code created successfully", data=PromoOut.model_validate(promo))

@router.get("", response_model=PromoListResponse)
@require_role([OWNER_ROLE])
async def list_promos_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    promos = await list_promos(db)
    return PromoListResponse(message="Promo codes fetched successfully", data=[PromoOut.model_validate(p) for p in promos])

@router.delete("/{promo_id}", response_model=PromoResponse)
@require_role([OWNER_ROLE])
async def delete_promo_route(promo_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    promo = await delete_promo(db, promo_id, _user)
    return PromoResponse(message=f"Promo code '{promo.code}' deleted successfully")

@router.post("/validate", response_model=PromoValidateResponse)
async def validate_promo_route(data: PromoValidateIn, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    applied = await validate_promo(db, data.code, _user.email)
    return PromoValidateResponse(
        message=f"Promo applied: {applied.percentage}% off",
        data=AppliedPromoOut(code=applied.code, percentage=applied.percentage),
    )
