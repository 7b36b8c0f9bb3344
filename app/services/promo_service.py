# app/services/promo_service.py
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PromoRejected, NotFound
from app.engine.pricing import AppliedPromo
from app.models.promo_models import PromoCode, PromoUsage
from app.schemas.promo_schemas import PromoCreate
from app.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


# -----------------------
# CREATE
# -----------------------
async def create_promo(db: AsyncSession, payload: PromoCreate, _user) -> PromoCode:
    existing = await db.execute(select(PromoCode).where(PromoCode.code == payload.code))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Promo code already exists")

    promo = PromoCode(code=payload.code, percentage=payload.percentage)
    db.add(promo)
    try:
        await db.flush()
        await log_user_activity(
            db=db,
            username=_user.email,
            role=_user.role,
            message=f"Created promo code '{promo.code}' ({promo.percentage}%)"
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Promo code already exists")
    await db.refresh(promo)
    logger.info("Promo %s created by %s", promo.code, _user.email)
    return promo


# -----------------------
# READ
# -----------------------
async def list_promos(db: AsyncSession):
    result = await db.execute(select(PromoCode).order_by(PromoCode.created_at.desc(), PromoCode.id.desc()))
    return result.scalars().all()


async def get_promo_by_code(db: AsyncSession, code: str):
    result = await db.execute(select(PromoCode).where(PromoCode.code == normalize_code(code)))
    return result.scalar_one_or_none()


# -----------------------
# DELETE
# -----------------------
async def delete_promo(db: AsyncSession, promo_id: int, _user) -> PromoCode:
    promo = await db.get(PromoCode, promo_id)
    if not promo:
        raise NotFound("Promo code not found")

    await db.delete(promo)
    await log_user_activity(
        db=db,
        username=_user.email,
        role=_user.role,
        message=f"Deleted promo code '{promo.code}' (ID: {promo.id})"
    )
    await db.commit()
    return promo


# -----------------------
# VALIDATE / REDEEM
# -----------------------
async def _has_used(db: AsyncSession, code: str, email: str) -> bool:
    result = await db.execute(
        select(PromoUsage.id).where(PromoUsage.promo_code == code, PromoUsage.user_email == email.lower())
    )
    return result.first() is not None


async def validate_promo(db: AsyncSession, code: str, email: str) -> AppliedPromo:
    promo = await get_promo_by_code(db, code)
    if not promo:
        raise PromoRejected("Invalid Promo Code")
    if await _has_used(db, promo.code, email):
        raise PromoRejected("You have already used this promo code")
    return AppliedPromo(code=promo.code, percentage=promo.percentage)


async def redeem_promo(db: AsyncSession, code: str, email: str) -> AppliedPromo:
    """Records the usage row; the caller owns the transaction."""
    applied = await validate_promo(db, code, email)
    db.add(PromoUsage(promo_code=applied.code, user_email=email.lower()))
    return applied
