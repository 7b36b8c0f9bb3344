# app/services/vehicle_service.py
import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, InvalidTransition, PersistenceFailure, ValidationIncomplete
from app.engine import availability
from app.engine.dates import ensure_range, today
from app.engine.pricing import AppliedPromo, price_breakdown
from app.models.vehicle_models import Vehicle, VehicleStatus, VehicleCategory, FuelType, Transmission
from app.schemas.vehicle_schemas import (
    VehicleCreate, VehicleUpdate, VehicleOut, VehicleListingOut, AvailabilityOut, QuoteOut
)
from app.services.booking_service import fetch_active_bookings
from app.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)


def _enum_filter(enum_cls, value: str | None, name: str):
    if not value or value == "All":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationIncomplete(f"Unknown {name} '{value}'", reasons=[f"{name} must be one of: {allowed}"])


def _listing_out(vehicle: Vehicle, conflicts: int) -> VehicleListingOut:
    base = VehicleOut.model_validate(vehicle).model_dump()
    units = availability.available_units(vehicle, conflicts)
    return VehicleListingOut(
        **base,
        available_units=units,
        is_sold_out=units == 0,
        is_bookable=availability.effective_available_units(vehicle, conflicts) > 0,
    )


# --------------------------
# CREATE VEHICLE
# --------------------------
async def create_vehicle(db: AsyncSession, payload: VehicleCreate, _user) -> Vehicle:
    vehicle = Vehicle(**payload.model_dump(), status=VehicleStatus.available)
    db.add(vehicle)
    await db.flush()

    await log_user_activity(
        db=db,
        username=_user.email,
        role=_user.role,
        message=f"Added vehicle '{vehicle.name}' (stock {vehicle.total_stock}, rate {vehicle.price_per_day}/day)"
    )

    await db.commit()
    await db.refresh(vehicle)
    logger.info("Vehicle %s added by %s", vehicle.id, _user.email)
    return vehicle


# --------------------------
# READ
# --------------------------
async def get_vehicle(db: AsyncSession, vehicle_id: str) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFound("Vehicle not found")
    return vehicle


async def list_vehicles(
    db: AsyncSession,
    category: str | None = None,
    transmission: str | None = None,
    fuel_type: str | None = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[VehicleListingOut]:
    filters = []
    # "All" is how listing clients say "no filter"
    for column, enum_cls, value, name in (
        (Vehicle.category, VehicleCategory, category, "category"),
        (Vehicle.transmission, Transmission, transmission, "transmission"),
        (Vehicle.fuel_type, FuelType, fuel_type, "fuel_type"),
    ):
        wanted = _enum_filter(enum_cls, value, name)
        if wanted is not None:
            filters.append(column == wanted)

    searched = start is not None or end is not None
    if searched:
        start, end = ensure_range(start or end, end or start)

    result = await db.execute(select(Vehicle).where(*filters).order_by(Vehicle.created_at.desc()))
    vehicles = result.scalars().all()
    active = await fetch_active_bookings(db)

    listing = []
    for vehicle in vehicles:
        conflicts = availability.conflict_count(vehicle.id, start, end, active)
        item = _listing_out(vehicle, conflicts)
        if searched and not item.is_bookable:
            continue
        listing.append(item)
    return listing


async def vehicle_availability(
    db: AsyncSession, vehicle_id: str, start: Optional[date] = None, end: Optional[date] = None
) -> AvailabilityOut:
    vehicle = await get_vehicle(db, vehicle_id)
    if start is None and end is None:
        start = end = today()
    else:
        start, end = ensure_range(start or end, end or start)

    active = await fetch_active_bookings(db, vehicle_id)
    conflicts = availability.conflict_count(vehicle_id, start, end, active)
    units = availability.available_units(vehicle, conflicts)
    return AvailabilityOut(
        vehicle_id=vehicle.id,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        total_stock=availability.total_stock_of(vehicle),
        conflict_count=conflicts,
        available_units=units,
        is_sold_out=units == 0,
        is_bookable=availability.effective_available_units(vehicle, conflicts) > 0,
    )


async def vehicle_quote(
    db: AsyncSession, vehicle_id: str, start: date, end: date, promo: Optional[AppliedPromo] = None
) -> QuoteOut:
    vehicle = await get_vehicle(db, vehicle_id)
    return QuoteOut(**price_breakdown(vehicle, start, end, promo).as_dict())


# --------------------------
# UPDATE
# --------------------------
async def update_vehicle(db: AsyncSession, vehicle_id: str, payload: VehicleUpdate, _user) -> Vehicle:
    vehicle = await get_vehicle(db, vehicle_id)

    changes = []
    for key, value in payload.model_dump(exclude_unset=True).items():
        # Clearing a NOT NULL column is not a change
        if value is None and not Vehicle.__table__.columns[key].nullable:
            continue
        old_val = getattr(vehicle, key, None)
        if old_val != value:
            setattr(vehicle, key, value)
            changes.append(f"{key}: {old_val} -> {value}")

    if changes:
        await log_user_activity(
            db=db,
            username=_user.email,
            role=_user.role,
            message=f"Updated vehicle '{vehicle.name}' ({', '.join(changes)})"
        )
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to update vehicle %s", vehicle_id)
            raise PersistenceFailure(f"Error updating vehicle: {e.__class__.__name__}")
        await db.refresh(vehicle)
    return vehicle


async def set_total_stock(db: AsyncSession, vehicle_id: str, total_stock: int, _user) -> Vehicle:
    """Existing bookings are left untouched even when stock drops below occupancy."""
    if not isinstance(total_stock, int) or isinstance(total_stock, bool) or total_stock < 1:
        raise ValidationIncomplete("Total stock must be a positive integer", reasons=["total_stock must be >= 1"])

    vehicle = await get_vehicle(db, vehicle_id)
    old_stock = vehicle.total_stock
    vehicle.total_stock = total_stock

    await log_user_activity(
        db=db,
        username=_user.email,
        role=_user.role,
        message=f"Stock for '{vehicle.name}' changed {old_stock} -> {total_stock}"
    )
    await db.commit()
    await db.refresh(vehicle)
    logger.info("Vehicle %s stock %s -> %s", vehicle.id, old_stock, total_stock)
    return vehicle


async def set_manual_status(db: AsyncSession, vehicle_id: str, status: VehicleStatus, _user) -> Vehicle:
    vehicle = await get_vehicle(db, vehicle_id)
    vehicle.status = VehicleStatus(status)

    await log_user_activity(
        db=db,
        username=_user.email,
        role=_user.role,
        message=f"Marked '{vehicle.name}' as {vehicle.status.value}"
    )
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


# --------------------------
# DELETE
# --------------------------
async def delete_vehicle(db: AsyncSession, vehicle_id: str, _user) -> None:
    vehicle = await get_vehicle(db, vehicle_id)
    if await fetch_active_bookings(db, vehicle_id):
        raise InvalidTransition("Vehicle has confirmed bookings and cannot be deleted")

    await db.delete(vehicle)
    await log_user_activity(
        db=db,
        username=_user.email,
        role=_user.role,
        message=f"Deleted vehicle '{vehicle.name}' (ID: {vehicle.id})"
    )
    await db.commit()
