# app/services/booking_service.py
import asyncio
import logging
import weakref
from collections import defaultdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    RentalError, NotFound, Forbidden, SoldOut, InvalidTransition, PersistenceFailure, PromoRejected
)
from app.engine import availability
from app.engine.pricing import apply_promo, balance_due
from app.models.booking_models import Booking, BookingStatus
from app.models.vehicle_models import Vehicle
from app.schemas.booking_schemas import BookingOut, BookingStatusOut
from app.services.promo_service import redeem_promo
from app.utils.activity_helpers import log_user_activity
from app.utils.check_roles import is_owner

logger = logging.getLogger(__name__)

# Serializes creates per vehicle inside this process; the row lock below
# covers other processes sharing the database. Locks bind to the loop that
# first waits on them, so each running loop gets its own set.
_vehicle_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, defaultdict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _vehicle_lock(vehicle_id: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    locks = _vehicle_locks.get(loop)
    if locks is None:
        locks = _vehicle_locks[loop] = defaultdict(asyncio.Lock)
    return locks[vehicle_id]


def to_booking_out(booking: Booking) -> BookingOut:
    out = BookingOut.model_validate(booking)
    out.balance_due = balance_due(booking.net_cost, booking.security_deposit_type, booking.advance_amount)
    return out


def to_status_out(booking: Booking) -> BookingStatusOut:
    return BookingStatusOut(
        id=booking.id,
        status=booking.status,
        approved=booking.is_approved,
        lifecycle=booking.lifecycle,
    )


# --------------------------
# READS
# --------------------------
async def fetch_active_bookings(db: AsyncSession, vehicle_id: Optional[str] = None) -> list[Booking]:
    stmt = select(Booking).where(Booking.status == BookingStatus.confirmed)
    if vehicle_id is not None:
        stmt = stmt.where(Booking.vehicle_id == vehicle_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _get_booking(db: AsyncSession, booking_id: str) -> Booking:
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


async def get_booking(db: AsyncSession, booking_id: str, current_user) -> Booking:
    booking = await _get_booking(db, booking_id)
    if not is_owner(current_user) and booking.user_email != current_user.email:
        raise Forbidden("You can only view your own bookings")
    return booking


async def list_bookings(db: AsyncSession, current_user) -> list[Booking]:
    stmt = select(Booking).order_by(Booking.created_at.desc())
    if not is_owner(current_user):
        stmt = stmt.where(Booking.user_email == current_user.email)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def booking_status(db: AsyncSession, booking_id: str, current_user) -> BookingStatusOut:
    return to_status_out(await get_booking(db, booking_id, current_user))


async def public_availability(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(Booking.vehicle_id, Booking.start_date, Booking.end_date)
        .where(Booking.status == BookingStatus.confirmed)
    )
    return [
        {"vehicle_id": vehicle_id, "start_date": start, "end_date": end}
        for vehicle_id, start, end in result.all()
    ]


# --------------------------
# CREATE BOOKING
# --------------------------
async def create_booking(db: AsyncSession, values: dict, current_user) -> Booking:
    """
    Inserts a confirmed, not yet approved booking.

    Stock is re-counted while holding the vehicle lock so two concurrent
    submissions can never both take the last unit.
    """
    vehicle_id = values["vehicle_id"]
    async with _vehicle_lock(vehicle_id):
        try:
            result = await db.execute(
                select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
            )
            vehicle = result.scalar_one_or_none()
            if not vehicle:
                raise NotFound("Vehicle not found")
            if availability.is_manually_sold(vehicle):
                raise SoldOut("Vehicle is not available for booking")

            active = await fetch_active_bookings(db, vehicle_id)
            conflicts = availability.conflict_count(vehicle_id, values["start_date"], values["end_date"], active)
            if conflicts >= availability.total_stock_of(vehicle):
                raise SoldOut(
                    f"Sold out for selected dates ({conflicts}/{availability.total_stock_of(vehicle)} booked)"
                )

            data = dict(values)
            if data.get("promo_code"):
                applied = await redeem_promo(db, data["promo_code"], current_user.email)
                if data.get("discount_amount") != apply_promo(data["base_cost"], applied)[0]:
                    raise PromoRejected("Promo percentage changed, please re-apply the code")
                data["promo_code"] = applied.code

            booking = Booking(
                **data,
                user_email=current_user.email,
            )
            booking.status = BookingStatus.confirmed
            booking.is_approved = False
            db.add(booking)
            await db.flush()

            await log_user_activity(
                db=db,
                username=current_user.email,
                role=current_user.role,
                message=f"Booking {booking.id} created for vehicle {vehicle_id} ({booking.start_date} to {booking.end_date})"
            )

            await db.commit()
            await db.refresh(booking)

        except RentalError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            if values.get("promo_code") and "promo_usage" in str(e.orig):
                # A concurrent booking by the same customer redeemed the code first
                logger.warning("Promo %s already redeemed by %s", values["promo_code"], current_user.email)
                raise PromoRejected("You have already used this promo code")
            logger.exception("Failed to persist booking for vehicle %s", vehicle_id)
            raise PersistenceFailure(f"Error creating booking: {e.__class__.__name__}")
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Failed to persist booking for vehicle %s", vehicle_id)
            raise PersistenceFailure(f"Error creating booking: {e.__class__.__name__}")

    logger.info("Booking %s created by %s for vehicle %s", booking.id, current_user.email, vehicle_id)
    return booking


# --------------------------
# APPROVE / REJECT
# --------------------------
async def approve_booking(db: AsyncSession, booking_id: str, current_user) -> tuple[Booking, bool]:
    """Returns the booking and whether this call changed it (retries are no-ops)."""
    booking = await _get_booking(db, booking_id)
    if booking.status == BookingStatus.cancelled:
        raise InvalidTransition("Cancelled booking cannot be approved")
    if booking.is_approved:
        return booking, False

    try:
        booking.is_approved = True
        await log_user_activity(
            db=db,
            username=current_user.email,
            role=current_user.role,
            message=f"Approved booking {booking.id}"
        )
        await db.commit()
        await db.refresh(booking)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to approve booking %s", booking_id)
        raise PersistenceFailure(f"Error approving booking: {e.__class__.__name__}")

    logger.info("Booking %s approved by %s", booking.id, current_user.email)
    return booking, True


async def reject_booking(db: AsyncSession, booking_id: str, current_user) -> tuple[Booking, bool]:
    booking = await _get_booking(db, booking_id)
    if booking.status == BookingStatus.cancelled:
        return booking, False
    if booking.is_approved:
        raise InvalidTransition("Approved booking cannot be rejected")

    try:
        booking.status = BookingStatus.cancelled
        await log_user_activity(
            db=db,
            username=current_user.email,
            role=current_user.role,
            message=f"Rejected booking {booking.id}; inventory released"
        )
        await db.commit()
        await db.refresh(booking)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to reject booking %s", booking_id)
        raise PersistenceFailure(f"Error rejecting booking: {e.__class__.__name__}")

    logger.info("Booking %s rejected by %s", booking.id, current_user.email)
    return booking, True
