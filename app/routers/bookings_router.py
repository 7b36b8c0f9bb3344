# app/routers/bookings_router.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import OWNER_ROLE
from app.core.db import get_db
from app.schemas.booking_schemas import (
    BookingResponse, BookingListResponse, BookingStatusResponse,
    PublicAvailabilityResponse, PublicBookingOut,
)
from app.services.booking_service import (
    list_bookings, get_booking, booking_status, public_availability,
    approve_booking, reject_booking, to_booking_out,
)
from app.services.notification_service import notify
from app.utils.get_user import get_current_user
from app.utils.check_roles import require_role

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/public/availability", response_model=PublicAvailabilityResponse)
async def public_availability_route(db: AsyncSession = Depends(get_db)):
    rows = await public_availability(db)
    return PublicAvailabilityResponse(
        message="Booked ranges fetched successfully",
        data=[PublicBookingOut(**row) for row in rows],
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    bookings = await list_bookings(db, _user)
    return BookingListResponse(message="Bookings fetched successfully", data=[to_booking_out(b) for b in bookings])


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_route(booking_id: str, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    booking = await get_booking(db, booking_id, _user)
    return BookingResponse(message="Booking fetched successfully", data=to_booking_out(booking))


@router.get("/{booking_id}/status", response_model=BookingStatusResponse)
async def booking_status_route(booking_id: str, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    data = await booking_status(db, booking_id, _user)
    return BookingStatusResponse(message="Booking status fetched successfully", data=data)


@router.post("/{booking_id}/approve", response_model=BookingResponse)
@require_role([OWNER_ROLE])
async def approve_booking_route(
    booking_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    booking, changed = await approve_booking(db, booking_id, _user)
    if changed:
        background_tasks.add_task(notify, booking, "approved")
    message = "Booking approved successfully" if changed else "Booking already approved"
    return BookingResponse(message=message, data=to_booking_out(booking))


@router.post("/{booking_id}/reject", response_model=BookingResponse)
@require_role([OWNER_ROLE])
async def reject_booking_route(booking_id: str, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    booking, changed = await reject_booking(db, booking_id, _user)
    message = "Booking rejected and inventory released" if changed else "Booking already rejected"
    return BookingResponse(message=message, data=to_booking_out(booking))
