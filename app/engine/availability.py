# app/engine/availability.py
"""
Availability calculator.

Works on any objects exposing the attributes of the ORM rows
(``vehicle_id``/``start_date``/``end_date``/``status`` for bookings and
``id``/``total_stock``/``status`` for vehicles) so it can be fed either
database rows or plain test doubles.
"""
from typing import Iterable, Optional

from app.engine.dates import DateLike, ensure_range, overlaps, today
from app.models.booking_models import BookingStatus
from app.models.vehicle_models import VehicleStatus


def _is_confirmed(booking) -> bool:
    status = getattr(booking, "status", None)
    return status == BookingStatus.confirmed or status == BookingStatus.confirmed.value


def _search_range(start: Optional[DateLike], end: Optional[DateLike]):
    # Listing pages without a search report occupancy for today only.
    if start is None and end is None:
        now = today()
        return now, now
    if start is None or end is None:
        start = start if start is not None else end
        end = end if end is not None else start
    return ensure_range(start, end)


def conflict_count(
    vehicle_id: str,
    start: Optional[DateLike],
    end: Optional[DateLike],
    bookings: Iterable,
) -> int:
    start_day, end_day = _search_range(start, end)
    return sum(
        1
        for b in bookings
        if b.vehicle_id == vehicle_id
        and _is_confirmed(b)
        and overlaps(start_day, end_day, b.start_date, b.end_date)
    )


def total_stock_of(vehicle) -> int:
    return getattr(vehicle, "total_stock", None) or 1


def available_units(vehicle, conflicts: int) -> int:
    return max(0, total_stock_of(vehicle) - conflicts)


def is_sold_out(vehicle, conflicts: int) -> bool:
    return available_units(vehicle, conflicts) == 0


def is_manually_sold(vehicle) -> bool:
    status = getattr(vehicle, "status", VehicleStatus.available)
    return status == VehicleStatus.sold or status == VehicleStatus.sold.value


def effective_available_units(vehicle, conflicts: int) -> int:
    """Customer-facing availability: the owner's ``sold`` flag wins over stock math."""
    if is_manually_sold(vehicle):
        return 0
    return available_units(vehicle, conflicts)


def units_for_range(
    vehicle,
    bookings: Iterable,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> int:
    return available_units(vehicle, conflict_count(vehicle.id, start, end, bookings))
