from datetime import date, datetime, timedelta

import pytest

from app.core.exceptions import InvalidRange
from app.engine import availability
from app.engine.dates import as_day, day_count, ensure_range, overlaps
from app.models.booking_models import BookingStatus
from app.models.vehicle_models import VehicleStatus
from conftest import fake_booking, fake_vehicle


def test_same_day_trip_is_one_day():
    assert day_count(date(2024, 6, 10), date(2024, 6, 10)) == 1
    assert day_count("2024-06-10", "2024-06-12") == 3


def test_reversed_range_is_rejected():
    with pytest.raises(InvalidRange):
        ensure_range(date(2024, 6, 12), date(2024, 6, 10))
    with pytest.raises(InvalidRange):
        day_count(date(2024, 6, 12), date(2024, 6, 10))


def test_as_day_normalizes_inputs():
    assert as_day(datetime(2024, 6, 10, 18, 30)) == date(2024, 6, 10)
    assert as_day("2024-06-10T09:00:00") == date(2024, 6, 10)
    with pytest.raises(InvalidRange):
        as_day("10/06/2024")


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (("2024-06-10", "2024-06-12"), ("2024-06-12", "2024-06-14"), True),   # shared end day
        (("2024-06-10", "2024-06-12"), ("2024-06-13", "2024-06-15"), False),  # adjacent
        (("2024-06-10", "2024-06-20"), ("2024-06-12", "2024-06-13"), True),   # containment
        (("2024-06-10", "2024-06-10"), ("2024-06-10", "2024-06-10"), True),
    ],
)
def test_overlap_is_closed_and_symmetric(a, b, expected):
    assert overlaps(*a, *b) is expected
    assert overlaps(*b, *a) is expected


def test_conflicts_count_only_confirmed_bookings_of_the_vehicle():
    bookings = [
        fake_booking(date(2024, 6, 10), date(2024, 6, 12)),
        fake_booking(date(2024, 6, 11), date(2024, 6, 11), status=BookingStatus.cancelled),
        fake_booking(date(2024, 6, 10), date(2024, 6, 12), vehicle_id="veh-2"),
    ]
    assert availability.conflict_count("veh-1", date(2024, 6, 11), date(2024, 6, 11), bookings) == 1


def test_conflict_count_grows_with_wider_range():
    bookings = [
        fake_booking(date(2024, 6, 1), date(2024, 6, 2)),
        fake_booking(date(2024, 6, 5), date(2024, 6, 6)),
        fake_booking(date(2024, 6, 9), date(2024, 6, 9)),
    ]
    previous = 0
    for end_day in range(1, 12):
        count = availability.conflict_count("veh-1", date(2024, 6, 1), date(2024, 6, end_day), bookings)
        assert count >= previous
        previous = count
    assert previous == 3


def test_no_range_means_today(monkeypatch):
    monkeypatch.setattr(availability, "today", lambda: date(2024, 6, 11))
    bookings = [fake_booking(date(2024, 6, 10), date(2024, 6, 12)), fake_booking(date(2024, 7, 1), date(2024, 7, 3))]
    assert availability.conflict_count("veh-1", None, None, bookings) == 1


def test_one_sided_range_is_a_single_day():
    bookings = [fake_booking(date(2024, 6, 10), date(2024, 6, 12))]
    assert availability.conflict_count("veh-1", date(2024, 6, 12), None, bookings) == 1
    assert availability.conflict_count("veh-1", None, date(2024, 6, 13), bookings) == 0


def test_available_units_never_negative():
    vehicle = fake_vehicle(total_stock=2)
    assert availability.available_units(vehicle, 1) == 1
    assert availability.available_units(vehicle, 5) == 0
    assert availability.is_sold_out(vehicle, 2)


def test_missing_stock_counts_as_one():
    assert availability.total_stock_of(fake_vehicle(total_stock=None)) == 1


def test_manual_sold_flag_overrides_free_stock():
    vehicle = fake_vehicle(total_stock=3, status=VehicleStatus.sold)
    assert availability.available_units(vehicle, 0) == 3
    assert availability.effective_available_units(vehicle, 0) == 0
    assert availability.effective_available_units(fake_vehicle(total_stock=3), 0) == 3


def test_overlapping_booking_sells_out_single_unit():
    vehicle = fake_vehicle(total_stock=1, price_per_day=1000)
    bookings = [fake_booking(date(2024, 6, 10), date(2024, 6, 12))]

    conflicts = availability.conflict_count(vehicle.id, date(2024, 6, 12), date(2024, 6, 14), bookings)
    assert conflicts == 1
    assert availability.available_units(vehicle, conflicts) == 0

    assert availability.units_for_range(vehicle, bookings, date(2024, 6, 13), date(2024, 6, 15)) == 1


def test_long_stay_still_counts_one_conflict_per_booking():
    start = date(2024, 1, 1)
    bookings = [fake_booking(start, start + timedelta(days=60))]
    assert availability.conflict_count("veh-1", start + timedelta(days=10), start + timedelta(days=70), bookings) == 1
