import asyncio
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from app.core.config import CASH_DEPOSIT_AMOUNT
from app.core.exceptions import Forbidden, InvalidTransition, NotFound, PromoRejected, SoldOut
from app.engine import availability
from app.models.booking_models import BookingStatus, DepositType
from app.models.promo_models import PromoCode, PromoUsage
from app.models.vehicle_models import VehicleStatus
from app.services import booking_service
from conftest import (
    CUSTOMER, OTHER_CUSTOMER, OWNER, add_booking, add_vehicle, create_tables, make_engine, reservation_values
)


async def test_create_booking_is_pending_until_approved(db):
    vehicle = await add_vehicle(db)
    booking = await booking_service.create_booking(
        db, reservation_values(vehicle, date(2024, 6, 13), date(2024, 6, 15)), CUSTOMER
    )
    assert booking.status == BookingStatus.confirmed
    assert booking.is_approved is False
    assert booking.lifecycle == "pending"
    assert booking.user_email == CUSTOMER.email


async def test_overlapping_create_is_sold_out(db):
    vehicle = await add_vehicle(db, total_stock=1)
    vehicle_id = vehicle.id
    await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))

    with pytest.raises(SoldOut):
        await booking_service.create_booking(
            db, reservation_values(vehicle, date(2024, 6, 12), date(2024, 6, 14)), CUSTOMER
        )
    assert len(await booking_service.fetch_active_bookings(db, vehicle_id)) == 1


async def test_second_unit_can_still_be_booked(db):
    vehicle = await add_vehicle(db, total_stock=2)
    await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))
    booking = await booking_service.create_booking(
        db, reservation_values(vehicle, date(2024, 6, 11), date(2024, 6, 11)), OTHER_CUSTOMER
    )
    assert booking.id


async def test_manually_sold_vehicle_refuses_bookings(db):
    vehicle = await add_vehicle(db, total_stock=3, status=VehicleStatus.sold)
    with pytest.raises(SoldOut):
        await booking_service.create_booking(
            db, reservation_values(vehicle, date(2024, 6, 13), date(2024, 6, 15)), CUSTOMER
        )


async def test_unknown_vehicle_is_not_found(db):
    vehicle = await add_vehicle(db)
    values = reservation_values(vehicle, date(2024, 6, 13), date(2024, 6, 15), vehicle_id="missing")
    with pytest.raises(NotFound):
        await booking_service.create_booking(db, values, CUSTOMER)


async def test_concurrent_creates_take_the_last_unit_once(session_factory):
    async with session_factory() as setup:
        vehicle = await add_vehicle(setup, total_stock=1)
    values = reservation_values(vehicle, date(2024, 6, 13), date(2024, 6, 15))

    async def attempt(user):
        async with session_factory() as session:
            return await booking_service.create_booking(session, dict(values), user)

    results = await asyncio.gather(attempt(CUSTOMER), attempt(OTHER_CUSTOMER), return_exceptions=True)

    created = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], SoldOut)

    async with session_factory() as check:
        assert len(await booking_service.fetch_active_bookings(check, vehicle.id)) == 1


async def test_reject_releases_inventory(db):
    vehicle = await add_vehicle(db, total_stock=1)
    booking = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))

    rejected, changed = await booking_service.reject_booking(db, booking.id, OWNER)
    assert changed is True
    assert rejected.status == BookingStatus.cancelled
    assert rejected.lifecycle == "cancelled"

    active = await booking_service.fetch_active_bookings(db, vehicle.id)
    assert availability.conflict_count(vehicle.id, date(2024, 6, 10), date(2024, 6, 12), active) == 0


async def test_approve_is_idempotent(db):
    vehicle = await add_vehicle(db)
    booking = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))

    approved, changed = await booking_service.approve_booking(db, booking.id, OWNER)
    assert changed is True
    assert approved.lifecycle == "approved"

    again, changed = await booking_service.approve_booking(db, booking.id, OWNER)
    assert changed is False
    assert again.is_approved is True


async def test_reject_is_idempotent(db):
    vehicle = await add_vehicle(db)
    booking = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))
    await booking_service.reject_booking(db, booking.id, OWNER)
    _, changed = await booking_service.reject_booking(db, booking.id, OWNER)
    assert changed is False


async def test_approved_and_rejected_are_final(db):
    vehicle = await add_vehicle(db, total_stock=2)
    approved = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))
    rejected = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))

    await booking_service.approve_booking(db, approved.id, OWNER)
    await booking_service.reject_booking(db, rejected.id, OWNER)

    with pytest.raises(InvalidTransition):
        await booking_service.reject_booking(db, approved.id, OWNER)
    with pytest.raises(InvalidTransition):
        await booking_service.approve_booking(db, rejected.id, OWNER)


async def test_customers_only_see_their_own_bookings(db):
    vehicle = await add_vehicle(db, total_stock=2)
    mine = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12), user=CUSTOMER)
    theirs = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12), user=OTHER_CUSTOMER)

    assert [b.id for b in await booking_service.list_bookings(db, CUSTOMER)] == [mine.id]
    assert len(await booking_service.list_bookings(db, OWNER)) == 2

    with pytest.raises(Forbidden):
        await booking_service.get_booking(db, theirs.id, CUSTOMER)
    assert (await booking_service.get_booking(db, theirs.id, OWNER)).id == theirs.id

    status = await booking_service.booking_status(db, mine.id, CUSTOMER)
    assert status.lifecycle == "pending"
    assert status.approved is False


async def test_public_availability_lists_only_confirmed_ranges(db):
    vehicle = await add_vehicle(db, total_stock=2)
    kept = await add_booking(db, vehicle, date(2024, 6, 10), date(2024, 6, 12))
    dropped = await add_booking(db, vehicle, date(2024, 6, 20), date(2024, 6, 21))
    await booking_service.reject_booking(db, dropped.id, OWNER)

    rows = await booking_service.public_availability(db)
    assert rows == [{"vehicle_id": vehicle.id, "start_date": kept.start_date, "end_date": kept.end_date}]


async def test_balance_due_includes_cash_deposit(db):
    vehicle = await add_vehicle(db)
    booking = await add_booking(
        db, vehicle, date(2024, 6, 13), date(2024, 6, 15),
        net_cost=2700, discount_amount=300, advance_amount=300,
    )
    assert booking_service.to_booking_out(booking).balance_due == 2700 + CASH_DEPOSIT_AMOUNT - 300

    other = await add_booking(
        db, vehicle, date(2024, 7, 13), date(2024, 7, 15),
        security_deposit_type=DepositType.passport, security_deposit_transaction_id=None,
    )
    assert booking_service.to_booking_out(other).balance_due == 3000 - 300


async def test_promo_is_redeemed_once_per_customer(db):
    vehicle = await add_vehicle(db, total_stock=3)
    db.add(PromoCode(code="SAVE10", percentage=10))
    await db.commit()

    values = reservation_values(
        vehicle, date(2024, 6, 13), date(2024, 6, 15),
        promo_code="SAVE10", discount_amount=300, net_cost=2700,
    )
    booking = await booking_service.create_booking(db, dict(values), CUSTOMER)
    assert booking.promo_code == "SAVE10"

    with pytest.raises(PromoRejected):
        await booking_service.create_booking(db, dict(values), CUSTOMER)
    # A rejected promo leaves no half-written booking behind
    assert len(await booking_service.fetch_active_bookings(db, values["vehicle_id"])) == 1


async def test_stale_promo_discount_is_rejected(db):
    vehicle = await add_vehicle(db, total_stock=3)
    db.add(PromoCode(code="SAVE10", percentage=20))
    await db.commit()

    values = reservation_values(
        vehicle, date(2024, 6, 13), date(2024, 6, 15),
        promo_code="SAVE10", discount_amount=300, net_cost=2700,
    )
    with pytest.raises(PromoRejected):
        await booking_service.create_booking(db, values, CUSTOMER)


async def test_concurrent_promo_redemptions_by_one_customer(session_factory):
    async with session_factory() as setup:
        first = await add_vehicle(setup, name="Thar")
        second = await add_vehicle(setup, name="Creta")
        setup.add(PromoCode(code="SAVE10", percentage=10))
        await setup.commit()

    async def attempt(vehicle):
        values = reservation_values(
            vehicle, date(2024, 6, 13), date(2024, 6, 15),
            promo_code="SAVE10", discount_amount=300, net_cost=2700,
        )
        async with session_factory() as session:
            return await booking_service.create_booking(session, values, CUSTOMER)

    results = await asyncio.gather(attempt(first), attempt(second), return_exceptions=True)

    created = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(created) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], PromoRejected)

    async with session_factory() as check:
        usages = (await check.execute(select(PromoUsage))).scalars().all()
        assert [(u.promo_code, u.user_email) for u in usages] == [("SAVE10", CUSTOMER.email)]
        assert len(await booking_service.fetch_active_bookings(check)) == 1


def test_vehicle_locks_work_across_event_loops(tmp_path):
    engine = make_engine(tmp_path / "loops.db")
    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def setup():
        await create_tables(engine)
        async with factory() as session:
            return await add_vehicle(session, total_stock=4)

    vehicle = asyncio.run(setup())

    async def race(day):
        values = reservation_values(vehicle, day, day)

        async def attempt(user):
            async with factory() as session:
                return await booking_service.create_booking(session, dict(values), user)

        # The second create waits on the vehicle lock held by the first
        return await asyncio.gather(attempt(CUSTOMER), attempt(OTHER_CUSTOMER))

    assert len(asyncio.run(race(date(2024, 6, 13)))) == 2
    assert len(asyncio.run(race(date(2024, 6, 20)))) == 2
    asyncio.run(engine.dispose())
