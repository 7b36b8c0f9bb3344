# tests/conftest.py
import asyncio
import os
import tempfile
from datetime import date
from types import SimpleNamespace

# Configuration is read at import time, so the environment goes first
_TMP_DIR = tempfile.mkdtemp(prefix="rental-tests-")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/startup.db"
os.environ["DOCUMENT_STORAGE_DIR"] = os.path.join(_TMP_DIR, "uploads")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.core.db import Base, get_db
from app.core.security import create_access_token
from app.models.booking_models import Booking, BookingStatus, DepositType
from app.models.vehicle_models import Vehicle, VehicleStatus
from app.schemas.auth_schemas import CurrentUser
from app.services.notification_service import clear_sinks
from main import app

OWNER = CurrentUser(email="owner@rental.test", name="Owner", phone="9000000000", role="owner")
CUSTOMER = CurrentUser(email="asha@example.com", name="Asha", phone="9111111111", role="customer")
OTHER_CUSTOMER = CurrentUser(email="ravi@example.com", name="Ravi", phone="9222222222", role="customer")


def make_engine(path):
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def session_factory(tmp_path):
    engine = make_engine(tmp_path / "service.db")
    await create_tables(engine)
    yield sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _no_notification_sinks():
    clear_sinks()
    yield
    clear_sinks()


@pytest.fixture
def client(tmp_path):
    engine = make_engine(tmp_path / "api.db")
    asyncio.run(create_tables(engine))
    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: startup would create tables on the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: CurrentUser) -> dict:
    token = create_access_token({"sub": user.email, "name": user.name, "phone": user.phone, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


# --------------------------
# Builders
# --------------------------
def fake_vehicle(**overrides):
    data = dict(id="veh-1", name="Thar", price_per_day=1000, total_stock=1, status=VehicleStatus.available)
    data.update(overrides)
    return SimpleNamespace(**data)


def fake_booking(start, end, vehicle_id="veh-1", status=BookingStatus.confirmed):
    return SimpleNamespace(vehicle_id=vehicle_id, start_date=start, end_date=end, status=status)


async def add_vehicle(db, **overrides) -> Vehicle:
    data = dict(name="Thar", price_per_day=1000, total_stock=1, status=VehicleStatus.available)
    data.update(overrides)
    vehicle = Vehicle(**data)
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


def reservation_values(vehicle, start: date, end: date, **overrides) -> dict:
    days = (end - start).days + 1
    base_cost = days * vehicle.price_per_day
    values = {
        "vehicle_id": vehicle.id,
        "vehicle_name": vehicle.name,
        "customer_name": "Asha",
        "customer_phone": "9111111111",
        "email": "asha@example.com",
        "pickup_location": "Airport",
        "id_phone": "9111111111",
        "alt_phone": "9333333333",
        "start_date": start,
        "end_date": end,
        "days": days,
        "base_cost": base_cost,
        "promo_code": None,
        "discount_amount": 0,
        "net_cost": base_cost,
        "advance_amount": round(base_cost * 0.1),
        "transaction_id": "UPI-123",
        "signature": "Asha",
        "security_deposit_type": DepositType.cash,
        "security_deposit_transaction_id": "CASH-1",
        "id_front_ref": "docs/id_front/a.png",
        "id_back_ref": "docs/id_back/b.png",
        "license_ref": "docs/license/c.png",
        "status": BookingStatus.confirmed,
        "is_approved": False,
    }
    values.update(overrides)
    return values


async def add_booking(db, vehicle, start: date, end: date, user=CUSTOMER, **overrides) -> Booking:
    booking = Booking(**reservation_values(vehicle, start, end, **overrides), user_email=user.email)
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking
