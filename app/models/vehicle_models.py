# app/models/vehicle_models.py
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Enum, JSON, CheckConstraint, Index, func
)
from app.core.db import Base


class VehicleStatus(str, enum.Enum):
    available = "available"
    sold = "sold"


class VehicleCategory(str, enum.Enum):
    suv = "SUV"
    sedan = "Sedan"
    hatchback = "Hatchback"


class FuelType(str, enum.Enum):
    petrol = "Petrol"
    diesel = "Diesel"
    electric = "Electric"
    hybrid = "Hybrid"


class Transmission(str, enum.Enum):
    automatic = "Automatic"
    manual = "Manual"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    price_per_day = Column(Integer, nullable=False)
    total_stock = Column(Integer, nullable=False, default=1)
    status = Column(
        Enum(VehicleStatus, values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=VehicleStatus.available,
    )

    category = Column(Enum(VehicleCategory, values_callable=_enum_values, native_enum=False), nullable=True)
    fuel_type = Column(Enum(FuelType, values_callable=_enum_values, native_enum=False), nullable=True)
    transmission = Column(Enum(Transmission, values_callable=_enum_values, native_enum=False), nullable=True)
    seats = Column(Integer, nullable=True)
    rating = Column(Float, nullable=True)

    image_ref = Column(String(512), nullable=True)
    gallery_refs = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(price_per_day > 0, name="check_vehicle_price_positive"),
        CheckConstraint(total_stock >= 1, name="check_vehicle_stock_positive"),
        Index("ix_vehicle_category_status", "category", "status"),
    )

    def __repr__(self):
        return f"<Vehicle(id={self.id}, name='{self.name}', stock={self.total_stock})>"
