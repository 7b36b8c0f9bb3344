# app/models/booking_models.py
import enum
import uuid

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Boolean, Enum,
    CheckConstraint, Index, func
)
from app.core.db import Base


class BookingStatus(str, enum.Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


class DepositType(str, enum.Enum):
    cash = "Cash"
    laptop = "Laptop"
    two_wheeler = "2-Wheeler"
    passport = "Passport"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vehicle_id = Column(String(36), nullable=False, index=True)  # kept after the vehicle is deleted
    vehicle_name = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=False, index=True)

    # Trip & contact
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    pickup_location = Column(String(512), nullable=False)
    id_phone = Column(String(50), nullable=False)      # phone linked to the ID document
    alt_phone = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Pricing
    days = Column(Integer, nullable=False)
    base_cost = Column(Integer, nullable=False)
    promo_code = Column(String(50), nullable=True)
    discount_amount = Column(Integer, nullable=False, default=0)
    net_cost = Column(Integer, nullable=False)
    advance_amount = Column(Integer, nullable=False)

    # Payment, terms & KYC
    transaction_id = Column(String(255), nullable=False)
    signature = Column(String(255), nullable=False)
    security_deposit_type = Column(
        Enum(DepositType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    security_deposit_transaction_id = Column(String(255), nullable=True)
    id_front_ref = Column(String(512), nullable=False)
    id_back_ref = Column(String(512), nullable=False)
    license_ref = Column(String(512), nullable=False)

    # Lifecycle
    status = Column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=BookingStatus.confirmed,
        index=True,
    )
    is_approved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


    __table_args__ = (
        CheckConstraint(end_date >= start_date, name="check_booking_range_ordered"),
        CheckConstraint(days > 0, name="check_booking_days_positive"),
        Index("ix_booking_vehicle_status_dates", "vehicle_id", "status", "start_date", "end_date"),
    )

    @property
    def lifecycle(self) -> str:
        if self.status == BookingStatus.cancelled:
            return "cancelled"
        return "approved" if self.is_approved else "pending"

    def __repr__(self):
        return f"<Booking(id={self.id}, vehicle_id={self.vehicle_id}, {self.start_date}..{self.end_date}, {self.lifecycle})>"
