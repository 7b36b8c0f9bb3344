from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime
from app.models.booking_models import BookingStatus, DepositType


class BookingOut(BaseModel):
    id: str
    vehicle_id: str
    vehicle_name: Optional[str]
    user_email: str
    customer_name: str
    customer_phone: str
    email: str
    pickup_location: str
    id_phone: str
    alt_phone: str
    start_date: date
    end_date: date
    days: int
    base_cost: int
    promo_code: Optional[str]
    discount_amount: int
    net_cost: int
    advance_amount: int
    balance_due: Optional[int] = None
    transaction_id: str
    signature: str
    security_deposit_type: DepositType
    security_deposit_transaction_id: Optional[str]
    id_front_ref: str
    id_back_ref: str
    license_ref: str
    status: BookingStatus
    is_approved: bool
    lifecycle: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class BookingStatusOut(BaseModel):
    id: str
    status: BookingStatus
    approved: bool
    lifecycle: str

class PublicBookingOut(BaseModel):
    vehicle_id: str
    start_date: date
    end_date: date

# --------------------------
# Response Schemas
# --------------------------
class BookingResponse(BaseModel):
    message: str
    data: Optional[BookingOut] = None

class BookingListResponse(BaseModel):
    message: str
    data: List[BookingOut] = []

class BookingStatusResponse(BaseModel):
    message: str
    data: BookingStatusOut

class PublicAvailabilityResponse(BaseModel):
    message: str
    data: List[PublicBookingOut] = []
