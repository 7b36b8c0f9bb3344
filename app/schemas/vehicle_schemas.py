from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime
from app.models.vehicle_models import VehicleStatus, VehicleCategory, FuelType, Transmission


# --------------------------
# Vehicle Schemas
# --------------------------
class VehicleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    price_per_day: int = Field(..., gt=0)
    total_stock: int = Field(default=1, ge=1)
    category: Optional[VehicleCategory] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[Transmission] = None
    seats: Optional[int] = Field(default=None, ge=1)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    image_ref: Optional[str] = None
    gallery_refs: List[str] = []

class VehicleUpdate(BaseModel):
    """All fields optional for partial updates."""
    name: Optional[str] = Field(default=None, min_length=1)
    price_per_day: Optional[int] = Field(default=None, gt=0)
    category: Optional[VehicleCategory] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[Transmission] = None
    seats: Optional[int] = Field(default=None, ge=1)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    image_ref: Optional[str] = None
    gallery_refs: Optional[List[str]] = None

class StockUpdate(BaseModel):
    total_stock: int = Field(..., ge=1)

class StatusUpdate(BaseModel):
    status: VehicleStatus

class VehicleOut(BaseModel):
    id: str
    name: str
    price_per_day: int
    total_stock: int
    status: VehicleStatus
    category: Optional[VehicleCategory]
    fuel_type: Optional[FuelType]
    transmission: Optional[Transmission]
    seats: Optional[int]
    rating: Optional[float]
    image_ref: Optional[str]
    gallery_refs: List[str] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class VehicleListingOut(VehicleOut):
    available_units: int
    is_sold_out: bool
    is_bookable: bool

class AvailabilityOut(BaseModel):
    vehicle_id: str
    start_date: str
    end_date: str
    total_stock: int
    conflict_count: int
    available_units: int
    is_sold_out: bool
    is_bookable: bool

class QuoteOut(BaseModel):
    days: int
    base_cost: int
    discount: int = 0
    net_cost: int
    advance_amount: int

# --------------------------
# Response Schemas
# --------------------------
class VehicleResponse(BaseModel):
    message: str
    data: Optional[VehicleOut] = None

class VehicleListResponse(BaseModel):
    message: str
    data: List[VehicleListingOut]

class AvailabilityResponse(BaseModel):
    message: str
    data: AvailabilityOut

class QuoteResponse(BaseModel):
    message: str
    data: QuoteOut
