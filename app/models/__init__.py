# app/models/__init__.py
from app.models.vehicle_models import Vehicle, VehicleStatus, VehicleCategory, FuelType, Transmission
from app.models.booking_models import Booking, BookingStatus, DepositType
from app.models.promo_models import PromoCode, PromoUsage
from app.models.activity_models import UserActivity
