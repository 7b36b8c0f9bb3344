# app/routers/vehicles_router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import OWNER_ROLE
from app.core.db import get_db
from app.schemas.vehicle_schemas import (
    VehicleCreate, VehicleUpdate, StockUpdate, StatusUpdate, VehicleOut,
    VehicleResponse, VehicleListResponse, AvailabilityResponse, QuoteResponse,
)
from app.services.vehicle_service import (
    create_vehicle, get_vehicle, list_vehicles, update_vehicle, set_total_stock,
    set_manual_status, delete_vehicle, vehicle_availability, vehicle_quote,
)
from app.utils.get_user import get_current_user
from app.utils.check_roles import require_role

router = APIRouter(prefix="/vehicles", tags=["Fleet"])


# Browsing is public; only the owner changes the fleet
@router.get("", response_model=VehicleListResponse)
async def list_vehicles_route(
    category: Optional[str] = Query(None),
    transmission: Optional[str] = Query(None),
    fuel_type: Optional[str] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    listing = await list_vehicles(db, category, transmission, fuel_type, start, end)
    return VehicleListResponse(message="Vehicles fetched successfully", data=listing)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle_route(vehicle_id: str, db: AsyncSession = Depends(get_db)):
    vehicle = await get_vehicle(db, vehicle_id)
    return VehicleResponse(message="Vehicle fetched successfully", data=VehicleOut.model_validate(vehicle))


@router.get("/{vehicle_id}/availability", response_model=AvailabilityResponse)
async def vehicle_availability_route(
    vehicle_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    data = await vehicle_availability(db, vehicle_id, start, end)
    return AvailabilityResponse(message="Availability computed", data=data)


@router.get("/{vehicle_id}/quote", response_model=QuoteResponse)
async def vehicle_quote_route(
    vehicle_id: str,
    start: date = Query(...),
    end: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    data = await vehicle_quote(db, vehicle_id, start, end)
    return QuoteResponse(message="Quote computed", data=data)


@router.post("", response_model=VehicleResponse, status_code=201)
@require_role([OWNER_ROLE])
async def create_vehicle_route(data: VehicleCreate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    vehicle = await create_vehicle(db, data, _user)
    return VehicleResponse(message="Vehicle added successfully", data=VehicleOut.model_validate(vehicle))


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
@require_role([OWNER_ROLE])
async def update_vehicle_route(vehicle_id: str, data: VehicleUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    vehicle = await update_vehicle(db, vehicle_id, data, _user)
    return VehicleResponse(message="Vehicle updated successfully", data=VehicleOut.model_validate(vehicle))


@router.patch("/{vehicle_id}/stock", response_model=VehicleResponse)
@require_role([OWNER_ROLE])
async def update_stock_route(vehicle_id: str, data: StockUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    vehicle = await set_total_stock(db, vehicle_id, data.total_stock, _user)
    return VehicleResponse(message="Stock updated successfully", data=VehicleOut.model_validate(vehicle))


@router.patch("/{vehicle_id}/status", response_model=VehicleResponse)
@require_role([OWNER_ROLE])
async def update_status_route(vehicle_id: str, data: StatusUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    vehicle = await set_manual_status(db, vehicle_id, data.status, _user)
    return VehicleResponse(message=f"Vehicle marked as {vehicle.status.value}", data=VehicleOut.model_validate(vehicle))


@router.delete("/{vehicle_id}", response_model=VehicleResponse)
@require_role([OWNER_ROLE])
async def delete_vehicle_route(vehicle_id: str, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    await delete_vehicle(db, vehicle_id, _user)
    return VehicleResponse(message="Vehicle deleted successfully")
