# app/routers/wizard_router.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.engine.wizard import DocumentKind
from app.schemas.booking_schemas import BookingResponse
from app.schemas.response_schemas import ResponseMessage
from app.schemas.wizard_schemas import (
    WizardStart, TripDetailsIn, TermsIn, PaymentIn, PromoApplyIn, DepositIn, BackIn, WizardResponse,
)
from app.services import wizard_service
from app.services.booking_service import to_booking_out
from app.services.document_store import LocalDocumentStore, get_document_store
from app.services.notification_service import notify
from app.services.wizard_service import WizardRegistry, get_wizard_registry
from app.utils.get_user import get_current_user

router = APIRouter(prefix="/wizard", tags=["Booking Wizard"])


@router.post("", response_model=WizardResponse, status_code=201)
async def start_wizard_route(
    data: WizardStart,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.start_wizard(db, registry, data.vehicle_id, _user, data.start_date, data.end_date)
    return WizardResponse(message="Booking started", data=state)


@router.get("/{wizard_id}", response_model=WizardResponse)
async def wizard_state_route(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.get_state(db, registry, wizard_id, _user)
    return WizardResponse(message="Booking draft fetched", data=state)


@router.put("/{wizard_id}/trip", response_model=WizardResponse)
async def trip_details_route(
    wizard_id: str,
    data: TripDetailsIn,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.update_trip(db, registry, wizard_id, data, _user)
    return WizardResponse(message="Trip details saved", data=state)


@router.put("/{wizard_id}/terms", response_model=WizardResponse)
async def terms_route(
    wizard_id: str,
    data: TermsIn,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.sign_terms(db, registry, wizard_id, data.signature, _user)
    return WizardResponse(message="Terms signed", data=state)


@router.post("/{wizard_id}/signature", response_model=WizardResponse)
async def signature_upload_route(
    wizard_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    store: LocalDocumentStore = Depends(get_document_store),
    _user=Depends(get_current_user),
):
    data = await file.read()
    state = await wizard_service.upload_signature(db, registry, store, wizard_id, data, file.filename, _user)
    return WizardResponse(message="Signature captured", data=state)


@router.put("/{wizard_id}/payment", response_model=WizardResponse)
async def payment_route(
    wizard_id: str,
    data: PaymentIn,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.set_payment(db, registry, wizard_id, data.transaction_id, _user)
    return WizardResponse(message="Payment reference saved", data=state)


@router.post("/{wizard_id}/promo", response_model=WizardResponse)
async def apply_promo_route(
    wizard_id: str,
    data: PromoApplyIn,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.apply_promo(db, registry, wizard_id, data.code, _user)
    return WizardResponse(message=f"Promo applied: {state.draft.promo_percentage}% off", data=state)


@router.delete("/{wizard_id}/promo", response_model=WizardResponse)
async def remove_promo_route(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.remove_promo(db, registry, wizard_id, _user)
    return WizardResponse(message="Promo removed", data=state)


@router.post("/{wizard_id}/documents/{kind}", response_model=WizardResponse)
async def upload_document_route(
    wizard_id: str,
    kind: DocumentKind,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    store: LocalDocumentStore = Depends(get_document_store),
    _user=Depends(get_current_user),
):
    data = await file.read()
    state = await wizard_service.attach_document(db, registry, store, wizard_id, kind, data, file.filename, _user)
    return WizardResponse(message=f"{kind.value} uploaded", data=state)


@router.put("/{wizard_id}/deposit", response_model=WizardResponse)
async def deposit_route(
    wizard_id: str,
    data: DepositIn,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.set_deposit(
        db, registry, wizard_id, data.security_deposit_type, data.security_deposit_transaction_id, _user
    )
    return WizardResponse(message="Security deposit saved", data=state)


@router.post("/{wizard_id}/advance", response_model=WizardResponse)
async def advance_route(
    wizard_id: str,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    state = await wizard_service.advance(db, registry, wizard_id, _user)
    return WizardResponse(message=f"Moved to {state.step.value}", data=state)


@router.post("/{wizard_id}/back", response_model=WizardResponse)
async def back_route(
    wizard_id: str,
    data: Optional[BackIn] = None,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    to_step = data.to_step if data else None
    state = await wizard_service.back(db, registry, wizard_id, to_step, _user)
    return WizardResponse(message=f"Moved back to {state.step.value}", data=state)


@router.post("/{wizard_id}/submit", response_model=BookingResponse, status_code=201)
async def submit_route(
    wizard_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    booking = await wizard_service.submit(db, registry, wizard_id, _user)
    background_tasks.add_task(notify, booking, "created")
    return BookingResponse(message="Booking submitted, awaiting approval", data=to_booking_out(booking))


@router.delete("/{wizard_id}", response_model=ResponseMessage)
async def discard_route(
    wizard_id: str,
    registry: WizardRegistry = Depends(get_wizard_registry),
    _user=Depends(get_current_user),
):
    wizard_service.discard_wizard(registry, wizard_id, _user)
    return ResponseMessage(message="Booking draft discarded")
