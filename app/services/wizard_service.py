# app/services/wizard_service.py
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import WIZARD_IDLE_TTL_SECONDS, WIZARD_MAX_DRAFTS_PER_USER
from app.core.exceptions import NotFound, SoldOut, RentalError, InvalidTransition
from app.engine import availability
from app.engine.wizard import BookingWizard, DocumentKind, WizardStep
from app.models.booking_models import Booking, DepositType
from app.schemas.vehicle_schemas import QuoteOut
from app.schemas.wizard_schemas import DraftOut, WizardStateOut, TripDetailsIn
from app.services.booking_service import create_booking, fetch_active_bookings
from app.services.document_store import LocalDocumentStore
from app.services.promo_service import validate_promo
from app.services.vehicle_service import get_vehicle

logger = logging.getLogger(__name__)


@dataclass
class WizardSession:
    id: str
    owner_email: str
    wizard: BookingWizard
    last_touched: float = 0.0
    submitting: bool = False


class WizardRegistry:
    """
    In-memory drafts; nothing here is persisted until submission.

    Drafts idle for longer than ``idle_ttl`` seconds are dropped, and a
    customer holds at most ``max_per_owner`` drafts (the least recently
    used one makes room for a new one).
    """

    def __init__(
        self,
        idle_ttl: float = WIZARD_IDLE_TTL_SECONDS,
        max_per_owner: int = WIZARD_MAX_DRAFTS_PER_USER,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sessions: dict[str, WizardSession] = {}
        self.idle_ttl = idle_ttl
        self.max_per_owner = max_per_owner
        self._clock = clock

    def _evict_stale(self) -> None:
        cutoff = self._clock() - self.idle_ttl
        stale = [s.id for s in self._sessions.values() if s.last_touched < cutoff and not s.submitting]
        for wizard_id in stale:
            del self._sessions[wizard_id]
        if stale:
            logger.info("Dropped %d idle booking drafts", len(stale))

    def open(self, owner_email: str, wizard: BookingWizard) -> WizardSession:
        self._evict_stale()
        owned = sorted(
            (s for s in self._sessions.values() if s.owner_email == owner_email and not s.submitting),
            key=lambda s: s.last_touched,
        )
        for oldest in owned[:max(len(owned) - self.max_per_owner + 1, 0)]:
            del self._sessions[oldest.id]

        session = WizardSession(
            id=str(uuid.uuid4()), owner_email=owner_email, wizard=wizard, last_touched=self._clock()
        )
        self._sessions[session.id] = session
        return session

    def get(self, wizard_id: str, owner_email: str) -> WizardSession:
        self._evict_stale()
        session = self._sessions.get(wizard_id)
        # Another customer's draft is reported as missing, not forbidden
        if session is None or session.owner_email != owner_email:
            raise NotFound("Booking draft not found")
        session.last_touched = self._clock()
        return session

    def discard(self, wizard_id: str) -> None:
        self._sessions.pop(wizard_id, None)

    def __len__(self):
        return len(self._sessions)


wizard_registry = WizardRegistry()


def get_wizard_registry() -> WizardRegistry:
    return wizard_registry


# --------------------------
# Helpers
# --------------------------
def _draft_out(wizard: BookingWizard) -> DraftOut:
    d = wizard.draft
    return DraftOut(
        vehicle_id=d.vehicle_id,
        start_date=d.start_date,
        end_date=d.end_date,
        customer_name=d.customer_name,
        customer_phone=d.customer_phone,
        email=d.email,
        pickup_location=d.pickup_location,
        id_phone=d.id_phone,
        alt_phone=d.alt_phone,
        signature=d.signature,
        transaction_id=d.transaction_id,
        promo_code=d.promo.code if d.promo else None,
        promo_percentage=d.promo.percentage if d.promo else None,
        documents=sorted(d.documents),
        security_deposit_type=d.security_deposit_type,
        security_deposit_transaction_id=d.security_deposit_transaction_id,
    )


def state_out(session: WizardSession, bookings=(), booking_id: Optional[str] = None) -> WizardStateOut:
    wizard = session.wizard
    check = wizard.check(bookings)
    price = wizard.quote()
    return WizardStateOut(
        wizard_id=session.id,
        step=wizard.step,
        can_advance=check.can_advance,
        blocking_reasons=check.blocking_reasons,
        current_quote=QuoteOut(**price.as_dict()) if price else None,
        draft=_draft_out(wizard),
        booking_id=booking_id,
    )


async def _load(db: AsyncSession, registry: WizardRegistry, wizard_id: str, user) -> WizardSession:
    session = registry.get(wizard_id, user.email)
    # Rate, stock and the manual flag may have changed since the last step
    session.wizard.vehicle = await get_vehicle(db, session.wizard.draft.vehicle_id)
    if session.submitting:
        raise InvalidTransition("Booking is already being submitted")
    return session


async def _state(db: AsyncSession, session: WizardSession) -> WizardStateOut:
    bookings = await fetch_active_bookings(db, session.wizard.draft.vehicle_id)
    return state_out(session, bookings)


# --------------------------
# START / STATE / DISCARD
# --------------------------
async def start_wizard(
    db: AsyncSession,
    registry: WizardRegistry,
    vehicle_id: str,
    user,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> WizardStateOut:
    vehicle = await get_vehicle(db, vehicle_id)
    if availability.is_manually_sold(vehicle):
        raise SoldOut("Vehicle is not available for booking")

    wizard = BookingWizard(vehicle)
    wizard.update(
        customer_name=user.name or "",
        customer_phone=user.phone or "",
        start_date=start_date,
        end_date=end_date,
    )
    session = registry.open(user.email, wizard)
    logger.info("Booking wizard %s opened by %s for vehicle %s", session.id, user.email, vehicle_id)
    return await _state(db, session)


async def get_state(db: AsyncSession, registry: WizardRegistry, wizard_id: str, user) -> WizardStateOut:
    return await _state(db, await _load(db, registry, wizard_id, user))


def discard_wizard(registry: WizardRegistry, wizard_id: str, user) -> None:
    registry.get(wizard_id, user.email)
    registry.discard(wizard_id)
    logger.info("Booking wizard %s discarded by %s", wizard_id, user.email)


# --------------------------
# STEP INPUT
# --------------------------
async def update_trip(db: AsyncSession, registry: WizardRegistry, wizard_id: str, data: TripDetailsIn, user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.update(**data.model_dump(exclude_unset=True))
    return await _state(db, session)


async def sign_terms(db: AsyncSession, registry: WizardRegistry, wizard_id: str, signature: str, user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.update(signature=signature)
    return await _state(db, session)


async def upload_signature(
    db: AsyncSession,
    registry: WizardRegistry,
    store: LocalDocumentStore,
    wizard_id: str,
    data: bytes,
    filename: Optional[str],
    user,
) -> WizardStateOut:
    """A drawn signature is stored like a document; its reference becomes the signature."""
    session = await _load(db, registry, wizard_id, user)
    if session.wizard.step != WizardStep.terms:
        raise InvalidTransition("The signature can only be captured on the terms step")
    reference = await store.store(data, "signature", filename)
    session.wizard.update(signature=reference)
    return await _state(db, session)


async def set_payment(db: AsyncSession, registry: WizardRegistry, wizard_id: str, transaction_id: str, user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.update(transaction_id=transaction_id)
    return await _state(db, session)


async def apply_promo(db: AsyncSession, registry: WizardRegistry, wizard_id: str, code: str, user) -> WizardStateOut:
    """Validates once; the accepted code and percentage are cached on the draft."""
    session = await _load(db, registry, wizard_id, user)
    applied = await validate_promo(db, code, user.email)
    session.wizard.apply_promo(applied)
    logger.info("Promo %s applied to wizard %s", applied.code, wizard_id)
    return await _state(db, session)


async def remove_promo(db: AsyncSession, registry: WizardRegistry, wizard_id: str, user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.apply_promo(None)
    return await _state(db, session)


async def attach_document(
    db: AsyncSession,
    registry: WizardRegistry,
    store: LocalDocumentStore,
    wizard_id: str,
    kind: DocumentKind,
    data: bytes,
    filename: Optional[str],
    user,
) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    if session.wizard.step != WizardStep.kyc:
        raise InvalidTransition("Documents can only be attached on the kyc step")
    reference = await store.store(data, DocumentKind(kind).value, filename)
    session.wizard.attach_document(kind, reference)
    return await _state(db, session)


async def set_deposit(
    db: AsyncSession,
    registry: WizardRegistry,
    wizard_id: str,
    deposit_type: DepositType,
    transaction_id: Optional[str],
    user,
) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.update(
        security_deposit_type=deposit_type,
        security_deposit_transaction_id=transaction_id or "",
    )
    return await _state(db, session)


# --------------------------
# NAVIGATION
# --------------------------
async def advance(db: AsyncSession, registry: WizardRegistry, wizard_id: str, user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    # Fresh bookings: another customer may have taken the last unit meanwhile
    bookings = await fetch_active_bookings(db, session.wizard.draft.vehicle_id)
    session.wizard.advance(bookings)
    return state_out(session, bookings)


async def back(db: AsyncSession, registry: WizardRegistry, wizard_id: str, to_step: Optional[WizardStep], user) -> WizardStateOut:
    session = await _load(db, registry, wizard_id, user)
    session.wizard.back(to_step)
    return await _state(db, session)


# --------------------------
# SUBMIT
# --------------------------
async def submit(db: AsyncSession, registry: WizardRegistry, wizard_id: str, user) -> Booking:
    """
    Builds the booking from the draft and persists it. On any failure the
    wizard stays on the kyc step with its draft intact so the customer can
    retry.

    The draft is claimed before the first await so a second submit of the
    same draft is refused instead of inserting another booking.
    """
    session = await _load(db, registry, wizard_id, user)
    wizard = session.wizard
    session.submitting = True
    try:
        bookings = await fetch_active_bookings(db, wizard.draft.vehicle_id)
        values = wizard.build_reservation(bookings)
        booking = await create_booking(db, values, user)
        wizard.mark_submitted()
    except RentalError as e:
        logger.warning("Submission of wizard %s failed: %s", wizard_id, e.detail)
        raise
    finally:
        session.submitting = False

    registry.discard(wizard_id)
    logger.info("Wizard %s submitted as booking %s", wizard_id, booking.id)
    return booking
