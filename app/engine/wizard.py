# app/engine/wizard.py
"""
Booking wizard state machine.

Four linear capture steps, each with a guard that must hold before the
customer can move forward:

    trip_details -> terms -> payment -> kyc -> submitted

Fields belong to exactly one step and can only be edited while the wizard
sits on that step; going back keeps everything already entered. The final
transition is two-phase (``build_reservation`` then ``mark_submitted``) so
a failed persistence call leaves the wizard on ``kyc`` with its draft
intact.
"""
import enum
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Iterable, List, Optional

from app.core.exceptions import InvalidRange, InvalidTransition, SoldOut, ValidationIncomplete
from app.engine import availability
from app.engine.dates import as_day
from app.engine.pricing import AppliedPromo, PriceBreakdown, price_breakdown
from app.models.booking_models import BookingStatus, DepositType


class WizardStep(str, enum.Enum):
    trip_details = "trip_details"
    terms = "terms"
    payment = "payment"
    kyc = "kyc"
    submitted = "submitted"


STEP_ORDER = list(WizardStep)


class DocumentKind(str, enum.Enum):
    id_front = "id_front"
    id_back = "id_back"
    license = "license"


@dataclass
class BookingDraft:
    vehicle_id: str
    # trip_details
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_name: str = ""
    customer_phone: str = ""
    email: str = ""
    pickup_location: str = ""
    id_phone: str = ""
    alt_phone: str = ""
    # terms
    signature: str = ""
    # payment
    transaction_id: str = ""
    promo: Optional[AppliedPromo] = None
    # kyc
    documents: dict = field(default_factory=dict)
    security_deposit_type: DepositType = DepositType.cash
    security_deposit_transaction_id: str = ""


TRIP_FIELDS = (
    "start_date", "end_date", "customer_name", "customer_phone",
    "email", "pickup_location", "id_phone", "alt_phone",
)

FIELD_STEPS = {
    **{name: WizardStep.trip_details for name in TRIP_FIELDS},
    "signature": WizardStep.terms,
    "transaction_id": WizardStep.payment,
    "promo": WizardStep.payment,
    "documents": WizardStep.kyc,
    "security_deposit_type": WizardStep.kyc,
    "security_deposit_transaction_id": WizardStep.kyc,
}


@dataclass(frozen=True)
class StepCheck:
    step: WizardStep
    can_advance: bool
    blocking_reasons: List[str]


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BookingWizard:
    def __init__(self, vehicle, draft: Optional[BookingDraft] = None):
        self.vehicle = vehicle
        self.draft = draft or BookingDraft(vehicle_id=vehicle.id)
        self.step = WizardStep.trip_details

    # --------------------------
    # Draft editing
    # --------------------------
    def update(self, **changes) -> BookingDraft:
        self._ensure_open()
        known = {f.name for f in fields(BookingDraft)} - {"vehicle_id"}
        for name in changes:
            if name not in known:
                raise ValueError(f"Unknown booking field '{name}'")
            if FIELD_STEPS[name] != self.step:
                raise InvalidTransition(
                    f"'{name}' can only be edited on the {FIELD_STEPS[name].value} step"
                )

        if changes.get("start_date") is not None:
            changes["start_date"] = as_day(changes["start_date"])
        if changes.get("end_date") is not None:
            changes["end_date"] = as_day(changes["end_date"])
        if changes.get("security_deposit_type") is not None:
            changes["security_deposit_type"] = DepositType(changes["security_deposit_type"])
        for name, value in changes.items():
            if isinstance(value, str):
                changes[name] = value.strip()

        self.draft = replace(self.draft, **changes)
        return self.draft

    def apply_promo(self, promo: Optional[AppliedPromo]) -> BookingDraft:
        return self.update(promo=promo)

    def attach_document(self, kind: DocumentKind, reference: str) -> BookingDraft:
        self._ensure_open()
        if self.step != WizardStep.kyc:
            raise InvalidTransition("Documents can only be attached on the kyc step")
        documents = dict(self.draft.documents)
        documents[DocumentKind(kind).value] = reference
        self.draft = replace(self.draft, documents=documents)
        return self.draft

    # --------------------------
    # Quote
    # --------------------------
    def has_valid_range(self) -> bool:
        d = self.draft
        return d.start_date is not None and d.end_date is not None and d.end_date >= d.start_date

    def quote(self) -> Optional[PriceBreakdown]:
        if not self.has_valid_range():
            return None
        return price_breakdown(self.vehicle, self.draft.start_date, self.draft.end_date, self.draft.promo)

    # --------------------------
    # Guards
    # --------------------------
    def _field_reasons(self, step: WizardStep) -> List[str]:
        d = self.draft
        reasons = []
        if step == WizardStep.trip_details:
            reasons = [f"{name} is required" for name in TRIP_FIELDS if _blank(getattr(d, name))]
            if d.start_date and d.end_date and d.end_date < d.start_date:
                reasons.append("end_date must be on or after start_date")
        elif step == WizardStep.terms:
            if _blank(d.signature):
                reasons.append("signature is required")
        elif step == WizardStep.payment:
            if _blank(d.transaction_id):
                reasons.append("transaction_id is required")
        elif step == WizardStep.kyc:
            reasons = [
                f"{kind.value} document is required"
                for kind in DocumentKind
                if _blank(d.documents.get(kind.value))
            ]
            if d.security_deposit_type == DepositType.cash and _blank(d.security_deposit_transaction_id):
                reasons.append("security_deposit_transaction_id is required for a cash deposit")
        return reasons

    def _availability_reason(self, bookings: Iterable) -> Optional[str]:
        if availability.is_manually_sold(self.vehicle):
            return "Vehicle is not available for booking"
        total = availability.total_stock_of(self.vehicle)
        conflicts = availability.conflict_count(
            self.vehicle.id, self.draft.start_date, self.draft.end_date, bookings
        )
        if conflicts >= total:
            return f"Sold out for selected dates ({conflicts}/{total} booked)"
        return None

    def blocking_reasons(self, bookings: Iterable = ()) -> List[str]:
        if self.step == WizardStep.submitted:
            return ["Booking already submitted"]
        reasons = self._field_reasons(self.step)
        if self.step == WizardStep.trip_details and not reasons:
            sold = self._availability_reason(bookings)
            if sold:
                reasons.append(sold)
        return reasons

    def check(self, bookings: Iterable = ()) -> StepCheck:
        reasons = self.blocking_reasons(bookings)
        return StepCheck(step=self.step, can_advance=not reasons, blocking_reasons=reasons)

    def _enforce(self, step: WizardStep, bookings: Iterable) -> None:
        reasons = self._field_reasons(step)
        if reasons:
            if self.draft.start_date and self.draft.end_date and self.draft.end_date < self.draft.start_date:
                raise InvalidRange("End date must be on or after start date", reasons=reasons)
            raise ValidationIncomplete(f"The {step.value} step is incomplete", reasons=reasons)
        if step == WizardStep.trip_details:
            sold = self._availability_reason(bookings)
            if sold:
                raise SoldOut(sold, reasons=[sold])

    # --------------------------
    # Navigation
    # --------------------------
    def advance(self, bookings: Iterable = ()) -> WizardStep:
        """Move one step forward. ``bookings`` must be fresh for the trip step."""
        self._ensure_open()
        if self.step == WizardStep.kyc:
            raise InvalidTransition("The kyc step is completed by submitting the booking")
        self._enforce(self.step, bookings)
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) + 1]
        return self.step

    def back(self, to: Optional[WizardStep] = None) -> WizardStep:
        self._ensure_open()
        current = STEP_ORDER.index(self.step)
        target = WizardStep(to) if to is not None else STEP_ORDER[max(current - 1, 0)]
        if STEP_ORDER.index(target) > current:
            raise InvalidTransition(f"Cannot jump forward from {self.step.value} to {target.value}")
        self.step = target
        return self.step

    def go_to(self, target: WizardStep) -> WizardStep:
        target = WizardStep(target)
        if STEP_ORDER.index(target) > STEP_ORDER.index(self.step):
            raise InvalidTransition(f"Cannot jump forward from {self.step.value} to {target.value}")
        return self.back(target)

    # --------------------------
    # Submission
    # --------------------------
    def build_reservation(self, bookings: Iterable = ()) -> dict:
        """Assemble the booking row from the draft; guards of every step are re-run."""
        self._ensure_open()
        if self.step != WizardStep.kyc:
            raise InvalidTransition(f"Cannot submit from the {self.step.value} step")
        bookings = list(bookings)
        for step in STEP_ORDER[:STEP_ORDER.index(WizardStep.submitted)]:
            self._enforce(step, bookings)

        d = self.draft
        price = self.quote()
        is_cash = d.security_deposit_type == DepositType.cash
        return {
            "vehicle_id": self.vehicle.id,
            "vehicle_name": getattr(self.vehicle, "name", None),
            "customer_name": d.customer_name,
            "customer_phone": d.customer_phone,
            "email": d.email,
            "pickup_location": d.pickup_location,
            "id_phone": d.id_phone,
            "alt_phone": d.alt_phone,
            "start_date": d.start_date,
            "end_date": d.end_date,
            "days": price.days,
            "base_cost": price.base_cost,
            "promo_code": d.promo.code if d.promo else None,
            "discount_amount": price.discount,
            "net_cost": price.net_cost,
            "advance_amount": price.advance_amount,
            "transaction_id": d.transaction_id,
            "signature": d.signature,
            "security_deposit_type": d.security_deposit_type,
            "security_deposit_transaction_id": d.security_deposit_transaction_id if is_cash else None,
            "id_front_ref": d.documents[DocumentKind.id_front.value],
            "id_back_ref": d.documents[DocumentKind.id_back.value],
            "license_ref": d.documents[DocumentKind.license.value],
            "status": BookingStatus.confirmed,
            "is_approved": False,
        }

    def mark_submitted(self) -> WizardStep:
        if self.step != WizardStep.kyc:
            raise InvalidTransition(f"Cannot submit from the {self.step.value} step")
        self.step = WizardStep.submitted
        return self.step

    def _ensure_open(self) -> None:
        if self.step == WizardStep.submitted:
            raise InvalidTransition("Booking already submitted")
