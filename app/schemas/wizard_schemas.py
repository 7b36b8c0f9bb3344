from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from app.engine.wizard import WizardStep
from app.models.booking_models import DepositType
from app.schemas.vehicle_schemas import QuoteOut


class WizardStart(BaseModel):
    vehicle_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class TripDetailsIn(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    email: Optional[str] = None
    pickup_location: Optional[str] = None
    id_phone: Optional[str] = None
    alt_phone: Optional[str] = None

class TermsIn(BaseModel):
    signature: str

class PaymentIn(BaseModel):
    transaction_id: str

class PromoApplyIn(BaseModel):
    code: str

class DepositIn(BaseModel):
    security_deposit_type: DepositType
    security_deposit_transaction_id: Optional[str] = None

class BackIn(BaseModel):
    to_step: Optional[WizardStep] = None

class DraftOut(BaseModel):
    vehicle_id: str
    start_date: Optional[date]
    end_date: Optional[date]
    customer_name: str
    customer_phone: str
    email: str
    pickup_location: str
    id_phone: str
    alt_phone: str
    signature: str
    transaction_id: str
    promo_code: Optional[str]
    promo_percentage: Optional[int]
    documents: List[str]
    security_deposit_type: DepositType
    security_deposit_transaction_id: str

class WizardStateOut(BaseModel):
    wizard_id: str
    step: WizardStep
    can_advance: bool
    blocking_reasons: List[str]
    current_quote: Optional[QuoteOut] = None
    draft: DraftOut
    booking_id: Optional[str] = None

class WizardResponse(BaseModel):
    message: str
    data: WizardStateOut
