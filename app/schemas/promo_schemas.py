from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime


class PromoCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    percentage: int = Field(..., ge=1, le=100)

    @field_validator("code")
    def normalize_code(cls, value):
        value = value.strip().upper()
        if not value:
            raise ValueError("Code must not be blank")
        return value

class PromoValidateIn(BaseModel):
    code: str

class PromoOut(BaseModel):
    id: int
    code: str
    percentage: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AppliedPromoOut(BaseModel):
    code: str
    percentage: int

class PromoResponse(BaseModel):
    message: str
    data: Optional[PromoOut] = None

class PromoListResponse(BaseModel):
    message: str
    data: List[PromoOut] = []

class PromoValidateResponse(BaseModel):
    message: str
    data: AppliedPromoOut
