# app/schemas/activity_schemas.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List

class UserActivityOut(BaseModel):
    id: int
    username: Optional[str]
    role: Optional[str]
    message: str
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

class UserActivityListResponse(BaseModel):
    message: str
    total: int
    data: List[UserActivityOut]
