# app/schemas/auth_schemas.py
from pydantic import BaseModel
from typing import Optional


class CurrentUser(BaseModel):
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "customer"
