# app/utils/get_user.py
from typing import Optional

from fastapi import Request, HTTPException, Header, Cookie
from jose import jwt, JWTError

from app.core.config import JWT_SECRET, JWT_ALGORITHM
from app.schemas.auth_schemas import CurrentUser


def _extract_token(token: Optional[str], authorization: Optional[str], auth_token: Optional[str]) -> Optional[str]:
    # Support either header, then the session cookie
    if token:
        return token
    if authorization and authorization.startswith("Bearer "):
        return authorization.split("Bearer ")[1]
    return auth_token


async def get_current_user(
    request: Request,
    token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    auth_token: str | None = Cookie(default=None),
) -> CurrentUser:
    raw_token = _extract_token(token, authorization, auth_token)
    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing access token")

    try:
        payload = jwt.decode(raw_token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    email = payload.get("sub") or payload.get("email")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = CurrentUser(
        email=email.lower(),
        name=payload.get("name"),
        phone=payload.get("phone"),
        role=payload.get("role") or "customer",
    )
    request.state.user = user
    return user
