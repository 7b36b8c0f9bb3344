# app/middleware/activity_logger.py
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from app.utils.activity_helpers import log_user_activity
from app.core.db import get_db

logger = logging.getLogger(__name__)


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Call actual endpoint
        response = await call_next(request)

        # The user is resolved by the route dependency, so read it afterwards
        user = getattr(request.state, "user", None)
        email = getattr(user, "email", None) if user else None
        role = getattr(user, "role", None) if user else None

        # Only log successful modify requests
        if email and request.method in ["POST", "PUT", "PATCH", "DELETE"] and response.status_code < 400:
            # Default message
            message = f"Performed {request.method} on {request.url.path}"

            # If the response provides a custom activity message
            if hasattr(response, "activity_message"):
                message = response.activity_message

            session_factory = request.app.dependency_overrides.get(get_db, get_db)
            try:
                async for db in session_factory():  # iterate async generator
                    await log_user_activity(db, username=email, role=role, message=message, commit=True)
            except Exception:
                logger.exception("Failed to log activity for %s %s", request.method, request.url.path)

        return response
