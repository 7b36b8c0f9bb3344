# app/core/exceptions.py
from typing import List, Optional


class RentalError(Exception):
    """Base class for every recoverable booking/fleet error.

    Carries the HTTP status the API layer answers with and a stable
    machine-readable ``code`` for clients.
    """

    status_code = 400
    code = "rental_error"

    def __init__(self, detail: str = "", reasons: Optional[List[str]] = None):
        super().__init__(detail or self.code)
        self.detail = detail or self.code
        self.reasons = list(reasons or [])

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, "reasons": self.reasons}


class InvalidRange(RentalError):
    status_code = 400
    code = "invalid_range"


class SoldOut(RentalError):
    status_code = 409
    code = "sold_out"


class ValidationIncomplete(RentalError):
    status_code = 422
    code = "validation_incomplete"


class PromoRejected(RentalError):
    status_code = 400
    code = "promo_rejected"


class PersistenceFailure(RentalError):
    status_code = 503
    code = "persistence_failure"


class NotFound(RentalError):
    status_code = 404
    code = "not_found"


class Forbidden(RentalError):
    status_code = 403
    code = "forbidden"


class InvalidTransition(RentalError):
    status_code = 409
    code = "invalid_transition"
