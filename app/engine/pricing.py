# app/engine/pricing.py
"""
Trip pricing.

All amounts are whole currency units. Rounding is half-up, matching how
totals are shown to customers.

The advance is always 10% of the *base* cost. A promo lowers what the
customer owes overall, never the upfront deposit.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.core.config import ADVANCE_RATE, CASH_DEPOSIT_AMOUNT
from app.engine.dates import DateLike, day_count
from app.models.booking_models import DepositType


@dataclass(frozen=True)
class AppliedPromo:
    code: str
    percentage: int


@dataclass(frozen=True)
class TripQuote:
    days: int
    base_cost: int


@dataclass(frozen=True)
class PriceBreakdown:
    days: int
    base_cost: int
    discount: int
    net_cost: int
    advance_amount: int

    def as_dict(self) -> dict:
        return asdict(self)


def round_money(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote(vehicle, start: DateLike, end: DateLike) -> TripQuote:
    days = day_count(start, end)
    return TripQuote(days=days, base_cost=days * int(vehicle.price_per_day))


def apply_promo(base_cost: int, promo: Optional[AppliedPromo]) -> tuple[int, int]:
    """Returns ``(discount, net_cost)``."""
    discount = round_money(Decimal(base_cost) * Decimal(promo.percentage) / Decimal(100)) if promo else 0
    return discount, base_cost - discount


def advance_amount(base_cost: int) -> int:
    return round_money(Decimal(base_cost) * Decimal(str(ADVANCE_RATE)))


def balance_due(net_cost: int, deposit_type, advance_paid: int) -> int:
    is_cash = deposit_type == DepositType.cash or deposit_type == DepositType.cash.value
    total_payable = net_cost + (CASH_DEPOSIT_AMOUNT if is_cash else 0)
    return total_payable - advance_paid


def price_breakdown(vehicle, start: DateLike, end: DateLike, promo: Optional[AppliedPromo] = None) -> PriceBreakdown:
    trip = quote(vehicle, start, end)
    discount, net_cost = apply_promo(trip.base_cost, promo)
    return PriceBreakdown(
        days=trip.days,
        base_cost=trip.base_cost,
        discount=discount,
        net_cost=net_cost,
        advance_amount=advance_amount(trip.base_cost),
    )
