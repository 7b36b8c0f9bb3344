from datetime import date

import pytest

from app.core.config import CASH_DEPOSIT_AMOUNT
from app.engine.pricing import (
    AppliedPromo, advance_amount, apply_promo, balance_due, price_breakdown, quote, round_money,
)
from app.models.booking_models import DepositType
from conftest import fake_vehicle


def test_quote_for_three_days():
    trip = quote(fake_vehicle(price_per_day=1000), date(2024, 6, 13), date(2024, 6, 15))
    assert trip.days == 3
    assert trip.base_cost == 3000


def test_promo_lowers_net_but_not_advance():
    vehicle = fake_vehicle(price_per_day=1000)
    price = price_breakdown(vehicle, date(2024, 6, 13), date(2024, 6, 15), AppliedPromo("SAVE10", 10))
    assert price.discount == 300
    assert price.net_cost == 2700
    assert price.advance_amount == 300


@pytest.mark.parametrize("percentage", [1, 10, 33, 50, 100])
def test_advance_is_independent_of_promo(percentage):
    vehicle = fake_vehicle(price_per_day=1234)
    plain = price_breakdown(vehicle, "2024-06-01", "2024-06-04")
    discounted = price_breakdown(vehicle, "2024-06-01", "2024-06-04", AppliedPromo("X", percentage))
    assert discounted.advance_amount == plain.advance_amount


def test_price_breakdown_is_repeatable():
    vehicle = fake_vehicle(price_per_day=1499)
    promo = AppliedPromo("X", 15)
    first = price_breakdown(vehicle, "2024-06-01", "2024-06-03", promo)
    assert price_breakdown(vehicle, "2024-06-01", "2024-06-03", promo) == first


def test_rounding_is_half_up():
    assert round_money(2.5) == 3
    assert round_money(3.5) == 4
    assert round_money(2.49) == 2
    # 1005 * 10% = 100.5
    assert advance_amount(1005) == 101
    # 15 * 10% = 1.5
    assert apply_promo(15, AppliedPromo("X", 10)) == (2, 13)


def test_full_discount_leaves_nothing_to_pay_for_the_trip():
    assert apply_promo(3000, AppliedPromo("FREE", 100)) == (3000, 0)
    assert apply_promo(3000, None) == (0, 3000)


def test_balance_adds_cash_deposit_only_for_cash():
    assert balance_due(2700, DepositType.cash, 300) == 2700 + CASH_DEPOSIT_AMOUNT - 300
    assert balance_due(2700, "Cash", 300) == 2700 + CASH_DEPOSIT_AMOUNT - 300
    assert balance_due(2700, DepositType.passport, 300) == 2400
    assert balance_due(2700, DepositType.two_wheeler, 300) == 2400
