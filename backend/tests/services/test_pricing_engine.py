"""Tests for the static price quote engine."""

from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from trippat.models import DiscountType
from trippat.services.pricing_service import (
    AppliedCoupon,
    DiscountKind,
    PricingSchedule,
    compute_static_quote,
)
from trippat.services.travelers import TravelerClass, TravelerComposition

TWO_ADULTS = TravelerComposition(adults=2)


def _coupon(amount: str, validated_against: str) -> AppliedCoupon:
    return AppliedCoupon(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        discount_amount=Decimal(amount),
        validated_amount=Decimal(validated_against),
    )


def test_plain_adult_pricing() -> None:
    quote = compute_static_quote(PricingSchedule.build("1000"), TWO_ADULTS)
    assert quote.subtotal == Decimal("2000.00")
    assert quote.discount_amount == Decimal("0.00")
    assert quote.coupon_amount == Decimal("0.00")
    assert quote.grand_total == Decimal("2000.00")


def test_sale_price_replaces_unit_price() -> None:
    schedule = PricingSchedule.build("1000", sale_price="800")
    quote = compute_static_quote(schedule, TWO_ADULTS)
    assert quote.subtotal == Decimal("2000.00")
    assert quote.discount_amount == Decimal("400.00")
    assert quote.grand_total == Decimal("1600.00")


def test_percentage_discount_then_coupon() -> None:
    schedule = PricingSchedule.build(
        "1000", discount_type=DiscountType.PERCENTAGE, discount_value="10"
    )
    quote = compute_static_quote(schedule, TWO_ADULTS)
    assert quote.discount_amount == Decimal("200.00")
    assert quote.grand_total == Decimal("1800.00")

    with_coupon = compute_static_quote(schedule, TWO_ADULTS, _coupon("180", "1800"))
    assert with_coupon.coupon_applied
    assert with_coupon.coupon_code == "SAVE10"
    assert with_coupon.coupon_amount == Decimal("180.00")
    assert with_coupon.grand_total == Decimal("1620.00")


def test_sale_price_overrides_other_discounts() -> None:
    for discount_type, value in [
        (DiscountType.PERCENTAGE, "50"),
        (DiscountType.FIXED, "999"),
    ]:
        schedule = PricingSchedule.build(
            "1000", sale_price="800", discount_type=discount_type, discount_value=value
        )
        assert schedule.discount.kind is DiscountKind.SALE_PRICE
        assert compute_static_quote(schedule, TWO_ADULTS).grand_total == Decimal("1600.00")


def test_sale_price_above_base_gives_no_discount() -> None:
    schedule = PricingSchedule.build(
        "1000", sale_price="1200", discount_type=DiscountType.PERCENTAGE, discount_value="10"
    )
    quote = compute_static_quote(schedule, TWO_ADULTS)
    assert quote.discount_amount == Decimal("0.00")
    assert quote.grand_total == Decimal("2000.00")


def test_sale_price_scales_child_and_infant_prices() -> None:
    schedule = PricingSchedule.build("1000", sale_price="800")
    party = TravelerComposition(adults=1, children=1, infants=1)
    quote = compute_static_quote(schedule, party)
    # 1000 + 700 + 100 undiscounted, 800 + 560 + 80 on sale
    assert quote.subtotal == Decimal("1800.00")
    assert quote.grand_total == Decimal("1440.00")


def test_fixed_discount_is_bounded_by_subtotal() -> None:
    schedule = PricingSchedule.build(
        "100", discount_type=DiscountType.FIXED, discount_value="5000"
    )
    quote = compute_static_quote(schedule, TravelerComposition(adults=1))
    assert quote.discount_amount == Decimal("100.00")
    assert quote.pre_coupon_total == Decimal("0.00")
    assert quote.grand_total == Decimal("0.00")


def test_default_child_and_infant_prices() -> None:
    schedule = PricingSchedule.build("1000")
    assert schedule.price_for(TravelerClass.CHILD) == Decimal("700.00")
    assert schedule.price_for(TravelerClass.INFANT) == Decimal("100.00")

    explicit = PricingSchedule.build("1000", child_price="500", infant_price="0")
    assert explicit.price_for(TravelerClass.CHILD) == Decimal("500.00")
    assert explicit.price_for(TravelerClass.INFANT) == Decimal("0.00")


def test_stale_coupon_is_not_applied() -> None:
    schedule = PricingSchedule.build("1000")
    three_adults = TravelerComposition(adults=3)
    quote = compute_static_quote(schedule, three_adults, _coupon("200", "2000"))
    assert not quote.coupon_applied
    assert quote.coupon_amount == Decimal("0.00")
    assert quote.grand_total == Decimal("3000.00")


def test_grand_total_is_never_negative() -> None:
    schedules = [
        PricingSchedule.build("0"),
        PricingSchedule.build("49.99", sale_price="0"),
        PricingSchedule.build("120", discount_type=DiscountType.FIXED, discount_value="1000"),
        PricingSchedule.build("120", discount_type=DiscountType.PERCENTAGE, discount_value="100"),
        PricingSchedule.build("333.33", child_price="0.01", infant_price="0"),
    ]
    parties = [
        TravelerComposition(adults=a, children=c, infants=i)
        for a, c, i in itertools.product([1, 2, 7], [0, 3], [0, 2])
    ]
    for schedule, party in itertools.product(schedules, parties):
        baseline = compute_static_quote(schedule, party)
        greedy = _coupon("100000", str(baseline.pre_coupon_total))
        quote = compute_static_quote(schedule, party, greedy)
        assert quote.grand_total >= 0
        assert quote.grand_total == max(
            Decimal("0"), quote.subtotal - quote.discount_amount - quote.coupon_amount
        )


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"discount_type": DiscountType.PERCENTAGE, "discount_value": "120"}, "between 0 and 100"),
        ({"discount_type": DiscountType.FIXED, "discount_value": "-5"}, "cannot be negative"),
        ({"sale_price": "-1"}, "cannot be negative"),
    ],
)
def test_invalid_schedules_are_rejected(kwargs, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        PricingSchedule.build("1000", **kwargs)


def test_quote_serializes_money_as_strings() -> None:
    schedule = PricingSchedule.build(
        "1000", discount_type=DiscountType.PERCENTAGE, discount_value="10"
    )
    payload = compute_static_quote(schedule, TWO_ADULTS).to_dict()
    assert payload["grand_total"] == "1800.00"
    assert payload["items"][0] == {
        "description": "Adults",
        "quantity": 2,
        "unit_price": "1000.00",
        "amount": "2000.00",
    }
    assert payload["items"][1]["amount"] == "-200.00"
