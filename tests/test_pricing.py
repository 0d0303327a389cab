import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from datetime import date, datetime
from decimal import Decimal

import pytest

from catalog_core.domain import ProductSpecific, PromoCode, Promotion, Sitewide, TieredDiscount
from catalog_core.errors import PricingError
from catalog_core.pricing import (
    calculate_total_with_rounding,
    discounted_price,
    resolve_order_discount,
    resolve_product_discount,
    round_to_nearest_hundred,
    select_tier,
)


def make_promotion(scope, percent=15):
    return Promotion(
        id=1,
        title="Promo",
        discount_percent=Decimal(percent),
        end_date=datetime(2099, 1, 1),
        scope=scope,
    )


@pytest.fixture
def tiers():
    return (
        TieredDiscount(id=1, min_spend=Decimal(0), max_spend=Decimal(1_000_000), discount_percent=Decimal(0)),
        TieredDiscount(
            id=2,
            min_spend=Decimal(1_000_000),
            max_spend=None,
            discount_percent=Decimal(5),
            free_shipping=True,
            description="Diskon 5% + gratis ongkir",
        ),
    )


@pytest.fixture
def promo_code():
    return PromoCode(
        id=1,
        code="HEMAT20",
        discount_percent=Decimal(20),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    )


# Скидка на товар


def test_no_promotion_gives_zero():
    assert resolve_product_discount(1, None) == 0


def test_sitewide_applies_to_every_product():
    promo = make_promotion(Sitewide(), 25)
    assert all(resolve_product_discount(pid, promo) == 25 for pid in (1, 2, 999))


def test_product_specific_only_for_members():
    promo = make_promotion(ProductSpecific(frozenset({2, 3})), 10)
    assert resolve_product_discount(2, promo) == 10
    assert resolve_product_discount(3, promo) == 10
    assert resolve_product_discount(4, promo) == 0


def test_discounted_price_scenario():
    """123456 со скидкой 10% → 111110.4"""
    assert discounted_price(Decimal(123456), Decimal(10)) == Decimal("111110.4")


def test_discounted_price_missing_price_is_zero():
    assert discounted_price(None, 10) == 0


# Округление


@pytest.mark.parametrize(
    "value, expected",
    [(1234, 1200), (1250, 1300), (1249.99, 1200), (Decimal("222220.8"), 222200), (0, 0)],
)
def test_round_to_nearest_hundred(value, expected):
    assert round_to_nearest_hundred(value) == expected


def test_round_is_idempotent():
    for value in (Decimal("1050"), Decimal("987654.321"), Decimal("149.5")):
        once = round_to_nearest_hundred(value)
        assert round_to_nearest_hundred(once) == once


def test_calculate_total_with_rounding():
    total, rounding, final = calculate_total_with_rounding(Decimal("1234"))
    assert (total, rounding, final) == (Decimal(1234), Decimal(-34), Decimal(1200))


# Уровни


def test_select_tier_picks_matching_range(tiers):
    assert select_tier(Decimal(999_999), tiers).id == 1
    assert select_tier(Decimal(1_000_000), tiers).id == 2


def test_select_tier_skips_inactive_and_unsorted():
    unsorted = (
        TieredDiscount(id=3, min_spend=Decimal(500), max_spend=None, discount_percent=Decimal(7)),
        TieredDiscount(id=4, min_spend=Decimal(0), max_spend=Decimal(500), discount_percent=Decimal(2), is_active=False),
        TieredDiscount(id=5, min_spend=Decimal(100), max_spend=Decimal(500), discount_percent=Decimal(3)),
    )
    assert select_tier(50, unsorted) is None
    assert select_tier(200, unsorted).id == 5
    assert select_tier(800, unsorted).id == 3


def test_order_discount_tier_scenario(tiers):
    result = resolve_order_discount(Decimal(1_500_000), tiers)
    assert result.percentage == 5
    assert result.amount == 75_000
    assert result.final_total == 1_425_000
    assert result.is_free_shipping
    assert result.message == "Diskon 5% + gratis ongkir"
    assert result.source == "tier"


def test_order_discount_feature_off(tiers):
    result = resolve_order_discount(Decimal("1500049"), tiers, tiered_enabled=False)
    assert result.percentage == 0
    assert result.amount == 0
    assert result.final_total == 1_500_000
    assert not result.is_free_shipping


def test_promo_code_overrides_tiers(tiers, promo_code):
    """Промокод и уровни не складываются"""
    result = resolve_order_discount(Decimal(1_500_000), tiers, promo_code=promo_code)
    assert result.percentage == 20
    assert result.amount == 300_000
    assert result.final_total == 1_200_000
    assert not result.is_free_shipping
    assert result.source == "promo_code"


def test_promo_code_applies_even_when_tiers_disabled(tiers, promo_code):
    result = resolve_order_discount(Decimal(100_000), tiers, promo_code, tiered_enabled=False)
    assert result.percentage == 20


def test_negative_total_rejected(tiers):
    with pytest.raises(PricingError):
        resolve_order_discount(Decimal(-1), tiers)
