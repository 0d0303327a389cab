import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import reduce
from typing import Callable, Iterable, Optional, Tuple, Union

from .domain import (
    OrderDiscount,
    ProductSpecific,
    PromoCode,
    Promotion,
    Sitewide,
    TieredDiscount,
)
from .errors import PricingError

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float]

ZERO = Decimal(0)
HUNDRED = Decimal(100)


def to_decimal(value: Number) -> Decimal:
    """float идёт через str, чтобы не тащить двоичный хвост"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


# ============ Округление (рупии) ============


def round_to_nearest_hundred(value: Number) -> Decimal:
    """
    Округление до ближайшей сотни, половина вверх.
    1234 -> 1200, 1250 -> 1300. Идемпотентно.
    """
    hundreds = (to_decimal(value) / HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return hundreds * HUNDRED


def calculate_total_with_rounding(total: Number) -> Tuple[Decimal, Decimal, Decimal]:
    """(сумма, поправка округления, итог)"""
    total = to_decimal(total)
    final_total = round_to_nearest_hundred(total)
    return total, final_total - total, final_total


# ============ Скидка на товар (промоакция) ============


def resolve_product_discount(product_id: int, promotion: Optional[Promotion]) -> Decimal:
    """
    Процент скидки на товар от активной промоакции.
    Нет акции → 0; sitewide → процент акции;
    product_specific → процент, только если товар входит в акцию.
    """
    if promotion is None:
        return ZERO

    scope = promotion.scope
    if isinstance(scope, Sitewide):
        return to_decimal(promotion.discount_percent)
    if isinstance(scope, ProductSpecific) and product_id in scope.product_ids:
        return to_decimal(promotion.discount_percent)
    return ZERO


def product_discount_resolver(promotion: Optional[Promotion]) -> Callable[[int], Decimal]:
    """Замыкание product_id → процент для агрегатора корзины"""
    return lambda product_id: resolve_product_discount(product_id, promotion)


def discounted_price(price: Optional[Number], percent: Number) -> Decimal:
    """price × (1 − percent/100); отсутствующая цена считается нулём"""
    if price is None:
        return ZERO
    return to_decimal(price) * (1 - to_decimal(percent) / HUNDRED)


# ============ Скидка на заказ (уровни / промокод) ============


def tier_matches(order_total: Decimal, tier: TieredDiscount) -> bool:
    """Полуинтервал [min_spend, max_spend)"""
    return order_total >= tier.min_spend and (
        tier.max_spend is None or order_total < tier.max_spend
    )


def select_tier(
    order_total: Number, tiers: Iterable[TieredDiscount]
) -> Optional[TieredDiscount]:
    """Первый активный уровень по возрастанию min_spend, в интервал которого попал total"""
    total = to_decimal(order_total)
    ordered = sorted(filter(lambda t: t.is_active, tiers), key=lambda t: t.min_spend)
    return next((t for t in ordered if tier_matches(total, t)), None)


def _discount_for(
    total: Decimal,
    percentage: Decimal,
    free_shipping: bool = False,
    message: str = "",
    source: str = "none",
) -> OrderDiscount:
    amount = total * percentage / HUNDRED
    return OrderDiscount(
        percentage=percentage,
        amount=amount,
        final_total=round_to_nearest_hundred(total - amount),
        is_free_shipping=free_shipping,
        message=message,
        source=source,
    )


def resolve_order_discount(
    order_total: Number,
    tiers: Iterable[TieredDiscount],
    promo_code: Optional[PromoCode] = None,
    tiered_enabled: bool = True,
) -> OrderDiscount:
    """
    Скидка на весь заказ.
    Проверенный промокод полностью заменяет уровневые скидки (не складываются).
    Иначе: фича выключена или уровень не найден → 0%, итог всё равно округляется.
    """
    total = to_decimal(order_total)
    if total < 0:
        raise PricingError(f"order total must be non-negative, got {total}")

    if promo_code is not None:
        return _discount_for(
            total,
            to_decimal(promo_code.discount_percent),
            message=f"Kode promo {promo_code.code}",
            source="promo_code",
        )

    tier = select_tier(total, tiers) if tiered_enabled else None
    if tier is None:
        return _discount_for(total, ZERO)

    logger.debug("tier %s matched order total %s", tier.id, total)
    return _discount_for(
        total,
        to_decimal(tier.discount_percent),
        free_shipping=tier.free_shipping,
        message=tier.description,
        source="tier",
    )


def sum_amounts(values: Iterable[Decimal]) -> Decimal:
    return reduce(lambda acc, v: acc + v, values, ZERO)
