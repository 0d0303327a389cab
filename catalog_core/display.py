import re
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Iterable, Optional, Tuple

from .domain import Brand, Category, Product, TieredDiscount
from .pricing import Number, to_decimal
from .tree import category_products

SORT_OPTIONS = ("default", "name_asc", "name_desc", "price_asc", "price_desc")

NO_PRODUCTS = "Belum ada produk"
NO_PRICE = "Harga belum tersedia"


# ============ Натуральная сортировка ============


def natural_key(text: str) -> Tuple:
    """'Produk 2' < 'Produk 10': числа сравниваются как числа"""
    return tuple(
        int(part) if part.isdigit() else part.lower()
        for part in re.split(r"(\d+)", text or "")
    )


def _price_or_zero(product: Product) -> Decimal:
    return product.price if product.price is not None else Decimal(0)


def sort_products(products: Iterable[Product], option: str = "default") -> Tuple[Product, ...]:
    """Стабильная сортировка; при равенстве решает натуральный порядок имени"""
    products = tuple(products)
    if option == "name_asc":
        return tuple(sorted(products, key=lambda p: natural_key(p.name)))
    if option == "name_desc":
        return tuple(sorted(products, key=lambda p: natural_key(p.name), reverse=True))
    if option == "price_asc":
        return tuple(sorted(products, key=lambda p: (_price_or_zero(p), natural_key(p.name))))
    if option == "price_desc":
        return tuple(sorted(products, key=lambda p: (-_price_or_zero(p), natural_key(p.name))))
    return products


def _brand_min_price(brand: Brand) -> Decimal:
    prices = [p.price for p in brand.products if p.price is not None]
    return min(prices) if prices else Decimal(0)


def sort_brands(brands: Iterable[Brand], option: str = "default") -> Tuple[Brand, ...]:
    """Бренды по имени или по самой низкой цене внутри бренда"""
    brands = tuple(brands)
    if option == "name_asc":
        return tuple(sorted(brands, key=lambda b: natural_key(b.name)))
    if option == "name_desc":
        return tuple(sorted(brands, key=lambda b: natural_key(b.name), reverse=True))
    if option == "price_asc":
        return tuple(sorted(brands, key=lambda b: (_brand_min_price(b), natural_key(b.name))))
    if option == "price_desc":
        return tuple(sorted(brands, key=lambda b: (-_brand_min_price(b), natural_key(b.name))))
    return brands


# ============ Форматирование цен ============


def format_number_id(value: Number) -> str:
    """Группировка как в id-ID: 1234567.5 -> '1.234.567,5' (до трёх знаков дроби)"""
    amount = to_decimal(value).quantize(Decimal("0.001"))
    sign = "-" if amount < 0 else ""
    integer, _, fraction = f"{abs(amount):f}".partition(".")
    grouped = f"{int(integer):,}".replace(",", ".")
    fraction = fraction.rstrip("0")
    return f"{sign}{grouped},{fraction}" if fraction else f"{sign}{grouped}"


def format_rupiah(value: Optional[Number]) -> str:
    if value is None:
        return NO_PRICE
    amount = to_decimal(value)
    # знак ставится перед валютой: -Rp34
    if amount < 0:
        return f"-Rp{format_number_id(-amount)}"
    return f"Rp{format_number_id(amount)}"


def _truncate_one_decimal(value: Decimal) -> str:
    truncated = value.quantize(Decimal("0.1"), rounding=ROUND_DOWN)
    return f"{truncated:f}".rstrip("0").rstrip(".")


def format_short_price(value: Number) -> str:
    """10000 -> '10k', 25500 -> '25.5k', 1200000 -> '1.2jt'"""
    amount = to_decimal(value)
    if amount >= 1_000_000:
        return f"{_truncate_one_decimal(amount / 1_000_000)}jt"
    if amount >= 1_000:
        return f"{_truncate_one_decimal(amount / 1_000)}k"
    return _truncate_one_decimal(amount)


def category_price_range(category: Category) -> str:
    """Свёрнутый заголовок категории: 'Rp 10k - 1.2jt'"""
    products = category_products(category)
    if not products:
        return NO_PRODUCTS

    prices = [p.price for p in products if p.price is not None]
    if not prices:
        return NO_PRICE

    low, high = min(prices), max(prices)
    if low == high:
        return f"Rp {format_short_price(low)}"
    return f"Rp {format_short_price(low)} - {format_short_price(high)}"


def product_display_name(product: Product) -> str:
    """Имя товара, иначе размер/тип из характеристик"""
    attrs = product.attributes()
    return product.name or str(attrs.get("ukuran") or attrs.get("jenis") or "Produk")


def metadata_lines(product: Product) -> Tuple[str, ...]:
    return tuple(
        f"{key.replace('_', ' ').capitalize()}: {value}"
        for key, value in product.metadata
        if value not in (None, "")
    )


# ============ Баннеры ============


def banner_tiers(tiers: Iterable[TieredDiscount], feature_active: bool) -> Tuple[TieredDiscount, ...]:
    """
    Уровни для бегущей строки: сначала со скидкой (больший процент раньше),
    потом только с бесплатной доставкой (по min_spend).
    """
    if not feature_active:
        return ()
    visible = [
        t for t in tiers if t.is_active and (t.discount_percent > 0 or t.free_shipping)
    ]
    with_percent = sorted(
        (t for t in visible if t.discount_percent > 0),
        key=lambda t: -t.discount_percent,
    )
    shipping_only = sorted(
        (t for t in visible if t.discount_percent <= 0), key=lambda t: t.min_spend
    )
    return tuple(with_percent) + tuple(shipping_only)


def tier_range_label(tier: TieredDiscount) -> str:
    upper = format_rupiah(tier.max_spend) if tier.max_spend else "∞"
    return f"{format_rupiah(tier.min_spend)} - {upper}"


def promotion_countdown(end_date: datetime, now: datetime) -> Dict[str, int]:
    """Обратный отсчёт до конца акции; после окончания всё нули"""
    remaining = int((end_date - now).total_seconds())
    if remaining <= 0:
        return {"days": 0, "hours": 0, "minutes": 0, "seconds": 0}
    days, rest = divmod(remaining, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return {"days": days, "hours": hours, "minutes": minutes, "seconds": seconds}
