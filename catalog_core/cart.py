import logging
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Tuple

from .domain import CartLine, Category, Product
from .pricing import discounted_price, sum_amounts
from .tree import product_index

logger = logging.getLogger(__name__)

Quantities = Mapping[int, int]


# ============ Количество (чистые переходы) ============


def set_quantity(quantities: Quantities, product_id: int, qty: int) -> dict:
    """Новый словарь количеств; qty <= 0 удаляет ключ целиком"""
    if qty <= 0:
        return {pid: q for pid, q in quantities.items() if pid != product_id}
    return {**quantities, product_id: int(qty)}


def increment_quantity(quantities: Quantities, product_id: int, step: int = 1) -> dict:
    return set_quantity(quantities, product_id, quantities.get(product_id, 0) + step)


def decrement_quantity(quantities: Quantities, product_id: int, step: int = 1) -> dict:
    return set_quantity(quantities, product_id, quantities.get(product_id, 0) - step)


# ============ Минимальный заказ ============


def minimum_quantity(product: Product) -> Decimal:
    """Минимум в единицах товара (0 если ограничения нет)"""
    return product.min_order.base_quantity if product.min_order else Decimal(0)


def effective_quantity(product: Product, qty: int) -> Tuple[Decimal, bool]:
    """
    Сколько единиц реально выставляется в счёт и было ли поднято до минимума.
    Пример: пасир с минимумом 1 truk = 7 m3, заказ 3 → (7, True).
    """
    requested = Decimal(qty)
    minimum = minimum_quantity(product)
    if 0 < requested < minimum:
        return minimum, True
    return requested, False


# ============ Агрегация корзины ============


def build_cart_lines(
    quantities: Quantities,
    categories: Iterable[Category],
    resolver: Callable[[int], Decimal],
) -> Tuple[CartLine, ...]:
    """
    Строки корзины по количествам.
    Один товар, достижимый через несколько брендов, даёт одну строку.
    Товары, которых нет в каталоге, пропускаются.
    """
    index = product_index(categories)

    def to_line(item: Tuple[int, int]):
        pid, qty = item
        found = index.get(pid)
        if found is None:
            logger.debug("product %s is not in the catalog, skipping", pid)
            return None

        brand, product = found
        billed, _ = effective_quantity(product, qty)
        percent = resolver(pid)
        unit_price = discounted_price(product.price, percent)
        return CartLine(
            product=product,
            brand_name=brand.name,
            quantity=qty,
            effective_quantity=billed,
            discount_percent=percent,
            final_unit_price=unit_price,
            subtotal=unit_price * billed,
        )

    lines = map(to_line, filter(lambda item: item[1] > 0, quantities.items()))
    return tuple(line for line in lines if line is not None)


def total_gross(lines: Iterable[CartLine]) -> Decimal:
    """Сумма подытогов, без округления"""
    return sum_amounts(line.subtotal for line in lines)


def cart_item_count(quantities: Quantities) -> int:
    return sum(q for q in quantities.values() if q > 0)
