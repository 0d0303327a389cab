import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Tuple

from Checkout_Service.summary import CheckoutSummary, prepare_checkout
from catalog_core.cart import build_cart_lines, total_gross
from catalog_core.display import category_price_range, sort_brands, sort_products
from catalog_core.domain import (
    Brand,
    CartLine,
    Category,
    OrderDiscount,
    Product,
    PromoCode,
    Promotion,
    StorefrontData,
)
from catalog_core.ftypes import Either, Maybe, pipe
from catalog_core.loader import tiered_discount_enabled
from catalog_core.pricing import (
    discounted_price,
    product_discount_resolver,
    resolve_order_discount,
)
from catalog_core.promo import (
    MESSAGES,
    PromoRejection,
    RejectionReason,
    is_within_window,
    redeem_promo_code,
)
from catalog_core.tree import category_products, direct_brands, product_index

logger = logging.getLogger(__name__)


def current_promotion(
    promotion: Optional[Promotion], now: Optional[datetime]
) -> Optional[Promotion]:
    """Акция, истёкшая после загрузки, больше не снижает цены"""
    if promotion is None or now is None:
        return promotion
    return promotion if promotion.end_date > now else None


class CatalogService:
    """Фасад для чтения каталога"""

    def __init__(self, categories: Tuple[Category, ...]):
        self.categories = categories
        self._index = product_index(categories)

    def product(self, product_id: int) -> Maybe[Product]:
        found = self._index.get(product_id)
        return Maybe.of(found[1] if found else None)

    def products_by_id(self) -> Dict[int, Product]:
        return {pid: product for pid, (_, product) in self._index.items()}

    def category_view(self, category: Category, sort: str = "default") -> Dict:
        """Бренды категории в порядке отображения: прямые и по подкатегориям"""
        return {
            "category": category,
            "price_range": category_price_range(category),
            "product_count": len(category_products(category)),
            "brands": tuple(
                (brand, sort_products(brand.products, sort))
                for brand in sort_brands(direct_brands(category), sort)
            ),
            "sub_categories": tuple(
                (
                    sub,
                    tuple(
                        (brand, sort_products(brand.products, sort))
                        for brand in sort_brands(sub.brands, sort)
                    ),
                )
                for sub in category.sub_categories
            ),
        }

    def showcase(self, sort: str = "default") -> Tuple[Tuple[Brand, Product], ...]:
        """Плоский список для карточек: (бренд, товар) без повторов"""
        ordered = sort_products((p for _, p in self._index.values()), sort)
        return tuple((self._index[p.id][0], p) for p in ordered)


class StorefrontService:
    """Фасад цен, корзины и оформления заказа"""

    def __init__(
        self,
        data: StorefrontData,
        whatsapp_number: str,
        cutoff_hour: int = 15,
        now: Optional[datetime] = None,
    ):
        self.data = data
        self.catalog = CatalogService(data.categories)
        self.whatsapp_number = whatsapp_number
        self.cutoff_hour = cutoff_hour
        self.promotion = current_promotion(data.promotion, now)
        self.resolver: Callable[[int], Decimal] = product_discount_resolver(self.promotion)

    @property
    def tiered_enabled(self) -> bool:
        return tiered_discount_enabled(self.data.settings)

    def product_price(self, product: Product) -> Tuple[Decimal, Decimal]:
        """(процент скидки, цена за единицу после акции)"""
        percent = self.resolver(product.id)
        return percent, discounted_price(product.price, percent)

    def cart_lines(self, quantities: Mapping[int, int]) -> Tuple[CartLine, ...]:
        return build_cart_lines(quantities, self.data.categories, self.resolver)

    def order_discount(
        self, gross_total: Decimal, promo_code: Optional[PromoCode] = None
    ) -> OrderDiscount:
        return resolve_order_discount(
            gross_total,
            self.data.tiered_discounts,
            promo_code=promo_code,
            tiered_enabled=self.tiered_enabled,
        )

    def totals(
        self, quantities: Mapping[int, int], promo_code: Optional[PromoCode] = None
    ) -> Dict:
        """Корзина целиком: строки → сумма → скидка на заказ"""
        summarize = pipe(
            self.cart_lines,
            lambda lines: (lines, total_gross(lines)),
            lambda acc: {
                "lines": acc[0],
                "gross_total": acc[1],
                "discount": self.order_discount(acc[1], promo_code),
            },
        )
        return summarize(quantities)

    def redeem(
        self, code: str, today: date, lookup: Callable[[str], Tuple[PromoCode, ...]]
    ) -> Either[PromoRejection, PromoCode]:
        result = redeem_promo_code(code, today, lookup)
        if result.is_left:
            logger.info("promo code %r rejected: %s", code, result.value.reason.value)
        return result

    def promo_still_valid(self, promo_code: PromoCode, today: date) -> bool:
        """Применённый ранее код проверяется заново на дату оформления"""
        return promo_code.is_active and is_within_window(promo_code, today)

    def checkout(
        self,
        quantities: Mapping[int, int],
        shipping: str,
        now: datetime,
        promo_code: Optional[PromoCode] = None,
    ) -> Either[str, CheckoutSummary]:
        if promo_code is not None and not self.promo_still_valid(promo_code, now.date()):
            logger.info("promo code %r expired before checkout", promo_code.code)
            return Either.left(MESSAGES[RejectionReason.NOT_CURRENTLY_VALID])

        totals = self.totals(quantities, promo_code)
        return prepare_checkout(
            totals["lines"],
            totals["gross_total"],
            totals["discount"],
            shipping,
            now,
            self.whatsapp_number,
            self.cutoff_hour,
        )
