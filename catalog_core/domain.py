from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Tuple, Union

Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class MinimumOrder:
    quantity: int
    unit: Optional[str] = None
    unit_equivalent: Decimal = Decimal(1)  # единиц товара в одной единице заказа

    @property
    def base_quantity(self) -> Decimal:
        return Decimal(self.quantity) * self.unit_equivalent


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: Optional[Decimal]  # рупии, None если цена не задана
    metadata: Tuple[Tuple[str, Scalar], ...] = ()
    unit: Optional[str] = None
    min_order: Optional[MinimumOrder] = None

    def attributes(self) -> Dict[str, Scalar]:
        return dict(self.metadata)


@dataclass(frozen=True)
class Brand:
    id: int
    name: str
    products: Tuple[Product, ...] = ()
    sub_category_id: Optional[int] = None


@dataclass(frozen=True)
class SubCategory:
    id: int
    name: str
    brands: Tuple[Brand, ...] = ()


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: str = ""
    brands: Tuple[Brand, ...] = ()  # как вернул nested select, могут повторяться
    sub_categories: Tuple[SubCategory, ...] = ()


# ============ Промоакции: тегированный вариант ============


@dataclass(frozen=True)
class Sitewide:
    pass


@dataclass(frozen=True)
class ProductSpecific:
    product_ids: FrozenSet[int] = frozenset()


PromotionScope = Union[Sitewide, ProductSpecific]


@dataclass(frozen=True)
class Promotion:
    id: int
    title: str
    discount_percent: Decimal
    end_date: datetime
    scope: PromotionScope
    subtitle: str = ""
    cta_text: str = ""
    gimmick_type: Optional[str] = None


@dataclass(frozen=True)
class TieredDiscount:
    id: int
    min_spend: Decimal
    max_spend: Optional[Decimal]  # None = без верхней границы
    discount_percent: Decimal
    free_shipping: bool = False
    is_active: bool = True
    description: str = ""


@dataclass(frozen=True)
class PromoCode:
    id: int
    code: str
    discount_percent: Decimal
    start_date: date
    end_date: date
    is_active: bool = True


# ============ Производные (не сохраняются) ============


@dataclass(frozen=True)
class CartLine:
    product: Product
    brand_name: str
    quantity: int
    effective_quantity: Decimal
    discount_percent: Decimal
    final_unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDiscount:
    percentage: Decimal
    amount: Decimal
    final_total: Decimal
    is_free_shipping: bool = False
    message: str = ""
    source: str = "none"  # "none" | "tier" | "promo_code"


@dataclass(frozen=True)
class StorefrontData:
    categories: Tuple[Category, ...]
    promotion: Optional[Promotion]
    tiered_discounts: Tuple[TieredDiscount, ...]
    settings: Dict[str, Dict] = field(default_factory=dict)


@dataclass(frozen=True)
class Event:
    id: str
    ts: str
    name: str
    payload: Dict
