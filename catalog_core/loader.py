import asyncio
import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from .domain import (
    Brand,
    Category,
    MinimumOrder,
    Product,
    ProductSpecific,
    PromoCode,
    Promotion,
    Sitewide,
    StorefrontData,
    SubCategory,
    TieredDiscount,
)
from .errors import DataFetchError
from .ftypes import Either

logger = logging.getLogger(__name__)

FETCH_FAILED = "Gagal memuat data toko. Silakan muat ulang halaman."


def load_seed(path: str) -> dict:
    """Читает seed.json: таблицы хранилища в виде {table: [rows]}"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        raise DataFetchError(f"cannot read seed file {path}: {exc}") from exc


# ============ Разбор строк ============


def parse_decimal(raw) -> Optional[Decimal]:
    """Кривое или пустое значение превращается в None, а не роняет загрузку"""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _scalar_metadata(raw) -> Tuple[Tuple[str, object], ...]:
    if not isinstance(raw, dict):
        return ()
    return tuple(
        (str(k), v) for k, v in raw.items() if isinstance(v, (str, int, float, bool))
    )


def parse_product(row: dict, units: Dict[int, str]) -> Product:
    price = parse_decimal(row.get("price"))
    if price is None and row.get("price") is not None:
        logger.warning("product %s has malformed price %r", row.get("id"), row.get("price"))

    min_qty = row.get("min_order_qty")
    min_order = None
    if isinstance(min_qty, int) and min_qty > 0:
        min_order = MinimumOrder(
            quantity=min_qty,
            unit=row.get("min_order_unit"),
            unit_equivalent=parse_decimal(row.get("min_order_unit_equivalent")) or Decimal(1),
        )

    return Product(
        id=int(row["id"]),
        name=str(row.get("name") or ""),
        price=price,
        metadata=_scalar_metadata(row.get("metadata")),
        unit=units.get(row.get("unit_id")),
        min_order=min_order,
    )


def build_categories(tables: dict) -> Tuple[Category, ...]:
    """
    Собирает дерево так, как его отдаёт nested select:
    category.brands содержит все бренды с этим category_id, включая вложенные в подкатегории.
    """
    units = {u["id"]: u["name"] for u in tables.get("units", [])}
    products = [(row, parse_product(row, units)) for row in tables.get("products", [])]

    def brand_of(row: dict) -> Brand:
        return Brand(
            id=int(row["id"]),
            name=str(row.get("name") or ""),
            products=tuple(p for r, p in products if r.get("brand_id") == row["id"]),
            sub_category_id=row.get("sub_category_id"),
        )

    brands = [(row, brand_of(row)) for row in tables.get("brands", [])]

    def sub_category_of(row: dict) -> SubCategory:
        return SubCategory(
            id=int(row["id"]),
            name=str(row.get("name") or ""),
            brands=tuple(b for r, b in brands if r.get("sub_category_id") == row["id"]),
        )

    def category_of(row: dict) -> Category:
        return Category(
            id=int(row["id"]),
            name=str(row.get("name") or ""),
            description=str(row.get("description") or ""),
            brands=tuple(b for r, b in brands if r.get("category_id") == row["id"]),
            sub_categories=tuple(
                sub_category_of(s)
                for s in tables.get("sub_categories", [])
                if s.get("category_id") == row["id"]
            ),
        )

    return tuple(map(category_of, tables.get("categories", [])))


def parse_timestamp(raw) -> datetime:
    """
    Метка времени из хранилища в наивном локальном времени.
    Смещение (+00:00, Z) переводится в локальную зону и отбрасывается,
    чтобы сравнение с datetime.now() не падало.
    """
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def parse_promotion(row: dict, product_ids: Iterable[int] = ()) -> Promotion:
    scope = (
        ProductSpecific(frozenset(int(pid) for pid in product_ids))
        if row.get("type") == "product_specific"
        else Sitewide()
    )
    return Promotion(
        id=int(row["id"]),
        title=str(row.get("title") or ""),
        subtitle=str(row.get("subtitle") or ""),
        cta_text=str(row.get("cta_text") or ""),
        discount_percent=parse_decimal(row.get("discount_percent")) or Decimal(0),
        end_date=parse_timestamp(row["end_date"]),
        scope=scope,
        gimmick_type=row.get("gimmick_type"),
    )


def select_active_promotion(
    rows: List[dict], links: List[dict], now: datetime
) -> Optional[Promotion]:
    """Одна текущая акция: активна, не истекла, самая свежая по created_at"""
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    live = [
        r
        for r in rows
        if r.get("is_active") and parse_timestamp(r["end_date"]) > now
    ]
    if not live:
        return None
    row = max(live, key=lambda r: r.get("created_at") or "")
    product_ids = [link["product_id"] for link in links if link.get("promotion_id") == row["id"]]
    return parse_promotion(row, product_ids)


def parse_tier(row: dict) -> TieredDiscount:
    return TieredDiscount(
        id=int(row["id"]),
        min_spend=parse_decimal(row.get("min_spend")) or Decimal(0),
        max_spend=parse_decimal(row.get("max_spend")),
        discount_percent=parse_decimal(row.get("discount_percent")) or Decimal(0),
        free_shipping=bool(row.get("free_shipping", False)),
        is_active=bool(row.get("is_active", True)),
        description=str(row.get("description") or ""),
    )


def parse_promo_code(row: dict) -> PromoCode:
    return PromoCode(
        id=int(row["id"]),
        code=str(row["code"]),
        discount_percent=parse_decimal(row.get("discount_percent")) or Decimal(0),
        start_date=date.fromisoformat(str(row["start_date"])[:10]),
        end_date=date.fromisoformat(str(row["end_date"])[:10]),
        is_active=bool(row.get("is_active", False)),
    )


def tiered_discount_enabled(settings: Dict[str, Dict]) -> bool:
    """Флаг app_settings.tiered_discount_active.enabled, по умолчанию выключен"""
    value = settings.get("tiered_discount_active") or {}
    return bool(value.get("enabled", False)) if isinstance(value, dict) else False


# ============ Источник данных ============


class SeedSource:
    """
    Хранилище поверх seed.json с теми же формами чтения, что у бэкенда.
    Файл читается один раз при первом запросе.
    """

    def __init__(self, path: str):
        self.path = path
        self._tables: Optional[dict] = None

    def tables(self) -> dict:
        if self._tables is None:
            self._tables = load_seed(self.path)
        return self._tables

    async def fetch_categories(self) -> Tuple[Category, ...]:
        return build_categories(self.tables())

    async def fetch_active_promotion(self, now: datetime) -> Optional[Promotion]:
        tables = self.tables()
        return select_active_promotion(
            tables.get("promotions", []), tables.get("promotion_products", []), now
        )

    async def fetch_settings(self) -> Dict[str, Dict]:
        return {row["key"]: row.get("value") for row in self.tables().get("app_settings", [])}

    async def fetch_tiered_discounts(self) -> Tuple[TieredDiscount, ...]:
        tiers = map(parse_tier, self.tables().get("tiered_discounts", []))
        return tuple(sorted((t for t in tiers if t.is_active), key=lambda t: t.min_spend))

    async def fetch_promo_codes(self, code: str) -> Tuple[PromoCode, ...]:
        rows = self.tables().get("promo_codes", [])
        return tuple(parse_promo_code(r) for r in rows if r.get("code") == code)

    def lookup_promo_codes(self, code: str) -> Tuple[PromoCode, ...]:
        """Синхронная обёртка для redeem_promo_code"""
        return asyncio.run(self.fetch_promo_codes(code))


# ============ Параллельная загрузка ============


async def load_storefront(source, now: datetime) -> Either[str, StorefrontData]:
    """
    Категории, акция, настройки и уровни скидок запрашиваются одновременно.
    Любой сбой → Left с сообщением для покупателя, повтор только по действию пользователя.
    """
    try:
        categories, promotion, settings, tiers = await asyncio.gather(
            source.fetch_categories(),
            source.fetch_active_promotion(now),
            source.fetch_settings(),
            source.fetch_tiered_discounts(),
        )
    except Exception:
        logger.exception("storefront load failed")
        return Either.left(FETCH_FAILED)

    logger.info(
        "storefront loaded: %d categories, promotion=%s, %d tiers",
        len(categories),
        promotion.id if promotion else None,
        len(tiers),
    )
    return Either.right(
        StorefrontData(
            categories=categories,
            promotion=promotion,
            tiered_discounts=tiers,
            settings=settings,
        )
    )


def run_load_storefront(source, now: datetime) -> Either[str, StorefrontData]:
    """Синхронная обёртка для UI"""
    return asyncio.run(load_storefront(source, now))
