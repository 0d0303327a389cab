from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Tuple
from urllib.parse import quote

from catalog_core.display import format_number_id
from catalog_core.domain import CartLine, OrderDiscount
from catalog_core.ftypes import Either

SHIPPING_REQUIRED = "Silakan pilih metode pengiriman terlebih dahulu."
EMPTY_CART = "Keranjang masih kosong."

# символы, которые encodeURIComponent оставляет как есть
URI_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class CheckoutSummary:
    lines: Tuple[CartLine, ...]
    gross_total: Decimal
    discount: OrderDiscount
    shipping: str
    message: str
    url: str


# ============ Доставка ============


def regular_shipping_available(now: datetime, cutoff_hour: int = 15) -> bool:
    """Обычная доставка завтра, только если заказ сделан до cutoff_hour"""
    return now.hour * 60 + now.minute < cutoff_hour * 60


def shipping_options(now: datetime, cutoff_hour: int = 15) -> Dict[str, Dict[str, str]]:
    """Варианты доставки с подписями для UI и для сообщения"""
    if regular_shipping_available(now, cutoff_hour):
        regular = {
            "description": "Dikirim besok",
            "note": f"Pesan sebelum jam {cutoff_hour}:00, akan dikirim besok",
        }
    else:
        regular = {
            "description": "Direspon besok, dikirim lusa",
            "note": f"Pesan setelah jam {cutoff_hour}:00, akan direspon besok dan dikirim lusa",
        }
    return {
        "reguler": {"title": "Pengiriman Reguler", **regular},
        "instan": {
            "title": "Pengiriman Instan",
            "description": "Sampai dalam 3 jam",
            "note": "Hubungi via WhatsApp untuk detail biaya & ketersediaan.",
        },
    }


def shipping_info(shipping: str, now: datetime, cutoff_hour: int = 15) -> str:
    if shipping == "reguler":
        description = shipping_options(now, cutoff_hour)["reguler"]["description"]
        return f"Layanan Pengiriman: Reguler ({description})"
    return "Layanan Pengiriman: Instan (3 jam) - Detail biaya akan dikonfirmasi via WhatsApp"


# ============ Текст заказа ============


def format_line(line: CartLine) -> str:
    return (
        f"{line.product.name} ({line.brand_name})\n"
        f"Harga: Rp{format_number_id(line.final_unit_price)} x {format_number_id(line.effective_quantity)}\n"
        f"Subtotal: Rp{format_number_id(line.subtotal)}"
    )


def build_order_message(
    lines: Tuple[CartLine, ...],
    gross_total: Decimal,
    discount: OrderDiscount,
    shipping: str,
    now: datetime,
    cutoff_hour: int = 15,
) -> str:
    """
    Детерминированное сообщение для администратора: позиции, сумма,
    скидка (если есть), бесплатная доставка (если есть) и итог.
    """
    summary = [
        "*Rekap Pesanan:*\n" + "\n\n".join(map(format_line, lines)),
        f"\n*Total Belanja:* Rp{format_number_id(gross_total)}",
    ]
    if discount.amount > 0:
        summary.append(
            f"*Diskon ({format_number_id(discount.percentage)}%):* "
            f"-Rp{format_number_id(discount.amount)}"
        )
    if discount.is_free_shipping:
        summary.append("*Promo:* Gratis Ongkir (T&C berlaku)")
    summary.append(f"*Total Akhir:* Rp{format_number_id(discount.final_total)}")

    return (
        "Halo Admin, saya ingin memesan material konstruksi berikut:\n\n"
        + "\n".join(summary)
        + f"\n\n{shipping_info(shipping, now, cutoff_hour)}\n\nTerima kasih."
    )


def whatsapp_url(message: str, phone: str) -> str:
    """Ссылка wa.me; экранирование как у encodeURIComponent"""
    return f"https://wa.me/{phone}?text={quote(message, safe=URI_SAFE)}"


def prepare_checkout(
    lines: Tuple[CartLine, ...],
    gross_total: Decimal,
    discount: OrderDiscount,
    shipping: str,
    now: datetime,
    phone: str,
    cutoff_hour: int = 15,
) -> Either[str, CheckoutSummary]:
    if not lines:
        return Either.left(EMPTY_CART)
    if shipping not in ("reguler", "instan"):
        return Either.left(SHIPPING_REQUIRED)

    message = build_order_message(lines, gross_total, discount, shipping, now, cutoff_hour)
    return Either.right(
        CheckoutSummary(
            lines=lines,
            gross_total=gross_total,
            discount=discount,
            shipping=shipping,
            message=message,
            url=whatsapp_url(message, phone),
        )
    )
