import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from datetime import datetime
from decimal import Decimal

import pytest

from Checkout_Service.summary import (
    EMPTY_CART,
    SHIPPING_REQUIRED,
    build_order_message,
    prepare_checkout,
    regular_shipping_available,
    shipping_options,
    whatsapp_url,
)
from catalog_core.domain import CartLine, OrderDiscount

PHONE = "6285187230007"
MORNING = datetime(2025, 3, 3, 10, 30)


@pytest.fixture
def lines(products):
    cement = products["cement"]
    return (
        CartLine(
            product=cement,
            brand_name="Tiga Roda",
            quantity=2,
            effective_quantity=Decimal(2),
            discount_percent=Decimal(0),
            final_unit_price=Decimal(56000),
            subtotal=Decimal(112000),
        ),
    )


def test_regular_shipping_cutoff():
    assert regular_shipping_available(datetime(2025, 3, 3, 14, 59))
    assert not regular_shipping_available(datetime(2025, 3, 3, 15, 0))
    assert shipping_options(datetime(2025, 3, 3, 16, 0))["reguler"]["description"] == "Direspon besok, dikirim lusa"


def test_message_without_discount(lines):
    discount = OrderDiscount(percentage=Decimal(0), amount=Decimal(0), final_total=Decimal(112000))
    message = build_order_message(lines, Decimal(112000), discount, "reguler", MORNING)
    assert message.startswith("Halo Admin, saya ingin memesan material konstruksi berikut:")
    assert "Semen 40kg (Tiga Roda)\nHarga: Rp56.000 x 2\nSubtotal: Rp112.000" in message
    assert "*Total Akhir:* Rp112.000" in message
    assert "Diskon" not in message
    assert "Gratis Ongkir" not in message
    assert "Layanan Pengiriman: Reguler (Dikirim besok)" in message
    assert message.endswith("Terima kasih.")


def test_message_with_tier_discount(lines):
    discount = OrderDiscount(
        percentage=Decimal(5),
        amount=Decimal("5600"),
        final_total=Decimal(106400),
        is_free_shipping=True,
    )
    message = build_order_message(lines, Decimal(112000), discount, "instan", MORNING)
    assert "*Diskon (5%):* -Rp5.600" in message
    assert "*Promo:* Gratis Ongkir (T&C berlaku)" in message
    assert "Instan (3 jam)" in message


def test_whatsapp_url_encodes_like_browser():
    url = whatsapp_url("Halo Admin,\n*Total* Rp1.000 (ok)", PHONE)
    assert url == "https://wa.me/6285187230007?text=Halo%20Admin%2C%0A*Total*%20Rp1.000%20(ok)"


def test_prepare_checkout_requires_shipping_and_lines(lines):
    discount = OrderDiscount(percentage=Decimal(0), amount=Decimal(0), final_total=Decimal(112000))
    assert prepare_checkout(lines, Decimal(112000), discount, "", MORNING, PHONE).value == SHIPPING_REQUIRED
    assert prepare_checkout((), Decimal(0), discount, "reguler", MORNING, PHONE).value == EMPTY_CART

    result = prepare_checkout(lines, Decimal(112000), discount, "reguler", MORNING, PHONE)
    assert result.is_right
    assert result.value.url.startswith("https://wa.me/6285187230007?text=Halo%20Admin")
