import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from decimal import Decimal

import pytest

from catalog_core.domain import Brand, Category, MinimumOrder, Product, SubCategory

SEED_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "seed.json")


@pytest.fixture
def seed_path():
    return SEED_PATH


@pytest.fixture
def products():
    return {
        "rebar": Product(id=1, name="Besi Ulir 10mm", price=Decimal(123456), metadata=(("diameter_mm", 10),), unit="batang"),
        "cement": Product(id=2, name="Semen 40kg", price=Decimal(56000), unit="sak"),
        "sand": Product(
            id=3,
            name="Pasir Cor",
            price=Decimal(285000),
            unit="m3",
            min_order=MinimumOrder(quantity=1, unit="truk", unit_equivalent=Decimal(7)),
        ),
        "paint": Product(id=4, name="Cat Tembok", price=Decimal(135000)),
        "no_price": Product(id=5, name="Cat Kayu", price=None),
    }


@pytest.fixture
def categories(products):
    """
    Категория "Cat": бренд Dulux висит и напрямую, и в подкатегории,
    как его отдаёт nested select.
    """
    steel = Brand(id=10, name="Krakatau", products=(products["rebar"],))
    cement = Brand(id=11, name="Tiga Roda", products=(products["cement"],))
    sand = Brand(id=12, name="Lokal", products=(products["sand"],))
    dulux = Brand(id=13, name="Dulux", products=(products["paint"],), sub_category_id=20)
    yoko = Brand(id=14, name="Yoko", products=(products["no_price"],), sub_category_id=21)
    return (
        Category(id=1, name="Besi", brands=(steel,)),
        Category(id=2, name="Semen & Pasir", brands=(cement, sand)),
        Category(
            id=3,
            name="Cat",
            brands=(dulux, yoko),
            sub_categories=(
                SubCategory(id=20, name="Cat Tembok", brands=(dulux,)),
                SubCategory(id=21, name="Cat Kayu", brands=(yoko,)),
            ),
        ),
    )
