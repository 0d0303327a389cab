from typing import Dict, Iterable, Iterator, Tuple
from .domain import Brand, Category, Product

# Обход дерева категория → бренды → товары


def direct_brands(category: Category) -> Tuple[Brand, ...]:
    """
    Бренды, висящие прямо на категории.
    Nested select отдаёт в category.brands и те бренды, что лежат в подкатегориях,
    поэтому они отфильтровываются, иначе товары посчитаются дважды.
    """
    nested_ids = {b.id for sub in category.sub_categories for b in sub.brands}
    return tuple(filter(lambda b: b.id not in nested_ids, category.brands))


def category_brands(category: Category) -> Tuple[Brand, ...]:
    """Все бренды категории: сначала прямые, затем из подкатегорий по порядку"""
    return direct_brands(category) + tuple(
        brand for sub in category.sub_categories for brand in sub.brands
    )


## ленивый обход: пары (бренд, товар) в порядке category → brand → subcategory-brand
def iter_category_products(category: Category) -> Iterator[Tuple[Brand, Product]]:
    for brand in category_brands(category):
        for product in brand.products:
            yield brand, product


def iter_catalog(categories: Iterable[Category]) -> Iterator[Tuple[Brand, Product]]:
    for category in categories:
        yield from iter_category_products(category)


def category_products(category: Category) -> Tuple[Product, ...]:
    return tuple(product for _, product in iter_category_products(category))


def product_index(categories: Iterable[Category]) -> Dict[int, Tuple[Brand, Product]]:
    """
    id товара → (бренд, товар). Если товар достижим по нескольким путям,
    остаётся последний встреченный.
    """
    return {product.id: (brand, product) for brand, product in iter_catalog(categories)}
