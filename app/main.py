import sys
import os
import logging
from datetime import datetime

import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from catalog_core.cart import cart_item_count
from catalog_core.config import load_config
from catalog_core.display import (
    SORT_OPTIONS,
    banner_tiers,
    format_rupiah,
    metadata_lines,
    product_display_name,
    promotion_countdown,
    tier_range_label,
)
from catalog_core.loader import SeedSource, run_load_storefront
from catalog_core.pricing import calculate_total_with_rounding
from catalog_core.service import StorefrontService
from catalog_core.state import create_event, create_storefront_bus, initial_state
from Checkout_Service.summary import shipping_options

config = load_config()
logging.basicConfig(
    level=config.log_level, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s"
)
logger = logging.getLogger(__name__)

SORT_LABELS = {
    "default": "Urutan bawaan",
    "name_asc": "Nama A-Z",
    "name_desc": "Nama Z-A",
    "price_asc": "Harga termurah",
    "price_desc": "Harga termahal",
}
VIEW_LABELS = {"table": "Tabel", "card": "Kartu", "showcase": "Etalase"}


# ============ Загрузка данных ============
@st.cache_resource
def get_source():
    return SeedSource(config.seed_path)


@st.cache_data(ttl=300)
def get_storefront():
    return run_load_storefront(get_source(), datetime.now())


st.set_page_config(
    page_title="AB Material",
    page_icon="🏗️",
    layout="wide",
    initial_sidebar_state="expanded",
)

loaded = get_storefront()
if loaded.is_left:
    st.error(f"❌ {loaded.value}")
    if st.button("🔄 Muat ulang"):
        get_storefront.clear()
        st.rerun()
    st.stop()

service = StorefrontService(
    loaded.value, config.whatsapp_number, config.shipping_cutoff_hour, now=datetime.now()
)
bus = create_storefront_bus(service.catalog.products_by_id())

if "store" not in st.session_state:
    st.session_state.store = initial_state()


def dispatch(name: str, **payload):
    st.session_state.store = bus.publish(create_event(name, payload), st.session_state.store)


def quantity_control(product, key_prefix: str):
    """Поле количества; 0 убирает товар из корзины"""
    current = st.session_state.store["quantities"].get(product.id, 0)
    qty = st.number_input(
        "Jumlah",
        min_value=0,
        value=current,
        step=1,
        key=f"{key_prefix}_{product.id}_{current}",
        label_visibility="collapsed",
    )
    if qty != current:
        dispatch("SET_QUANTITY", product_id=product.id, qty=int(qty))
        st.rerun()


def price_cell(product):
    percent, final_price = service.product_price(product)
    if product.price is None:
        st.caption(format_rupiah(None))
    elif percent > 0:
        st.markdown(f"**{format_rupiah(final_price)}**  ~~{format_rupiah(product.price)}~~")
        st.caption(f"-{percent:f}%")
    else:
        st.markdown(f"**{format_rupiah(product.price)}**")


def product_row(product, key_prefix: str):
    cols = st.columns([4, 3, 2, 2])
    with cols[0]:
        st.markdown(f"**{product_display_name(product)}**")
        if product.min_order:
            st.caption(
                f"Min. order {product.min_order.quantity} {product.min_order.unit or ''}"
            )
    with cols[1]:
        for line in metadata_lines(product):
            st.caption(line)
    with cols[2]:
        price_cell(product)
    with cols[3]:
        quantity_control(product, key_prefix)


# ============ HEADER ============
st.title("🏗️ AB Material")
st.caption("Pemasok material konstruksi tepercaya untuk Bandung & Jabodetabek")

promotion = service.promotion
if promotion:
    left = promotion_countdown(promotion.end_date, datetime.now())
    st.warning(
        f"**{promotion.title}** — diskon {promotion.discount_percent:f}%. "
        f"{promotion.subtitle}  \n"
        f"⏳ {left['days']} hari {left['hours']} jam {left['minutes']} menit"
    )

tiers = banner_tiers(service.data.tiered_discounts, service.tiered_enabled)
if tiers:
    st.info(
        "  •  ".join(
            f"{tier_range_label(t)}: "
            + (f"diskon {t.discount_percent:f}%" if t.discount_percent > 0 else "")
            + (" + gratis ongkir" if t.free_shipping else "")
            for t in tiers
        )
    )

for notice in st.session_state.store["notices"]:
    st.toast(notice, icon="ℹ️")
if st.session_state.store["notices"]:
    dispatch("DISMISS_NOTICES")

# ============ SIDEBAR ============
with st.sidebar:
    page = st.radio(
        "Menu",
        ["🏪 Katalog", "🛒 Keranjang"],
        label_visibility="collapsed",
    )
    st.divider()
    view = st.selectbox(
        "Tampilan",
        list(VIEW_LABELS),
        index=list(VIEW_LABELS).index(st.session_state.store["view_mode"]),
        format_func=VIEW_LABELS.get,
    )
    if view != st.session_state.store["view_mode"]:
        dispatch("SET_VIEW_MODE", mode=view)
    sort = st.selectbox(
        "Urutkan",
        list(SORT_OPTIONS),
        index=list(SORT_OPTIONS).index(st.session_state.store["sort"]),
        format_func=SORT_LABELS.get,
    )
    if sort != st.session_state.store["sort"]:
        dispatch("SET_SORT", sort=sort)

    count = cart_item_count(st.session_state.store["quantities"])
    st.metric("🛒 Item di keranjang", count)


# ============ PAGE: KATALOG ============
if page == "🏪 Katalog":
    st.header("Katalog Produk")
    state = st.session_state.store

    if state["view_mode"] == "table":
        for category in service.data.categories:
            view_data = service.catalog.category_view(category, state["sort"])
            label = (
                f"{category.name} · {view_data['product_count']} produk · "
                f"{view_data['price_range']}"
            )
            with st.expander(label, expanded=category.id in state["expanded_categories"]):
                st.caption(category.description)
                for brand, products in view_data["brands"]:
                    st.subheader(f"Merk: {brand.name}")
                    for product in products:
                        product_row(product, f"t{category.id}_{brand.id}")
                for sub, brands in view_data["sub_categories"]:
                    st.markdown(f"#### {sub.name}")
                    for brand, products in brands:
                        st.subheader(f"Merk: {brand.name}")
                        for product in products:
                            product_row(product, f"s{sub.id}_{brand.id}")
    else:
        columns = 4 if state["view_mode"] == "card" else 2
        items = service.catalog.showcase(state["sort"])
        grid = st.columns(columns)
        for idx, (brand, product) in enumerate(items):
            with grid[idx % columns]:
                with st.container(border=True):
                    st.markdown(f"**{product_display_name(product)}**")
                    st.caption(brand.name)
                    if state["view_mode"] == "showcase":
                        for line in metadata_lines(product):
                            st.caption(line)
                    price_cell(product)
                    quantity_control(product, f"c{brand.id}")


# ============ PAGE: KERANJANG ============
elif page == "🛒 Keranjang":
    st.header("Keranjang Belanja")
    state = st.session_state.store
    if state["promo_code"] and not service.promo_still_valid(state["promo_code"], datetime.now().date()):
        st.warning(f"Kode promo {state['promo_code'].code} sudah tidak berlaku dan dihapus.")
        dispatch("CLEAR_PROMO")
        state = st.session_state.store
    totals = service.totals(state["quantities"], state["promo_code"])

    if not totals["lines"]:
        st.info("🛍️ Keranjang kosong. Silakan pilih produk di katalog.")
        st.stop()

    for line in totals["lines"]:
        cols = st.columns([5, 2, 2, 1])
        with cols[0]:
            st.write(f"**{line.product.name}** ({line.brand_name})")
        with cols[1]:
            st.write(f"{format_rupiah(line.final_unit_price)} × {line.effective_quantity:f}")
        with cols[2]:
            st.write(format_rupiah(line.subtotal))
        with cols[3]:
            if st.button("🗑️", key=f"remove_{line.product.id}"):
                dispatch("SET_QUANTITY", product_id=line.product.id, qty=0)
                st.rerun()

    st.divider()

    # Промокод
    if state["promo_code"] is None:
        code = st.text_input("Kode promo", key="promo_input")
        if st.button("Gunakan kode") and code:
            result = service.redeem(code, datetime.now().date(), get_source().lookup_promo_codes)
            if result.is_right:
                dispatch("APPLY_PROMO", promo=result.value)
                st.success(f"✅ Kode {result.value.code} berhasil digunakan")
                st.rerun()
            else:
                st.error(result.value.message)
    else:
        st.success(f"🎟️ Kode promo {state['promo_code'].code} aktif")
        if st.button("Hapus kode promo"):
            dispatch("CLEAR_PROMO")
            st.rerun()

    discount = totals["discount"]
    st.write(f"Subtotal: {format_rupiah(totals['gross_total'])}")
    if discount.amount > 0:
        st.write(f"Diskon ({discount.percentage:f}%): -{format_rupiah(discount.amount)}")
    if discount.is_free_shipping:
        st.write("Promo: Gratis Ongkir")
    _, rounding, _ = calculate_total_with_rounding(totals["gross_total"] - discount.amount)
    if rounding:
        st.caption(f"Pembulatan: {format_rupiah(rounding)}")
    st.markdown(f"### Total Pembayaran: **{format_rupiah(discount.final_total)}**")

    st.divider()
    options = shipping_options(datetime.now(), config.shipping_cutoff_hour)
    shipping = st.radio(
        "Pilih Layanan Pengiriman",
        list(options),
        index=None,
        format_func=lambda key: f"{options[key]['title']} · {options[key]['description']}",
    )
    if shipping:
        st.caption(options[shipping]["note"])

    if st.button("Lanjutkan Pesan ke WhatsApp", type="primary", use_container_width=True):
        result = service.checkout(
            state["quantities"], shipping or "", datetime.now(), state["promo_code"]
        )
        if result.is_right:
            logger.info("checkout prepared, final total %s", result.value.discount.final_total)
            st.link_button("📲 Buka WhatsApp", result.value.url)
        else:
            st.error(result.value)
