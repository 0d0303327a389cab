from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_CEILING
from functools import reduce
from typing import Callable, Dict, Tuple
import uuid

from .cart import decrement_quantity, effective_quantity, increment_quantity, set_quantity
from .display import SORT_OPTIONS
from .domain import Event, Product

VIEW_MODES = ("table", "card", "showcase")

Handler = Callable[[Event, dict], dict]


@dataclass(frozen=True)
class EventBus:
    """
    Иммутабельная шина событий витрины.
    Подписчики — чистые функции (Event, State) -> State.
    """

    subscribers: Tuple[Tuple[str, Handler], ...] = ()

    def subscribe(self, event_name: str, handler: Handler) -> "EventBus":
        return EventBus(subscribers=self.subscribers + ((event_name, handler),))

    def publish(self, event: Event, state: dict) -> dict:
        """Применяет подписчиков события по очереди (fold); неизвестное событие не меняет state"""
        matching = tuple(h for name, h in self.subscribers if name == event.name)
        return reduce(lambda current, handler: handler(event, current), matching, state)


def create_event(name: str, payload: dict = None) -> Event:
    return Event(
        id=str(uuid.uuid4()),
        ts=datetime.now().isoformat(),
        name=name,
        payload=dict(payload or {}),
    )


def initial_state() -> dict:
    return {
        "quantities": {},
        "view_mode": "table",
        "sort": "default",
        "promo_code": None,
        "expanded_categories": frozenset(),
        "notices": (),
        "last_event": None,
    }


# ============ Обработчики ============


def _minimum_notice(product: Product, qty) -> str:
    text = f"Minimal pemesanan {product.name} adalah {qty:f} {product.unit or 'unit'}"
    if product.min_order.unit:
        text += f" ({product.min_order.quantity} {product.min_order.unit})"
    return text + "."


def quantity_handlers(products_by_id: Dict[int, Product]):
    """
    Обработчики количеств, замкнутые на каталоге.
    Количество ниже минимального заказа поднимается до минимума с уведомлением;
    уменьшение ниже минимума убирает товар из корзины.
    """

    def apply_quantity(state: dict, product_id: int, qty: int, event_name: str) -> dict:
        product = products_by_id.get(product_id)
        notices = state["notices"]
        if product is not None and qty > 0:
            billed, clamped = effective_quantity(product, qty)
            if clamped:
                qty = int(billed.to_integral_value(rounding=ROUND_CEILING))
                notices = notices + (_minimum_notice(product, billed),)
        return {
            **state,
            "quantities": set_quantity(state["quantities"], product_id, qty),
            "notices": notices,
            "last_event": event_name,
        }

    def handle_set_quantity(event: Event, state: dict) -> dict:
        pid = int(event.payload["product_id"])
        qty = max(int(event.payload.get("qty", 0)), 0)
        return apply_quantity(state, pid, qty, event.name)

    def handle_increment(event: Event, state: dict) -> dict:
        pid = int(event.payload["product_id"])
        qty = increment_quantity(state["quantities"], pid).get(pid, 0)
        return apply_quantity(state, pid, qty, event.name)

    def handle_decrement(event: Event, state: dict) -> dict:
        pid = int(event.payload["product_id"])
        qty = decrement_quantity(state["quantities"], pid).get(pid, 0)
        product = products_by_id.get(pid)
        if product is not None and qty > 0 and effective_quantity(product, qty)[1]:
            qty = 0
        return apply_quantity(state, pid, qty, event.name)

    return handle_set_quantity, handle_increment, handle_decrement


def handle_view_mode(event: Event, state: dict) -> dict:
    mode = event.payload.get("mode")
    if mode not in VIEW_MODES:
        return state
    return {**state, "view_mode": mode, "last_event": event.name}


def handle_sort(event: Event, state: dict) -> dict:
    option = event.payload.get("sort")
    if option not in SORT_OPTIONS:
        return state
    return {**state, "sort": option, "last_event": event.name}


def handle_apply_promo(event: Event, state: dict) -> dict:
    """Кладёт в state уже проверенный PromoCode"""
    return {**state, "promo_code": event.payload.get("promo"), "last_event": event.name}


def handle_clear_promo(event: Event, state: dict) -> dict:
    return {**state, "promo_code": None, "last_event": event.name}


def handle_toggle_category(event: Event, state: dict) -> dict:
    category_id = event.payload["category_id"]
    expanded = state["expanded_categories"]
    toggled = expanded - {category_id} if category_id in expanded else expanded | {category_id}
    return {**state, "expanded_categories": toggled, "last_event": event.name}


def handle_clear_cart(event: Event, state: dict) -> dict:
    return {**state, "quantities": {}, "promo_code": None, "last_event": event.name}


def handle_dismiss_notices(event: Event, state: dict) -> dict:
    return {**state, "notices": (), "last_event": event.name}


def create_storefront_bus(products_by_id: Dict[int, Product]) -> EventBus:
    """Шина витрины с полным набором обработчиков"""
    set_qty, increment, decrement = quantity_handlers(products_by_id)
    bus = EventBus()
    bus = bus.subscribe("SET_QUANTITY", set_qty)
    bus = bus.subscribe("INCREMENT", increment)
    bus = bus.subscribe("DECREMENT", decrement)
    bus = bus.subscribe("SET_VIEW_MODE", handle_view_mode)
    bus = bus.subscribe("SET_SORT", handle_sort)
    bus = bus.subscribe("APPLY_PROMO", handle_apply_promo)
    bus = bus.subscribe("CLEAR_PROMO", handle_clear_promo)
    bus = bus.subscribe("TOGGLE_CATEGORY", handle_toggle_category)
    bus = bus.subscribe("CLEAR_CART", handle_clear_cart)
    bus = bus.subscribe("DISMISS_NOTICES", handle_dismiss_notices)
    return bus


def apply_events(bus: EventBus, events: Tuple[Event, ...], state: dict) -> dict:
    return reduce(lambda s, e: bus.publish(e, s), events, state)
