import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from datetime import date
from decimal import Decimal

import pytest

from catalog_core.domain import PromoCode
from catalog_core.state import (
    EventBus,
    apply_events,
    create_event,
    create_storefront_bus,
    initial_state,
)


@pytest.fixture
def bus(products):
    return create_storefront_bus({p.id: p for p in products.values()})


def test_eventbus_immutability():
    bus1 = EventBus()
    bus2 = bus1.subscribe("TEST", lambda e, s: s)
    assert bus1.subscribers == ()
    assert len(bus2.subscribers) == 1


def test_set_quantity_does_not_mutate_previous_state(bus):
    state = initial_state()
    new_state = bus.publish(create_event("SET_QUANTITY", {"product_id": 1, "qty": 2}), state)
    assert state["quantities"] == {}
    assert new_state["quantities"] == {1: 2}
    assert new_state["last_event"] == "SET_QUANTITY"


def test_quantity_zero_removes_key(bus):
    state = apply_events(
        bus,
        (
            create_event("SET_QUANTITY", {"product_id": 1, "qty": 2}),
            create_event("SET_QUANTITY", {"product_id": 1, "qty": 0}),
        ),
        initial_state(),
    )
    assert 1 not in state["quantities"]


def test_increment_and_decrement(bus):
    events = (
        create_event("INCREMENT", {"product_id": 2}),
        create_event("INCREMENT", {"product_id": 2}),
        create_event("DECREMENT", {"product_id": 2}),
    )
    assert apply_events(bus, events, initial_state())["quantities"] == {2: 1}

    emptied = bus.publish(create_event("DECREMENT", {"product_id": 2}), {**initial_state(), "quantities": {2: 1}})
    assert emptied["quantities"] == {}


def test_below_minimum_is_clamped_with_notice(bus):
    state = bus.publish(create_event("SET_QUANTITY", {"product_id": 3, "qty": 2}), initial_state())
    assert state["quantities"] == {3: 7}
    assert len(state["notices"]) == 1
    assert "Pasir Cor" in state["notices"][0]

    dismissed = bus.publish(create_event("DISMISS_NOTICES"), state)
    assert dismissed["notices"] == ()


def test_decrement_below_minimum_removes_line(bus):
    state = {**initial_state(), "quantities": {3: 7}}
    state = bus.publish(create_event("DECREMENT", {"product_id": 3}), state)
    assert state["quantities"] == {}


def test_negative_quantity_treated_as_zero(bus):
    state = {**initial_state(), "quantities": {1: 3}}
    state = bus.publish(create_event("SET_QUANTITY", {"product_id": 1, "qty": -4}), state)
    assert state["quantities"] == {}


def test_view_mode_and_sort(bus):
    state = apply_events(
        bus,
        (
            create_event("SET_VIEW_MODE", {"mode": "showcase"}),
            create_event("SET_SORT", {"sort": "price_desc"}),
            create_event("SET_VIEW_MODE", {"mode": "grid3d"}),
            create_event("SET_SORT", {"sort": "random"}),
        ),
        initial_state(),
    )
    assert state["view_mode"] == "showcase"
    assert state["sort"] == "price_desc"


def test_promo_apply_clear_and_cart_clear(bus):
    promo = PromoCode(id=1, code="BANGUN10", discount_percent=Decimal(10), start_date=date(2024, 1, 1), end_date=date(2099, 1, 1))
    state = bus.publish(create_event("APPLY_PROMO", {"promo": promo}), initial_state())
    assert state["promo_code"] is promo
    assert bus.publish(create_event("CLEAR_PROMO"), state)["promo_code"] is None

    state = bus.publish(create_event("SET_QUANTITY", {"product_id": 1, "qty": 1}), state)
    cleared = bus.publish(create_event("CLEAR_CART"), state)
    assert cleared["quantities"] == {}
    assert cleared["promo_code"] is None


def test_toggle_category(bus):
    toggle = create_event("TOGGLE_CATEGORY", {"category_id": 4})
    opened = bus.publish(toggle, initial_state())
    assert 4 in opened["expanded_categories"]
    assert 4 not in bus.publish(toggle, opened)["expanded_categories"]


def test_unknown_event_keeps_state(bus):
    state = initial_state()
    assert bus.publish(create_event("REFUND", {}), state) is state
