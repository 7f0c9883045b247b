import pytest

from foodstock.domain.errors import InvalidState, ValidationError
from foodstock.domain.models import ItemKind, ItemRef, OrderStatus, StocktakingStatus
from foodstock.domain.policies import (
    NOT_APPLICABLE,
    check_order_transition,
    difference_rate,
    ensure_stocktaking_draft,
    is_low_stock,
    is_matched,
    parse_order_status,
    recommended_order_quantity,
    stock_status,
)


def test_is_low_stock_uses_inclusive_threshold():
    assert is_low_stock(2000, 2000)
    assert is_low_stock(1800, 2000)
    assert not is_low_stock(2000.5, 2000)
    assert is_low_stock(None, 10)        # no ledger row counts as zero
    assert not is_low_stock(0, None)     # no threshold, never low


def test_stock_status():
    assert stock_status(5, None) == "CHECK"
    assert stock_status(-1, 10) == "NEGATIVE"
    assert stock_status(10, 10) == "LOW"
    assert stock_status(11, 10) == "OK"


def test_recommended_order_quantity():
    assert recommended_order_quantity(1000, 500) == 1000.0
    assert recommended_order_quantity(None, 2000) == 4000.0
    assert recommended_order_quantity(0, 2000) == 4000.0
    assert recommended_order_quantity(None, 2000, multiplier=3) == 6000.0
    assert recommended_order_quantity(None, None) == 0.0


@pytest.mark.parametrize(
    "current,target",
    [
        (OrderStatus.DRAFT, "ORDERED"),
        (OrderStatus.DRAFT, "CANCELLED"),
        (OrderStatus.ORDERED, "DELIVERED"),
        (OrderStatus.ORDERED, "cancelled"),
    ],
)
def test_allowed_order_transitions(current, target):
    assert check_order_transition(current, target) is OrderStatus(target.upper())


@pytest.mark.parametrize(
    "current,target",
    [
        (OrderStatus.DRAFT, "DELIVERED"),
        (OrderStatus.DRAFT, "DRAFT"),
        (OrderStatus.ORDERED, "DRAFT"),
        (OrderStatus.DELIVERED, "DRAFT"),
        (OrderStatus.DELIVERED, "CANCELLED"),
        (OrderStatus.CANCELLED, "ORDERED"),
    ],
)
def test_rejected_order_transitions(current, target):
    with pytest.raises(InvalidState):
        check_order_transition(current, target)


def test_unknown_order_status():
    with pytest.raises(InvalidState):
        parse_order_status("SHIPPED")


def test_stocktaking_draft_guard():
    ensure_stocktaking_draft(StocktakingStatus.DRAFT)
    with pytest.raises(InvalidState):
        ensure_stocktaking_draft(StocktakingStatus.CONFIRMED)


def test_difference_rate():
    assert difference_rate(-50, 500) == -10.0
    assert difference_rate(1, 3) == 33.33
    assert difference_rate(200, 0) == NOT_APPLICABLE
    assert difference_rate(5, -10) == NOT_APPLICABLE


def test_is_matched_exact_and_tolerance():
    assert is_matched(0.0)
    assert not is_matched(1e-9)
    assert is_matched(0.5, tolerance=0.5)
    assert not is_matched(-0.6, tolerance=0.5)


def test_item_ref_is_exactly_one_of():
    assert ItemRef.from_columns("I010", None) == ItemRef(ItemKind.PRODUCT, "I010")
    assert ItemRef.from_columns(None, "W002").kind is ItemKind.WIP
    with pytest.raises(ValidationError):
        ItemRef.from_columns("I010", "W002")
    with pytest.raises(ValidationError):
        ItemRef.from_columns(None, None)
    assert ItemRef.wip("W002").to_columns() == {"product_id": None, "wip_item_id": "W002"}
