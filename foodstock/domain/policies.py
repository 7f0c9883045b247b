"""
Business policies for the reconciliation engine.

This module holds the rules that classify stock levels, size reorder
proposals and gate status transitions for orders and stocktakings.
The functions are pure so the use cases and reports apply exactly the
same rules.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Union

from .errors import InvalidState
from .models import OrderStatus, StocktakingStatus


NOT_APPLICABLE = "N/A"


def is_low_stock(on_hand: Optional[float], min_stock: Optional[float]) -> bool:
    """Tells whether an item is at or below its minimum-stock threshold.

    A product without a configured threshold is never low. A missing
    on-hand value counts as zero (no ledger row).
    """
    if min_stock is None:
        return False
    return float(on_hand or 0.0) <= float(min_stock)


def stock_status(on_hand: Optional[float], min_stock: Optional[float]) -> str:
    """Classifies the stock level of an item.

    Rules:
        - ``min_stock`` is ``None`` → ``'CHECK'``
        - ``on_hand < 0`` → ``'NEGATIVE'``
        - ``on_hand <= min_stock`` → ``'LOW'``
        - otherwise → ``'OK'``

    Args:
        on_hand: Current ledger quantity (``None`` means no row, i.e. zero).
        min_stock: Configured minimum-stock threshold.

    Returns:
        ``'NEGATIVE'``, ``'LOW'``, ``'OK'`` or ``'CHECK'``.
    """
    if min_stock is None:
        return "CHECK"
    qty = float(on_hand or 0.0)
    if qty < 0:
        return "NEGATIVE"
    if is_low_stock(qty, min_stock):
        return "LOW"
    return "OK"


def recommended_order_quantity(
    order_unit: Optional[float],
    min_stock: Optional[float],
    multiplier: float = 2.0,
) -> float:
    """Proposes the quantity to reorder for a low-stock product.

    The configured reorder unit wins; without one (``None`` or zero) the
    proposal is ``min_stock * multiplier``.

    Args:
        order_unit: Reorder unit size from the product master.
        min_stock: Minimum-stock threshold.
        multiplier: Factor applied to ``min_stock`` as fallback.

    Returns:
        The proposed order quantity (0.0 if nothing is configured).
    """
    if order_unit:
        return float(order_unit)
    return float(min_stock or 0.0) * float(multiplier)


# -------------------------
# Status machines
# -------------------------

ORDER_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.ORDERED, OrderStatus.CANCELLED}),
    OrderStatus.ORDERED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# statuses in which order lines may still be attached
ORDER_EDITABLE: FrozenSet[OrderStatus] = frozenset({OrderStatus.DRAFT, OrderStatus.ORDERED})


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    """Converts a raw value into an ``OrderStatus`` or raises ``InvalidState``."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidState(f"unknown order status: {value!r}") from None


def check_order_transition(current: OrderStatus, new: Union[str, OrderStatus]) -> OrderStatus:
    """Validates ``current -> new`` against the transition table.

    Returns:
        The parsed target status.

    Raises:
        InvalidState: unknown status or undefined transition.
    """
    target = parse_order_status(new)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidState(f"order transition {current.value} -> {target.value} is not allowed")
    return target


def ensure_stocktaking_draft(status: StocktakingStatus) -> None:
    if status is not StocktakingStatus.DRAFT:
        raise InvalidState(f"stocktaking is {status.value}; only DRAFT can be changed")


# -------------------------
# Variance
# -------------------------

def difference_rate(difference: float, system_quantity: float) -> Union[float, str]:
    """Percentage difference relative to the system quantity.

    A system quantity of zero (or a negative one) has no meaningful ratio
    and yields ``NOT_APPLICABLE`` instead of dividing by zero.
    """
    if not system_quantity or system_quantity <= 0:
        return NOT_APPLICABLE
    return round(float(difference) / float(system_quantity) * 100.0, 2)


def is_matched(difference: float, tolerance: float = 0.0) -> bool:
    """A count matches when ``|difference| <= tolerance`` (exact by default)."""
    if tolerance <= 0:
        return difference == 0
    return abs(difference) <= tolerance
