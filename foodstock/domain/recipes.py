"""
Recipe graph expansion.

A recipe is the set of RecipeLines hanging off one producible entity
(a Menu or a WIP item). Each line gives the per-unit quantity of one
input, either a raw Product or another WIP item.

All functions here are pure: the caller supplies the recipe lines (or a
``lines_for`` lookup) and nothing is read or written elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .errors import RecipeCycleError, ValidationError
from .models import ItemKind, ItemRef, RecipeLine


LinesFor = Callable[[str], Sequence[RecipeLine]]


@dataclass(frozen=True)
class Requirement:
    """Quantity of one input needed for a batch."""
    input: ItemRef
    quantity: float
    unit: str


def _check_batch(batch_quantity: float) -> float:
    try:
        batch = float(batch_quantity)
    except (TypeError, ValueError):
        raise ValidationError(f"batch quantity must be a number: {batch_quantity!r}") from None
    if batch <= 0:
        raise ValidationError("batch quantity must be positive")
    return batch


def expand(lines: Iterable[RecipeLine], batch_quantity: float) -> List[Requirement]:
    """Scales each direct recipe line by the batch multiplier.

    Only one level is expanded: a WIP input is returned as a WIP
    requirement, not replaced by its own sub-recipe. A recipe with no
    lines yields an empty list.

    Parameters
    ----------
    lines: iterable of RecipeLine
        Direct lines of the producible entity.
    batch_quantity: float
        Number of units to produce (> 0).
    """
    batch = _check_batch(batch_quantity)
    return [Requirement(line.input, line.quantity * batch, line.unit) for line in lines]


def expand_transitive(wip_item_id: str, batch_quantity: float, lines_for: LinesFor) -> List[Requirement]:
    """Expands a WIP item down to raw Products.

    WIP inputs are replaced by their own recipes scaled by the required
    WIP quantity; Product requirements are aggregated per
    ``(product, unit)`` keeping first-seen order.

    Raises
    ------
    RecipeCycleError
        If the WIP chain revisits an item already on the current path.
    """
    batch = _check_batch(batch_quantity)
    totals: Dict[Tuple[str, str], float] = {}

    def walk(wip_id: str, multiplier: float, path: Tuple[str, ...]) -> None:
        if wip_id in path:
            raise RecipeCycleError(f"recipe cycle: {' -> '.join(path + (wip_id,))}")
        for line in lines_for(wip_id):
            qty = line.quantity * multiplier
            if line.input.kind is ItemKind.WIP:
                walk(line.input.item_id, qty, path + (wip_id,))
            else:
                key = (line.input.item_id, line.unit)
                totals[key] = totals.get(key, 0.0) + qty

    walk(wip_item_id, batch, ())
    return [Requirement(ItemRef.product(pid), qty, unit) for (pid, unit), qty in totals.items()]


def find_cycle(start_wip_id: str, lines_for: LinesFor) -> Optional[List[str]]:
    """Returns the first WIP cycle reachable from ``start_wip_id`` or ``None``."""
    done: Set[str] = set()

    def visit(wip_id: str, path: List[str]) -> Optional[List[str]]:
        if wip_id in path:
            return path[path.index(wip_id):] + [wip_id]
        if wip_id in done:
            return None
        path.append(wip_id)
        for line in lines_for(wip_id):
            if line.input.kind is ItemKind.WIP:
                found = visit(line.input.item_id, path)
                if found:
                    return found
        path.pop()
        done.add(wip_id)
        return None

    return visit(start_wip_id, [])


def would_create_cycle(parent_wip_id: str, used_wip_id: str, lines_for: LinesFor) -> bool:
    """Tells whether adding the edge ``parent -> used`` closes a loop.

    The edge loops when ``parent`` is reachable from ``used`` (or they
    are the same item).
    """
    if parent_wip_id == used_wip_id:
        return True
    seen: Set[str] = set()
    stack = [used_wip_id]
    while stack:
        wip_id = stack.pop()
        if wip_id == parent_wip_id:
            return True
        if wip_id in seen:
            continue
        seen.add(wip_id)
        stack.extend(l.input.item_id for l in lines_for(wip_id) if l.input.kind is ItemKind.WIP)
    return False


def recipe_cost(
    lines: Iterable[RecipeLine],
    unit_price_for: Callable[[str], Optional[float]],
    lines_for: LinesFor,
    path: Tuple[str, ...] = (),
) -> float:
    """Cost of goods for one unit of a producible entity.

    Product inputs cost ``quantity * unit_price`` (a missing price counts
    as zero); WIP inputs cost ``quantity`` times the unit cost of their own
    recipe.
    """
    total = 0.0
    for line in lines:
        if line.input.kind is ItemKind.PRODUCT:
            total += line.quantity * float(unit_price_for(line.input.item_id) or 0.0)
            continue
        wip_id = line.input.item_id
        if wip_id in path:
            raise RecipeCycleError(f"recipe cycle: {' -> '.join(path + (wip_id,))}")
        sub = recipe_cost(lines_for(wip_id), unit_price_for, lines_for, path + (wip_id,))
        total += line.quantity * sub
    return total
