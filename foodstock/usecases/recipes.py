# foodstock/usecases/recipes.py
"""
UC: recipe maintenance and expansion.

Functions:
- add_recipe_line(parent, input, quantity, unit)
- get_recipe(parent)
- expand_requirements(wip_item_id, batch)       one level
- expand_raw_requirements(wip_item_id, batch)   down to raw products
- recipe_cost(parent)                           cost of goods per unit
- find_recipe_cycles()                          integrity check of the recipe book
"""
from __future__ import annotations

from typing import Dict, List, Optional
import sqlite3

from foodstock.config import DB_PATH
from foodstock.domain import recipes as graph
from foodstock.domain.errors import RecipeCycleError, ValidationError
from foodstock.domain.models import ItemRef, ParentKind, ParentRef, RecipeLine
from foodstock.infra.db import transaction
from foodstock.infra.repositories import ProductRepo, RecipeRepo, new_id
from foodstock.infra.logger import log_system_event, log_transaction
from foodstock.usecases.catalog import get_menu, get_product, get_wip_item


Conn = Optional[sqlite3.Connection]


def _lines_for(db_path: str, conn: Conn = None) -> graph.LinesFor:
    repo = RecipeRepo(db_path)
    return lambda wip_id: repo.lines_for_wip(wip_id, conn=conn)


def _ensure_parent(parent: ParentRef, db_path: str, conn: Conn) -> None:
    if parent.kind is ParentKind.MENU:
        get_menu(parent.parent_id, db_path, conn=conn)
    else:
        get_wip_item(parent.parent_id, db_path, conn=conn)


def _ensure_input(item: ItemRef, db_path: str, conn: Conn) -> None:
    if item.is_product:
        get_product(item.item_id, db_path, conn=conn)
    else:
        get_wip_item(item.item_id, db_path, conn=conn)


def add_recipe_line(
    parent: ParentRef,
    input: ItemRef,
    quantity: float,
    unit: str,
    db_path: str = DB_PATH,
) -> RecipeLine:
    """Attaches one input to a Menu or WIP recipe, rejecting WIP cycles."""
    data = {"parent": str(parent), "input": str(input), "quantity": quantity, "unit": unit}
    try:
        if quantity is None or float(quantity) <= 0:
            raise ValidationError("recipe quantity must be positive")
        if not unit:
            raise ValidationError("recipe unit is required")

        with transaction(db_path) as conn:
            _ensure_parent(parent, db_path, conn)
            _ensure_input(input, db_path, conn)
            if parent.kind is ParentKind.WIP and not input.is_product:
                if graph.would_create_cycle(parent.parent_id, input.item_id, _lines_for(db_path, conn)):
                    raise RecipeCycleError(
                        f"adding {input.item_id} to {parent.parent_id} would create a recipe cycle"
                    )
            line = RecipeLine(new_id("RC"), parent, input, float(quantity), unit)
            RecipeRepo(db_path).insert(line, conn=conn)

        log_transaction("add_recipe_line", data, result=line.id)
        return line
    except Exception as e:
        log_transaction("add_recipe_line", data, error=str(e))
        raise


def get_recipe(parent: ParentRef, db_path: str = DB_PATH) -> List[RecipeLine]:
    _ensure_parent(parent, db_path, None)
    return RecipeRepo(db_path).lines_for(parent)


def expand_requirements(
    wip_item_id: str,
    batch_quantity: float,
    db_path: str = DB_PATH,
    conn: Conn = None,
) -> List[graph.Requirement]:
    """Direct inputs of a WIP item scaled by the batch (one level)."""
    return graph.expand(RecipeRepo(db_path).lines_for_wip(wip_item_id, conn=conn), batch_quantity)


def expand_raw_requirements(wip_item_id: str, batch_quantity: float, db_path: str = DB_PATH) -> List[graph.Requirement]:
    """Raw products needed for a batch, WIP inputs expanded recursively."""
    get_wip_item(wip_item_id, db_path)
    return graph.expand_transitive(wip_item_id, batch_quantity, _lines_for(db_path))


def recipe_cost(parent: ParentRef, db_path: str = DB_PATH) -> Dict[str, float]:
    """Cost of goods for one unit of a Menu or WIP item."""
    _ensure_parent(parent, db_path, None)
    repo = RecipeRepo(db_path)
    prices = {p.id: p.unit_price for p in ProductRepo(db_path).get_all()}
    path = (parent.parent_id,) if parent.kind is ParentKind.WIP else ()
    cost = graph.recipe_cost(repo.lines_for(parent), prices.get, _lines_for(db_path), path)
    result = {"unit_cost": round(cost, 4)}

    if parent.kind is ParentKind.MENU:
        price = get_menu(parent.parent_id, db_path).price
        result["price"] = float(price)
        result["cost_rate"] = round(cost / float(price) * 100.0, 2) if price else None
    log_system_event("recipe_cost", {"parent": parent.parent_id, **result})
    return result


def find_recipe_cycles(db_path: str = DB_PATH) -> List[List[str]]:
    """
    Integrity check over the whole recipe book: every distinct WIP loop.

    `add_recipe_line` refuses cycles, so anything found here was written
    to the table by other means (direct SQL, a restored backup).
    """
    by_wip: Dict[str, List[RecipeLine]] = {}
    for line in RecipeRepo(db_path).get_all():
        if line.parent.kind is ParentKind.WIP:
            by_wip.setdefault(line.parent.parent_id, []).append(line)

    cycles: List[List[str]] = []
    seen = set()
    for wip_id in sorted(by_wip):
        cycle = graph.find_cycle(wip_id, lambda w: by_wip.get(w, []))
        if cycle and frozenset(cycle) not in seen:
            seen.add(frozenset(cycle))
            cycles.append(cycle)
    if cycles:
        log_system_event("recipe_cycles", {"cycles": [" -> ".join(c) for c in cycles]}, level="error")
    return cycles
