# foodstock/usecases/production.py
"""
UC: WIP production (ingredient check, record, history).

Flow of `record_production`:
1) Expands the WIP recipe one level, scaled by the produced quantity.
2) Appends the immutable production event.
3) Decrements the raw-material ledger for each Product input.
4) Adds the output to the WIP ledger (dates: last write wins).

Notes:
- The ingredient check is advisory. With `allow_negative_stock` on (the
  default) production may drive raw quantities below zero; with it off,
  any shortage raises `InsufficientStock` and nothing is written.
- WIP inputs are listed by the check but not consumed.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional
import sqlite3

from foodstock.config import DB_PATH, DEFAULTS
from foodstock.domain.errors import InsufficientStock, ValidationError
from foodstock.domain.models import ItemRef, WipProduction
from foodstock.infra.db import transaction
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import ParamsRepo, ProductRepo, WipProductionRepo, new_id
from foodstock.infra.logger import log_production, log_system_event, log_transaction
from foodstock.usecases.catalog import get_store, get_wip_item
from foodstock.usecases.recipes import expand_requirements


def _requirements(
    store_id: str,
    wip_item_id: str,
    batch_quantity: float,
    db_path: str,
    conn: Optional[sqlite3.Connection] = None,
) -> Dict[str, Any]:
    ledger = InventoryLedger(db_path)
    names = {p.id: p.name for p in ProductRepo(db_path).get_all(conn=conn)}

    products: List[Dict[str, Any]] = []
    wip_inputs: List[Dict[str, Any]] = []
    for req in expand_requirements(wip_item_id, batch_quantity, db_path, conn=conn):
        available = ledger.get_quantity(store_id, req.input, conn=conn)
        row = {
            "item_id": req.input.item_id,
            "required_quantity": req.quantity,
            "available_quantity": available,
            "unit": req.unit,
        }
        if req.input.is_product:
            row["product_name"] = names.get(req.input.item_id)
            row["shortage"] = max(0.0, req.quantity - available)
            products.append(row)
        else:
            wip_inputs.append(row)

    return {
        "wip_item_id": wip_item_id,
        "batch_quantity": float(batch_quantity),
        "can_produce": all(r["shortage"] <= 0 for r in products),
        "requirements": products,
        "wip_inputs": wip_inputs,
    }


def check_required_ingredients(
    store_id: str,
    wip_item_id: str,
    batch_quantity: float,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """
    Read-only comparison of a batch's raw requirements against on-hand stock.

    Returns:
        {can_produce, requirements: [{item_id, product_name, required_quantity,
        available_quantity, shortage, unit}], wip_inputs: [...]}
    """
    get_store(store_id, db_path)
    get_wip_item(wip_item_id, db_path)
    result = _requirements(store_id, wip_item_id, batch_quantity, db_path)
    log_production("check", wip_item_id, store_id=store_id, batch=batch_quantity, can_produce=result["can_produce"])
    return result


def record_production(
    store_id: str,
    wip_item_id: str,
    quantity: float,
    unit: str,
    production_date: Optional[str] = None,
    expiry_date: Optional[str] = None,
    employee_id: Optional[str] = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> WipProduction:
    """Records a batch: log entry, raw consumption and WIP output in one transaction."""
    data = {"store_id": store_id, "wip_item_id": wip_item_id, "quantity": quantity, "unit": unit}
    log_system_event("record_production_start", data)
    try:
        if not unit:
            raise ValidationError("unit is required")
        allow_negative = ParamsRepo(db_path).get_bool("allow_negative_stock", DEFAULTS.allow_negative_stock)
        ledger = InventoryLedger(db_path)

        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            wip = get_wip_item(wip_item_id, db_path, conn=conn)
            check = _requirements(store_id, wip_item_id, quantity, db_path, conn=conn)
            if not allow_negative and not check["can_produce"]:
                raise InsufficientStock([r for r in check["requirements"] if r["shortage"] > 0])

            produced_on = production_date or date.today().isoformat()
            if expiry_date is None and wip.shelf_life_days:
                expiry_date = (date.fromisoformat(produced_on[:10]) + timedelta(days=int(wip.shelf_life_days))).isoformat()

            event = WipProduction(
                id=new_id("WP"),
                store_id=store_id,
                wip_item_id=wip_item_id,
                quantity=float(quantity),
                unit=unit,
                production_date=produced_on,
                expiry_date=expiry_date,
                employee_id=employee_id,
                notes=notes,
            )
            WipProductionRepo(db_path).insert(event, conn=conn)

            for req in check["requirements"]:
                ledger.adjust_quantity(
                    store_id, ItemRef.product(req["item_id"]), -req["required_quantity"],
                    actor=employee_id, conn=conn,
                )
                log_production("consume", wip_item_id, product_id=req["item_id"], quantity=req["required_quantity"])

            ledger.record_production_output(
                store_id, wip_item_id, float(quantity), produced_on, expiry_date,
                actor=employee_id, conn=conn,
            )

        log_production("record", wip_item_id, production_id=event.id, store_id=store_id, quantity=quantity)
        log_transaction("record_production", data, result=event.id)
        return event
    except Exception as e:
        log_transaction("record_production", data, error=str(e))
        log_system_event("record_production_error", {**data, "error": str(e)}, level="error")
        raise


def get_production_history(
    store_id: Optional[str] = None,
    wip_item_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[WipProduction]:
    """Production events, oldest first, optionally filtered by location and item."""
    return WipProductionRepo(db_path).history(store_id=store_id, wip_item_id=wip_item_id)
