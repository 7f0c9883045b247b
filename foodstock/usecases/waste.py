# foodstock/usecases/waste.py
"""
UC: waste (loss) recording and summary.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from foodstock.config import DB_PATH
from foodstock.domain.errors import ValidationError
from foodstock.domain.models import ItemRef, Waste
from foodstock.infra.db import transaction
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import WasteRepo, new_id
from foodstock.infra.logger import log_production, log_transaction
from foodstock.usecases.catalog import get_product, get_store, get_wip_item


UNCLASSIFIED = "UNCLASSIFIED"


def record_waste(
    store_id: str,
    item: ItemRef,
    quantity: float,
    reason: Optional[str] = None,
    recorded_by: Optional[str] = None,
    waste_date: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Waste:
    """Appends a waste row and decrements the ledger by `quantity`, atomically."""
    data = {"store_id": store_id, "item": str(item), "quantity": quantity, "reason": reason}
    try:
        if quantity is None or float(quantity) <= 0:
            raise ValidationError("waste quantity must be positive")
        w = Waste(
            id=new_id("WS"),
            store_id=store_id,
            item=item,
            quantity=float(quantity),
            waste_date=waste_date or date.today().isoformat(),
            reason=(reason or "").strip() or None,
            recorded_by=recorded_by,
        )
        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            if item.is_product:
                get_product(item.item_id, db_path, conn=conn)
            else:
                get_wip_item(item.item_id, db_path, conn=conn)
            WasteRepo(db_path).insert(w, conn=conn)
            InventoryLedger(db_path).adjust_quantity(store_id, item, -w.quantity, actor=recorded_by, conn=conn)

        log_production("waste", item.item_id, store_id=store_id, quantity=w.quantity, reason=w.reason)
        log_transaction("record_waste", data, result=w.id)
        return w
    except Exception as e:
        log_transaction("record_waste", data, error=str(e))
        raise


def list_waste(
    store_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Waste]:
    """Waste rows, newest first; `start`/`end` are inclusive ISO dates."""
    return WasteRepo(db_path).list(store_id=store_id, start=start, end=end)


def waste_summary(
    start: Optional[str] = None,
    end: Optional[str] = None,
    store_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Totals over the period; rows without a reason count as UNCLASSIFIED."""
    rows = list_waste(store_id=store_id, start=start, end=end, db_path=db_path)
    reason_counts: Dict[str, int] = {}
    for w in rows:
        key = w.reason or UNCLASSIFIED
        reason_counts[key] = reason_counts.get(key, 0) + 1
    return {
        "total_quantity": sum(w.quantity for w in rows),
        "waste_count": len(rows),
        "reason_counts": reason_counts,
    }
