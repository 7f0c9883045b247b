# foodstock/usecases/inventory.py
"""
UC: manual correction of one ledger row.

For corrections outside a stocktaking (a miscounted delivery, a quick fix
at the counter). The value overwrites the on-hand quantity; use a
stocktaking when a whole location is recounted.
"""
from __future__ import annotations

from typing import Any, Optional

from foodstock.config import DB_PATH
from foodstock.domain.errors import ValidationError
from foodstock.domain.models import ItemRef
from foodstock.infra.db import transaction
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.logger import log_transaction
from foodstock.usecases.catalog import get_product, get_store, get_wip_item


def set_stock(
    store_id: str,
    item: ItemRef,
    quantity: Any,
    actor: Optional[str] = None,
    db_path: str = DB_PATH,
) -> float:
    """Sets the on-hand quantity of `item` at `store_id`; returns the previous value."""
    data = {"store_id": store_id, "item": str(item), "quantity": quantity, "actor": actor}
    try:
        try:
            qty = float(quantity)
        except (TypeError, ValueError):
            raise ValidationError(f"quantity must be a number: {quantity!r}") from None

        ledger = InventoryLedger(db_path)
        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            if item.is_product:
                get_product(item.item_id, db_path, conn=conn)
            else:
                get_wip_item(item.item_id, db_path, conn=conn)
            previous = ledger.get_quantity(store_id, item, conn=conn)
            ledger.set_quantity(store_id, item, qty, actor=actor, conn=conn)

        log_transaction("set_stock", data, result={"previous": previous, "quantity": qty})
        return previous
    except Exception as e:
        log_transaction("set_stock", data, error=str(e))
        raise
