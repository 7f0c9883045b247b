"""
Inventory ledger: on-hand quantity per (location, item).

The raw-material table (`inventory`) and the WIP table (`wip_inventory`)
share one interface keyed by `ItemRef`. Rows are created lazily on the
first write and never deleted; a missing row reads as zero.

`adjust_quantity` pushes `quantity = quantity + delta` down to SQLite in a
single upsert statement, so concurrent adjustments of the same row cannot
lose updates. Nothing outside this module reads-then-writes a quantity.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional, Tuple

from foodstock.domain.models import (
    InventoryRecord,
    ItemKind,
    ItemRef,
    WipInventoryRecord,
)
from .db import use_connection
from .logger import log_database_operation


_TABLES = {
    ItemKind.PRODUCT: ("inventory", "product_id"),
    ItemKind.WIP: ("wip_inventory", "wip_item_id"),
}


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _table(item: ItemRef) -> Tuple[str, str]:
    return _TABLES[item.kind]


class InventoryLedger:
    def __init__(self, db_path: str):
        self.db_path = db_path

    # --------- reads ---------

    def get_quantity(self, store_id: str, item: ItemRef, conn: Optional[sqlite3.Connection] = None) -> float:
        """On-hand quantity, 0.0 when no row exists."""
        table, col = _table(item)
        with use_connection(self.db_path, conn) as c:
            row = c.execute(
                f"SELECT quantity FROM {table} WHERE store_id = ? AND {col} = ?",
                (store_id, item.item_id),
            ).fetchone()
        return float(row[0]) if row else 0.0

    def get_record(self, store_id: str, item: ItemRef, conn: Optional[sqlite3.Connection] = None):
        table, col = _table(item)
        with use_connection(self.db_path, conn) as c:
            row = c.execute(
                f"SELECT * FROM {table} WHERE store_id = ? AND {col} = ?",
                (store_id, item.item_id),
            ).fetchone()
        if row is None:
            return None
        if item.kind is ItemKind.PRODUCT:
            return InventoryRecord(**dict(row))
        return WipInventoryRecord(**dict(row))

    def list_inventory(self, store_id: Optional[str] = None, conn: Optional[sqlite3.Connection] = None) -> List[InventoryRecord]:
        sql = "SELECT * FROM inventory"
        args: tuple = ()
        if store_id:
            sql += " WHERE store_id = ?"
            args = (store_id,)
        sql += " ORDER BY store_id, product_id"
        with use_connection(self.db_path, conn) as c:
            return [InventoryRecord(**dict(r)) for r in c.execute(sql, args).fetchall()]

    def list_wip_inventory(self, store_id: Optional[str] = None, conn: Optional[sqlite3.Connection] = None) -> List[WipInventoryRecord]:
        sql = "SELECT * FROM wip_inventory"
        args: tuple = ()
        if store_id:
            sql += " WHERE store_id = ?"
            args = (store_id,)
        sql += " ORDER BY store_id, wip_item_id"
        with use_connection(self.db_path, conn) as c:
            return [WipInventoryRecord(**dict(r)) for r in c.execute(sql, args).fetchall()]

    # --------- writes ---------

    def set_quantity(
        self,
        store_id: str,
        item: ItemRef,
        quantity: float,
        actor: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Blind overwrite of the absolute quantity (upsert)."""
        table, col = _table(item)
        with use_connection(self.db_path, conn) as c:
            c.execute(
                f"""
                INSERT INTO {table} (store_id, {col}, quantity, last_updated_by, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(store_id, {col}) DO UPDATE SET
                    quantity=excluded.quantity,
                    last_updated_by=excluded.last_updated_by,
                    updated_at=excluded.updated_at
                """,
                (store_id, item.item_id, float(quantity), actor, _now()),
            )
        log_database_operation(table, "SET", 1, store_id=store_id, item=str(item), quantity=quantity, actor=actor)

    def adjust_quantity(
        self,
        store_id: str,
        item: ItemRef,
        delta: float,
        actor: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> float:
        """
        Atomic `quantity += delta` (upsert; a missing row starts at zero).

        Negative results are allowed: callers decide the stock policy.

        Returns:
            The quantity after the adjustment.
        """
        table, col = _table(item)
        with use_connection(self.db_path, conn) as c:
            c.execute(
                f"""
                INSERT INTO {table} (store_id, {col}, quantity, last_updated_by, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(store_id, {col}) DO UPDATE SET
                    quantity={table}.quantity + excluded.quantity,
                    last_updated_by=excluded.last_updated_by,
                    updated_at=excluded.updated_at
                """,
                (store_id, item.item_id, float(delta), actor, _now()),
            )
            # same connection, still inside the write transaction
            new_qty = self.get_quantity(store_id, item, conn=c)
        log_database_operation(table, "ADJUST", 1, store_id=store_id, item=str(item), delta=delta, quantity=new_qty)
        return new_qty

    def record_production_output(
        self,
        store_id: str,
        wip_item_id: str,
        quantity: float,
        production_date: Optional[str],
        expiry_date: Optional[str],
        actor: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> float:
        """
        Adds produced WIP to the ledger.

        Quantity is additive; production and expiry dates are overwritten
        by the latest event (last write wins).
        """
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO wip_inventory
                    (store_id, wip_item_id, quantity, production_date, expiry_date,
                     last_updated_by, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(store_id, wip_item_id) DO UPDATE SET
                    quantity=wip_inventory.quantity + excluded.quantity,
                    production_date=excluded.production_date,
                    expiry_date=excluded.expiry_date,
                    last_updated_by=excluded.last_updated_by,
                    updated_at=excluded.updated_at
                """,
                (store_id, wip_item_id, float(quantity), production_date, expiry_date, actor, _now()),
            )
            new_qty = self.get_quantity(store_id, ItemRef.wip(wip_item_id), conn=c)
        log_database_operation("wip_inventory", "PRODUCE", 1, store_id=store_id, wip_item_id=wip_item_id, quantity=new_qty)
        return new_qty
