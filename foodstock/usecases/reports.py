# foodstock/usecases/reports.py
"""
Stock reports:
- inventory status per location (with low-stock flag)
- stock alerts (low-stock rows, most severe first)
- WIP expiring within a window of days
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from foodstock.config import DB_PATH, DEFAULTS
from foodstock.domain.policies import stock_status
from foodstock.infra.db import connect
from foodstock.infra.migrations import apply_migrations
from foodstock.infra.views import create_views
from foodstock.infra.repositories import ParamsRepo
from foodstock.infra.logger import log_database_operation, log_system_event


# ----------------------
# util
# ----------------------

def _prepare(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def _where_store(store_id: Optional[str]):
    if store_id:
        return " WHERE store_id = ?", (store_id,)
    return "", ()


# ----------------------
# 1) Inventory status
# ----------------------

def inventory_status(store_id: Optional[str] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Raw-material ledger rows with `shortage`, `is_low_stock` and `status`."""
    _prepare(db_path)
    where, args = _where_store(store_id)
    with connect(db_path) as c:
        rows = [dict(r) for r in c.execute(
            "SELECT * FROM vw_inventory_status" + where + " ORDER BY store_id, product_id", args
        ).fetchall()]
    for r in rows:
        r["is_low_stock"] = bool(r["is_low_stock"])
        r["status"] = stock_status(r["quantity"], r["min_stock"])
    log_database_operation("vw_inventory_status", "SELECT", len(rows), store_id=store_id)
    return rows


# ----------------------
# 2) Stock alerts
# ----------------------

def stock_alerts(store_id: Optional[str] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Low-stock rows (on hand <= min stock) ordered by shortage, largest first."""
    rows = [r for r in inventory_status(store_id, db_path) if r["is_low_stock"]]
    rows.sort(key=lambda r: (-(r["shortage"] or 0.0), r["store_id"], r["product_id"]))
    log_system_event("stock_alerts", {"store_id": store_id, "alerts": len(rows)})
    return rows


# ----------------------
# 3) Expiring WIP
# ----------------------

def expiring_wip(
    window_days: Optional[int] = None,
    store_id: Optional[str] = None,
    today: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """
    WIP ledger rows with stock whose expiry date falls on or before
    today + `window_days` (already expired rows included, flagged).
    """
    _prepare(db_path)
    if window_days is None:
        window_days = int(ParamsRepo(db_path).get_float("expiring_window_days", DEFAULTS.expiring_window_days))
    ref = date.fromisoformat(today) if today else date.today()
    limit = (ref + timedelta(days=int(window_days))).isoformat()

    where, args = _where_store(store_id)
    where += (" AND " if where else " WHERE ") + "expiry_date IS NOT NULL AND expiry_date <= ? AND quantity > 0"
    with connect(db_path) as c:
        rows = [dict(r) for r in c.execute(
            "SELECT * FROM vw_wip_inventory_status" + where + " ORDER BY expiry_date, store_id, wip_item_id",
            (*args, limit),
        ).fetchall()]
    for r in rows:
        r["days_left"] = (date.fromisoformat(r["expiry_date"]) - ref).days
        r["expired"] = r["days_left"] < 0
    log_system_event("expiring_wip", {"store_id": store_id, "window_days": window_days, "rows": len(rows)})
    return rows
