# foodstock/infra/repositories.py
"""
Repositories (DAO) for SQLite access.

Classes:
- ParamsRepo
- StoreRepo, CategoryRepo, ProductRepo, WipItemRepo, MenuRepo   (catalog)
- RecipeRepo
- OrderRepo
- StocktakingRepo
- WipProductionRepo
- WasteRepo
- PurchaseRepo, SaleRepo   (history)

Every method accepting `conn` joins the caller's transaction when one is
given; otherwise it opens its own short connection.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type
from uuid import uuid4

from foodstock.domain.models import (
    Category,
    Menu,
    Order,
    OrderLine,
    OrderStatus,
    ParentKind,
    ParentRef,
    Product,
    Purchase,
    RecipeLine,
    Sale,
    Stocktaking,
    StocktakingDetail,
    Store,
    Waste,
    WipItem,
    WipProduction,
)
from .db import connect, use_connection


Conn = Optional[sqlite3.Connection]


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _period(
    date_col: str,
    store_id: Optional[str],
    start: Optional[str],
    end: Optional[str],
) -> Tuple[str, List[Any]]:
    """WHERE clause for a store and an inclusive ISO date range."""
    where, args = [], []
    if store_id:
        where.append("store_id = ?")
        args.append(store_id)
    if start:
        where.append(f"date({date_col}) >= date(?)")
        args.append(start)
    if end:
        where.append(f"date({date_col}) <= date(?)")
        args.append(end)
    return (" WHERE " + " AND ".join(where)) if where else "", args


def new_id(prefix: str) -> str:
    """Opaque identifier, e.g. ``ORD-3F9A0C1D22B4``."""
    return f"{prefix}-{uuid4().hex[:12].upper()}"


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT value FROM params WHERE key = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        v = self.get(key, None)
        if v is None:
            return default
        s = str(v).strip().lower()
        if s in {"1", "true", "t", "yes", "y", "on"}:
            return True
        if s in {"0", "false", "f", "no", "n", "off"}:
            return False
        return default


# -------------------------
# Catalog
# -------------------------

class _CatalogRepo:
    """Upsert/lookup for one reference table whose columns mirror `model`."""

    table: str = ""
    model: Type = object
    order_by: str = "id"

    def __init__(self, db_path: str):
        self.db_path = db_path

    @property
    def columns(self) -> List[str]:
        return list(self.model.__dataclass_fields__.keys())

    def upsert(self, rows: Iterable[Any]) -> int:
        cols = self.columns
        rows = [self.model(**_as_dict(r)) for r in rows]
        updates = ",\n".join(f"{c}=excluded.{c}" for c in cols if c != "id")
        sql = f"""
            INSERT INTO {self.table} ({", ".join(cols)})
            VALUES ({", ".join(":" + c for c in cols)})
            ON CONFLICT(id) DO UPDATE SET
            {updates}
        """
        with connect(self.db_path) as c:
            c.executemany(sql, [asdict(r) for r in rows])
        return len(rows)

    def get(self, key: str, conn: Conn = None):
        with use_connection(self.db_path, conn) as c:
            row = c.execute(f"SELECT * FROM {self.table} WHERE id = ?", (key,)).fetchone()
        return self._build(row) if row else None

    def get_all(self, conn: Conn = None) -> List[Any]:
        with use_connection(self.db_path, conn) as c:
            rows = c.execute(f"SELECT * FROM {self.table} ORDER BY {self.order_by}").fetchall()
        return [self._build(r) for r in rows]

    def _build(self, row: sqlite3.Row):
        data = dict(row)
        return self.model(**{k: data[k] for k in self.columns})


class StoreRepo(_CatalogRepo):
    table = "stores"
    model = Store


class CategoryRepo(_CatalogRepo):
    table = "categories"
    model = Category
    order_by = "type, display_order, id"


class ProductRepo(_CatalogRepo):
    table = "products"
    model = Product

    def low_stock_at(self, store_id: str, conn: Conn = None) -> List[Dict[str, Any]]:
        """
        Active products whose on-hand quantity at `store_id` is <= min_stock.

        A product without a ledger row counts as zero on hand. Rows are
        ordered by shortage, most severe first.
        """
        with use_connection(self.db_path, conn) as c:
            cur = c.execute(
                """
                SELECT
                    p.id            AS product_id,
                    p.name          AS product_name,
                    p.unit,
                    p.unit_price,
                    p.min_stock,
                    p.order_unit,
                    p.supplier_id,
                    COALESCE(i.quantity, 0.0) AS current_quantity
                FROM products p
                LEFT JOIN inventory i
                    ON i.product_id = p.id AND i.store_id = ?
                WHERE p.is_active = 1
                  AND p.min_stock IS NOT NULL
                  AND COALESCE(i.quantity, 0.0) <= p.min_stock
                ORDER BY (p.min_stock - COALESCE(i.quantity, 0.0)) DESC, p.id
                """,
                (store_id,),
            )
            return [dict(r) for r in cur.fetchall()]


class WipItemRepo(_CatalogRepo):
    table = "wip_items"
    model = WipItem


class MenuRepo(_CatalogRepo):
    table = "menus"
    model = Menu


# -------------------------
# Recipes
# -------------------------

class RecipeRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, line: RecipeLine, conn: Conn = None) -> None:
        payload = {
            "id": line.id,
            **line.parent.to_columns(),
            "product_id": line.input.item_id if line.input.is_product else None,
            "used_wip_item_id": None if line.input.is_product else line.input.item_id,
            "quantity": line.quantity,
            "unit": line.unit,
        }
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO recipes
                    (id, menu_id, wip_item_id, product_id, used_wip_item_id, quantity, unit)
                VALUES
                    (:id, :menu_id, :wip_item_id, :product_id, :used_wip_item_id, :quantity, :unit)
                """,
                payload,
            )

    def lines_for(self, parent: ParentRef, conn: Conn = None) -> List[RecipeLine]:
        col = "menu_id" if parent.kind is ParentKind.MENU else "wip_item_id"
        with use_connection(self.db_path, conn) as c:
            rows = c.execute(
                f"SELECT * FROM recipes WHERE {col} = ? ORDER BY rowid",
                (parent.parent_id,),
            ).fetchall()
        return [RecipeLine.from_row(r) for r in rows]

    def lines_for_wip(self, wip_item_id: str, conn: Conn = None) -> List[RecipeLine]:
        return self.lines_for(ParentRef.wip(wip_item_id), conn=conn)

    def get_all(self, conn: Conn = None) -> List[RecipeLine]:
        with use_connection(self.db_path, conn) as c:
            rows = c.execute("SELECT * FROM recipes ORDER BY menu_id, wip_item_id, rowid").fetchall()
        return [RecipeLine.from_row(r) for r in rows]


# -------------------------
# Orders
# -------------------------

class OrderRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def next_order_number(self, year: int, conn: Conn = None) -> str:
        """`ORD-<year>-<seq>`; call inside the write transaction that inserts it."""
        prefix = f"ORD-{year}-"
        with use_connection(self.db_path, conn) as c:
            row = c.execute(
                "SELECT order_number FROM orders WHERE order_number LIKE ? "
                "ORDER BY order_number DESC LIMIT 1",
                (prefix + "%",),
            ).fetchone()
        seq = int(row[0][len(prefix):]) + 1 if row else 1
        return f"{prefix}{seq:06d}"

    def insert(self, order: Order, conn: Conn = None) -> None:
        payload = {
            "id": order.id,
            "order_number": order.order_number,
            "store_id": order.store_id,
            "supplier_id": order.supplier_id,
            "order_date": order.order_date,
            "expected_delivery_date": order.expected_delivery_date,
            "actual_delivery_date": order.actual_delivery_date,
            "status": order.status.value,
            "is_auto_order": int(order.is_auto_order),
            "employee_id": order.employee_id,
            "total_amount": order.total_amount,
            "notes": order.notes,
            "now": _now(),
        }
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO orders
                    (id, order_number, store_id, supplier_id, order_date,
                     expected_delivery_date, actual_delivery_date, status,
                     is_auto_order, employee_id, total_amount, notes,
                     created_at, updated_at)
                VALUES
                    (:id, :order_number, :store_id, :supplier_id, :order_date,
                     :expected_delivery_date, :actual_delivery_date, :status,
                     :is_auto_order, :employee_id, :total_amount, :notes,
                     :now, :now)
                """,
                payload,
            )

    def get(self, order_id: str, conn: Conn = None) -> Optional[Order]:
        with use_connection(self.db_path, conn) as c:
            row = c.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
        return Order.from_row(row) if row else None

    def list(self, store_id: Optional[str] = None, status: Optional[OrderStatus] = None, conn: Conn = None) -> List[Order]:
        where, args = [], []
        if store_id:
            where.append("store_id = ?")
            args.append(store_id)
        if status:
            where.append("status = ?")
            args.append(status.value)
        sql = "SELECT * FROM orders"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY order_date, order_number"
        with use_connection(self.db_path, conn) as c:
            return [Order.from_row(r) for r in c.execute(sql, args).fetchall()]

    def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        actual_delivery_date: Optional[str] = None,
        conn: Conn = None,
    ) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                UPDATE orders
                SET status = ?,
                    actual_delivery_date = COALESCE(?, actual_delivery_date),
                    updated_at = ?
                WHERE id = ?
                """,
                (status.value, actual_delivery_date, _now(), order_id),
            )

    def recompute_total(self, order_id: str, conn: Conn = None) -> float:
        """Full recompute of total_amount from all lines (never incremental)."""
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                UPDATE orders
                SET total_amount = (
                        SELECT COALESCE(SUM(amount), 0.0)
                        FROM order_lines WHERE order_id = orders.id
                    ),
                    updated_at = ?
                WHERE id = ?
                """,
                (_now(), order_id),
            )
            row = c.execute("SELECT total_amount FROM orders WHERE id = ?", (order_id,)).fetchone()
        return float(row[0]) if row else 0.0

    # --------- lines ---------

    def insert_line(self, line: OrderLine, conn: Conn = None) -> None:
        payload = {**asdict(line), "now": _now()}
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO order_lines
                    (id, order_id, product_id, quantity, unit, unit_price, amount,
                     received_quantity, notes, created_at, updated_at)
                VALUES
                    (:id, :order_id, :product_id, :quantity, :unit, :unit_price, :amount,
                     :received_quantity, :notes, :now, :now)
                """,
                payload,
            )

    def lines(self, order_id: str, conn: Conn = None) -> List[OrderLine]:
        with use_connection(self.db_path, conn) as c:
            rows = c.execute(
                "SELECT * FROM order_lines WHERE order_id = ? ORDER BY rowid", (order_id,)
            ).fetchall()
        return [OrderLine.from_row(r) for r in rows]

    def set_received(self, line_id: str, quantity: float, conn: Conn = None) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                "UPDATE order_lines SET received_quantity = ?, updated_at = ? WHERE id = ?",
                (float(quantity), _now(), line_id),
            )


# -------------------------
# Stocktaking
# -------------------------

class StocktakingRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, st: Stocktaking, conn: Conn = None) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO stocktakings
                    (id, store_id, stocktaking_date, status, employee_id, confirmed_at, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (st.id, st.store_id, st.stocktaking_date, st.status.value,
                 st.employee_id, st.confirmed_at, st.notes, _now()),
            )

    def get(self, stocktaking_id: str, conn: Conn = None) -> Optional[Stocktaking]:
        with use_connection(self.db_path, conn) as c:
            row = c.execute("SELECT * FROM stocktakings WHERE id = ?", (stocktaking_id,)).fetchone()
        return Stocktaking.from_row(row) if row else None

    def list(self, store_id: Optional[str] = None, conn: Conn = None) -> List[Stocktaking]:
        sql = "SELECT * FROM stocktakings"
        args: Sequence[Any] = ()
        if store_id:
            sql += " WHERE store_id = ?"
            args = (store_id,)
        sql += " ORDER BY stocktaking_date, created_at"
        with use_connection(self.db_path, conn) as c:
            return [Stocktaking.from_row(r) for r in c.execute(sql, args).fetchall()]

    def mark_confirmed(self, stocktaking_id: str, confirmed_at: str, conn: Conn = None) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                "UPDATE stocktakings SET status = 'CONFIRMED', confirmed_at = ? WHERE id = ?",
                (confirmed_at, stocktaking_id),
            )

    # --------- details ---------

    def insert_detail(self, d: StocktakingDetail, conn: Conn = None) -> None:
        cols = d.item.to_columns()
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO stocktaking_details
                    (id, stocktaking_id, product_id, wip_item_id, system_quantity,
                     actual_quantity, difference, unit, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (d.id, d.stocktaking_id, cols["product_id"], cols["wip_item_id"],
                 d.system_quantity, d.actual_quantity, d.difference, d.unit, d.notes, _now()),
            )

    def details(self, stocktaking_id: str, conn: Conn = None) -> List[StocktakingDetail]:
        with use_connection(self.db_path, conn) as c:
            rows = c.execute(
                "SELECT * FROM stocktaking_details WHERE stocktaking_id = ? ORDER BY rowid",
                (stocktaking_id,),
            ).fetchall()
        return [StocktakingDetail.from_row(r) for r in rows]

    def get_detail(self, detail_id: str, conn: Conn = None) -> Optional[StocktakingDetail]:
        with use_connection(self.db_path, conn) as c:
            row = c.execute("SELECT * FROM stocktaking_details WHERE id = ?", (detail_id,)).fetchone()
        return StocktakingDetail.from_row(row) if row else None

    def update_detail_count(
        self,
        detail_id: str,
        actual_quantity: float,
        difference: float,
        notes: Optional[str],
        conn: Conn = None,
    ) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                UPDATE stocktaking_details
                SET actual_quantity = ?, difference = ?, notes = COALESCE(?, notes)
                WHERE id = ?
                """,
                (float(actual_quantity), float(difference), notes, detail_id),
            )


# -------------------------
# Production log
# -------------------------

class WipProductionRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, p: WipProduction, conn: Conn = None) -> None:
        payload = {**asdict(p), "now": _now()}
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO wip_productions
                    (id, store_id, wip_item_id, quantity, unit, production_date,
                     expiry_date, employee_id, notes, created_at)
                VALUES
                    (:id, :store_id, :wip_item_id, :quantity, :unit, :production_date,
                     :expiry_date, :employee_id, :notes, :now)
                """,
                payload,
            )

    def history(self, store_id: Optional[str] = None, wip_item_id: Optional[str] = None, conn: Conn = None) -> List[WipProduction]:
        where, args = [], []
        if store_id:
            where.append("store_id = ?")
            args.append(store_id)
        if wip_item_id:
            where.append("wip_item_id = ?")
            args.append(wip_item_id)
        sql = "SELECT * FROM wip_productions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY production_date, rowid"
        with use_connection(self.db_path, conn) as c:
            return [WipProduction.from_row(r) for r in c.execute(sql, args).fetchall()]


# -------------------------
# Waste log
# -------------------------

class WasteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, w: Waste, conn: Conn = None) -> None:
        cols = w.item.to_columns()
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO waste
                    (id, store_id, product_id, wip_item_id, quantity, reason,
                     waste_date, recorded_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (w.id, w.store_id, cols["product_id"], cols["wip_item_id"], w.quantity,
                 w.reason, w.waste_date, w.recorded_by, _now()),
            )

    def list(
        self,
        store_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        conn: Conn = None,
    ) -> List[Waste]:
        where, args = _period("waste_date", store_id, start, end)
        sql = "SELECT * FROM waste" + where + " ORDER BY waste_date DESC, rowid DESC"
        with use_connection(self.db_path, conn) as c:
            return [Waste.from_row(r) for r in c.execute(sql, args).fetchall()]


# -------------------------
# Purchase / sales history
# -------------------------

class PurchaseRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, p: Purchase, conn: Conn = None) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO purchases
                    (id, store_id, product_id, quantity, unit_price, total_amount,
                     purchase_date, supplier_id, invoice_number, order_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (p.id, p.store_id, p.product_id, p.quantity, p.unit_price, p.total_amount,
                 p.purchase_date, p.supplier_id, p.invoice_number, p.order_id, _now()),
            )

    def list(
        self,
        store_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        conn: Conn = None,
    ) -> List[Purchase]:
        where, args = _period("purchase_date", store_id, start, end)
        sql = "SELECT * FROM purchases" + where + " ORDER BY purchase_date DESC, rowid DESC"
        with use_connection(self.db_path, conn) as c:
            return [Purchase.from_row(r) for r in c.execute(sql, args).fetchall()]


class SaleRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, s: Sale, conn: Conn = None) -> None:
        with use_connection(self.db_path, conn) as c:
            c.execute(
                """
                INSERT INTO sales
                    (id, store_id, menu_id, quantity, amount, sale_date, pos_transaction_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (s.id, s.store_id, s.menu_id, s.quantity, s.amount, s.sale_date, s.pos_transaction_id, _now()),
            )

    def list(
        self,
        store_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        conn: Conn = None,
    ) -> List[Sale]:
        where, args = _period("sale_date", store_id, start, end)
        sql = "SELECT * FROM sales" + where + " ORDER BY sale_date, rowid"
        with use_connection(self.db_path, conn) as c:
            return [Sale.from_row(r) for r in c.execute(sql, args).fetchall()]

    def totals_by_menu(
        self,
        store_id: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        conn: Conn = None,
    ) -> List[Dict[str, Any]]:
        """Quantity and amount per menu over the period, best sellers first."""
        where, args = _period("s.sale_date", None, start, end)
        if store_id:
            where += (" AND " if where else " WHERE ") + "s.store_id = ?"
            args.append(store_id)
        sql = f"""
            SELECT s.menu_id, m.name AS menu_name,
                   SUM(s.quantity) AS quantity, SUM(s.amount) AS amount
            FROM sales s
            LEFT JOIN menus m ON m.id = s.menu_id
            {where}
            GROUP BY s.menu_id, m.name
            ORDER BY amount DESC, s.menu_id
        """
        with use_connection(self.db_path, conn) as c:
            return [dict(r) for r in c.execute(sql, args).fetchall()]
