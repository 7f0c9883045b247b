"""
Schema migrations driven by PRAGMA user_version.

V1: catalog, recipes, ledgers, procurement, stocktaking, production
V2: waste log and the stocktaking notes column
V3: purchase and sales history
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # K/V parameters
    """
    CREATE TABLE IF NOT EXISTS params (
        key TEXT PRIMARY KEY,
        value TEXT
    );
    """,
    # Locations
    """
    CREATE TABLE IF NOT EXISTS stores (
        id TEXT PRIMARY KEY,                 -- S001, K001, W001
        name TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'STORE'
            CHECK (type IN ('STORE', 'KITCHEN', 'WAREHOUSE')),
        address TEXT,
        phone TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('MENU', 'INGREDIENT', 'WIP')),
        parent_id TEXT,
        display_order INTEGER NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS menus (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        category_id TEXT REFERENCES categories(id),
        price REAL NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1
    );
    """,
    # Raw materials
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,                 -- I001, I002
        name TEXT NOT NULL,
        jan_code TEXT,
        category_id TEXT REFERENCES categories(id),
        unit TEXT NOT NULL,                  -- g, ml, pc
        lot_size REAL,
        lot_unit TEXT,
        unit_price REAL,
        supplier_id TEXT,
        min_stock REAL,
        order_unit REAL,
        storage_location TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS wip_items (
        id TEXT PRIMARY KEY,                 -- W001, W002
        name TEXT NOT NULL,
        category_id TEXT REFERENCES categories(id),
        unit TEXT NOT NULL,
        shelf_life_days INTEGER,
        production_location TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    );
    """,
    # Recipe edges: exactly one parent and exactly one input
    """
    CREATE TABLE IF NOT EXISTS recipes (
        id TEXT PRIMARY KEY,
        menu_id TEXT REFERENCES menus(id),
        wip_item_id TEXT REFERENCES wip_items(id),
        product_id TEXT REFERENCES products(id),
        used_wip_item_id TEXT REFERENCES wip_items(id),
        quantity REAL NOT NULL,
        unit TEXT NOT NULL,
        CHECK ((menu_id IS NULL) <> (wip_item_id IS NULL)),
        CHECK ((product_id IS NULL) <> (used_wip_item_id IS NULL))
    );
    """,
    # Raw-material ledger
    """
    CREATE TABLE IF NOT EXISTS inventory (
        store_id TEXT NOT NULL REFERENCES stores(id),
        product_id TEXT NOT NULL REFERENCES products(id),
        quantity REAL NOT NULL DEFAULT 0,
        last_updated_by TEXT,
        updated_at TEXT,
        PRIMARY KEY (store_id, product_id)
    );
    """,
    # WIP ledger
    """
    CREATE TABLE IF NOT EXISTS wip_inventory (
        store_id TEXT NOT NULL REFERENCES stores(id),
        wip_item_id TEXT NOT NULL REFERENCES wip_items(id),
        quantity REAL NOT NULL DEFAULT 0,
        production_date TEXT,
        expiry_date TEXT,
        last_updated_by TEXT,
        updated_at TEXT,
        PRIMARY KEY (store_id, wip_item_id)
    );
    """,
    # Purchase orders
    """
    CREATE TABLE IF NOT EXISTS orders (
        id TEXT PRIMARY KEY,
        order_number TEXT NOT NULL UNIQUE,
        store_id TEXT NOT NULL REFERENCES stores(id),
        supplier_id TEXT,
        order_date TEXT NOT NULL,
        expected_delivery_date TEXT,
        actual_delivery_date TEXT,
        status TEXT NOT NULL DEFAULT 'DRAFT'
            CHECK (status IN ('DRAFT', 'ORDERED', 'DELIVERED', 'CANCELLED')),
        is_auto_order INTEGER NOT NULL DEFAULT 0,
        employee_id TEXT,
        total_amount REAL NOT NULL DEFAULT 0,
        notes TEXT,
        created_at TEXT,
        updated_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS order_lines (
        id TEXT PRIMARY KEY,
        order_id TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        product_id TEXT NOT NULL REFERENCES products(id),
        quantity REAL NOT NULL,
        unit TEXT NOT NULL,
        unit_price REAL NOT NULL,
        amount REAL NOT NULL,               -- quantity x unit_price
        received_quantity REAL DEFAULT 0,
        notes TEXT,
        created_at TEXT,
        updated_at TEXT
    );
    """,
    # Stocktaking
    """
    CREATE TABLE IF NOT EXISTS stocktakings (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL REFERENCES stores(id),
        stocktaking_date TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'DRAFT' CHECK (status IN ('DRAFT', 'CONFIRMED')),
        employee_id TEXT,
        confirmed_at TEXT,
        created_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS stocktaking_details (
        id TEXT PRIMARY KEY,
        stocktaking_id TEXT NOT NULL REFERENCES stocktakings(id) ON DELETE CASCADE,
        product_id TEXT REFERENCES products(id),
        wip_item_id TEXT REFERENCES wip_items(id),
        system_quantity REAL NOT NULL,
        actual_quantity REAL NOT NULL,
        difference REAL NOT NULL,           -- actual - system
        unit TEXT NOT NULL,
        notes TEXT,
        created_at TEXT,
        CHECK ((product_id IS NULL) <> (wip_item_id IS NULL))
    );
    """,
    # Production log (append-only)
    """
    CREATE TABLE IF NOT EXISTS wip_productions (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL REFERENCES stores(id),
        wip_item_id TEXT NOT NULL REFERENCES wip_items(id),
        quantity REAL NOT NULL,
        unit TEXT NOT NULL,
        production_date TEXT NOT NULL,
        expiry_date TEXT,
        employee_id TEXT,
        notes TEXT,
        created_at TEXT
    );
    """,
]


SCHEMA_V2: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS waste (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL REFERENCES stores(id),
        product_id TEXT REFERENCES products(id),
        wip_item_id TEXT REFERENCES wip_items(id),
        quantity REAL NOT NULL,
        reason TEXT,
        waste_date TEXT NOT NULL,
        recorded_by TEXT,
        created_at TEXT,
        CHECK ((product_id IS NULL) <> (wip_item_id IS NULL))
    );
    """,
]


SCHEMA_V3: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS purchases (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL REFERENCES stores(id),
        product_id TEXT NOT NULL REFERENCES products(id),
        quantity REAL NOT NULL,
        unit_price REAL NOT NULL,
        total_amount REAL NOT NULL,
        purchase_date TEXT NOT NULL,
        supplier_id TEXT,
        invoice_number TEXT,
        order_id TEXT REFERENCES orders(id),   -- set when posted by a delivery
        created_at TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS sales (
        id TEXT PRIMARY KEY,
        store_id TEXT NOT NULL REFERENCES stores(id),
        menu_id TEXT NOT NULL REFERENCES menus(id),
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        amount REAL NOT NULL,
        sale_date TEXT NOT NULL,
        pos_transaction_id TEXT,
        created_at TEXT
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adds a column if it does not exist yet."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] is the column name
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)
    _ensure_column(conn, "stocktakings", "notes", "notes TEXT")


def _apply_v3(conn) -> None:
    for sql in SCHEMA_V3:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Applies incremental migrations according to PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        if ver < 3:
            _apply_v3(conn)
            conn.execute("PRAGMA user_version = 3;")
            ver = 3
