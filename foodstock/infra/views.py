"""
Helper views for frequent queries.

Views created:
- vw_inventory_status:     raw-material ledger joined with the product master,
                           with shortage and low-stock flag.
- vw_wip_inventory_status: WIP ledger joined with the WIP master.

Note:
- Views assume migrations V1→V2 have been applied.
- A set of useful indexes is created as well when missing.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            ---------------------------
            -- Raw-material stock status
            -- is_low_stock uses the same <= rule as reorder recommendations
            ---------------------------
            DROP VIEW IF EXISTS vw_inventory_status;
            CREATE VIEW vw_inventory_status AS
            SELECT
                i.store_id,
                s.name                                   AS store_name,
                i.product_id,
                p.name                                   AS product_name,
                i.quantity,
                p.unit,
                p.min_stock,
                p.supplier_id,
                CASE WHEN p.min_stock IS NULL THEN NULL
                     ELSE p.min_stock - i.quantity END   AS shortage,
                CASE WHEN p.min_stock IS NOT NULL AND i.quantity <= p.min_stock
                     THEN 1 ELSE 0 END                   AS is_low_stock,
                i.last_updated_by,
                i.updated_at
            FROM inventory i
            JOIN products p ON p.id = i.product_id
            LEFT JOIN stores s ON s.id = i.store_id;

            ---------------------------
            -- WIP stock status
            ---------------------------
            DROP VIEW IF EXISTS vw_wip_inventory_status;
            CREATE VIEW vw_wip_inventory_status AS
            SELECT
                w.store_id,
                s.name                 AS store_name,
                w.wip_item_id,
                wi.name                AS wip_item_name,
                w.quantity,
                wi.unit,
                date(w.production_date) AS production_date,
                date(w.expiry_date)     AS expiry_date,
                w.updated_at
            FROM wip_inventory w
            JOIN wip_items wi ON wi.id = w.wip_item_id
            LEFT JOIN stores s ON s.id = w.store_id;
            """
        )

        # --------------------------------
        # Useful indexes (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_recipes_wip        ON recipes(wip_item_id);
            CREATE INDEX IF NOT EXISTS idx_recipes_menu       ON recipes(menu_id);
            CREATE INDEX IF NOT EXISTS idx_orders_store       ON orders(store_id, status);
            CREATE INDEX IF NOT EXISTS idx_order_lines_order  ON order_lines(order_id);
            CREATE INDEX IF NOT EXISTS idx_st_details_st      ON stocktaking_details(stocktaking_id);
            CREATE INDEX IF NOT EXISTS idx_productions_store  ON wip_productions(store_id, wip_item_id);
            CREATE INDEX IF NOT EXISTS idx_productions_date   ON wip_productions(production_date);
            CREATE INDEX IF NOT EXISTS idx_waste_date         ON waste(waste_date);
            CREATE INDEX IF NOT EXISTS idx_purchases_date     ON purchases(store_id, purchase_date);
            CREATE INDEX IF NOT EXISTS idx_sales_date         ON sales(store_id, sale_date);
            """
        )
