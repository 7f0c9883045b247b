# foodstock/usecases/catalog.py
"""
UC: catalog lookups and reference-data registration.

Lookups raise `NotFound` so every reconciliation flow fails the same way
on an unknown product, WIP item, menu or store.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
import sqlite3

from foodstock.config import DB_PATH
from foodstock.adapters.sheet_loader import load_catalog_workbook
from foodstock.domain.errors import NotFound
from foodstock.domain.models import Menu, Product, Store, WipItem
from foodstock.infra.repositories import (
    CategoryRepo,
    MenuRepo,
    ProductRepo,
    StoreRepo,
    WipItemRepo,
)
from foodstock.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_system_event,
    print_system,
)


Conn = Optional[sqlite3.Connection]


def _require(value, entity: str, key: str):
    if value is None:
        raise NotFound(entity, key)
    return value


def get_product(product_id: str, db_path: str = DB_PATH, conn: Conn = None) -> Product:
    return _require(ProductRepo(db_path).get(product_id, conn=conn), "product", product_id)


def get_wip_item(wip_item_id: str, db_path: str = DB_PATH, conn: Conn = None) -> WipItem:
    return _require(WipItemRepo(db_path).get(wip_item_id, conn=conn), "wip item", wip_item_id)


def get_menu(menu_id: str, db_path: str = DB_PATH, conn: Conn = None) -> Menu:
    return _require(MenuRepo(db_path).get(menu_id, conn=conn), "menu", menu_id)


def get_store(store_id: str, db_path: str = DB_PATH, conn: Conn = None) -> Store:
    return _require(StoreRepo(db_path).get(store_id, conn=conn), "store", store_id)


# -------------------------
# Registration (upsert)
# -------------------------

def _register(repo, table: str, rows: Iterable[Any]) -> int:
    n = repo.upsert(rows)
    log_database_operation(table, "UPSERT", n)
    return n


def register_stores(rows: Iterable[Any], db_path: str = DB_PATH) -> int:
    return _register(StoreRepo(db_path), "stores", rows)


def register_categories(rows: Iterable[Any], db_path: str = DB_PATH) -> int:
    return _register(CategoryRepo(db_path), "categories", rows)


def register_products(rows: Iterable[Any], db_path: str = DB_PATH) -> int:
    return _register(ProductRepo(db_path), "products", rows)


def register_wip_items(rows: Iterable[Any], db_path: str = DB_PATH) -> int:
    return _register(WipItemRepo(db_path), "wip_items", rows)


def register_menus(rows: Iterable[Any], db_path: str = DB_PATH) -> int:
    return _register(MenuRepo(db_path), "menus", rows)


def import_catalog_from_xlsx(path: str, db_path: str = DB_PATH) -> Dict[str, int]:
    """
    Loads a catalog workbook (one sheet per entity) and upserts every sheet.

    Sheets are applied in dependency order (stores, categories, products,
    WIP items, menus) so foreign keys resolve. Missing sheets are skipped.
    """
    print_system("=== Catalog import ===")
    log_system_event("catalog_import_start", {"file_path": path})
    try:
        book: Dict[str, List[Dict[str, Any]]] = load_catalog_workbook(path)
        registrars = [
            ("stores", register_stores),
            ("categories", register_categories),
            ("products", register_products),
            ("wip_items", register_wip_items),
            ("menus", register_menus),
        ]
        result: Dict[str, int] = {}
        for sheet, register in registrars:
            rows = book.get(sheet) or []
            if rows:
                result[sheet] = register(rows, db_path=db_path)
        log_file_operation("import", path, rows_processed=sum(result.values()), sheets=list(result))
        log_system_event("catalog_import_success", {"file_path": path, "result": result})
        print_system(f">> Catalog imported: {result}")
        return result
    except Exception as e:
        log_system_event("catalog_import_error", {"file_path": path, "error": str(e)}, level="error")
        raise
