from pathlib import Path

import pytest

from foodstock.domain.models import ItemRef, ParentRef
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.migrations import apply_migrations
from foodstock.infra.views import create_views
from foodstock.usecases import catalog
from foodstock.usecases.recipes import add_recipe_line


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "foodstock_test.sqlite")
    apply_migrations(path)
    create_views(path)
    return path


def seed_catalog(db_path: str) -> None:
    catalog.register_stores(
        [
            {"id": "S001", "name": "Shibuya", "type": "STORE"},
            {"id": "S003", "name": "Shinjuku", "type": "STORE"},
            {"id": "K001", "name": "Central kitchen", "type": "KITCHEN"},
        ],
        db_path=db_path,
    )
    catalog.register_products(
        [
            {"id": "I010", "name": "Flour", "unit": "g", "unit_price": 0.5,
             "min_stock": 2000, "supplier_id": "SUP-A"},
            {"id": "I030", "name": "Soy sauce", "unit": "ml", "unit_price": 0.3,
             "min_stock": 500, "order_unit": 1000, "supplier_id": "SUP-B"},
            {"id": "I032", "name": "Mirin", "unit": "ml", "unit_price": 0.4, "min_stock": 300},
            {"id": "I034", "name": "Salt", "unit": "g", "unit_price": 0.1},
        ],
        db_path=db_path,
    )
    catalog.register_wip_items(
        [
            {"id": "W002", "name": "Noodle dough", "unit": "kg", "shelf_life_days": 2},
            {"id": "W003", "name": "Tare", "unit": "l", "shelf_life_days": 5},
        ],
        db_path=db_path,
    )
    catalog.register_menus([{"id": "M001", "name": "Shoyu ramen", "price": 900}], db_path=db_path)


def seed_recipes(db_path: str) -> None:
    w002 = ParentRef.wip("W002")
    add_recipe_line(w002, ItemRef.product("I010"), 1000, "g", db_path=db_path)
    add_recipe_line(w002, ItemRef.product("I030"), 50, "ml", db_path=db_path)
    add_recipe_line(w002, ItemRef.product("I032"), 30, "ml", db_path=db_path)
    add_recipe_line(w002, ItemRef.product("I034"), 10, "g", db_path=db_path)


@pytest.fixture
def seeded(db_path: str) -> str:
    seed_catalog(db_path)
    seed_recipes(db_path)
    return db_path


def stock(db_path: str, store_id: str, product_id: str, quantity: float) -> None:
    InventoryLedger(db_path).set_quantity(store_id, ItemRef.product(product_id), quantity, actor="test")


def on_hand(db_path: str, store_id: str, item) -> float:
    if isinstance(item, str):
        item = ItemRef.product(item)
    return InventoryLedger(db_path).get_quantity(store_id, item)
