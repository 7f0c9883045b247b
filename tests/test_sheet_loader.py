"""
Tests for the XLSX loaders: header normalisation, count sheets, delivery
receipts and the catalog workbook.
"""

import pandas as pd
import pytest

from foodstock.adapters.sheet_loader import (
    COUNT_SHEET_COLUMNS,
    _normalize_columns,
    load_catalog_workbook,
    load_count_sheet,
    load_received_lines_from_xlsx,
    write_count_sheet,
)
from foodstock.usecases.catalog import get_product, get_wip_item, import_catalog_from_xlsx


def _write_book(path, sheets):
    with pd.ExcelWriter(path) as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)


def test_normalize_columns_synonyms():
    df = pd.DataFrame(columns=["Detail ID", "Counted", "Order Line", "Qty", "Min Stock", "Lot Unit"])
    assert list(_normalize_columns(df).columns) == [
        "detail_id", "actual_quantity", "line_id", "received_quantity", "min_stock", "lot_unit",
    ]


def test_count_sheet_roundtrip_keeps_blanks(tmp_path):
    path = tmp_path / "count.xlsx"
    write_count_sheet(
        [
            {"detail_id": "STD-1", "item_kind": "PRODUCT", "item_id": "I010", "unit": "g",
             "system_quantity": 500, "actual_quantity": 450, "notes": "bag torn"},
            {"detail_id": "STD-2", "item_kind": "WIP", "item_id": "W002", "unit": "kg",
             "system_quantity": 2, "actual_quantity": None},
            {"detail_id": None, "item_id": "I999"},
        ],
        str(path),
    )
    assert list(pd.read_excel(path, sheet_name="count").columns) == COUNT_SHEET_COLUMNS

    rows = load_count_sheet(str(path))
    assert rows == [
        {"detail_id": "STD-1", "actual_quantity": 450.0, "notes": "bag torn"},
        {"detail_id": "STD-2", "actual_quantity": None, "notes": None},
    ]


def test_load_received_lines(tmp_path):
    path = tmp_path / "receipt.xlsx"
    pd.DataFrame(
        {
            "Order line id": ["OL-1", "OL-2", "OL-3", None],
            "Received quantity": ["3900 g", "1,5", None, "4"],
        }
    ).to_excel(path, index=False)

    assert load_received_lines_from_xlsx(str(path)) == [("OL-1", 3900.0), ("OL-2", 1.5)]


@pytest.fixture
def catalog_book(tmp_path):
    path = tmp_path / "catalog.xlsx"
    _write_book(
        path,
        {
            "Stores": pd.DataFrame({"ID": ["S010"], "Name": ["Ebisu"], "Type": ["STORE"]}),
            "Products": pd.DataFrame(
                {
                    "Code": ["I100", "I101", "I102"],
                    "Name": ["Rice", "Nori", "Broken row"],
                    "Unit": ["g", "sheet", None],
                    "Unit price": ["0.2", "5", "1"],
                    "Min stock": ["5000", None, None],
                    "Supplier": ["SUP-C", None, None],
                }
            ),
            "WIP items": pd.DataFrame(
                {"Code": ["W100"], "Name": ["Sushi rice"], "Unit": ["kg"], "Shelf life days": ["1"]}
            ),
            "Menus": pd.DataFrame({"ID": ["M100"], "Name": ["Onigiri"], "Price": ["250"]}),
            "Notes": pd.DataFrame({"anything": ["ignored"]}),
        },
    )
    return path


def test_load_catalog_workbook(catalog_book):
    book = load_catalog_workbook(str(catalog_book))
    assert set(book) == {"stores", "products", "wip_items", "menus"}

    products = {p["id"]: p for p in book["products"]}
    assert set(products) == {"I100", "I101"}    # row without unit is skipped
    assert products["I100"]["unit_price"] == 0.2
    assert products["I100"]["min_stock"] == 5000.0
    assert "min_stock" not in products["I101"]

    assert book["wip_items"][0]["shelf_life_days"] == 1
    assert book["menus"][0]["price"] == 250.0


def test_import_catalog_from_xlsx(db_path, catalog_book):
    result = import_catalog_from_xlsx(str(catalog_book), db_path=db_path)
    assert result == {"stores": 1, "products": 2, "wip_items": 1, "menus": 1}

    rice = get_product("I100", db_path=db_path)
    assert (rice.name, rice.unit, rice.supplier_id) == ("Rice", "g", "SUP-C")
    assert get_wip_item("W100", db_path=db_path).shelf_life_days == 1

    # re-import is an upsert
    assert import_catalog_from_xlsx(str(catalog_book), db_path=db_path)["products"] == 2
