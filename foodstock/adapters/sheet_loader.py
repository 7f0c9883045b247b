# foodstock/adapters/sheet_loader.py
"""
Loaders/writers for the XLSX sheets exchanged with the kitchen staff.

These functions:
- read XLSX sheets with pandas (every cell as string);
- normalise headers (case, accents, spacing, synonyms);
- return lists of dicts with the keys expected by the use cases.

Sheets:
- count sheet (stocktaking): detail_id, item, unit, system/actual quantity
- delivery receipt: order line id + received quantity
- catalog workbook: one sheet per reference entity
"""

from __future__ import annotations

from dataclasses import MISSING, fields
from typing import Any, Dict, List, Optional, Tuple
import re

import pandas as pd

from foodstock.adapters.parsers import parse_quantity
from foodstock.domain.models import Category, Menu, Product, Store, WipItem


COUNT_SHEET_COLUMNS = [
    "detail_id",
    "item_kind",
    "item_id",
    "item_name",
    "unit",
    "system_quantity",
    "actual_quantity",
    "notes",
]


# ---------------------------
# normalisation helpers
# ---------------------------

def _slug(s: str) -> str:
    """Normalises headers: lower case, no accents, non-alphanumerics to spaces."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    accents = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(accents.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    """Gets a value from a pandas row, mapping NA and blanks to None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    if isinstance(val, str) and not val.strip():
        return None
    return val.strip() if isinstance(val, str) else val


def _to_float(val: Any) -> Optional[float]:
    if val is None:
        return None
    return parse_quantity(val)


def _to_int(val: Any) -> Optional[int]:
    f = _to_float(val)
    return int(f) if f is not None else None


_ALIASES = {
    "id": "id",
    "code": "id",
    "codigo": "id",

    "detail": "detail_id",
    "detail id": "detail_id",
    "line": "line_id",
    "line id": "line_id",
    "order line": "line_id",
    "order line id": "line_id",

    "kind": "item_kind",
    "item kind": "item_kind",
    "item": "item_id",
    "item id": "item_id",
    "name": "name",
    "item name": "item_name",
    "unit": "unit",

    "system": "system_quantity",
    "system quantity": "system_quantity",
    "actual": "actual_quantity",
    "actual quantity": "actual_quantity",
    "counted": "actual_quantity",
    "count": "actual_quantity",

    "received": "received_quantity",
    "received quantity": "received_quantity",
    "quantity": "received_quantity",
    "qty": "received_quantity",

    "unit price": "unit_price",
    "min stock": "min_stock",
    "minimum stock": "min_stock",
    "order unit": "order_unit",
    "supplier": "supplier_id",
    "supplier id": "supplier_id",
    "category": "category_id",
    "category id": "category_id",
    "shelf life": "shelf_life_days",
    "shelf life days": "shelf_life_days",
    "active": "is_active",

    "note": "notes",
    "notes": "notes",
}


def _normalize_columns(df: pd.DataFrame, aliases: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Renames columns through the synonym table (unknown headers become slug_with_underscores)."""
    aliases = _ALIASES if aliases is None else aliases
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = aliases.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read(path: str, sheet_name: Any = 0) -> pd.DataFrame:
    return pd.read_excel(path, sheet_name=sheet_name, dtype="string")


# ---------------------------
# count sheet (stocktaking)
# ---------------------------

def write_count_sheet(rows: List[Dict[str, Any]], path: str) -> None:
    df = pd.DataFrame(rows, columns=COUNT_SHEET_COLUMNS)
    df.to_excel(path, index=False, sheet_name="count")


def load_count_sheet(path: str) -> List[Dict[str, Any]]:
    """Reads a filled-in count sheet.

    Output keys per row:
      - detail_id: str
      - actual_quantity: float | None  (None when the cell was left blank)
      - notes: str | None
    Rows without a detail id are ignored.
    """
    df = _normalize_columns(_read(path))
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        detail_id = _safe_get(row, "detail_id")
        if not detail_id:
            continue
        out.append({
            "detail_id": detail_id,
            "actual_quantity": _to_float(_safe_get(row, "actual_quantity")),
            "notes": _safe_get(row, "notes"),
        })
    return out


# ---------------------------
# delivery receipt
# ---------------------------

def load_received_lines_from_xlsx(path: str) -> List[Tuple[str, float]]:
    """Reads `(line_id, received_quantity)` pairs; rows with a blank quantity are skipped."""
    df = _normalize_columns(_read(path))
    out: List[Tuple[str, float]] = []
    for _, row in df.iterrows():
        line_id = _safe_get(row, "line_id")
        qty = _to_float(_safe_get(row, "received_quantity"))
        if not line_id or qty is None:
            continue
        out.append((line_id, qty))
    return out


# ---------------------------
# catalog workbook
# ---------------------------

_SHEETS = {
    "stores": ("stores", Store),
    "store": ("stores", Store),
    "locations": ("stores", Store),
    "categories": ("categories", Category),
    "category": ("categories", Category),
    "products": ("products", Product),
    "product": ("products", Product),
    "ingredients": ("products", Product),
    "wip items": ("wip_items", WipItem),
    "wip item": ("wip_items", WipItem),
    "wip": ("wip_items", WipItem),
    "menus": ("menus", Menu),
    "menu": ("menus", Menu),
}

_FLOAT_FIELDS = {"unit_price", "min_stock", "order_unit", "lot_size", "price"}
_INT_FIELDS = {"shelf_life_days", "display_order", "is_active"}


def _catalog_row(row, model) -> Optional[Dict[str, Any]]:
    rec: Dict[str, Any] = {}
    for f in fields(model):
        val = _safe_get(row, f.name)
        if f.name in _FLOAT_FIELDS:
            val = _to_float(val)
        elif f.name in _INT_FIELDS:
            val = _to_int(val)
        if val is not None:
            rec[f.name] = val
    required = [f.name for f in fields(model) if f.default is MISSING]
    if any(rec.get(name) is None for name in required):
        return None
    return rec


def load_catalog_workbook(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Reads every recognised sheet of a catalog workbook.

    Returns a dict keyed by table name (stores, categories, products,
    wip_items, menus); each value is a list of dicts whose keys are the
    model's field names. Unrecognised sheets and rows missing a required
    field are ignored. Missing optional columns fall back to the model
    defaults.
    """
    book = _read(path, sheet_name=None)
    out: Dict[str, List[Dict[str, Any]]] = {}
    for sheet, df in book.items():
        target = _SHEETS.get(_slug(sheet))
        if target is None:
            continue
        table, model = target
        df = _normalize_columns(df)
        rows = [r for r in (_catalog_row(row, model) for _, row in df.iterrows()) if r]
        out.setdefault(table, []).extend(rows)
    return out
