"""
Parsing helpers for quantities and item references.

Count sheets and delivery receipts are typed by hand, so a quantity cell
may read "450", "450 g", "1,5 kg - kilogram" or be blank. These helpers
extract the numeric value, the unit abbreviation and the description.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from foodstock.domain.errors import ValidationError
from foodstock.domain.models import ItemKind, ItemRef

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")


def parse_quantity_raw(txt: str) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Parses a quantity with unit.

    Input usually follows "<value> <unit> - <description>". The value may
    use comma or dot as decimal separator. The unit is the second word
    before the hyphen, upper-cased; the description is the text after the
    first hyphen.

    Examples:
        "2000 g - grams"     → (2000.0, "G", "grams")
        "1,5 kg"             → (1.5, "KG", None)
        "30"                 → (30.0, None, None)

    Returns:
        (number, unit, description); anything undetermined is None.
    """
    if txt is None:
        return None, None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    # a leading minus belongs to the number, not the separator
    sign = ""
    if s.startswith("-"):
        sign, s = "-", s[1:].lstrip()
    head, desc = (s.split("-", 1) + [""])[:2]
    head = head.strip()
    desc = desc.strip() or None
    parts = head.split()
    num = None
    unit = None
    if parts:
        m = _NUM_RE.search(parts[0])
        if m:
            num = float(sign + m.group(0).replace(",", "."))
    if len(parts) >= 2:
        unit = parts[1].strip().upper() or None
    return num, unit, desc


def parse_quantity(txt) -> Optional[float]:
    """Numeric part of a quantity cell (None when blank or unreadable)."""
    if isinstance(txt, (int, float)):
        return float(txt)
    num, _, _ = parse_quantity_raw(txt)
    return num


def parse_item_ref(txt: str, default_kind: ItemKind = ItemKind.PRODUCT) -> ItemRef:
    """Parses "PRODUCT:I010", "wip:W002" or a bare id (using `default_kind`)."""
    s = (txt or "").strip()
    if not s:
        raise ValidationError("item reference is required")
    if ":" in s:
        kind, item_id = s.split(":", 1)
        try:
            item_kind = ItemKind(kind.strip().upper())
        except ValueError:
            raise ValidationError(f"unknown item kind: {kind!r}") from None
        return ItemRef(item_kind, item_id.strip())
    return ItemRef(default_kind, s)
