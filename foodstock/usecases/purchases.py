# foodstock/usecases/purchases.py
"""
UC: purchase history.

Deliveries (`procurement.confirm_delivery`) append one row per received
line. `record_purchase` adds rows bought outside the ordering flow
(e.g. supplier invoices keyed in afterwards); it is history only and does
not move stock.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from foodstock.config import DB_PATH
from foodstock.domain.errors import ValidationError
from foodstock.domain.models import Purchase
from foodstock.infra.db import transaction
from foodstock.infra.repositories import PurchaseRepo, new_id
from foodstock.infra.logger import log_procurement, log_transaction
from foodstock.usecases.catalog import get_product, get_store


def _number(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number: {value!r}") from None


def record_purchase(
    store_id: str,
    product_id: str,
    quantity: Any,
    unit_price: Any,
    purchase_date: Optional[str] = None,
    supplier_id: Optional[str] = None,
    invoice_number: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Purchase:
    """Appends a purchase row; total_amount = quantity x unit_price."""
    data = {"store_id": store_id, "product_id": product_id, "quantity": quantity, "unit_price": unit_price}
    try:
        qty = _number(quantity, "quantity")
        price = _number(unit_price, "unit_price")
        if qty <= 0:
            raise ValidationError("purchase quantity must be positive")
        if price < 0:
            raise ValidationError("unit_price must not be negative")
        p = Purchase(
            id=new_id("PUR"),
            store_id=store_id,
            product_id=product_id,
            quantity=qty,
            unit_price=price,
            total_amount=qty * price,
            purchase_date=purchase_date or date.today().isoformat(),
            supplier_id=supplier_id,
            invoice_number=invoice_number,
        )
        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            get_product(product_id, db_path, conn=conn)
            PurchaseRepo(db_path).insert(p, conn=conn)

        log_procurement("purchase", p.id, store_id=store_id, product_id=product_id, total=p.total_amount)
        log_transaction("record_purchase", data, result=p.id)
        return p
    except Exception as e:
        log_transaction("record_purchase", data, error=str(e))
        raise


def list_purchases(
    store_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Purchase]:
    """Purchase rows, newest first; `start`/`end` are inclusive ISO dates."""
    return PurchaseRepo(db_path).list(store_id=store_id, start=start, end=end)


def purchase_summary(
    start: Optional[str] = None,
    end: Optional[str] = None,
    store_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    rows = list_purchases(store_id=store_id, start=start, end=end, db_path=db_path)
    total = sum(p.total_amount for p in rows)
    return {
        "total_amount": total,
        "purchase_count": len(rows),
        "average_purchase": total / len(rows) if rows else 0.0,
    }
