# foodstock/usecases/sales.py
"""
UC: sales history (POS lines per menu) and its summary.

Sales are a record of what was sold; they do not consume inventory.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from foodstock.config import DB_PATH
from foodstock.domain.errors import ValidationError
from foodstock.domain.models import Sale
from foodstock.infra.db import transaction
from foodstock.infra.repositories import SaleRepo, new_id
from foodstock.infra.logger import log_transaction
from foodstock.usecases.catalog import get_menu, get_store


def record_sale(
    store_id: str,
    menu_id: str,
    quantity: Any,
    amount: Optional[Any] = None,
    sale_date: Optional[str] = None,
    pos_transaction_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Sale:
    """
    Appends a sale line. `quantity` is a whole number of portions;
    `amount` defaults to the menu price x quantity.
    """
    data = {"store_id": store_id, "menu_id": menu_id, "quantity": quantity, "amount": amount}
    try:
        try:
            qty = float(quantity)
        except (TypeError, ValueError):
            raise ValidationError(f"quantity must be a number: {quantity!r}") from None
        if qty <= 0 or qty != int(qty):
            raise ValidationError("sale quantity must be a positive whole number")

        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            menu = get_menu(menu_id, db_path, conn=conn)
            if amount is None:
                total = float(menu.price) * qty
            else:
                try:
                    total = float(amount)
                except (TypeError, ValueError):
                    raise ValidationError(f"amount must be a number: {amount!r}") from None
                if total < 0:
                    raise ValidationError("amount must not be negative")
            s = Sale(
                id=new_id("SL"),
                store_id=store_id,
                menu_id=menu_id,
                quantity=int(qty),
                amount=total,
                sale_date=sale_date or date.today().isoformat(),
                pos_transaction_id=pos_transaction_id,
            )
            SaleRepo(db_path).insert(s, conn=conn)

        log_transaction("record_sale", data, result=s.id)
        return s
    except Exception as e:
        log_transaction("record_sale", data, error=str(e))
        raise


def list_sales(
    store_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[Sale]:
    """Sale lines in date order; `start`/`end` are inclusive ISO dates."""
    return SaleRepo(db_path).list(store_id=store_id, start=start, end=end)


def sales_summary(
    start: Optional[str] = None,
    end: Optional[str] = None,
    store_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """
    Totals over the period plus a per-menu breakdown.

    Returns total_sales, total_quantity, sale_count, average_sale (mean
    amount per sale line, 0.0 without sales) and by_menu (menu_id,
    menu_name, quantity, amount; highest amount first).
    """
    repo = SaleRepo(db_path)
    rows = repo.list(store_id=store_id, start=start, end=end)
    total = sum(s.amount for s in rows)
    return {
        "total_sales": total,
        "total_quantity": sum(s.quantity for s in rows),
        "sale_count": len(rows),
        "average_sale": total / len(rows) if rows else 0.0,
        "by_menu": repo.totals_by_menu(store_id=store_id, start=start, end=end),
    }
