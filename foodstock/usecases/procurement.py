# foodstock/usecases/procurement.py
"""
UC: purchase orders (create, lines, status, recommendations, delivery).

Flow:
1) `generate_recommendations` lists low-stock products grouped by supplier.
2) `create_order` / `create_from_recommendation` open a DRAFT order.
3) `add_order_line` attaches lines and recomputes the order total.
4) `update_status` moves the order DRAFT -> ORDERED (or CANCELLED);
   undefined transitions are rejected.
5) `confirm_delivery` records received quantities, increments the ledger,
   appends one purchase row per received line and closes the order as
   DELIVERED. It is the only way into DELIVERED.

Notes:
- Every multi-step write runs inside one `transaction()`: a failure on any
  line rolls back the whole operation.
- Retrying `add_order_line` creates a duplicate line; callers deduplicate.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from foodstock.config import DB_PATH, DEFAULTS
from foodstock.adapters.sheet_loader import load_received_lines_from_xlsx
from foodstock.domain.errors import InvalidState, NotFound, ValidationError
from foodstock.domain.models import ItemRef, Order, OrderLine, OrderStatus, Purchase
from foodstock.domain.policies import (
    ORDER_EDITABLE,
    check_order_transition,
    parse_order_status,
    recommended_order_quantity,
)
from foodstock.infra.db import transaction
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import OrderRepo, ParamsRepo, ProductRepo, PurchaseRepo, new_id
from foodstock.infra.logger import (
    log_file_operation,
    log_procurement,
    log_system_event,
    log_transaction,
)
from foodstock.usecases.catalog import get_product, get_store


def _today() -> str:
    return date.today().isoformat()


def _positive(value: Any, name: str) -> float:
    if value is None:
        raise ValidationError(f"{name} is required")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number: {value!r}") from None
    if v <= 0:
        raise ValidationError(f"{name} must be positive")
    return v


def _iso_date(value: Optional[str], name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD): {value!r}") from None


def _load_order(repo: OrderRepo, order_id: str, conn=None) -> Order:
    order = repo.get(order_id, conn=conn)
    if order is None:
        raise NotFound("order", order_id)
    return order


def _insert_order(
    repo: OrderRepo,
    conn,
    store_id: str,
    supplier_id: Optional[str],
    employee_id: Optional[str],
    order_date: Optional[str],
    expected_delivery_date: Optional[str],
    notes: Optional[str],
    is_auto_order: bool,
) -> Order:
    order_date = _iso_date(order_date, "order_date") or _today()
    expected_delivery_date = _iso_date(expected_delivery_date, "expected_delivery_date")
    order = Order(
        id=new_id("ORD"),
        order_number=repo.next_order_number(int(order_date[:4]), conn=conn),
        store_id=store_id,
        order_date=order_date,
        status=OrderStatus.DRAFT,
        supplier_id=supplier_id,
        expected_delivery_date=expected_delivery_date,
        is_auto_order=is_auto_order,
        employee_id=employee_id,
        total_amount=0.0,
        notes=notes,
    )
    repo.insert(order, conn=conn)
    return order


def _insert_line(
    repo: OrderRepo,
    conn,
    db_path: str,
    order: Order,
    product_id: str,
    quantity: Any,
    unit: Optional[str],
    unit_price: Any,
    notes: Optional[str],
) -> OrderLine:
    if not product_id:
        raise ValidationError("product_id is required")
    if not unit:
        raise ValidationError("unit is required")
    qty = _positive(quantity, "quantity")
    price = _positive(unit_price, "unit_price")
    if order.status not in ORDER_EDITABLE:
        raise InvalidState(f"order {order.order_number} is {order.status.value}; lines cannot be added")
    get_product(product_id, db_path, conn=conn)

    line = OrderLine(
        id=new_id("OL"),
        order_id=order.id,
        product_id=product_id,
        quantity=qty,
        unit=unit,
        unit_price=price,
        amount=qty * price,
        notes=notes,
    )
    repo.insert_line(line, conn=conn)
    # total is always the full sum over lines, recomputed in the same transaction
    order.total_amount = repo.recompute_total(order.id, conn=conn)
    return line


# -------------------------
# Orders
# -------------------------

def create_order(
    store_id: str,
    supplier_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    order_date: Optional[str] = None,
    expected_delivery_date: Optional[str] = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Order:
    """Opens a DRAFT order with a fresh `ORD-<year>-<seq>` number and zero total."""
    data = {"store_id": store_id, "supplier_id": supplier_id, "order_date": order_date}
    try:
        repo = OrderRepo(db_path)
        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            order = _insert_order(
                repo, conn, store_id, supplier_id, employee_id,
                order_date, expected_delivery_date, notes, False,
            )
        log_procurement("create", order.id, order_number=order.order_number, store_id=store_id)
        log_transaction("create_order", data, result=order.order_number)
        return order
    except Exception as e:
        log_transaction("create_order", data, error=str(e))
        raise


def add_order_line(
    order_id: str,
    product_id: str,
    quantity: float,
    unit: str,
    unit_price: float,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> OrderLine:
    """Adds a line (amount = quantity x unit_price) and recomputes the order total."""
    data = {"order_id": order_id, "product_id": product_id, "quantity": quantity, "unit_price": unit_price}
    try:
        repo = OrderRepo(db_path)
        with transaction(db_path) as conn:
            order = _load_order(repo, order_id, conn=conn)
            line = _insert_line(repo, conn, db_path, order, product_id, quantity, unit, unit_price, notes)
        log_procurement("add_line", order_id, line_id=line.id, amount=line.amount, total=order.total_amount)
        log_transaction("add_order_line", data, result=line.id)
        return line
    except Exception as e:
        log_transaction("add_order_line", data, error=str(e))
        raise


def update_status(order_id: str, new_status: Any, db_path: str = DB_PATH) -> Order:
    """
    Applies one transition of the order state machine (ORDERED, CANCELLED).

    DELIVERED is only reachable through `confirm_delivery`, which posts the
    received goods to the ledger in the same transaction.
    """
    data = {"order_id": order_id, "status": str(new_status)}
    try:
        repo = OrderRepo(db_path)
        with transaction(db_path) as conn:
            order = _load_order(repo, order_id, conn=conn)
            target = check_order_transition(order.status, new_status)
            if target is OrderStatus.DELIVERED:
                raise InvalidState(
                    f"order {order.order_number} cannot be marked DELIVERED directly; use confirm_delivery"
                )
            repo.update_status(order_id, target, conn=conn)
            order = _load_order(repo, order_id, conn=conn)
        log_procurement("status", order_id, status=target.value)
        log_transaction("update_order_status", data, result=target.value)
        return order
    except Exception as e:
        log_transaction("update_order_status", data, error=str(e))
        raise


def get_order(order_id: str, db_path: str = DB_PATH) -> Order:
    repo = OrderRepo(db_path)
    order = _load_order(repo, order_id)
    order.lines = repo.lines(order_id)
    return order


def list_orders(store_id: Optional[str] = None, status: Optional[Any] = None, db_path: str = DB_PATH) -> List[Order]:
    st = parse_order_status(status) if status else None
    return OrderRepo(db_path).list(store_id=store_id, status=st)


# -------------------------
# Recommendations
# -------------------------

def generate_recommendations(store_id: str, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """
    Reorder proposals for every active product at or below its minimum stock.

    Returns one group per supplier (products without one go under
    `DEFAULTS.unknown_supplier_key`), in the order the first low-stock
    item of each supplier is seen. Items are visited by shortage, most
    severe first.

    Each item: product_id, product_name, current_quantity, min_stock,
    shortage, recommended_quantity, unit, unit_price, estimated_amount.
    Each group: supplier_id, items, estimated_total.
    """
    get_store(store_id, db_path)
    params = ParamsRepo(db_path)
    multiplier = params.get_float("reorder_multiplier", DEFAULTS.reorder_multiplier)
    unknown = DEFAULTS.unknown_supplier_key

    groups: Dict[str, Dict[str, Any]] = {}
    for r in ProductRepo(db_path).low_stock_at(store_id):
        qty = recommended_order_quantity(r["order_unit"], r["min_stock"], multiplier)
        price = float(r["unit_price"] or 0.0)
        item = {
            "product_id": r["product_id"],
            "product_name": r["product_name"],
            "current_quantity": float(r["current_quantity"]),
            "min_stock": float(r["min_stock"]),
            "shortage": float(r["min_stock"]) - float(r["current_quantity"]),
            "recommended_quantity": qty,
            "unit": r["unit"],
            "unit_price": price,
            "estimated_amount": qty * price,
        }
        key = r["supplier_id"] or unknown
        group = groups.setdefault(key, {"supplier_id": key, "items": [], "estimated_total": 0.0})
        group["items"].append(item)
        group["estimated_total"] += item["estimated_amount"]

    result = list(groups.values())
    log_system_event("recommendations", {"store_id": store_id, "groups": len(result),
                                         "items": sum(len(g["items"]) for g in result)})
    return result


def create_from_recommendation(
    store_id: str,
    supplier_id: Optional[str],
    lines: Iterable[Dict[str, Any]],
    employee_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Order:
    """
    Creates an auto-order with all given lines in a single transaction.

    `lines` are dicts with product_id, quantity (or recommended_quantity),
    unit and unit_price, as produced by `generate_recommendations`.
    Expected delivery defaults to today + `delivery_lead_days`.
    """
    lines = list(lines)
    data = {"store_id": store_id, "supplier_id": supplier_id, "lines": len(lines)}
    try:
        if not lines:
            raise ValidationError("at least one line is required")
        lead = int(ParamsRepo(db_path).get_float("delivery_lead_days", DEFAULTS.delivery_lead_days))
        expected = (date.today() + timedelta(days=lead)).isoformat()
        if supplier_id == DEFAULTS.unknown_supplier_key:
            supplier_id = None

        repo = OrderRepo(db_path)
        with transaction(db_path) as conn:
            get_store(store_id, db_path, conn=conn)
            order = _insert_order(repo, conn, store_id, supplier_id, employee_id, None, expected, None, True)
            for ln in lines:
                qty = ln.get("quantity", ln.get("recommended_quantity"))
                _insert_line(
                    repo, conn, db_path, order,
                    ln.get("product_id"), qty, ln.get("unit"), ln.get("unit_price"), ln.get("notes"),
                )
            order.lines = repo.lines(order.id, conn=conn)
        log_procurement("create_auto", order.id, order_number=order.order_number,
                        lines=len(order.lines), total=order.total_amount)
        log_transaction("create_from_recommendation", data, result=order.order_number)
        return order
    except Exception as e:
        log_transaction("create_from_recommendation", data, error=str(e))
        raise


# -------------------------
# Delivery
# -------------------------

def confirm_delivery(
    order_id: str,
    received_lines: Iterable[Tuple[str, float]],
    actor: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Order:
    """
    Receives goods for an ORDERED order.

    For each `(line_id, quantity)` the line's received quantity is set and
    the store's ledger is incremented by `quantity`; received lines are
    also appended to the purchase history and the order becomes DELIVERED.
    Unknown line ids raise `NotFound`, a line listed twice raises
    `ValidationError`; either way nothing is applied.
    """
    received = list(received_lines)
    data = {"order_id": order_id, "lines": len(received)}
    try:
        seen = set()
        for line_id, _ in received:
            if line_id in seen:
                raise ValidationError(f"order line {line_id} is listed more than once")
            seen.add(line_id)

        repo = OrderRepo(db_path)
        ledger = InventoryLedger(db_path)
        purchases = PurchaseRepo(db_path)
        with transaction(db_path) as conn:
            order = _load_order(repo, order_id, conn=conn)
            check_order_transition(order.status, OrderStatus.DELIVERED)
            received_on = _today()
            by_id = {ln.id: ln for ln in repo.lines(order_id, conn=conn)}

            for line_id, quantity in received:
                line = by_id.get(line_id)
                if line is None:
                    raise NotFound("order line", line_id)
                try:
                    qty = float(quantity)
                except (TypeError, ValueError):
                    raise ValidationError(f"received quantity must be a number: {quantity!r}") from None
                if qty < 0:
                    raise ValidationError(f"received quantity must not be negative: {line_id}")
                repo.set_received(line_id, qty, conn=conn)
                ledger.adjust_quantity(order.store_id, ItemRef.product(line.product_id), qty, actor=actor, conn=conn)
                if qty > 0:
                    purchases.insert(
                        Purchase(
                            id=new_id("PUR"),
                            store_id=order.store_id,
                            product_id=line.product_id,
                            quantity=qty,
                            unit_price=line.unit_price,
                            total_amount=qty * line.unit_price,
                            purchase_date=received_on,
                            supplier_id=order.supplier_id,
                            invoice_number=order.order_number,
                            order_id=order.id,
                        ),
                        conn=conn,
                    )
                log_procurement("receive_line", order_id, line_id=line_id, product_id=line.product_id, quantity=qty)

            repo.update_status(
                order_id,
                OrderStatus.DELIVERED,
                actual_delivery_date=datetime.now().isoformat(timespec="seconds"),
                conn=conn,
            )
            order = _load_order(repo, order_id, conn=conn)
            order.lines = repo.lines(order_id, conn=conn)

        log_procurement("deliver", order_id, order_number=order.order_number)
        log_transaction("confirm_delivery", data, result="success")
        return order
    except Exception as e:
        log_transaction("confirm_delivery", data, error=str(e))
        log_system_event("confirm_delivery_error", {"order_id": order_id, "error": str(e)}, level="error")
        raise


def import_received_lines(path: str) -> List[Tuple[str, float]]:
    """Reads a delivery receipt sheet into `(line_id, quantity)` pairs."""
    pairs = load_received_lines_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(pairs))
    return pairs
