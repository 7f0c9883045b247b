# foodstock/usecases/stocktaking.py
"""
UC: physical counts (stocktaking).

Flow:
1) `create_stocktaking` opens a DRAFT header for one location.
2) `generate_details` snapshots the location's ledgers into count lines
   (system = actual, difference 0).
3) Counted values arrive through `update_actual_quantity` (or a count
   sheet via `import_count_sheet`); `add_detail` adds lines by hand.
4) `confirm` overwrites the ledger with every counted value and closes the
   header. A CONFIRMED stocktaking is immutable.
5) `analysis` summarises matches and the largest variances.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from foodstock.config import DB_PATH, DEFAULTS
from foodstock.adapters.sheet_loader import load_count_sheet, write_count_sheet
from foodstock.domain.errors import InvalidState, NotFound, ValidationError
from foodstock.domain.models import ItemKind, ItemRef, Stocktaking, StocktakingDetail, StocktakingStatus
from foodstock.domain.policies import difference_rate, ensure_stocktaking_draft, is_matched
from foodstock.infra.db import transaction
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import ParamsRepo, ProductRepo, StocktakingRepo, WipItemRepo, new_id
from foodstock.infra.logger import (
    log_file_operation,
    log_stocktaking,
    log_system_event,
    log_transaction,
    print_system,
)
from foodstock.usecases.catalog import get_product, get_store, get_wip_item


def _load(repo: StocktakingRepo, stocktaking_id: str, conn=None) -> Stocktaking:
    st = repo.get(stocktaking_id, conn=conn)
    if st is None:
        raise NotFound("stocktaking", stocktaking_id)
    return st


def _number(value: Any, name: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number: {value!r}") from None


def create_stocktaking(
    store_id: str,
    employee_id: Optional[str] = None,
    stocktaking_date: Optional[str] = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> Stocktaking:
    data = {"store_id": store_id, "employee_id": employee_id, "date": stocktaking_date}
    try:
        get_store(store_id, db_path)
        st = Stocktaking(
            id=new_id("ST"),
            store_id=store_id,
            stocktaking_date=stocktaking_date or date.today().isoformat(),
            status=StocktakingStatus.DRAFT,
            employee_id=employee_id,
            notes=notes,
        )
        StocktakingRepo(db_path).insert(st)
        log_stocktaking("create", st.id, store_id=store_id)
        log_transaction("create_stocktaking", data, result=st.id)
        return st
    except Exception as e:
        log_transaction("create_stocktaking", data, error=str(e))
        raise


def generate_details(
    stocktaking_id: str,
    store_id: Optional[str] = None,
    db_path: str = DB_PATH,
) -> List[StocktakingDetail]:
    """
    Snapshots every ledger row (raw and WIP) of the location into details.

    `store_id` defaults to the header's location and must match it when
    given. Items that already have a detail in this stocktaking are skipped,
    so calling it twice does not duplicate lines.
    """
    data = {"stocktaking_id": stocktaking_id, "store_id": store_id}
    try:
        repo = StocktakingRepo(db_path)
        ledger = InventoryLedger(db_path)
        units = {p.id: p.unit for p in ProductRepo(db_path).get_all()}
        wip_units = {w.id: w.unit for w in WipItemRepo(db_path).get_all()}

        created: List[StocktakingDetail] = []
        with transaction(db_path) as conn:
            st = _load(repo, stocktaking_id, conn=conn)
            ensure_stocktaking_draft(st.status)
            if store_id and store_id != st.store_id:
                raise ValidationError(f"stocktaking {stocktaking_id} belongs to {st.store_id}, not {store_id}")
            existing = {d.item for d in repo.details(stocktaking_id, conn=conn)}

            snapshot = [
                (ItemRef.product(r.product_id), r.quantity, units.get(r.product_id))
                for r in ledger.list_inventory(st.store_id, conn=conn)
            ] + [
                (ItemRef.wip(r.wip_item_id), r.quantity, wip_units.get(r.wip_item_id))
                for r in ledger.list_wip_inventory(st.store_id, conn=conn)
            ]
            for item, qty, unit in snapshot:
                if item in existing:
                    continue
                d = StocktakingDetail(
                    id=new_id("STD"),
                    stocktaking_id=stocktaking_id,
                    item=item,
                    system_quantity=float(qty),
                    actual_quantity=float(qty),
                    difference=0.0,
                    unit=unit or "",
                )
                repo.insert_detail(d, conn=conn)
                created.append(d)

        log_stocktaking("generate", stocktaking_id, details=len(created))
        log_transaction("generate_details", data, result=len(created))
        return created
    except Exception as e:
        log_transaction("generate_details", data, error=str(e))
        raise


def add_detail(
    stocktaking_id: str,
    item: Optional[ItemRef],
    system_quantity: Any,
    actual_quantity: Any,
    unit: Optional[str],
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> StocktakingDetail:
    """Adds a count line by hand; difference = actual - system."""
    data = {"stocktaking_id": stocktaking_id, "item": str(item) if item else None,
            "system": system_quantity, "actual": actual_quantity}
    try:
        if item is None:
            raise ValidationError("exactly one of product / wip item is required")
        if not unit:
            raise ValidationError("unit is required")
        system = _number(system_quantity, "system_quantity")
        actual = _number(actual_quantity, "actual_quantity")

        repo = StocktakingRepo(db_path)
        with transaction(db_path) as conn:
            st = _load(repo, stocktaking_id, conn=conn)
            ensure_stocktaking_draft(st.status)
            if item.kind is ItemKind.PRODUCT:
                get_product(item.item_id, db_path, conn=conn)
            else:
                get_wip_item(item.item_id, db_path, conn=conn)
            d = StocktakingDetail(
                id=new_id("STD"),
                stocktaking_id=stocktaking_id,
                item=item,
                system_quantity=system,
                actual_quantity=actual,
                difference=actual - system,
                unit=unit,
                notes=notes,
            )
            repo.insert_detail(d, conn=conn)

        log_stocktaking("add_detail", stocktaking_id, detail_id=d.id, item=str(item), difference=d.difference)
        log_transaction("add_stocktaking_detail", data, result=d.id)
        return d
    except Exception as e:
        log_transaction("add_stocktaking_detail", data, error=str(e))
        raise


def update_actual_quantity(
    detail_id: str,
    actual_quantity: Any,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
    conn=None,
) -> StocktakingDetail:
    """Records a counted value and recomputes the stored difference (DRAFT only)."""
    actual = _number(actual_quantity, "actual_quantity")
    repo = StocktakingRepo(db_path)

    def _apply(c) -> StocktakingDetail:
        d = repo.get_detail(detail_id, conn=c)
        if d is None:
            raise NotFound("stocktaking detail", detail_id)
        ensure_stocktaking_draft(_load(repo, d.stocktaking_id, conn=c).status)
        repo.update_detail_count(detail_id, actual, actual - d.system_quantity, notes, conn=c)
        return repo.get_detail(detail_id, conn=c)

    if conn is not None:
        return _apply(conn)
    with transaction(db_path) as c:
        d = _apply(c)
    log_stocktaking("count", d.stocktaking_id, detail_id=detail_id, actual=actual, difference=d.difference)
    return d


def confirm(stocktaking_id: str, actor: Optional[str] = None, db_path: str = DB_PATH) -> Stocktaking:
    """
    Applies every counted value to the ledger (absolute overwrite) and
    marks the stocktaking CONFIRMED, all in one transaction.

    Raises:
        InvalidState: the stocktaking is already CONFIRMED.
    """
    data = {"stocktaking_id": stocktaking_id, "actor": actor}
    try:
        repo = StocktakingRepo(db_path)
        ledger = InventoryLedger(db_path)
        with transaction(db_path) as conn:
            st = _load(repo, stocktaking_id, conn=conn)
            if st.status is StocktakingStatus.CONFIRMED:
                raise InvalidState(f"stocktaking {stocktaking_id} is already confirmed")
            details = repo.details(stocktaking_id, conn=conn)
            for d in details:
                ledger.set_quantity(st.store_id, d.item, d.actual_quantity, actor=actor or st.employee_id, conn=conn)
            repo.mark_confirmed(stocktaking_id, datetime.now().isoformat(timespec="seconds"), conn=conn)
            st = _load(repo, stocktaking_id, conn=conn)
            st.details = details

        log_stocktaking("confirm", stocktaking_id, details=len(details))
        log_transaction("confirm_stocktaking", data, result="success")
        return st
    except Exception as e:
        log_transaction("confirm_stocktaking", data, error=str(e))
        log_system_event("confirm_stocktaking_error", {"stocktaking_id": stocktaking_id, "error": str(e)}, level="error")
        raise


def analysis(stocktaking_id: str, tolerance: float = 0.0, db_path: str = DB_PATH) -> Dict[str, Any]:
    """
    Variance summary.

    Returns:
        total_items, matched_items, difference_items, difference_rate
        (share of mismatched lines, in %), and top_differences: the largest
        absolute variances, each with its own `difference_rate` ("N/A" when
        the system quantity is not positive).
    """
    repo = StocktakingRepo(db_path)
    _load(repo, stocktaking_id)
    details = repo.details(stocktaking_id)
    limit = int(ParamsRepo(db_path).get_float("top_differences_limit", DEFAULTS.top_differences_limit))

    total = len(details)
    mismatched = [d for d in details if not is_matched(d.difference, tolerance)]
    matched = total - len(mismatched)
    # stable sort keeps insertion order among equal magnitudes
    top = sorted(mismatched, key=lambda d: abs(d.difference), reverse=True)[:limit]

    return {
        "total_items": total,
        "matched_items": matched,
        "difference_items": len(mismatched),
        "difference_rate": round(len(mismatched) / total * 100.0, 2) if total else 0.0,
        "top_differences": [
            {
                "detail_id": d.id,
                "item_kind": d.item.kind.value,
                "item_id": d.item.item_id,
                "system_quantity": d.system_quantity,
                "actual_quantity": d.actual_quantity,
                "difference": d.difference,
                "unit": d.unit,
                "difference_rate": difference_rate(d.difference, d.system_quantity),
            }
            for d in top
        ],
    }


def get_stocktaking(stocktaking_id: str, db_path: str = DB_PATH) -> Stocktaking:
    repo = StocktakingRepo(db_path)
    st = _load(repo, stocktaking_id)
    st.details = repo.details(stocktaking_id)
    return st


def list_stocktakings(store_id: Optional[str] = None, db_path: str = DB_PATH) -> List[Stocktaking]:
    return StocktakingRepo(db_path).list(store_id=store_id)


# -------------------------
# Count sheets (XLSX)
# -------------------------

def export_count_sheet(stocktaking_id: str, path: str, db_path: str = DB_PATH) -> int:
    """Writes the count lines to an XLSX sheet for the counting team."""
    st = get_stocktaking(stocktaking_id, db_path)
    names = {p.id: p.name for p in ProductRepo(db_path).get_all()}
    names.update({w.id: w.name for w in WipItemRepo(db_path).get_all()})
    rows = [
        {
            "detail_id": d.id,
            "item_kind": d.item.kind.value,
            "item_id": d.item.item_id,
            "item_name": names.get(d.item.item_id),
            "unit": d.unit,
            "system_quantity": d.system_quantity,
            "actual_quantity": d.actual_quantity,
            "notes": d.notes,
        }
        for d in st.details
    ]
    write_count_sheet(rows, path)
    log_file_operation("export", path, rows_processed=len(rows), stocktaking_id=stocktaking_id)
    return len(rows)


def import_count_sheet(stocktaking_id: str, path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """
    Applies counted values from a sheet written by `export_count_sheet`.

    All rows are applied in one transaction; a row for a detail of another
    stocktaking raises ValidationError and nothing is applied.
    """
    data = {"stocktaking_id": stocktaking_id, "file": path}
    log_system_event("count_sheet_import_start", data)
    try:
        rows = load_count_sheet(path)
        repo = StocktakingRepo(db_path)
        updated = 0
        with transaction(db_path) as conn:
            ensure_stocktaking_draft(_load(repo, stocktaking_id, conn=conn).status)
            own = {d.id for d in repo.details(stocktaking_id, conn=conn)}
            for r in rows:
                if r["detail_id"] not in own:
                    raise ValidationError(f"detail {r['detail_id']} is not part of stocktaking {stocktaking_id}")
                if r.get("actual_quantity") is None:
                    continue
                update_actual_quantity(r["detail_id"], r["actual_quantity"], r.get("notes"), db_path=db_path, conn=conn)
                updated += 1

        result = {"file": path, "rows_read": len(rows), "rows_updated": updated}
        print_system(f">> {updated} counted lines applied to {stocktaking_id}.")
        log_file_operation("import", path, rows_processed=updated, stocktaking_id=stocktaking_id)
        log_transaction("import_count_sheet", data, result=result)
        return result
    except Exception as e:
        log_transaction("import_count_sheet", data, error=str(e))
        log_system_event("count_sheet_import_error", {**data, "error": str(e)}, level="error")
        raise
