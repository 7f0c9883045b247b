# foodstock/adapters/cli.py
"""
Foodstock CLI (Typer).

Main commands:
- migrate                         -> applies migrations and creates views
- params set/get/show             -> runtime parameters
- catalog import/products/...     -> reference data
- recipe add/show/expand/cost     -> recipe graph
- inventory show/alerts/expiring  -> ledger reports
- order ...                       -> purchase orders and deliveries
- stocktaking ...                 -> physical counts
- production check/record/history -> WIP production
- waste record/list/summary       -> losses

Listing commands accept `--json` to print machine-readable output.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from foodstock.config import DB_PATH, DEFAULTS
from foodstock.adapters.parsers import parse_item_ref
from foodstock.domain.errors import FoodstockError, ValidationError
from foodstock.domain.models import ItemRef, ParentRef
from foodstock.infra.migrations import apply_migrations
from foodstock.infra.views import create_views
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import ParamsRepo, ProductRepo, StoreRepo, WipItemRepo
from foodstock.usecases import (
    catalog,
    inventory,
    procurement,
    production,
    purchases,
    recipes,
    reports,
    sales,
    stocktaking,
    waste,
)


app = typer.Typer(help="Foodstock: multi-location food inventory CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _cell(val: Any) -> Any:
    if isinstance(val, Enum):
        return val.value
    if isinstance(val, (ItemRef, ParentRef)):
        return str(val)
    return val


def _plain(obj: Any) -> Any:
    """Dataclasses (and lists of them) to JSON-friendly dicts."""
    if isinstance(obj, list):
        return [_plain(o) for o in obj]
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    if is_dataclass(obj) and not isinstance(obj, (ItemRef, ParentRef)):
        return {f.name: _plain(getattr(obj, f.name)) for f in fields(obj)}
    return _cell(obj)


def _fmt(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return "yes" if val else "no"
    if isinstance(val, float):
        return f"{val:,.2f}"
    if isinstance(val, (list, dict)):
        return json.dumps(val, ensure_ascii=False, default=str)
    return str(val)


def _display_table(data: Any, title: str = "Result") -> None:
    """Renders a list of dicts (or one dict) as a Rich table, JSON otherwise."""
    data = _plain(data)
    if not data:
        console.print(Panel("No data found", title=title, border_style="yellow"))
        return

    if isinstance(data, list) and isinstance(data[0], dict):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            numeric = isinstance(data[0].get(column), (int, float)) and not isinstance(data[0].get(column), bool)
            table.add_column(column, justify="right" if numeric else "left")
        for row in data:
            values = []
            for col in columns:
                val = row.get(col)
                if col == "status" and val in ("LOW", "NEGATIVE"):
                    values.append(f"[bold red]{val}[/]")
                else:
                    values.append(_fmt(val))
            table.add_row(*values)
        console.print(table)
        return

    if isinstance(data, dict) and not any(isinstance(v, list) for v in data.values()):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Field")
        table.add_column("Value")
        for k, v in data.items():
            table.add_row(str(k), _fmt(v))
        console.print(table)
        return

    _print_json(data)


def _show(data: Any, title: str, as_json: bool) -> None:
    if as_json:
        _print_json(_plain(data))
    else:
        _display_table(data, title=title)


@contextmanager
def _guard() -> Iterator[None]:
    """Maps domain failures to a red message and exit code 1."""
    try:
        yield
    except FoodstockError as e:
        console.print(f"[bold red]{type(e).__name__}:[/] {e}")
        raise typer.Exit(code=1)


def _parse_pairs(values: List[str]) -> List[Tuple[str, float]]:
    out = []
    for v in values:
        if "=" not in v:
            raise ValidationError(f"expected LINE_ID=QUANTITY, got {v!r}")
        key, qty = v.split("=", 1)
        try:
            out.append((key.strip(), float(qty)))
        except ValueError:
            raise ValidationError(f"invalid quantity in {v!r}") from None
    return out


def _parent(menu: Optional[str], wip: Optional[str]) -> ParentRef:
    if bool(menu) == bool(wip):
        raise ValidationError("give exactly one of --menu / --wip")
    return ParentRef.menu(menu) if menu else ParentRef.wip(wip)


# -----------------------
# infra commands
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path")):
    """Applies migrations and recreates the helper views."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrations applied and views created in: {db_path}")


params_app = typer.Typer(help="Runtime parameters (fallback to built-in defaults).")
app.add_typer(params_app, name="params")

_PARAM_KEYS = [
    "reorder_multiplier",
    "delivery_lead_days",
    "top_differences_limit",
    "allow_negative_stock",
    "expiring_window_days",
]


@params_app.command("set")
def cmd_params_set(
    key: str = typer.Argument(..., help="One of: " + ", ".join(_PARAM_KEYS)),
    value: str = typer.Argument(...),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Sets one parameter."""
    if key not in _PARAM_KEYS:
        typer.echo(f"Unknown parameter: {key}")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many([(key, value)])
    typer.echo(">> Parameter updated.")


@params_app.command("get")
def cmd_params_get(
    key: str = typer.Argument(...),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Shows one stored parameter."""
    val = ParamsRepo(db_path).get(key)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Shows effective parameters (stored value or default)."""
    repo = ParamsRepo(db_path)
    out = {k: repo.get(k, str(getattr(DEFAULTS, k))) for k in _PARAM_KEYS}
    _show(out, "Parameters", as_json)


# -----------------------
# catalog
# -----------------------

catalog_app = typer.Typer(help="Reference data (stores, products, WIP items, menus).")
app.add_typer(catalog_app, name="catalog")


@catalog_app.command("import")
def cmd_catalog_import(
    path: str = typer.Argument(..., help="XLSX workbook, one sheet per entity"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Upserts every recognised sheet of a catalog workbook."""
    with _guard():
        res = catalog.import_catalog_from_xlsx(path, db_path=db_path)
    _display_table(res, title="Catalog import")


@catalog_app.command("stores")
def cmd_catalog_stores(
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(StoreRepo(db_path).get_all(), "Stores", as_json)


@catalog_app.command("products")
def cmd_catalog_products(
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(ProductRepo(db_path).get_all(), "Products", as_json)


@catalog_app.command("wip")
def cmd_catalog_wip(
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(WipItemRepo(db_path).get_all(), "WIP items", as_json)


# -----------------------
# recipes
# -----------------------

recipe_app = typer.Typer(help="Recipes of menus and WIP items.")
app.add_typer(recipe_app, name="recipe")


@recipe_app.command("add")
def cmd_recipe_add(
    input_ref: str = typer.Argument(..., help="PRODUCT:<id> or WIP:<id>"),
    quantity: float = typer.Argument(...),
    unit: str = typer.Argument(...),
    menu: Optional[str] = typer.Option(None, "--menu", help="Parent menu id"),
    wip: Optional[str] = typer.Option(None, "--wip", help="Parent WIP item id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Adds one input line to a recipe."""
    with _guard():
        line = recipes.add_recipe_line(_parent(menu, wip), parse_item_ref(input_ref), quantity, unit, db_path=db_path)
    typer.echo(f">> Recipe line {line.id} added.")


@recipe_app.command("show")
def cmd_recipe_show(
    menu: Optional[str] = typer.Option(None, "--menu"),
    wip: Optional[str] = typer.Option(None, "--wip"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        lines = recipes.get_recipe(_parent(menu, wip), db_path=db_path)
    _show(lines, "Recipe", as_json)


@recipe_app.command("expand")
def cmd_recipe_expand(
    wip_item_id: str = typer.Argument(...),
    batch: float = typer.Argument(...),
    raw: bool = typer.Option(False, "--raw", help="Expand WIP inputs down to raw products"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Lists the inputs needed for a batch."""
    with _guard():
        if raw:
            reqs = recipes.expand_raw_requirements(wip_item_id, batch, db_path=db_path)
        else:
            catalog.get_wip_item(wip_item_id, db_path)
            reqs = recipes.expand_requirements(wip_item_id, batch, db_path=db_path)
    _show(reqs, f"Requirements for {batch:g} x {wip_item_id}", as_json)


@recipe_app.command("cost")
def cmd_recipe_cost(
    menu: Optional[str] = typer.Option(None, "--menu"),
    wip: Optional[str] = typer.Option(None, "--wip"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        res = recipes.recipe_cost(_parent(menu, wip), db_path=db_path)
    _show(res, "Recipe cost", as_json)


@recipe_app.command("check")
def cmd_recipe_check(db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path")):
    """Scans every WIP recipe for loops; exits 1 when one is found."""
    cycles = recipes.find_recipe_cycles(db_path=db_path)
    if not cycles:
        typer.echo(">> No recipe cycles.")
        return
    for c in cycles:
        console.print(f"[bold red]cycle:[/] {' -> '.join(c)}")
    raise typer.Exit(code=1)


# -----------------------
# inventory
# -----------------------

inventory_app = typer.Typer(help="Ledger status and alerts.")
app.add_typer(inventory_app, name="inventory")


@inventory_app.command("show")
def cmd_inventory_show(
    store: Optional[str] = typer.Option(None, "--store"),
    wip: bool = typer.Option(False, "--wip", help="Show the WIP ledger instead"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    if wip:
        _show(InventoryLedger(db_path).list_wip_inventory(store), "WIP inventory", as_json)
    else:
        _show(reports.inventory_status(store, db_path=db_path), "Inventory", as_json)


@inventory_app.command("alerts")
def cmd_inventory_alerts(
    store: Optional[str] = typer.Option(None, "--store"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Products at or below minimum stock."""
    _show(reports.stock_alerts(store, db_path=db_path), "Stock alerts", as_json)


@inventory_app.command("expiring")
def cmd_inventory_expiring(
    days: Optional[int] = typer.Option(None, "--days", help="Window in days"),
    store: Optional[str] = typer.Option(None, "--store"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """WIP stock expiring within the window."""
    _show(reports.expiring_wip(days, store, db_path=db_path), "Expiring WIP", as_json)


@inventory_app.command("set")
def cmd_inventory_set(
    store: str = typer.Argument(...),
    item: str = typer.Argument(..., help="PRODUCT:<id> or WIP:<id>"),
    quantity: float = typer.Argument(...),
    actor: Optional[str] = typer.Option(None, "--by"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Overwrites the on-hand quantity of one item (manual correction)."""
    with _guard():
        ref = parse_item_ref(item)
        previous = inventory.set_stock(store, ref, quantity, actor, db_path=db_path)
    typer.echo(f">> {ref} at {store}: {previous:g} -> {quantity:g}.")


# -----------------------
# orders
# -----------------------

order_app = typer.Typer(help="Purchase orders.")
app.add_typer(order_app, name="order")


@order_app.command("create")
def cmd_order_create(
    store: str = typer.Argument(...),
    supplier: Optional[str] = typer.Option(None, "--supplier"),
    employee: Optional[str] = typer.Option(None, "--employee"),
    order_date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD"),
    expected: Optional[str] = typer.Option(None, "--expected", help="Expected delivery YYYY-MM-DD"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        order = procurement.create_order(store, supplier, employee, order_date, expected, notes, db_path=db_path)
    typer.echo(f">> Order {order.order_number} created (id {order.id}).")


@order_app.command("add-line")
def cmd_order_add_line(
    order_id: str = typer.Argument(...),
    product_id: str = typer.Argument(...),
    quantity: float = typer.Argument(...),
    unit: str = typer.Argument(...),
    unit_price: float = typer.Argument(...),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        line = procurement.add_order_line(order_id, product_id, quantity, unit, unit_price, notes, db_path=db_path)
    typer.echo(f">> Line {line.id} added (amount {line.amount:,.2f}).")


@order_app.command("status")
def cmd_order_status(
    order_id: str = typer.Argument(...),
    status: str = typer.Argument(..., help="ORDERED | CANCELLED (use deliver to receive goods)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        order = procurement.update_status(order_id, status, db_path=db_path)
    typer.echo(f">> Order {order.order_number} is now {order.status.value}.")


@order_app.command("recommend")
def cmd_order_recommend(
    store: str = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Reorder proposals grouped by supplier."""
    with _guard():
        groups = procurement.generate_recommendations(store, db_path=db_path)
    if as_json:
        _print_json(groups)
        return
    if not groups:
        _display_table([], title="Recommendations")
    for g in groups:
        _display_table(g["items"], title=f"{g['supplier_id']} (estimated {g['estimated_total']:,.2f})")


@order_app.command("auto")
def cmd_order_auto(
    store: str = typer.Argument(...),
    supplier: str = typer.Argument(..., help="Supplier id of a recommendation group"),
    employee: Optional[str] = typer.Option(None, "--employee"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Creates an order from one supplier's recommendation group."""
    with _guard():
        groups = procurement.generate_recommendations(store, db_path=db_path)
        group = next((g for g in groups if g["supplier_id"] == supplier), None)
        if group is None:
            typer.echo(f"No recommendation for supplier {supplier}.")
            raise typer.Exit(code=1)
        order = procurement.create_from_recommendation(store, supplier, group["items"], employee, db_path=db_path)
    typer.echo(f">> Order {order.order_number} created with {len(order.lines)} lines.")


@order_app.command("deliver")
def cmd_order_deliver(
    order_id: str = typer.Argument(...),
    line: List[str] = typer.Option([], "--line", help="LINE_ID=QUANTITY (repeatable)"),
    file: Optional[str] = typer.Option(None, "--file", help="Delivery receipt XLSX"),
    full: bool = typer.Option(False, "--full", help="Receive every line's ordered quantity"),
    actor: Optional[str] = typer.Option(None, "--by"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Confirms delivery and increments the ledger."""
    with _guard():
        if full and (line or file):
            raise ValidationError("--full cannot be combined with --line or --file")
        pairs = _parse_pairs(line)
        if file:
            pairs += procurement.import_received_lines(file)
        if full:
            pairs += [(ln.id, ln.quantity) for ln in procurement.get_order(order_id, db_path=db_path).lines]
        order = procurement.confirm_delivery(order_id, pairs, actor=actor, db_path=db_path)
    typer.echo(f">> Order {order.order_number} delivered ({len(pairs)} lines received).")


@order_app.command("show")
def cmd_order_show(
    order_id: str = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        order = procurement.get_order(order_id, db_path=db_path)
    if as_json:
        _print_json(_plain(order))
        return
    header = _plain(order)
    lines = header.pop("lines")
    _display_table(header, title=f"Order {order.order_number}")
    _display_table(lines, title="Lines")


@order_app.command("list")
def cmd_order_list(
    store: Optional[str] = typer.Option(None, "--store"),
    status: Optional[str] = typer.Option(None, "--status"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        orders = procurement.list_orders(store, status, db_path=db_path)
    rows = _plain(orders)
    for r in rows:
        r.pop("lines", None)
    _show(rows, "Orders", as_json)


# -----------------------
# stocktaking
# -----------------------

st_app = typer.Typer(help="Physical counts.")
app.add_typer(st_app, name="stocktaking")


@st_app.command("create")
def cmd_st_create(
    store: str = typer.Argument(...),
    employee: Optional[str] = typer.Option(None, "--employee"),
    st_date: Optional[str] = typer.Option(None, "--date"),
    generate: bool = typer.Option(True, "--generate/--empty", help="Snapshot the ledger into count lines"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        st = stocktaking.create_stocktaking(store, employee, st_date, db_path=db_path)
        n = len(stocktaking.generate_details(st.id, db_path=db_path)) if generate else 0
    typer.echo(f">> Stocktaking {st.id} created with {n} lines.")


@st_app.command("add")
def cmd_st_add(
    stocktaking_id: str = typer.Argument(...),
    item: str = typer.Argument(..., help="PRODUCT:<id> or WIP:<id>"),
    system_quantity: float = typer.Argument(...),
    actual_quantity: float = typer.Argument(...),
    unit: str = typer.Argument(...),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        d = stocktaking.add_detail(stocktaking_id, parse_item_ref(item), system_quantity, actual_quantity,
                                   unit, notes, db_path=db_path)
    typer.echo(f">> Line {d.id} added (difference {d.difference:g}).")


@st_app.command("count")
def cmd_st_count(
    detail_id: str = typer.Argument(...),
    actual_quantity: float = typer.Argument(...),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Records a counted quantity."""
    with _guard():
        d = stocktaking.update_actual_quantity(detail_id, actual_quantity, notes, db_path=db_path)
    typer.echo(f">> Counted {d.actual_quantity:g} (difference {d.difference:g}).")


@st_app.command("confirm")
def cmd_st_confirm(
    stocktaking_id: str = typer.Argument(...),
    actor: Optional[str] = typer.Option(None, "--by"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Overwrites the ledger with the counted quantities."""
    with _guard():
        st = stocktaking.confirm(stocktaking_id, actor=actor, db_path=db_path)
    typer.echo(f">> Stocktaking {st.id} confirmed ({len(st.details)} lines applied).")


@st_app.command("analysis")
def cmd_st_analysis(
    stocktaking_id: str = typer.Argument(...),
    tolerance: float = typer.Option(0.0, "--tolerance"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        res = stocktaking.analysis(stocktaking_id, tolerance=tolerance, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    top = res.pop("top_differences")
    _display_table(res, title="Stocktaking analysis")
    _display_table(top, title="Top differences")


@st_app.command("show")
def cmd_st_show(
    stocktaking_id: str = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        st = stocktaking.get_stocktaking(stocktaking_id, db_path=db_path)
    if as_json:
        _print_json(_plain(st))
        return
    header = _plain(st)
    details = header.pop("details")
    _display_table(header, title=f"Stocktaking {st.id}")
    _display_table(details, title="Lines")


@st_app.command("list")
def cmd_st_list(
    store: Optional[str] = typer.Option(None, "--store"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    rows = _plain(stocktaking.list_stocktakings(store, db_path=db_path))
    for r in rows:
        r.pop("details", None)
    _show(rows, "Stocktakings", as_json)


@st_app.command("export")
def cmd_st_export(
    stocktaking_id: str = typer.Argument(...),
    path: str = typer.Argument(..., help="Target XLSX"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Writes the count sheet to XLSX."""
    with _guard():
        n = stocktaking.export_count_sheet(stocktaking_id, path, db_path=db_path)
    typer.echo(f">> {n} lines written to {path}.")


@st_app.command("import")
def cmd_st_import(
    stocktaking_id: str = typer.Argument(...),
    path: str = typer.Argument(..., help="Filled-in count sheet XLSX"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Applies counted quantities from a count sheet."""
    with _guard():
        res = stocktaking.import_count_sheet(stocktaking_id, path, db_path=db_path)
    _display_table(res, title="Count sheet import")


# -----------------------
# production
# -----------------------

prod_app = typer.Typer(help="WIP production.")
app.add_typer(prod_app, name="production")


@prod_app.command("check")
def cmd_prod_check(
    store: str = typer.Argument(...),
    wip_item_id: str = typer.Argument(...),
    batch: float = typer.Argument(...),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Compares the batch requirements with on-hand stock."""
    with _guard():
        res = production.check_required_ingredients(store, wip_item_id, batch, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table(res["requirements"], title=f"Requirements for {batch:g} x {wip_item_id}")
    verdict = "[bold green]can produce[/]" if res["can_produce"] else "[bold red]shortage[/]"
    console.print(verdict)


@prod_app.command("record")
def cmd_prod_record(
    store: str = typer.Argument(...),
    wip_item_id: str = typer.Argument(...),
    quantity: float = typer.Argument(...),
    unit: str = typer.Argument(...),
    production_date: Optional[str] = typer.Option(None, "--date"),
    expiry_date: Optional[str] = typer.Option(None, "--expiry"),
    employee: Optional[str] = typer.Option(None, "--employee"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Records a batch: consumes raw materials and adds WIP stock."""
    with _guard():
        ev = production.record_production(store, wip_item_id, quantity, unit, production_date,
                                          expiry_date, employee, notes, db_path=db_path)
    typer.echo(f">> Production {ev.id} recorded ({ev.quantity:g} {ev.unit} of {wip_item_id}).")


@prod_app.command("history")
def cmd_prod_history(
    store: Optional[str] = typer.Option(None, "--store"),
    wip: Optional[str] = typer.Option(None, "--wip"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(production.get_production_history(store, wip, db_path=db_path), "Production history", as_json)


# -----------------------
# waste
# -----------------------

waste_app = typer.Typer(help="Waste (loss) records.")
app.add_typer(waste_app, name="waste")


@waste_app.command("record")
def cmd_waste_record(
    store: str = typer.Argument(...),
    item: str = typer.Argument(..., help="PRODUCT:<id> or WIP:<id>"),
    quantity: float = typer.Argument(...),
    reason: Optional[str] = typer.Option(None, "--reason"),
    recorded_by: Optional[str] = typer.Option(None, "--by"),
    waste_date: Optional[str] = typer.Option(None, "--date"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        w = waste.record_waste(store, parse_item_ref(item), quantity, reason, recorded_by, waste_date, db_path=db_path)
    typer.echo(f">> Waste {w.id} recorded.")


@waste_app.command("list")
def cmd_waste_list(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(waste.list_waste(store, start, end, db_path=db_path), "Waste", as_json)


@waste_app.command("summary")
def cmd_waste_summary(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    res = waste.waste_summary(start, end, store, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table({k: v for k, v in res.items() if k != "reason_counts"}, title="Waste summary")
    _display_table([{"reason": k, "count": v} for k, v in res["reason_counts"].items()], title="By reason")


# -----------------------
# purchase / sales history
# -----------------------

purchase_app = typer.Typer(help="Purchase history.")
app.add_typer(purchase_app, name="purchase")


@purchase_app.command("record")
def cmd_purchase_record(
    store: str = typer.Argument(...),
    product_id: str = typer.Argument(...),
    quantity: float = typer.Argument(...),
    unit_price: float = typer.Argument(...),
    supplier: Optional[str] = typer.Option(None, "--supplier"),
    invoice: Optional[str] = typer.Option(None, "--invoice"),
    purchase_date: Optional[str] = typer.Option(None, "--date"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    """Records a purchase made outside the ordering flow (stock is not moved)."""
    with _guard():
        p = purchases.record_purchase(
            store, product_id, quantity, unit_price, purchase_date, supplier, invoice, db_path=db_path
        )
    typer.echo(f">> Purchase {p.id} recorded ({p.total_amount:,.2f}).")


@purchase_app.command("list")
def cmd_purchase_list(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(purchases.list_purchases(store, start, end, db_path=db_path), "Purchases", as_json)


@purchase_app.command("summary")
def cmd_purchase_summary(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(purchases.purchase_summary(start, end, store, db_path=db_path), "Purchase summary", as_json)


sales_app = typer.Typer(help="Sales history (POS lines per menu).")
app.add_typer(sales_app, name="sales")


@sales_app.command("record")
def cmd_sales_record(
    store: str = typer.Argument(...),
    menu_id: str = typer.Argument(...),
    quantity: int = typer.Argument(...),
    amount: Optional[float] = typer.Option(None, "--amount", help="Defaults to menu price x quantity"),
    sale_date: Optional[str] = typer.Option(None, "--date"),
    pos_id: Optional[str] = typer.Option(None, "--pos-id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    with _guard():
        s = sales.record_sale(store, menu_id, quantity, amount, sale_date, pos_id, db_path=db_path)
    typer.echo(f">> Sale {s.id} recorded ({s.amount:,.2f}).")


@sales_app.command("list")
def cmd_sales_list(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    _show(sales.list_sales(store, start, end, db_path=db_path), "Sales", as_json)


@sales_app.command("summary")
def cmd_sales_summary(
    store: Optional[str] = typer.Option(None, "--store"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    as_json: bool = typer.Option(False, "--json"),
    db_path: str = typer.Option(DB_PATH, "--db", help="SQLite path"),
):
    res = sales.sales_summary(start, end, store, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    _display_table({k: v for k, v in res.items() if k != "by_menu"}, title="Sales summary")
    _display_table(res["by_menu"], title="By menu")


def main():
    app()


if __name__ == "__main__":
    main()
