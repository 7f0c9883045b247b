import pandas as pd
import pytest

from conftest import on_hand, stock
from foodstock.domain.errors import InvalidState, NotFound, ValidationError
from foodstock.domain.models import ItemRef, StocktakingStatus
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import ParamsRepo
from foodstock.usecases.stocktaking import (
    add_detail,
    analysis,
    confirm,
    create_stocktaking,
    export_count_sheet,
    generate_details,
    get_stocktaking,
    import_count_sheet,
    list_stocktakings,
    update_actual_quantity,
)


def test_create_stocktaking(seeded):
    st = create_stocktaking("S001", employee_id="E01", stocktaking_date="2025-01-31", db_path=seeded)
    assert st.status is StocktakingStatus.DRAFT
    assert st.id.startswith("ST-")
    assert [s.id for s in list_stocktakings("S001", db_path=seeded)] == [st.id]
    assert list_stocktakings("S003", db_path=seeded) == []

    with pytest.raises(NotFound):
        create_stocktaking("S999", db_path=seeded)


def test_count_and_confirm_overwrites_ledger(seeded):
    stock(seeded, "S001", "I010", 500)
    st = create_stocktaking("S001", db_path=seeded)
    d = add_detail(st.id, ItemRef.product("I010"), 500, 450, "g", db_path=seeded)
    assert d.difference == -50.0

    confirmed = confirm(st.id, actor="E01", db_path=seeded)
    assert confirmed.status is StocktakingStatus.CONFIRMED
    assert confirmed.confirmed_at is not None
    assert on_hand(seeded, "S001", "I010") == 450.0
    assert InventoryLedger(seeded).get_record("S001", ItemRef.product("I010")).last_updated_by == "E01"


def test_confirm_is_one_shot(seeded):
    stock(seeded, "S001", "I010", 500)
    st = create_stocktaking("S001", db_path=seeded)
    add_detail(st.id, ItemRef.product("I010"), 500, 450, "g", db_path=seeded)
    confirm(st.id, db_path=seeded)

    # a later movement must not be overwritten by a second confirm
    stock(seeded, "S001", "I010", 999)
    with pytest.raises(InvalidState):
        confirm(st.id, db_path=seeded)
    assert on_hand(seeded, "S001", "I010") == 999.0


def test_confirmed_stocktaking_is_immutable(seeded):
    st = create_stocktaking("S001", db_path=seeded)
    d = add_detail(st.id, ItemRef.product("I010"), 10, 10, "g", db_path=seeded)
    confirm(st.id, db_path=seeded)

    with pytest.raises(InvalidState):
        add_detail(st.id, ItemRef.product("I030"), 1, 1, "ml", db_path=seeded)
    with pytest.raises(InvalidState):
        update_actual_quantity(d.id, 5, db_path=seeded)
    with pytest.raises(InvalidState):
        generate_details(st.id, db_path=seeded)


def test_add_detail_validation(seeded):
    st = create_stocktaking("S001", db_path=seeded)
    with pytest.raises(ValidationError):
        add_detail(st.id, None, 1, 1, "g", db_path=seeded)
    with pytest.raises(ValidationError):
        add_detail(st.id, ItemRef.product("I010"), 1, None, "g", db_path=seeded)
    with pytest.raises(ValidationError):
        add_detail(st.id, ItemRef.product("I010"), 1, 1, "", db_path=seeded)
    with pytest.raises(NotFound):
        add_detail(st.id, ItemRef.product("I999"), 1, 1, "g", db_path=seeded)
    with pytest.raises(NotFound):
        add_detail("ST-NOPE", ItemRef.product("I010"), 1, 1, "g", db_path=seeded)
    assert get_stocktaking(st.id, db_path=seeded).details == []


def test_generate_details_snapshots_both_ledgers(seeded):
    stock(seeded, "S001", "I010", 1200)
    stock(seeded, "S001", "I030", 300)
    stock(seeded, "S003", "I032", 50)
    InventoryLedger(seeded).adjust_quantity("S001", ItemRef.wip("W002"), 2)

    st = create_stocktaking("S001", db_path=seeded)
    created = generate_details(st.id, db_path=seeded)

    assert [(str(d.item), d.system_quantity, d.actual_quantity, d.difference, d.unit) for d in created] == [
        ("PRODUCT:I010", 1200.0, 1200.0, 0.0, "g"),
        ("PRODUCT:I030", 300.0, 300.0, 0.0, "ml"),
        ("WIP:W002", 2.0, 2.0, 0.0, "kg"),
    ]
    # second run adds nothing
    assert generate_details(st.id, db_path=seeded) == []
    assert len(get_stocktaking(st.id, db_path=seeded).details) == 3


def test_generate_details_rejects_other_store(seeded):
    st = create_stocktaking("S001", db_path=seeded)
    with pytest.raises(ValidationError):
        generate_details(st.id, store_id="S003", db_path=seeded)


def test_update_actual_quantity_recomputes_difference(seeded):
    stock(seeded, "S001", "I010", 500)
    st = create_stocktaking("S001", db_path=seeded)
    d = generate_details(st.id, db_path=seeded)[0]

    got = update_actual_quantity(d.id, 480, notes="torn bag", db_path=seeded)
    assert got.difference == -20.0
    assert got.notes == "torn bag"

    with pytest.raises(NotFound):
        update_actual_quantity("STD-NOPE", 1, db_path=seeded)
    with pytest.raises(ValidationError):
        update_actual_quantity(d.id, "lots", db_path=seeded)


def test_confirm_applies_wip_counts(seeded):
    InventoryLedger(seeded).adjust_quantity("S001", ItemRef.wip("W002"), 3)
    st = create_stocktaking("S001", db_path=seeded)
    d = generate_details(st.id, db_path=seeded)[0]
    update_actual_quantity(d.id, 2.5, db_path=seeded)
    confirm(st.id, db_path=seeded)
    assert on_hand(seeded, "S001", ItemRef.wip("W002")) == 2.5


# -------------------------
# analysis
# -------------------------

def test_analysis_rates_and_top_differences(seeded):
    st = create_stocktaking("S001", db_path=seeded)
    add_detail(st.id, ItemRef.product("I010"), 500, 450, "g", db_path=seeded)
    add_detail(st.id, ItemRef.product("I030"), 0, 200, "ml", db_path=seeded)
    add_detail(st.id, ItemRef.product("I032"), 100, 100, "ml", db_path=seeded)
    add_detail(st.id, ItemRef.product("I034"), 100, 100.4, "g", db_path=seeded)

    res = analysis(st.id, db_path=seeded)
    assert res["total_items"] == 4
    assert res["matched_items"] == 1
    assert res["difference_items"] == 3
    assert res["difference_rate"] == 75.0

    top = res["top_differences"]
    assert [t["item_id"] for t in top] == ["I030", "I010", "I034"]
    assert top[0]["difference_rate"] == "N/A"
    assert top[1]["difference_rate"] == -10.0

    tolerant = analysis(st.id, tolerance=0.5, db_path=seeded)
    assert tolerant["matched_items"] == 2
    assert [t["item_id"] for t in tolerant["top_differences"]] == ["I030", "I010"]


def test_analysis_empty_and_limit(seeded):
    st = create_stocktaking("S001", db_path=seeded)
    assert analysis(st.id, db_path=seeded) == {
        "total_items": 0,
        "matched_items": 0,
        "difference_items": 0,
        "difference_rate": 0.0,
        "top_differences": [],
    }

    ParamsRepo(seeded).set_many([("top_differences_limit", "1")])
    add_detail(st.id, ItemRef.product("I010"), 10, 1, "g", db_path=seeded)
    add_detail(st.id, ItemRef.product("I030"), 10, 2, "ml", db_path=seeded)
    assert len(analysis(st.id, db_path=seeded)["top_differences"]) == 1

    with pytest.raises(NotFound):
        analysis("ST-NOPE", db_path=seeded)


# -------------------------
# count sheets
# -------------------------

def test_count_sheet_export_import(seeded, tmp_path):
    stock(seeded, "S001", "I010", 500)
    stock(seeded, "S001", "I030", 300)
    st = create_stocktaking("S001", db_path=seeded)
    generate_details(st.id, db_path=seeded)

    path = tmp_path / "count.xlsx"
    assert export_count_sheet(st.id, str(path), db_path=seeded) == 2

    df = pd.read_excel(path, sheet_name="count")
    assert list(df["item_name"]) == ["Flour", "Soy sauce"]
    df.loc[df["item_id"] == "I010", "actual_quantity"] = 450
    df.loc[df["item_id"] == "I030", "actual_quantity"] = None
    df.to_excel(path, index=False, sheet_name="count")

    res = import_count_sheet(st.id, str(path), db_path=seeded)
    assert res["rows_read"] == 2
    assert res["rows_updated"] == 1

    details = {d.item.item_id: d for d in get_stocktaking(st.id, db_path=seeded).details}
    assert details["I010"].difference == -50.0
    assert details["I030"].actual_quantity == 300.0


def test_count_sheet_with_foreign_detail_changes_nothing(seeded, tmp_path):
    stock(seeded, "S001", "I010", 500)
    st = create_stocktaking("S001", db_path=seeded)
    other = create_stocktaking("S001", db_path=seeded)
    mine = generate_details(st.id, db_path=seeded)[0]
    theirs = generate_details(other.id, db_path=seeded)[0]

    path = tmp_path / "count.xlsx"
    pd.DataFrame(
        {"Detail ID": [mine.id, theirs.id], "Counted": ["400", "10"]}
    ).to_excel(path, index=False)

    with pytest.raises(ValidationError):
        import_count_sheet(st.id, str(path), db_path=seeded)
    assert get_stocktaking(st.id, db_path=seeded).details[0].actual_quantity == 500.0
