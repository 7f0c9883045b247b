import pytest

from conftest import on_hand, stock
from foodstock.domain.errors import InsufficientStock, NotFound, ValidationError
from foodstock.domain.models import ItemRef, ParentRef
from foodstock.infra.ledger import InventoryLedger
from foodstock.infra.repositories import ParamsRepo
from foodstock.usecases.production import (
    check_required_ingredients,
    get_production_history,
    record_production,
)
from foodstock.usecases.recipes import add_recipe_line


@pytest.fixture
def kitchen(seeded):
    """S001 stocked for up to five batches of noodle dough."""
    stock(seeded, "S001", "I010", 5000)
    stock(seeded, "S001", "I030", 500)
    stock(seeded, "S001", "I032", 500)
    stock(seeded, "S001", "I034", 100)
    return seeded


def test_check_required_ingredients_ok(kitchen):
    res = check_required_ingredients("S001", "W002", 2, db_path=kitchen)
    assert res["can_produce"] is True
    assert [(r["item_id"], r["required_quantity"], r["available_quantity"], r["shortage"])
            for r in res["requirements"]] == [
        ("I010", 2000.0, 5000.0, 0.0),
        ("I030", 100.0, 500.0, 0.0),
        ("I032", 60.0, 500.0, 0.0),
        ("I034", 20.0, 100.0, 0.0),
    ]
    assert res["requirements"][0]["product_name"] == "Flour"
    assert res["wip_inputs"] == []


def test_check_required_ingredients_shortage(kitchen):
    res = check_required_ingredients("S001", "W002", 6, db_path=kitchen)
    assert res["can_produce"] is False
    short = {r["item_id"]: r["shortage"] for r in res["requirements"] if r["shortage"] > 0}
    assert short == {"I010": 1000.0}


def test_check_does_not_write(kitchen):
    check_required_ingredients("S001", "W002", 100, db_path=kitchen)
    assert on_hand(kitchen, "S001", "I010") == 5000.0
    assert get_production_history(db_path=kitchen) == []


def test_check_unknown_refs(kitchen):
    with pytest.raises(NotFound):
        check_required_ingredients("S001", "W999", 1, db_path=kitchen)
    with pytest.raises(NotFound):
        check_required_ingredients("S999", "W002", 1, db_path=kitchen)
    with pytest.raises(ValidationError):
        check_required_ingredients("S001", "W002", 0, db_path=kitchen)


def test_record_production_consumes_and_adds_output(kitchen):
    event = record_production("S001", "W002", 2, "kg", production_date="2025-01-10",
                              employee_id="E07", db_path=kitchen)

    assert event.id.startswith("WP-")
    assert on_hand(kitchen, "S001", "I010") == 3000.0
    assert on_hand(kitchen, "S001", "I030") == 400.0
    assert on_hand(kitchen, "S001", "I032") == 440.0
    assert on_hand(kitchen, "S001", "I034") == 80.0
    assert on_hand(kitchen, "S001", ItemRef.wip("W002")) == 2.0


def test_record_production_derives_expiry(kitchen):
    event = record_production("S001", "W002", 1, "kg", production_date="2025-01-10", db_path=kitchen)
    assert event.expiry_date == "2025-01-12"

    rec = InventoryLedger(kitchen).get_record("S001", ItemRef.wip("W002"))
    assert (rec.production_date, rec.expiry_date) == ("2025-01-10", "2025-01-12")

    explicit = record_production("S001", "W002", 1, "kg", production_date="2025-01-11",
                                 expiry_date="2025-01-20", db_path=kitchen)
    assert explicit.expiry_date == "2025-01-20"
    rec = InventoryLedger(kitchen).get_record("S001", ItemRef.wip("W002"))
    assert rec.quantity == 2.0
    assert rec.expiry_date == "2025-01-20"


def test_shortage_is_allowed_by_default(kitchen):
    res = check_required_ingredients("S001", "W002", 6, db_path=kitchen)
    assert res["can_produce"] is False

    record_production("S001", "W002", 6, "kg", db_path=kitchen)
    assert on_hand(kitchen, "S001", "I010") == -1000.0
    assert on_hand(kitchen, "S001", ItemRef.wip("W002")) == 6.0


def test_shortage_blocked_when_negative_stock_disallowed(kitchen):
    ParamsRepo(kitchen).set_many([("allow_negative_stock", "false")])

    with pytest.raises(InsufficientStock) as exc:
        record_production("S001", "W002", 6, "kg", db_path=kitchen)
    assert [s["item_id"] for s in exc.value.shortages] == ["I010"]

    assert on_hand(kitchen, "S001", "I010") == 5000.0
    assert on_hand(kitchen, "S001", ItemRef.wip("W002")) == 0.0
    assert get_production_history(db_path=kitchen) == []

    # within stock it still goes through
    record_production("S001", "W002", 2, "kg", db_path=kitchen)
    assert on_hand(kitchen, "S001", "I010") == 3000.0


def test_wip_inputs_are_listed_but_not_consumed(kitchen):
    add_recipe_line(ParentRef.wip("W003"), ItemRef.wip("W002"), 0.5, "kg", db_path=kitchen)
    add_recipe_line(ParentRef.wip("W003"), ItemRef.product("I030"), 100, "ml", db_path=kitchen)
    InventoryLedger(kitchen).adjust_quantity("S001", ItemRef.wip("W002"), 1)

    res = check_required_ingredients("S001", "W003", 2, db_path=kitchen)
    assert [r["item_id"] for r in res["requirements"]] == ["I030"]
    assert res["wip_inputs"] == [
        {"item_id": "W002", "required_quantity": 1.0, "available_quantity": 1.0, "unit": "kg"},
    ]

    record_production("S001", "W003", 2, "l", db_path=kitchen)
    assert on_hand(kitchen, "S001", ItemRef.wip("W002")) == 1.0
    assert on_hand(kitchen, "S001", "I030") == 300.0
    assert on_hand(kitchen, "S001", ItemRef.wip("W003")) == 2.0


def test_production_without_recipe_only_adds_output(seeded):
    record_production("S003", "W003", 3, "l", db_path=seeded)
    assert on_hand(seeded, "S003", ItemRef.wip("W003")) == 3.0
    assert InventoryLedger(seeded).list_inventory("S003") == []


def test_record_production_requires_unit(kitchen):
    with pytest.raises(ValidationError):
        record_production("S001", "W002", 1, "", db_path=kitchen)


def test_production_history(kitchen):
    record_production("S001", "W002", 1, "kg", production_date="2025-01-11", db_path=kitchen)
    record_production("S001", "W002", 1, "kg", production_date="2025-01-10", db_path=kitchen)
    record_production("S003", "W003", 1, "l", production_date="2025-01-09", db_path=kitchen)

    assert [e.production_date for e in get_production_history("S001", db_path=kitchen)] == [
        "2025-01-10", "2025-01-11",
    ]
    assert [e.store_id for e in get_production_history(wip_item_id="W003", db_path=kitchen)] == ["S003"]
    assert len(get_production_history(db_path=kitchen)) == 3
