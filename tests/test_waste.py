import pytest

from conftest import on_hand, stock
from foodstock.domain.errors import NotFound, ValidationError
from foodstock.domain.models import ItemRef
from foodstock.infra.ledger import InventoryLedger
from foodstock.usecases.waste import list_waste, record_waste, waste_summary


def test_record_waste_decrements_ledger(seeded):
    stock(seeded, "S001", "I030", 500)
    w = record_waste("S001", ItemRef.product("I030"), 120, reason="spilled",
                     recorded_by="E02", waste_date="2025-02-01", db_path=seeded)

    assert w.id.startswith("WS-")
    assert on_hand(seeded, "S001", "I030") == 380.0
    assert [x.id for x in list_waste("S001", db_path=seeded)] == [w.id]


def test_record_waste_of_wip(seeded):
    InventoryLedger(seeded).adjust_quantity("S001", ItemRef.wip("W002"), 2)
    record_waste("S001", ItemRef.wip("W002"), 0.5, reason="expired", db_path=seeded)
    assert on_hand(seeded, "S001", ItemRef.wip("W002")) == 1.5


@pytest.mark.parametrize("qty", [0, -3, None])
def test_record_waste_rejects_non_positive(seeded, qty):
    with pytest.raises(ValidationError):
        record_waste("S001", ItemRef.product("I010"), qty, db_path=seeded)
    assert list_waste(db_path=seeded) == []


def test_record_waste_unknown_item_writes_nothing(seeded):
    with pytest.raises(NotFound):
        record_waste("S001", ItemRef.product("I999"), 1, db_path=seeded)
    with pytest.raises(NotFound):
        record_waste("S999", ItemRef.product("I010"), 1, db_path=seeded)
    assert list_waste(db_path=seeded) == []


def test_list_waste_period_and_order(seeded):
    record_waste("S001", ItemRef.product("I010"), 10, waste_date="2025-02-01", db_path=seeded)
    record_waste("S001", ItemRef.product("I010"), 20, waste_date="2025-02-03", db_path=seeded)
    record_waste("S003", ItemRef.product("I010"), 30, waste_date="2025-02-05", db_path=seeded)

    assert [w.quantity for w in list_waste(db_path=seeded)] == [30.0, 20.0, 10.0]
    assert [w.quantity for w in list_waste(start="2025-02-02", end="2025-02-03", db_path=seeded)] == [20.0]
    assert [w.quantity for w in list_waste("S001", start="2025-02-01", db_path=seeded)] == [20.0, 10.0]


def test_waste_summary_counts_reasons(seeded):
    record_waste("S001", ItemRef.product("I010"), 10, reason="dropped", waste_date="2025-02-01", db_path=seeded)
    record_waste("S001", ItemRef.product("I030"), 5, reason="dropped", waste_date="2025-02-02", db_path=seeded)
    record_waste("S001", ItemRef.product("I032"), 2.5, reason="  ", waste_date="2025-02-02", db_path=seeded)
    record_waste("S001", ItemRef.product("I034"), 100, waste_date="2025-03-01", db_path=seeded)

    s = waste_summary(start="2025-02-01", end="2025-02-28", db_path=seeded)
    assert s == {
        "total_quantity": 17.5,
        "waste_count": 3,
        "reason_counts": {"dropped": 2, "UNCLASSIFIED": 1},
    }
    assert waste_summary(store_id="S003", db_path=seeded)["waste_count"] == 0
