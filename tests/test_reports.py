from conftest import stock
from foodstock.domain.models import ItemRef
from foodstock.infra.ledger import InventoryLedger
from foodstock.usecases.reports import expiring_wip, inventory_status, stock_alerts


def test_inventory_status_flags(seeded):
    stock(seeded, "S001", "I010", 2000)    # exactly at min: low
    stock(seeded, "S001", "I030", 900)
    stock(seeded, "S001", "I034", 50)      # no min
    stock(seeded, "S003", "I032", -10)

    rows = {(r["store_id"], r["product_id"]): r for r in inventory_status(db_path=seeded)}
    assert rows[("S001", "I010")]["is_low_stock"] is True
    assert rows[("S001", "I010")]["status"] == "LOW"
    assert rows[("S001", "I030")]["status"] == "OK"
    assert rows[("S001", "I034")]["status"] == "CHECK"
    assert rows[("S001", "I034")]["shortage"] is None
    assert rows[("S003", "I032")]["status"] == "NEGATIVE"
    assert rows[("S001", "I010")]["store_name"] == "Shibuya"

    assert [r["product_id"] for r in inventory_status("S003", db_path=seeded)] == ["I032"]


def test_stock_alerts_most_severe_first(seeded):
    stock(seeded, "S001", "I010", 1900)    # short 100
    stock(seeded, "S001", "I030", 0)       # short 500
    stock(seeded, "S001", "I032", 400)     # healthy

    alerts = stock_alerts("S001", db_path=seeded)
    assert [(a["product_id"], a["shortage"]) for a in alerts] == [("I030", 500.0), ("I010", 100.0)]


def test_expiring_wip_window(seeded):
    ledger = InventoryLedger(seeded)
    ledger.record_production_output("S001", "W002", 2, "2025-01-08", "2025-01-09")
    ledger.record_production_output("S003", "W002", 1, "2025-01-10", "2025-01-12")
    ledger.record_production_output("S001", "W003", 4, "2025-01-10", "2025-01-20")
    ledger.record_production_output("S003", "W003", 1, "2025-01-01", "2025-01-05")
    ledger.adjust_quantity("S003", ItemRef.wip("W003"), -1)    # used up

    rows = expiring_wip(window_days=3, today="2025-01-10", db_path=seeded)
    assert [(r["store_id"], r["wip_item_id"], r["days_left"], r["expired"]) for r in rows] == [
        ("S001", "W002", -1, True),
        ("S003", "W002", 2, False),
    ]

    assert [r["store_id"] for r in expiring_wip(3, store_id="S003", today="2025-01-10", db_path=seeded)] == ["S003"]
    assert len(expiring_wip(10, today="2025-01-10", db_path=seeded)) == 3


def test_expiring_wip_uses_configured_window(seeded):
    InventoryLedger(seeded).record_production_output("S001", "W002", 1, "2025-01-10", "2025-01-13")
    assert len(expiring_wip(today="2025-01-10", db_path=seeded)) == 1
    assert expiring_wip(today="2025-01-09", db_path=seeded) == []
