import logging

import pytest

from foodstock.domain.errors import NotFound
from foodstock.domain.models import ItemRef
from foodstock.infra import logger as log_mod
from foodstock.usecases.waste import record_waste


@pytest.fixture
def captured(monkeypatch, caplog):
    """Routes every domain logger to caplog instead of its file."""
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", True)
    for lg in (
        log_mod.transaction_logger, log_mod.procurement_logger, log_mod.stocktaking_logger,
        log_mod.production_logger, log_mod.database_logger, log_mod.system_logger,
    ):
        monkeypatch.setattr(lg, "handlers", [caplog.handler])
    caplog.set_level(logging.INFO)
    return caplog


def test_logging_is_off_by_default(monkeypatch, caplog):
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", False)
    monkeypatch.setattr(log_mod, "ENABLE_OUTPUT", False)
    monkeypatch.setattr(log_mod.transaction_logger, "handlers", [caplog.handler])
    log_mod.log_transaction("noop", {"a": 1}, result="ok")
    assert caplog.records == []
    assert log_mod.get_log_summary() is None


def test_log_transaction_success_and_failure(captured):
    log_mod.log_transaction("add_order_line", {"order_id": "ORD-1"}, result="OL-1")
    log_mod.log_transaction("add_order_line", {"order_id": "ORD-1"}, error="boom")

    success, failure = captured.records
    assert success.levelno == logging.INFO
    assert "TRANSACTION_SUCCESS: add_order_line - Result: OL-1" in success.getMessage()
    assert failure.levelno == logging.ERROR
    assert "TRANSACTION_FAILED: add_order_line - boom" in failure.getMessage()


def test_system_event_level(captured):
    log_mod.log_system_event("confirm_delivery_error", {"order_id": "ORD-1"}, level="error")
    assert captured.records[-1].levelno == logging.ERROR
    assert "SYSTEM_EVENT: confirm_delivery_error" in captured.records[-1].getMessage()


def test_failed_use_case_is_logged(seeded, captured):
    with pytest.raises(NotFound):
        record_waste("S001", ItemRef.product("I999"), 1, db_path=seeded)
    messages = [r.getMessage() for r in captured.records]
    assert any(m.startswith("TRANSACTION_FAILED: record_waste") for m in messages)


def test_ledger_writes_are_logged(seeded, captured):
    record_waste("S001", ItemRef.product("I010"), 5, db_path=seeded)
    messages = [r.getMessage() for r in captured.records]
    assert any(m.startswith("DB_ADJUST:") for m in messages)
    assert any(m.startswith("TRANSACTION_SUCCESS: record_waste") for m in messages)


def test_get_log_summary_tails_file(monkeypatch, tmp_path):
    monkeypatch.setattr(log_mod, "ENABLE_LOGGING", True)
    path = tmp_path / "transactions.log"
    path.write_text("one\ntwo\nthree\n", encoding="utf-8")
    monkeypatch.setitem(log_mod.LOG_FILES, "transactions", path)

    assert log_mod.get_log_summary("transactions", lines=2) == "two\nthree\n"
    assert log_mod.get_log_summary("nope") == "Log nope not found."
