"""
Logging for inventory transactions.

This module configures and exposes the loggers used to record every
critical operation of the system: procurement, stocktaking, production
and the underlying database writes.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


# Global switch for logging
ENABLE_LOGGING = _env_flag("FOODSTOCK_LOGGING")
# Global switch for console output
ENABLE_OUTPUT = _env_flag("FOODSTOCK_OUTPUT")

def print_system(*args, **kwargs):
    """Print gated by ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Base logger configuration
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configures a logger writing to its own file.

    Args:
        name: Logger name
        log_file: Path of the log file
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Drop any existing handler (root and console included)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    # File handler, opened on first record
    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    file_handler.setFormatter(formatter)

    logger.addHandler(file_handler)

    return logger

# Log directory (inside the package unless overridden)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("FOODSTOCK_LOG_DIR") or (BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "procurement": LOGS_DIR / "procurement.log",
    "stocktaking": LOGS_DIR / "stocktaking.log",
    "production": LOGS_DIR / "production.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

# One logger per concern
transaction_logger = setup_logger('foodstock.transactions', str(LOG_FILES["transactions"]))
procurement_logger = setup_logger('foodstock.procurement', str(LOG_FILES["procurement"]))
stocktaking_logger = setup_logger('foodstock.stocktaking', str(LOG_FILES["stocktaking"]))
production_logger = setup_logger('foodstock.production', str(LOG_FILES["production"]))
database_logger = setup_logger('foodstock.database', str(LOG_FILES["database"]))
system_logger = setup_logger('foodstock.system', str(LOG_FILES["system"]))


def _enabled() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Records a whole business operation.

    Args:
        operation: Operation name (add_order_line, confirm_stocktaking, ...)
        data: Operation input
        result: Operation result (optional)
        error: Error message (optional)
    """
    if not _enabled():
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def _log_domain(logger: logging.Logger, prefix: str, action: str, ref: str, **kwargs) -> None:
    if not _enabled():
        return
    log_data = {"action": action, "ref": ref, **kwargs}
    logger.info(f"{prefix}_{action.upper()}: {log_data}")


def log_procurement(action: str, order_id: str, **kwargs) -> None:
    """Order lifecycle events (create, add_line, status, deliver)."""
    _log_domain(procurement_logger, "ORDER", action, order_id, **kwargs)


def log_stocktaking(action: str, stocktaking_id: str, **kwargs) -> None:
    """Stocktaking events (create, detail, confirm)."""
    _log_domain(stocktaking_logger, "STOCKTAKING", action, stocktaking_id, **kwargs)


def log_production(action: str, wip_item_id: str, **kwargs) -> None:
    """Production and waste events (check, record, consume)."""
    _log_domain(production_logger, "PRODUCTION", action, wip_item_id, **kwargs)


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Database-level writes and reads.

    Args:
        table: Table name
        operation: SQL operation (INSERT, UPSERT, UPDATE, SELECT)
        affected_rows: Number of affected rows
        **kwargs: Extra data
    """
    if not _enabled():
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    System events.

    Args:
        event: Event name
        details: Extra details (optional)
        level: Log level (info, warning, error)
    """
    if not _enabled():
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Spreadsheet import/export.

    Args:
        operation: import or export
        file_path: File path
        rows_processed: Number of rows processed
        **kwargs: Extra data
    """
    if not _enabled():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(timespec="seconds"),
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Returns the tail of a log file.

    Args:
        log_type: transactions, procurement, stocktaking, production, database or system
        lines: Number of lines to return

    Returns:
        The log content, or None when logging is disabled
    """
    if not _enabled():
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} not found."

    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    return ''.join(all_lines[-lines:])
