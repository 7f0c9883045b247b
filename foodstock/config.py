"""
Global settings and default values for the food-service inventory system.
"""

import os
from dataclasses import dataclass


# Default SQLite database path
DB_PATH = os.environ.get("FOODSTOCK_DB") or os.path.join(os.getcwd(), "foodstock.db")


@dataclass
class DefaultConfig:
    """Default values for runtime parameters."""
    reorder_multiplier: float = 2.0  # minStock x multiplier when no reorder unit
    delivery_lead_days: int = 3  # expected delivery for orders built from recommendations
    unknown_supplier_key: str = "UNKNOWN"
    top_differences_limit: int = 10
    allow_negative_stock: bool = True
    expiring_window_days: int = 3
    busy_timeout_s: float = 30.0


# Global instance of the defaults
DEFAULTS = DefaultConfig()
