"""
Typed failures raised by the reconciliation core.
"""

from __future__ import annotations


class FoodstockError(Exception):
    """Base class for every failure surfaced to callers."""


class NotFound(FoodstockError, LookupError):
    """A referenced order, stocktaking, product, WIP item or store does not exist."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class InvalidState(FoodstockError):
    """The operation is not allowed in the entity's current status."""


class ValidationError(FoodstockError, ValueError):
    """Missing or malformed input, rejected before any mutation."""


class RecipeCycleError(ValidationError):
    """A WIP-of-WIP recipe chain loops back on itself."""


class InsufficientStock(InvalidState):
    """Raised when negative stock is disallowed and inputs are short."""

    def __init__(self, shortages):
        self.shortages = shortages
        ids = ", ".join(s["item_id"] for s in shortages)
        super().__init__(f"insufficient stock for: {ids}")
