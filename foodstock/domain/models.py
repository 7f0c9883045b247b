"""
Domain models (dataclasses).

Note:
- Catalog repositories accept dicts or dataclasses; reconciliation
  repositories return the dataclasses below so callers get typed rows.
- Product/WIP references are modelled as `ItemRef` (a tagged variant)
  instead of two nullable columns; the two-column form only exists at
  the SQL boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError


class ItemKind(str, Enum):
    PRODUCT = "PRODUCT"
    WIP = "WIP"


class ParentKind(str, Enum):
    MENU = "MENU"
    WIP = "WIP"


class OrderStatus(str, Enum):
    DRAFT = "DRAFT"
    ORDERED = "ORDERED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class StocktakingStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"


@dataclass(frozen=True)
class ItemRef:
    """Either a raw Product or a WIP item, never both."""
    kind: ItemKind
    item_id: str

    def __post_init__(self):
        if not isinstance(self.kind, ItemKind):
            object.__setattr__(self, "kind", ItemKind(self.kind))
        if not self.item_id:
            raise ValidationError("item id is required")

    @classmethod
    def product(cls, product_id: str) -> "ItemRef":
        return cls(ItemKind.PRODUCT, product_id)

    @classmethod
    def wip(cls, wip_item_id: str) -> "ItemRef":
        return cls(ItemKind.WIP, wip_item_id)

    @classmethod
    def from_columns(cls, product_id: Optional[str], wip_item_id: Optional[str]) -> "ItemRef":
        """Builds the variant from the (product_id, wip_item_id) column pair."""
        if bool(product_id) == bool(wip_item_id):
            raise ValidationError("exactly one of product_id / wip_item_id must be set")
        if product_id:
            return cls.product(product_id)
        return cls.wip(wip_item_id)

    def to_columns(self) -> Dict[str, Optional[str]]:
        return {
            "product_id": self.item_id if self.kind is ItemKind.PRODUCT else None,
            "wip_item_id": self.item_id if self.kind is ItemKind.WIP else None,
        }

    @property
    def is_product(self) -> bool:
        return self.kind is ItemKind.PRODUCT

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.item_id}"


@dataclass(frozen=True)
class ParentRef:
    """The producible side of a recipe edge (Menu or WIP item)."""
    kind: ParentKind
    parent_id: str

    def __post_init__(self):
        if not isinstance(self.kind, ParentKind):
            object.__setattr__(self, "kind", ParentKind(self.kind))
        if not self.parent_id:
            raise ValidationError("parent id is required")

    @classmethod
    def menu(cls, menu_id: str) -> "ParentRef":
        return cls(ParentKind.MENU, menu_id)

    @classmethod
    def wip(cls, wip_item_id: str) -> "ParentRef":
        return cls(ParentKind.WIP, wip_item_id)

    @classmethod
    def from_columns(cls, menu_id: Optional[str], wip_item_id: Optional[str]) -> "ParentRef":
        if bool(menu_id) == bool(wip_item_id):
            raise ValidationError("exactly one of menu_id / wip_item_id must be set")
        if menu_id:
            return cls.menu(menu_id)
        return cls.wip(wip_item_id)

    def to_columns(self) -> Dict[str, Optional[str]]:
        return {
            "menu_id": self.parent_id if self.kind is ParentKind.MENU else None,
            "wip_item_id": self.parent_id if self.kind is ParentKind.WIP else None,
        }

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.parent_id}"


# -------------------------
# Catalog (reference data)
# -------------------------

@dataclass
class Store:
    """Location: store, central kitchen or warehouse."""
    id: str
    name: str
    type: str = "STORE"  # 'STORE' | 'KITCHEN' | 'WAREHOUSE'
    address: Optional[str] = None
    phone: Optional[str] = None
    is_active: int = 1


@dataclass
class Category:
    id: str
    name: str
    type: str  # 'MENU' | 'INGREDIENT' | 'WIP'
    parent_id: Optional[str] = None
    display_order: int = 0


@dataclass
class Product:
    """Raw material."""
    id: str
    name: str
    unit: str
    unit_price: Optional[float] = None
    min_stock: Optional[float] = None
    order_unit: Optional[float] = None
    supplier_id: Optional[str] = None
    category_id: Optional[str] = None
    jan_code: Optional[str] = None
    lot_size: Optional[float] = None
    lot_unit: Optional[str] = None
    storage_location: Optional[str] = None
    is_active: int = 1


@dataclass
class WipItem:
    """Semi-finished good produced internally."""
    id: str
    name: str
    unit: str
    shelf_life_days: Optional[int] = None
    production_location: Optional[str] = None
    category_id: Optional[str] = None
    is_active: int = 1


@dataclass
class Menu:
    id: str
    name: str
    price: float
    category_id: Optional[str] = None
    is_active: int = 1


@dataclass
class RecipeLine:
    id: str
    parent: ParentRef
    input: ItemRef
    quantity: float
    unit: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RecipeLine":
        return cls(
            id=row["id"],
            parent=ParentRef.from_columns(row["menu_id"], row["wip_item_id"]),
            input=ItemRef.from_columns(row["product_id"], row["used_wip_item_id"]),
            quantity=float(row["quantity"]),
            unit=row["unit"],
        )


# -------------------------
# Ledger
# -------------------------

@dataclass
class InventoryRecord:
    store_id: str
    product_id: str
    quantity: float
    last_updated_by: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class WipInventoryRecord:
    store_id: str
    wip_item_id: str
    quantity: float
    production_date: Optional[str] = None
    expiry_date: Optional[str] = None
    last_updated_by: Optional[str] = None
    updated_at: Optional[str] = None


# -------------------------
# Procurement
# -------------------------

@dataclass
class OrderLine:
    id: str
    order_id: str
    product_id: str
    quantity: float
    unit: str
    unit_price: float
    amount: float
    received_quantity: float = 0.0
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OrderLine":
        return cls(
            id=row["id"],
            order_id=row["order_id"],
            product_id=row["product_id"],
            quantity=float(row["quantity"]),
            unit=row["unit"],
            unit_price=float(row["unit_price"]),
            amount=float(row["amount"]),
            received_quantity=float(row["received_quantity"] or 0.0),
            notes=row["notes"],
        )


@dataclass
class Order:
    id: str
    order_number: str
    store_id: str
    order_date: str
    status: OrderStatus = OrderStatus.DRAFT
    supplier_id: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    actual_delivery_date: Optional[str] = None
    is_auto_order: bool = False
    employee_id: Optional[str] = None
    total_amount: float = 0.0
    notes: Optional[str] = None
    lines: List[OrderLine] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Order":
        return cls(
            id=row["id"],
            order_number=row["order_number"],
            store_id=row["store_id"],
            order_date=row["order_date"],
            status=OrderStatus(row["status"]),
            supplier_id=row["supplier_id"],
            expected_delivery_date=row["expected_delivery_date"],
            actual_delivery_date=row["actual_delivery_date"],
            is_auto_order=bool(row["is_auto_order"]),
            employee_id=row["employee_id"],
            total_amount=float(row["total_amount"] or 0.0),
            notes=row["notes"],
        )


# -------------------------
# Stocktaking
# -------------------------

@dataclass
class StocktakingDetail:
    id: str
    stocktaking_id: str
    item: ItemRef
    system_quantity: float
    actual_quantity: float
    difference: float
    unit: str
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StocktakingDetail":
        return cls(
            id=row["id"],
            stocktaking_id=row["stocktaking_id"],
            item=ItemRef.from_columns(row["product_id"], row["wip_item_id"]),
            system_quantity=float(row["system_quantity"]),
            actual_quantity=float(row["actual_quantity"]),
            difference=float(row["difference"]),
            unit=row["unit"],
            notes=row["notes"],
        )


@dataclass
class Stocktaking:
    id: str
    store_id: str
    stocktaking_date: str
    status: StocktakingStatus = StocktakingStatus.DRAFT
    employee_id: Optional[str] = None
    confirmed_at: Optional[str] = None
    notes: Optional[str] = None
    details: List[StocktakingDetail] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Stocktaking":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            stocktaking_date=row["stocktaking_date"],
            status=StocktakingStatus(row["status"]),
            employee_id=row["employee_id"],
            confirmed_at=row["confirmed_at"],
            notes=row["notes"],
        )


# -------------------------
# Production / waste logs
# -------------------------

@dataclass(frozen=True)
class WipProduction:
    """Append-only production event."""
    id: str
    store_id: str
    wip_item_id: str
    quantity: float
    unit: str
    production_date: str
    expiry_date: Optional[str] = None
    employee_id: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WipProduction":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            wip_item_id=row["wip_item_id"],
            quantity=float(row["quantity"]),
            unit=row["unit"],
            production_date=row["production_date"],
            expiry_date=row["expiry_date"],
            employee_id=row["employee_id"],
            notes=row["notes"],
        )


@dataclass(frozen=True)
class Waste:
    id: str
    store_id: str
    item: ItemRef
    quantity: float
    waste_date: str
    reason: Optional[str] = None
    recorded_by: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Waste":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            item=ItemRef.from_columns(row["product_id"], row["wip_item_id"]),
            quantity=float(row["quantity"]),
            waste_date=row["waste_date"],
            reason=row["reason"],
            recorded_by=row["recorded_by"],
        )


@dataclass(frozen=True)
class Purchase:
    id: str
    store_id: str
    product_id: str
    quantity: float
    unit_price: float
    total_amount: float
    purchase_date: str
    supplier_id: Optional[str] = None
    invoice_number: Optional[str] = None
    order_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Purchase":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            product_id=row["product_id"],
            quantity=float(row["quantity"]),
            unit_price=float(row["unit_price"]),
            total_amount=float(row["total_amount"]),
            purchase_date=row["purchase_date"],
            supplier_id=row["supplier_id"],
            invoice_number=row["invoice_number"],
            order_id=row["order_id"],
        )


@dataclass(frozen=True)
class Sale:
    """One POS sale line: `quantity` portions of a menu for `amount`."""
    id: str
    store_id: str
    menu_id: str
    quantity: int
    amount: float
    sale_date: str
    pos_transaction_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Sale":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            menu_id=row["menu_id"],
            quantity=int(row["quantity"]),
            amount=float(row["amount"]),
            sale_date=row["sale_date"],
            pos_transaction_id=row["pos_transaction_id"],
        )
