from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any, Tuple, Union
from enum import Enum


Number = Union[int, float]


class TransactionType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class ChangeDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


class NotificationType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


def _number(value: Any, default: Number = 0) -> Number:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return value
    number = float(value)
    return int(number) if number.is_integer() else number


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class Item:
    id: str
    name: str
    unit: str = ""
    sku: str = ""
    category_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    low_stock_threshold: Number = 0
    quantity: Number = 0
    created_at: str = ""

    def is_low_stock(self) -> bool:
        return self.low_stock_threshold > 0 and self.quantity <= self.low_stock_threshold

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "sku": self.sku,
            "categoryId": self.category_id,
            "warehouseId": self.warehouse_id,
            "lowStockThreshold": self.low_stock_threshold,
            "quantity": self.quantity,
            "createdAt": self.created_at,
        })

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Item":
        return Item(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            unit=str(data.get("unit", "")),
            sku=str(data.get("sku", "")),
            category_id=_optional_str(data.get("categoryId")),
            warehouse_id=_optional_str(data.get("warehouseId")),
            low_stock_threshold=_number(data.get("lowStockThreshold")),
            quantity=_number(data.get("quantity")),
            created_at=str(data.get("createdAt", "")),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    item_id: str
    type: TransactionType
    quantity: Number
    date: str
    notes: str = ""
    change_direction: Optional[ChangeDirection] = None

    def signed_quantity(self) -> Number:
        """Effect of this transaction on the item's running quantity."""
        if self.type == TransactionType.IN:
            return self.quantity
        if self.type == TransactionType.OUT:
            return -self.quantity
        if self.change_direction == ChangeDirection.UP:
            return self.quantity
        if self.change_direction == ChangeDirection.DOWN:
            return -self.quantity
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "itemId": self.item_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "changeDirection": self.change_direction.value if self.change_direction else None,
            "date": self.date,
            "notes": self.notes,
        })

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Transaction":
        direction = data.get("changeDirection")
        return Transaction(
            id=str(data["id"]),
            item_id=str(data["itemId"]),
            type=TransactionType(data["type"]),
            quantity=_number(data.get("quantity")),
            date=str(data.get("date", "")),
            notes=str(data.get("notes") or ""),
            change_direction=ChangeDirection(direction) if direction else None,
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    sync_status: Optional[SyncStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "syncStatus": self.sync_status.value if self.sync_status else None,
        })

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Category":
        status = data.get("syncStatus")
        return Category(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            sync_status=SyncStatus(status) if status else None,
        )


@dataclass(frozen=True)
class Warehouse:
    id: str
    name: str
    capacity: Optional[Number] = None
    sync_status: Optional[SyncStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "syncStatus": self.sync_status.value if self.sync_status else None,
        })

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Warehouse":
        status = data.get("syncStatus")
        capacity = data.get("capacity")
        return Warehouse(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            capacity=_number(capacity) if capacity is not None else None,
            sync_status=SyncStatus(status) if status else None,
        )


@dataclass(frozen=True)
class User:
    name: str = "Azam Ganteng"
    email: str = "user@example.com"
    position: str = "Owner"
    profile_picture: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "position": self.position,
            "profilePicture": self.profile_picture,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "User":
        default = User()
        return User(
            name=str(data.get("name", default.name)),
            email=str(data.get("email", default.email)),
            position=str(data.get("position", default.position)),
            profile_picture=str(data.get("profilePicture", default.profile_picture)),
        )


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    type: NotificationType = NotificationType.INFO

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "message": self.message, "type": self.type.value}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Notification":
        return Notification(
            id=str(data["id"]),
            message=str(data.get("message", "")),
            type=NotificationType(data.get("type", NotificationType.INFO.value)),
        )


DEFAULT_WAREHOUSE_ID = "w1"


def default_categories() -> Tuple[Category, ...]:
    return (
        Category(id="c1", name="Benih", sync_status=SyncStatus.SYNCED),
        Category(id="c2", name="Alat", sync_status=SyncStatus.SYNCED),
    )


def default_warehouses() -> Tuple[Warehouse, ...]:
    return (
        Warehouse(id=DEFAULT_WAREHOUSE_ID, name="Gudang Utama", capacity=1000, sync_status=SyncStatus.SYNCED),
    )


@dataclass(frozen=True)
class AppState:
    items: Tuple[Item, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    categories: Tuple[Category, ...] = field(default_factory=default_categories)
    warehouses: Tuple[Warehouse, ...] = field(default_factory=default_warehouses)
    current_warehouse_id: Optional[str] = DEFAULT_WAREHOUSE_ID
    user: User = field(default_factory=User)
    notifications: Tuple[Notification, ...] = ()
    is_logged_in: bool = False
    is_online: bool = True
    theme: Theme = Theme.DARK

    def find_item(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def current_warehouse(self) -> Optional[Warehouse]:
        for wh in self.warehouses:
            if wh.id == self.current_warehouse_id:
                return wh
        return self.warehouses[0] if self.warehouses else None

    def without_notifications(self) -> "AppState":
        return replace(self, notifications=())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "transactions": [t.to_dict() for t in self.transactions],
            "categories": [c.to_dict() for c in self.categories],
            "warehouses": [w.to_dict() for w in self.warehouses],
            "currentWarehouseId": self.current_warehouse_id,
            "user": self.user.to_dict(),
            "notifications": [n.to_dict() for n in self.notifications],
            "isLoggedIn": self.is_logged_in,
            "isOnline": self.is_online,
            "theme": self.theme.value,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AppState":
        default = AppState()
        return AppState(
            items=tuple(Item.from_dict(i) for i in data.get("items", [])),
            transactions=tuple(Transaction.from_dict(t) for t in data.get("transactions", [])),
            categories=tuple(Category.from_dict(c) for c in data.get("categories", [])),
            warehouses=tuple(Warehouse.from_dict(w) for w in data.get("warehouses", [])),
            current_warehouse_id=_optional_str(data.get("currentWarehouseId")),
            user=User.from_dict(data.get("user") or {}),
            notifications=tuple(Notification.from_dict(n) for n in data.get("notifications", [])),
            is_logged_in=bool(data.get("isLoggedIn", default.is_logged_in)),
            is_online=bool(data.get("isOnline", default.is_online)),
            theme=Theme(data.get("theme") or default.theme.value),
        )


def default_state(is_online: bool = True) -> AppState:
    return AppState(is_online=is_online)
