from dataclasses import replace
from typing import Optional, Dict, Any

from bakultani.actions import Action, ActionType, AddItemPayload, UpdateStockPayload
from bakultani.models import (
    AppState,
    Category,
    ChangeDirection,
    DEFAULT_WAREHOUSE_ID,
    Item,
    Notification,
    NotificationType,
    Theme,
    Transaction,
    TransactionType,
    User,
    Warehouse,
)
from bakultani.storage import BackupError, Storage
from bakultani.utils import now_utc_iso, new_id


DEFAULT_ADJUSTMENT_NOTE = "Koreksi stok"


class Services:
    """Input boundary over the store.

    Validates what a screen would submit, builds the transaction records and
    dispatches. Invalid input raises ValueError before anything is dispatched.
    """

    def __init__(self, store, storage: Storage, logger):
        self.store = store
        self.storage = storage
        self.logger = logger

    @property
    def state(self) -> AppState:
        return self.store.state

    def notify(self, message: str, kind: NotificationType = NotificationType.SUCCESS) -> Notification:
        notification = Notification(id=new_id("notif_"), message=message, type=kind)
        self.store.dispatch(Action(ActionType.ADD_NOTIFICATION, notification))
        return notification

    def dismiss_notification(self, notification_id: str) -> None:
        self.store.dispatch(Action(ActionType.REMOVE_NOTIFICATION, notification_id))

    # ---------- Items & stock ----------
    def add_new_item(
        self,
        name: str,
        unit: str,
        quantity: Any,
        sku: str = "",
        category_id: str = "",
        low_stock_threshold: Any = 0,
        notes: str = "",
    ) -> Item:
        name = (name or "").strip()
        if not name:
            raise ValueError("Name is required")
        qty = self._to_positive_number(quantity)
        threshold = self._to_number_or_default(low_stock_threshold, 0)
        if threshold < 0:
            raise ValueError("Low stock threshold must be >= 0")
        created_at = now_utc_iso()
        item = Item(
            id=new_id(),
            name=name,
            unit=(unit or "").strip(),
            sku=(sku or "").strip(),
            category_id=category_id or "",
            warehouse_id=self.state.current_warehouse_id or DEFAULT_WAREHOUSE_ID,
            low_stock_threshold=threshold,
            quantity=qty,
            created_at=created_at,
        )
        tx = Transaction(
            id=new_id("t"),
            item_id=item.id,
            type=TransactionType.IN,
            quantity=qty,
            date=created_at,
            notes=notes or "",
        )
        self.store.dispatch(Action(ActionType.ADD_ITEM, AddItemPayload(item=item, transaction=tx)))
        self.logger.info("Added item %s (%s) with %s %s", item.id, item.name, qty, item.unit)
        return item

    def stock_in(self, item_id: str, quantity: Any, notes: str = "") -> Transaction:
        qty = self._to_positive_number(quantity)
        item = self._get_item_or_raise(item_id)
        tx = Transaction(
            id=new_id("t"),
            item_id=item.id,
            type=TransactionType.IN,
            quantity=qty,
            date=now_utc_iso(),
            notes=notes or "",
        )
        self._record(item, qty, tx)
        return tx

    def stock_out(self, item_id: str, quantity: Any, notes: str = "") -> Transaction:
        qty = self._to_positive_number(quantity)
        item = self._get_item_or_raise(item_id)
        if qty > item.quantity:
            raise ValueError("Quantity exceeds current stock")
        tx = Transaction(
            id=new_id("t"),
            item_id=item.id,
            type=TransactionType.OUT,
            quantity=qty,
            date=now_utc_iso(),
            notes=notes or "",
        )
        self._record(item, -qty, tx)
        return tx

    def adjust_stock(self, item_id: str, new_quantity: Any, notes: str = "") -> Optional[Transaction]:
        """Correct the item's quantity to ``new_quantity``.

        Records an adjustment transaction carrying the magnitude and direction
        of the change. Returns None without dispatching when nothing changes.
        """
        item = self._get_item_or_raise(item_id)
        target = self._to_number_or_default(new_quantity, None)
        if target is None or target < 0:
            raise ValueError("New quantity must be >= 0")
        change = target - item.quantity
        if change == 0:
            return None
        tx = Transaction(
            id=new_id("t"),
            item_id=item.id,
            type=TransactionType.ADJUSTMENT,
            quantity=abs(change),
            change_direction=ChangeDirection.UP if change > 0 else ChangeDirection.DOWN,
            date=now_utc_iso(),
            notes=notes or DEFAULT_ADJUSTMENT_NOTE,
        )
        self._record(item, change, tx)
        self.notify(f'Stok "{item.name}" berhasil dikoreksi.')
        return tx

    def update_item_details(self, item_id: str, updates: Dict[str, Any]) -> Item:
        item = self._get_item_or_raise(item_id)
        fields: Dict[str, Any] = {}
        if "name" in updates:
            name = (updates.get("name") or "").strip()
            if not name:
                raise ValueError("Name is required")
            fields["name"] = name
        for key in ("unit", "sku"):
            if key in updates:
                fields[key] = (updates.get(key) or "").strip()
        for key in ("category_id", "warehouse_id"):
            if key in updates:
                fields[key] = updates.get(key) or ""
        if "low_stock_threshold" in updates:
            threshold = self._to_number_or_default(updates.get("low_stock_threshold"), 0)
            if threshold < 0:
                raise ValueError("Low stock threshold must be >= 0")
            fields["low_stock_threshold"] = threshold
        updated = replace(item, **fields)
        self.store.dispatch(Action(ActionType.UPDATE_ITEM_DETAILS, updated))
        self.notify(f'"{updated.name}" berhasil diperbarui.')
        return updated

    def _record(self, item: Item, quantity_change, tx: Transaction) -> None:
        payload = UpdateStockPayload(item_id=item.id, quantity_change=quantity_change, transaction=tx)
        self.store.dispatch(Action(ActionType.UPDATE_STOCK, payload))
        self.logger.info("%s %s for %s (%s)", tx.type.value, tx.quantity, item.name, item.id)

    # ---------- Categories ----------
    def add_category(self, name: str) -> Category:
        category = Category(id=new_id(), name=self._require_name(name))
        self.store.dispatch(Action(ActionType.ADD_CATEGORY, category))
        self.notify("Kategori baru ditambahkan.")
        return self._find(self.state.categories, category.id)

    def rename_category(self, category_id: str, name: str) -> Category:
        existing = self._find(self.state.categories, category_id)
        if existing is None:
            raise ValueError("Category not found")
        self.store.dispatch(Action(ActionType.UPDATE_CATEGORY, replace(existing, name=self._require_name(name))))
        self.notify("Kategori berhasil diperbarui.")
        return self._find(self.state.categories, category_id)

    def delete_category(self, category_id: str) -> None:
        existing = self._find(self.state.categories, category_id)
        if existing is None:
            raise ValueError("Category not found")
        self.store.dispatch(Action(ActionType.DELETE_CATEGORY, category_id))
        self.notify(f'Kategori "{existing.name}" telah dihapus.')

    # ---------- Warehouses ----------
    def add_warehouse(self, name: str, capacity: Any = None) -> Warehouse:
        warehouse = Warehouse(
            id=new_id("w"),
            name=self._require_name(name),
            capacity=self._to_capacity(capacity),
        )
        self.store.dispatch(Action(ActionType.ADD_WAREHOUSE, warehouse))
        self.notify("Gudang baru ditambahkan.")
        return self._find(self.state.warehouses, warehouse.id)

    def update_warehouse(self, warehouse_id: str, name: str, capacity: Any = None) -> Warehouse:
        existing = self._find(self.state.warehouses, warehouse_id)
        if existing is None:
            raise ValueError("Warehouse not found")
        updated = replace(existing, name=self._require_name(name), capacity=self._to_capacity(capacity))
        self.store.dispatch(Action(ActionType.UPDATE_WAREHOUSE, updated))
        self.notify("Data gudang diperbarui.")
        return self._find(self.state.warehouses, warehouse_id)

    def delete_warehouse(self, warehouse_id: str) -> None:
        existing = self._find(self.state.warehouses, warehouse_id)
        if existing is None:
            raise ValueError("Warehouse not found")
        self.store.dispatch(Action(ActionType.DELETE_WAREHOUSE, warehouse_id))
        self.notify(f'Gudang "{existing.name}" telah dihapus.')

    def select_warehouse(self, warehouse_id: str) -> None:
        if self._find(self.state.warehouses, warehouse_id) is None:
            raise ValueError("Warehouse not found")
        self.store.dispatch(Action(ActionType.SELECT_WAREHOUSE, warehouse_id))

    # ---------- Profile & session ----------
    def login(self, name: str, email: str, **fields: Any) -> User:
        payload = {"name": (name or "").strip(), "email": (email or "").strip().lower(), **fields}
        if not payload["email"]:
            raise ValueError("Email is required")
        self.store.dispatch(Action(ActionType.LOGIN, payload))
        self.notify(f"Selamat datang kembali, {self.state.user.name}!")
        return self.state.user

    def logout(self) -> None:
        self.store.dispatch(Action(ActionType.LOGOUT))

    def update_user(self, **fields: Any) -> User:
        unknown = set(fields) - {"name", "email", "position", "profile_picture"}
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        user = replace(self.state.user, **{k: str(v) for k, v in fields.items()})
        self.store.dispatch(Action(ActionType.UPDATE_USER, user))
        self.notify("Profil berhasil diperbarui.")
        return user

    def set_theme(self, theme: Any) -> None:
        self.store.dispatch(Action(ActionType.SET_THEME, Theme(theme)))

    # ---------- Data management ----------
    def reset_data(self) -> None:
        self.store.dispatch(Action(ActionType.RESET_DATA))
        self.logger.info("Application data reset")

    def export_backup(self, file_path: Optional[str] = None) -> str:
        return self.storage.export_backup(self.state, file_path)

    def restore_backup(self, file_path: str) -> bool:
        try:
            restored = self.storage.read_backup(file_path, is_online=self.state.is_online)
        except BackupError as e:
            self.logger.error("Failed to restore data from %s: %s", file_path, e)
            self.notify("Gagal memulihkan data. File backup tidak valid.", NotificationType.ERROR)
            return False
        self.store.dispatch(Action(ActionType.RESTORE_DATA, restored))
        self.notify("Data berhasil dipulihkan!")
        self.logger.info("State restored from %s", file_path)
        return True

    # ---------- Helpers ----------
    def _get_item_or_raise(self, item_id: str) -> Item:
        item = self.state.find_item(item_id)
        if item is None:
            raise ValueError("Item not found")
        return item

    @staticmethod
    def _find(entries, entry_id: str):
        for entry in entries:
            if entry.id == entry_id:
                return entry
        return None

    @staticmethod
    def _require_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("Name is required")
        return name

    @staticmethod
    def _to_number_or_default(v: Any, default):
        if v is None or v == "":
            return default
        if isinstance(v, bool):
            raise ValueError("Invalid number")
        if isinstance(v, (int, float)):
            return v
        number = float(v)
        return int(number) if number.is_integer() else number

    def _to_positive_number(self, v: Any):
        qty = self._to_number_or_default(v, None)
        if qty is None or qty <= 0:
            raise ValueError("Quantity must be > 0")
        return qty

    def _to_capacity(self, v: Any):
        capacity = self._to_number_or_default(v, None)
        if capacity is not None and capacity < 0:
            raise ValueError("Capacity must be >= 0")
        return capacity
