import os
import json
from datetime import date
from typing import Callable, Dict, Any, List, Optional, Tuple

from bakultani.utils import (
    STORAGE_KEY,
    BACKUP_KEEP,
    ensure_dir,
    atomic_write_text,
)
from bakultani.models import AppState, DEFAULT_WAREHOUSE_ID, SyncStatus, default_state


CURRENT_SCHEMA_VERSION = 2
REQUIRED_BACKUP_KEYS = ("items", "transactions", "user", "categories")
COLLECTION_KEYS = ("items", "transactions", "categories", "warehouses")


class BackupError(Exception):
    """Raised when a backup file cannot be used to restore state."""


class MemoryStore:
    """Key-value store kept in a dict. Used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """Key-value store with one ``<key>.json`` file per key under ``data_dir``."""

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        ensure_dir(self.data_dir)

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        atomic_write_text(self._path(key), value)


# ---------- Migrations ----------
# Each migration takes a snapshot at version N-1 and returns it at version N.

def _backfill_sync_status(data: Dict[str, Any]) -> Dict[str, Any]:
    for key in ("categories", "warehouses"):
        data[key] = [
            {**entry, "syncStatus": entry.get("syncStatus") or SyncStatus.SYNCED.value}
            for entry in data[key]
        ]
    return data


def _backfill_item_warehouses(data: Dict[str, Any]) -> Dict[str, Any]:
    warehouses = data["warehouses"]
    fallback = warehouses[0].get("id") if warehouses else None
    fallback = fallback or DEFAULT_WAREHOUSE_ID
    data["items"] = [
        {**item, "warehouseId": item.get("warehouseId") or fallback}
        for item in data["items"]
    ]
    return data


MIGRATIONS: List[Tuple[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = [
    (1, _backfill_sync_status),
    (2, _backfill_item_warehouses),
]


def default_snapshot() -> Dict[str, Any]:
    return default_state().to_dict()


def migrate_snapshot(data: Dict[str, Any], is_online: bool) -> Dict[str, Any]:
    """Bring a raw snapshot up to CURRENT_SCHEMA_VERSION.

    The snapshot is merged onto the defaults first so newly introduced
    top-level fields are never missing. Snapshots without a version tag are
    version 0.
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a JSON object")
    defaults = default_snapshot()
    version = int(data.get("schemaVersion") or 0)
    if version > CURRENT_SCHEMA_VERSION:
        raise ValueError(f"Snapshot schema version {version} is newer than supported {CURRENT_SCHEMA_VERSION}")

    merged = {**defaults, **data}
    for key in COLLECTION_KEYS:
        value = merged.get(key)
        if not isinstance(value, list):
            value = defaults[key]
        merged[key] = [entry for entry in value if isinstance(entry, dict)]

    for target, migration in MIGRATIONS:
        if version < target:
            merged = migration(merged)
            version = target
    merged["schemaVersion"] = version

    # Repairs below run whatever the stored version claims.
    merged = _backfill_item_warehouses(merged)
    # Decided on the raw snapshot: the merged value is always the default id
    if not data.get("currentWarehouseId") and merged["warehouses"]:
        merged["currentWarehouseId"] = merged["warehouses"][0].get("id")
    user = merged.get("user")
    merged["user"] = {**defaults["user"], **(user if isinstance(user, dict) else {})}
    merged["theme"] = merged.get("theme") or defaults["theme"]

    merged["notifications"] = []
    merged["isOnline"] = is_online
    return merged


def serialize_state(state: AppState) -> str:
    data = state.without_notifications().to_dict()
    data["schemaVersion"] = CURRENT_SCHEMA_VERSION
    return json.dumps(data, ensure_ascii=False, indent=2)


class Storage:
    """Saves the state snapshot on every change and rehydrates it at startup."""

    def __init__(self, kv_store, logger, key: str = STORAGE_KEY, backups_dir: Optional[str] = None):
        self.kv_store = kv_store
        self.logger = logger
        self.key = key
        self.backups_dir = backups_dir

    def save(self, state: AppState) -> None:
        self.kv_store.set(self.key, serialize_state(state))

    def load(self, is_online: bool) -> AppState:
        try:
            raw = self.kv_store.get(self.key)
            if raw is None:
                self.logger.info("No stored state under %s, starting from defaults", self.key)
                return default_state(is_online=is_online)
            data = migrate_snapshot(json.loads(raw), is_online)
            return AppState.from_dict(data)
        except Exception:
            self.logger.exception("Failed to rehydrate state, falling back to defaults")
            return default_state(is_online=is_online)

    def attach(self, store) -> Callable[[], None]:
        """Persist every new state the store produces."""
        return store.subscribe(lambda new_state, old_state: self.save(new_state))

    # Backups
    def export_backup(self, state: AppState, file_path: Optional[str] = None) -> str:
        rotate = False
        if file_path is None:
            if self.backups_dir is None:
                raise ValueError("No backup path given and no backups directory configured")
            ensure_dir(self.backups_dir)
            name = f"bakul_tani_backup_{date.today().isoformat()}.json"
            file_path = os.path.join(self.backups_dir, name)
            rotate = True
        atomic_write_text(file_path, serialize_state(state))
        self.logger.info("Backup written: %s", file_path)
        if rotate:
            self._rotate_backups()
        return file_path

    def read_backup(self, file_path: str, is_online: bool) -> AppState:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise BackupError(f"Cannot read backup file: {e}") from e
        if not isinstance(data, dict):
            raise BackupError("Invalid backup file format")
        missing = [k for k in REQUIRED_BACKUP_KEYS if data.get(k) is None]
        if missing:
            raise BackupError(f"Invalid backup file format, missing: {', '.join(missing)}")
        try:
            return AppState.from_dict(migrate_snapshot(data, is_online))
        except (KeyError, TypeError, ValueError) as e:
            raise BackupError(f"Invalid backup file content: {e}") from e

    def _rotate_backups(self) -> None:
        files = [
            os.path.join(self.backups_dir, f)
            for f in os.listdir(self.backups_dir)
            if f.startswith("bakul_tani_backup_") and f.endswith(".json")
        ]
        files.sort(key=lambda p: os.path.getmtime(p), reverse=True)
        for old in files[BACKUP_KEEP:]:
            try:
                os.remove(old)
            except OSError:
                self.logger.warning("Could not remove old backup %s", old)
