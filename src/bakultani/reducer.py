"""Pure state transitions for the inventory ledger.

``reduce(state, action)`` never mutates ``state`` and never raises: unknown
action types and payloads of the wrong shape leave the state unchanged.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Optional

from bakultani.actions import Action, ActionType, AddItemPayload, UpdateStockPayload
from bakultani.models import (
    AppState,
    Category,
    Item,
    Notification,
    NotificationType,
    SyncStatus,
    Theme,
    TransactionType,
    User,
    Warehouse,
    default_state,
)


Handler = Callable[[AppState, object], AppState]


def _sync_status_for(state: AppState) -> SyncStatus:
    return SyncStatus.SYNCED if state.is_online else SyncStatus.PENDING


def low_stock_message(item: Item, quantity) -> str:
    return f'Stok untuk "{item.name}" rendah! Sisa {quantity} {item.unit}.'


def _low_stock_notification(state: AppState, old_item: Item, new_item: Item, payload: UpdateStockPayload) -> Optional[Notification]:
    threshold = new_item.low_stock_threshold
    if payload.transaction.type != TransactionType.OUT or threshold <= 0:
        return None
    if not (new_item.quantity <= threshold < old_item.quantity):
        return None
    # Dedup matches the quoted item name anywhere in an existing message
    marker = f'"{new_item.name}"'
    if any(marker in n.message for n in state.notifications):
        return None
    return Notification(
        id=f"notif_{payload.transaction.id}",
        message=low_stock_message(new_item, new_item.quantity),
        type=NotificationType.WARNING,
    )


def _add_item(state: AppState, payload) -> AppState:
    if not isinstance(payload, AddItemPayload):
        return state
    return replace(
        state,
        items=state.items + (payload.item,),
        transactions=state.transactions + (payload.transaction,),
    )


def _update_stock(state: AppState, payload) -> AppState:
    if not isinstance(payload, UpdateStockPayload):
        return state
    old_item = state.find_item(payload.item_id)
    items = state.items
    notifications = state.notifications
    if old_item is not None:
        new_item = replace(old_item, quantity=old_item.quantity + payload.quantity_change)
        items = tuple(new_item if i.id == payload.item_id else i for i in state.items)
        notification = _low_stock_notification(state, old_item, new_item, payload)
        if notification is not None:
            notifications = notifications + (notification,)
    return replace(
        state,
        items=items,
        transactions=state.transactions + (payload.transaction,),
        notifications=notifications,
    )


def _update_item_details(state: AppState, payload) -> AppState:
    if not isinstance(payload, Item):
        return state
    return replace(state, items=tuple(payload if i.id == payload.id else i for i in state.items))


def _add_category(state: AppState, payload) -> AppState:
    if not isinstance(payload, Category):
        return state
    category = replace(payload, sync_status=_sync_status_for(state))
    return replace(state, categories=state.categories + (category,))


def _update_category(state: AppState, payload) -> AppState:
    if not isinstance(payload, Category):
        return state
    category = replace(payload, sync_status=_sync_status_for(state))
    return replace(state, categories=tuple(category if c.id == payload.id else c for c in state.categories))


def _delete_category(state: AppState, payload) -> AppState:
    if not isinstance(payload, str):
        return state
    return replace(
        state,
        categories=tuple(c for c in state.categories if c.id != payload),
        items=tuple(replace(i, category_id="") if i.category_id == payload else i for i in state.items),
    )


def _add_warehouse(state: AppState, payload) -> AppState:
    if not isinstance(payload, Warehouse):
        return state
    warehouse = replace(payload, sync_status=_sync_status_for(state))
    return replace(state, warehouses=state.warehouses + (warehouse,))


def _update_warehouse(state: AppState, payload) -> AppState:
    if not isinstance(payload, Warehouse):
        return state
    warehouse = replace(payload, sync_status=_sync_status_for(state))
    return replace(state, warehouses=tuple(warehouse if w.id == payload.id else w for w in state.warehouses))


def _delete_warehouse(state: AppState, payload) -> AppState:
    if not isinstance(payload, str):
        return state
    remaining = tuple(w for w in state.warehouses if w.id != payload)
    current = state.current_warehouse_id
    if current == payload and remaining:
        current = remaining[0].id
    return replace(state, warehouses=remaining, current_warehouse_id=current)


def _select_warehouse(state: AppState, payload) -> AppState:
    if not isinstance(payload, str):
        return state
    return replace(state, current_warehouse_id=payload)


def _update_user(state: AppState, payload) -> AppState:
    if not isinstance(payload, User):
        return state
    return replace(state, user=payload)


def _reset_data(state: AppState, payload) -> AppState:
    return replace(
        default_state(is_online=state.is_online),
        user=state.user,
        is_logged_in=state.is_logged_in,
        theme=state.theme,
    )


def _restore_data(state: AppState, payload) -> AppState:
    if not isinstance(payload, AppState):
        return state
    return replace(payload, notifications=(), is_online=state.is_online)


def _add_notification(state: AppState, payload) -> AppState:
    if not isinstance(payload, Notification):
        return state
    return replace(state, notifications=state.notifications + (payload,))


def _remove_notification(state: AppState, payload) -> AppState:
    if not isinstance(payload, str):
        return state
    return replace(state, notifications=tuple(n for n in state.notifications if n.id != payload))


_USER_FIELDS = {
    "name": "name",
    "email": "email",
    "position": "position",
    "profilePicture": "profile_picture",
    "profile_picture": "profile_picture",
}


def _login(state: AppState, payload) -> AppState:
    updates = {}
    if isinstance(payload, User):
        updates = {k: getattr(payload, k) for k in ("name", "email", "position", "profile_picture")}
    elif isinstance(payload, dict):
        updates = {_USER_FIELDS[k]: str(v) for k, v in payload.items() if k in _USER_FIELDS and v is not None}
    return replace(state, is_logged_in=True, user=replace(state.user, **updates))


def _logout(state: AppState, payload) -> AppState:
    return replace(state, is_logged_in=False)


def _set_online_status(state: AppState, payload) -> AppState:
    if not isinstance(payload, bool):
        return state
    return replace(state, is_online=payload)


def _sync_data(state: AppState, payload) -> AppState:
    return replace(
        state,
        categories=tuple(replace(c, sync_status=SyncStatus.SYNCED) for c in state.categories),
        warehouses=tuple(replace(w, sync_status=SyncStatus.SYNCED) for w in state.warehouses),
    )


def _set_theme(state: AppState, payload) -> AppState:
    if isinstance(payload, Theme):
        return replace(state, theme=payload)
    if payload in (t.value for t in Theme):
        return replace(state, theme=Theme(payload))
    return state


HANDLERS: Dict[ActionType, Handler] = {
    ActionType.ADD_ITEM: _add_item,
    ActionType.UPDATE_STOCK: _update_stock,
    ActionType.UPDATE_ITEM_DETAILS: _update_item_details,
    ActionType.ADD_CATEGORY: _add_category,
    ActionType.UPDATE_CATEGORY: _update_category,
    ActionType.DELETE_CATEGORY: _delete_category,
    ActionType.ADD_WAREHOUSE: _add_warehouse,
    ActionType.UPDATE_WAREHOUSE: _update_warehouse,
    ActionType.DELETE_WAREHOUSE: _delete_warehouse,
    ActionType.SELECT_WAREHOUSE: _select_warehouse,
    ActionType.UPDATE_USER: _update_user,
    ActionType.RESET_DATA: _reset_data,
    ActionType.RESTORE_DATA: _restore_data,
    ActionType.ADD_NOTIFICATION: _add_notification,
    ActionType.REMOVE_NOTIFICATION: _remove_notification,
    ActionType.LOGIN: _login,
    ActionType.LOGOUT: _logout,
    ActionType.SET_ONLINE_STATUS: _set_online_status,
    ActionType.SYNC_DATA: _sync_data,
    ActionType.SET_THEME: _set_theme,
}


def reduce(state: AppState, action: Action) -> AppState:
    handler = HANDLERS.get(action.type) if isinstance(action.type, (ActionType, str)) else None
    if handler is None:
        return state
    return handler(state, action.payload)
