"""Actions accepted by the reducer.

Every state change goes through :class:`Action`.  Payload shapes per type:

==========================  ==================================================
``ADD_ITEM``                ``AddItemPayload``
``UPDATE_STOCK``            ``UpdateStockPayload``
``UPDATE_ITEM_DETAILS``     ``Item``
``ADD/UPDATE_CATEGORY``     ``Category``
``DELETE_CATEGORY``         category id (``str``)
``ADD/UPDATE_WAREHOUSE``    ``Warehouse``
``DELETE_WAREHOUSE``        warehouse id (``str``)
``SELECT_WAREHOUSE``        warehouse id (``str``)
``UPDATE_USER``             ``User``
``RESTORE_DATA``            ``AppState``
``ADD_NOTIFICATION``        ``Notification``
``REMOVE_NOTIFICATION``     notification id (``str``)
``LOGIN``                   ``dict`` of user fields to merge
``SET_ONLINE_STATUS``       ``bool``
``SET_THEME``               ``Theme``
``RESET_DATA``, ``LOGOUT``, ``SYNC_DATA`` take no payload.
==========================  ==================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from bakultani.models import Item, Transaction, Number


class ActionType(str, Enum):
    ADD_ITEM = "ADD_ITEM"
    UPDATE_STOCK = "UPDATE_STOCK"
    UPDATE_ITEM_DETAILS = "UPDATE_ITEM_DETAILS"
    ADD_CATEGORY = "ADD_CATEGORY"
    UPDATE_CATEGORY = "UPDATE_CATEGORY"
    DELETE_CATEGORY = "DELETE_CATEGORY"
    ADD_WAREHOUSE = "ADD_WAREHOUSE"
    UPDATE_WAREHOUSE = "UPDATE_WAREHOUSE"
    DELETE_WAREHOUSE = "DELETE_WAREHOUSE"
    SELECT_WAREHOUSE = "SELECT_WAREHOUSE"
    UPDATE_USER = "UPDATE_USER"
    RESET_DATA = "RESET_DATA"
    RESTORE_DATA = "RESTORE_DATA"
    ADD_NOTIFICATION = "ADD_NOTIFICATION"
    REMOVE_NOTIFICATION = "REMOVE_NOTIFICATION"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    SET_ONLINE_STATUS = "SET_ONLINE_STATUS"
    SYNC_DATA = "SYNC_DATA"
    SET_THEME = "SET_THEME"


@dataclass(frozen=True)
class AddItemPayload:
    item: Item
    transaction: Transaction


@dataclass(frozen=True)
class UpdateStockPayload:
    item_id: str
    quantity_change: Number
    transaction: Transaction


@dataclass(frozen=True)
class Action:
    type: Any
    payload: Any = None

    def __repr__(self) -> str:
        name = self.type.value if isinstance(self.type, ActionType) else self.type
        return f"Action({name})"
