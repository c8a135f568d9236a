"""Dashboard and report figures computed from an AppState."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from bakultani.models import AppState, ChangeDirection, Item, Transaction, TransactionType
from bakultani.utils import parse_iso


DELETED_ITEM_NAME = "Barang Dihapus"
PERIOD_FILTERS = ("7d", "30d", "this_month", "last_month")


@dataclass(frozen=True)
class Dashboard:
    total_items: int
    total_stock: float
    low_stock_count: int
    crucial_items: Tuple[Item, ...]
    recent_transactions: Tuple[Transaction, ...]


@dataclass(frozen=True)
class StockMovement:
    stock_in: float
    stock_out: float

    @property
    def change(self) -> float:
        return self.stock_in - self.stock_out


@dataclass(frozen=True)
class ItemActivity:
    item_id: str
    name: str
    stock_in: float
    stock_out: float

    @property
    def total_activity(self) -> float:
        return self.stock_in + self.stock_out


@dataclass(frozen=True)
class WarehouseSummary:
    warehouse_id: str
    name: str
    items_count: int
    total_stock: float
    capacity_percent: Optional[float]


def _transaction_time(t: Transaction) -> datetime:
    try:
        return parse_iso(t.date)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)


def dashboard(state: AppState, crucial_limit: int = 4, recent_limit: int = 5) -> Dashboard:
    low = [i for i in state.items if i.is_low_stock()]
    # Most severe first: lowest quantity relative to the threshold
    crucial = sorted(low, key=lambda i: i.quantity / i.low_stock_threshold)[:crucial_limit]
    recent = sorted(state.transactions, key=_transaction_time, reverse=True)[:recent_limit]
    return Dashboard(
        total_items=len(state.items),
        total_stock=sum(i.quantity for i in state.items),
        low_stock_count=len(low),
        crucial_items=tuple(crucial),
        recent_transactions=tuple(recent),
    )


def period_range(period: str, today: Optional[date] = None) -> Tuple[datetime, datetime]:
    """Return the inclusive (start, end) datetimes for a report period, in UTC."""
    today = today or datetime.now(timezone.utc).date()
    end_day = today
    if period == "7d":
        start_day = today - timedelta(days=6)
    elif period == "30d":
        start_day = today - timedelta(days=29)
    elif period == "this_month":
        start_day = today.replace(day=1)
    elif period == "last_month":
        end_day = today.replace(day=1) - timedelta(days=1)
        start_day = end_day.replace(day=1)
    else:
        raise ValueError(f"Unknown period {period!r}, expected one of {', '.join(PERIOD_FILTERS)}")
    start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
    return start, end


def transactions_between(transactions: Iterable[Transaction], start: datetime, end: datetime) -> List[Transaction]:
    result = []
    for t in transactions:
        try:
            when = parse_iso(t.date)
        except ValueError:
            continue
        if start <= when <= end:
            result.append(t)
    return result


def _in_out(t: Transaction) -> Tuple[float, float]:
    if t.type == TransactionType.IN:
        return t.quantity, 0
    if t.type == TransactionType.OUT:
        return 0, t.quantity
    if t.change_direction == ChangeDirection.UP:
        return t.quantity, 0
    if t.change_direction == ChangeDirection.DOWN:
        return 0, t.quantity
    return 0, 0


def stock_movement(transactions: Iterable[Transaction]) -> StockMovement:
    stock_in = 0
    stock_out = 0
    for t in transactions:
        i, o = _in_out(t)
        stock_in += i
        stock_out += o
    return StockMovement(stock_in=stock_in, stock_out=stock_out)


def top_activity(state: AppState, transactions: Iterable[Transaction], limit: int = 5) -> List[ItemActivity]:
    totals: Dict[str, List[float]] = {}
    for t in transactions:
        i, o = _in_out(t)
        current = totals.setdefault(t.item_id, [0, 0])
        current[0] += i
        current[1] += o
    activity = []
    for item_id, (stock_in, stock_out) in totals.items():
        item = state.find_item(item_id)
        activity.append(ItemActivity(
            item_id=item_id,
            name=item.name if item else DELETED_ITEM_NAME,
            stock_in=stock_in,
            stock_out=stock_out,
        ))
    activity.sort(key=lambda a: a.total_activity, reverse=True)
    return activity[:limit]


def change_text(t: Transaction) -> str:
    if t.type == TransactionType.IN:
        return f"+{t.quantity}"
    if t.type == TransactionType.OUT:
        return f"-{t.quantity}"
    sign = "+" if t.change_direction == ChangeDirection.UP else "-"
    return f"{sign}{t.quantity}"


def warehouse_summary(state: AppState) -> List[WarehouseSummary]:
    summaries = []
    for wh in state.warehouses:
        items = [i for i in state.items if i.warehouse_id == wh.id]
        total = sum(i.quantity for i in items)
        percent = None
        if wh.capacity:
            percent = min(100.0, round(total / wh.capacity * 100, 1))
        summaries.append(WarehouseSummary(
            warehouse_id=wh.id,
            name=wh.name,
            items_count=len(items),
            total_stock=total,
            capacity_percent=percent,
        ))
    return summaries

