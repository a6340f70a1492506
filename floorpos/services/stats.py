"""Order statistics for the reporting dashboard."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable

from ..domain import ACTIVE, OrderStatus
from ..models import Order
from .order_service import money

TOP_WAITERS = 5


def summarize(orders: Iterable[Order]) -> Dict[str, Any]:
    """Aggregate counts, revenue and the busiest waiters over ``orders``.

    Revenue only counts paid orders. Waiters are ranked by the number of
    orders they served.
    """

    orders = list(orders)
    by_status = Counter(o.status for o in orders)
    paid = [o.total for o in orders if o.is_paid]
    revenue = sum(paid, Decimal("0"))

    waiters: Dict[str | None, Dict[str, Any]] = {}
    for order in orders:
        if order.status is not OrderStatus.SERVED:
            continue
        entry = waiters.setdefault(
            order.waiter_id,
            {
                "waiter_id": order.waiter_id,
                "waiter_name": order.waiter_name,
                "order_count": 0,
                "total_revenue": Decimal("0"),
            },
        )
        entry["order_count"] += 1
        entry["total_revenue"] += order.total
    top = sorted(waiters.values(), key=lambda w: w["order_count"], reverse=True)

    return {
        "total_orders": len(orders),
        "active_orders": sum(by_status[s] for s in ACTIVE),
        "completed_orders": by_status[OrderStatus.SERVED],
        "cancelled_orders": by_status[OrderStatus.CANCELLED],
        "revenue": {
            "total_revenue": money(revenue),
            "avg_order_value": money(revenue / len(paid)) if paid else money(0),
        },
        "status_breakdown": [
            {"status": status.value, "count": count}
            for status, count in sorted(by_status.items(), key=lambda kv: kv[0].value)
        ],
        "top_waiters": [
            {**w, "total_revenue": money(w["total_revenue"])} for w in top[:TOP_WAITERS]
        ],
    }


def order_summary(uow_factory, start: datetime | None = None, end: datetime | None = None):
    with uow_factory() as uow:
        return summarize(uow.orders.in_range(start, end))
