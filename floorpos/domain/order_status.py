"""Order, item and payment status enumerations.

The order status is a projection of its items' preparation stages. Keep
:func:`derive_status` as the only place that computes it so the two never
drift apart.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


class ItemStatus(str, Enum):
    """Preparation stage of a single order line."""

    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    ONLINE = "ONLINE"


class DiscountKind(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    AMOUNT = "AMOUNT"


# Stages the kitchen may set on an item directly.
KITCHEN_STAGES: frozenset[ItemStatus] = frozenset(
    {ItemStatus.PENDING, ItemStatus.PREPARING, ItemStatus.READY}
)

TERMINAL: frozenset[OrderStatus] = frozenset(
    {OrderStatus.SERVED, OrderStatus.CANCELLED}
)

ACTIVE: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)


def is_terminal(status: OrderStatus) -> bool:
    """Return ``True`` once an order can no longer change."""

    return status in TERMINAL


def derive_status(items: Iterable[ItemStatus]) -> OrderStatus:
    """Compute an order's status from its item stages.

    All items ``READY`` gives ``READY``; any item ``PREPARING`` or ``READY``
    gives ``PREPARING``; anything else is ``PENDING``. An empty order is
    ``PENDING``.

    >>> derive_status([ItemStatus.READY, ItemStatus.PENDING])
    <OrderStatus.PREPARING: 'PREPARING'>
    """

    stages = list(items)
    if stages and all(s is ItemStatus.READY for s in stages):
        return OrderStatus.READY
    if any(s in (ItemStatus.PREPARING, ItemStatus.READY) for s in stages):
        return OrderStatus.PREPARING
    return OrderStatus.PENDING


def forced_item_status(status: OrderStatus) -> ItemStatus | None:
    """Return the stage every item takes when an order is forced to ``status``.

    Only the terminal statuses propagate down to the items.
    """

    if status is OrderStatus.SERVED:
        return ItemStatus.SERVED
    if status is OrderStatus.CANCELLED:
        return ItemStatus.CANCELLED
    return None
