"""Domain models and helpers."""

from .errors import Conflict, DomainError, NotFound, StaleWrite, ValidationFailed
from .order_status import (
    ACTIVE,
    KITCHEN_STAGES,
    TERMINAL,
    DiscountKind,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    derive_status,
    forced_item_status,
    is_terminal,
)
from .table_status import (
    MANUAL_STATES,
    PRIMITIVE,
    Grouping,
    GroupingKind,
    MergeMaster,
    MergeMember,
    Primitive,
    SplitChild,
    SplitParent,
    TableStatus,
    is_orderable,
    original_capacity,
    split_capacities,
)

__all__ = [
    "ACTIVE",
    "KITCHEN_STAGES",
    "MANUAL_STATES",
    "PRIMITIVE",
    "TERMINAL",
    "Conflict",
    "DiscountKind",
    "DomainError",
    "Grouping",
    "GroupingKind",
    "ItemStatus",
    "MergeMaster",
    "MergeMember",
    "NotFound",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Primitive",
    "SplitChild",
    "SplitParent",
    "StaleWrite",
    "TableStatus",
    "ValidationFailed",
    "derive_status",
    "forced_item_status",
    "is_orderable",
    "is_terminal",
    "original_capacity",
    "split_capacities",
]
