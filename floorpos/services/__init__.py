"""Application services operating on tables and orders."""

from .billing_service import BillingFinalizer, FinalizeResult
from .locks import TableLocks
from .order_service import LineRequest, OrderPage, OrderService, PaymentReceipt, Staff
from .stats import order_summary, summarize
from .topology import SplitResult, TopologyEngine

__all__ = [
    "BillingFinalizer",
    "FinalizeResult",
    "LineRequest",
    "OrderPage",
    "OrderService",
    "PaymentReceipt",
    "SplitResult",
    "Staff",
    "TableLocks",
    "TopologyEngine",
    "order_summary",
    "summarize",
]
