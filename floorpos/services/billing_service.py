"""Close out a table's bill and unwind its grouping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from ..domain import (
    Conflict,
    MergeMaster,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SplitChild,
    SplitParent,
    TableStatus,
)
from ..models import DiningTable, Order
from .locks import TableLocks
from .order_service import OrderService
from .topology import GuardedService, UowFactory, recombine, release

logger = logging.getLogger(__name__)


@dataclass
class FinalizeResult:
    """Outcome of :meth:`BillingFinalizer.finalize`.

    ``finalized`` is ``False`` when the table had no order to close; nothing
    is changed in that case.
    """

    finalized: bool
    order: Order | None = None
    released: List[DiningTable] = field(default_factory=list)
    recombined: DiningTable | None = None
    change: Decimal | None = None


class BillingFinalizer(GuardedService):
    """Terminal operations: finalize, settle and void."""

    def __init__(
        self, uow_factory: UowFactory, locks: TableLocks, orders: OrderService
    ) -> None:
        super().__init__(uow_factory, locks, orders.clock)
        self.orders = orders

    def finalize(self, table_id: str) -> FinalizeResult:
        """Mark the table's order served and paid, then free its tables."""

        return self._close(table_id, None, None)

    def settle(self, table_id: str, method: PaymentMethod, tendered) -> FinalizeResult:
        """Take payment for the table's order and finalize in one step.

        A payment failure leaves both the order and the tables untouched.
        """

        return self._close(table_id, method, tendered)

    def _close(self, table_id: str, method, tendered) -> FinalizeResult:
        with self._guard(table_id) as uow:
            table = uow.tables.get(table_id)
            grouping = table.grouping
            if not table.orderable:
                raise Conflict(
                    f"table {table.number} is billed through its group",
                    hint="finalize the group head or a sub-table",
                )
            if not table.current_order_id:
                return FinalizeResult(finalized=False)
            order = uow.orders.get(table.current_order_id)
            if order.status is OrderStatus.CANCELLED:
                raise Conflict(
                    f"order {order.code} is cancelled",
                    hint="set the table AVAILABLE instead",
                )

            change = None
            if method is not None:
                change = self.orders.apply_payment(order, method, tendered).change
            elif not order.is_paid:
                order.is_paid = True
                order.payment_status = PaymentStatus.PAID
                self.orders.transition(order, OrderStatus.SERVED)
                order.updated_at = self.clock()

            # Merge release comes first; split recombination looks at the
            # already released table.
            released = [table]
            if isinstance(grouping, MergeMaster):
                released.extend(uow.tables.get_many(grouping.members))
            for each in released:
                if isinstance(each.grouping, SplitChild):
                    each.status = TableStatus.AVAILABLE
                    each.current_order_id = None
                else:
                    release(uow, each)

            recombined = None
            if isinstance(grouping, SplitChild):
                recombined = self._maybe_recombine(uow, grouping.parent)

            logger.info(
                "finalized order=%s table=%s released=%s",
                order.code,
                table_id,
                ",".join(t.id for t in released),
            )
            return FinalizeResult(
                finalized=True,
                order=order,
                released=released,
                recombined=recombined,
                change=change,
            )

    @staticmethod
    def _maybe_recombine(uow, parent_id: str) -> DiningTable | None:
        parent = uow.tables.get(parent_id)
        if not isinstance(parent.grouping, SplitParent):
            return None
        children = uow.tables.children_of(parent_id)
        if any(c.status is not TableStatus.AVAILABLE for c in children):
            return None
        for child in children:
            uow.tables.remove(child)
        recombine(parent)
        logger.info("recombined table=%s", parent_id)
        return parent

    def void(self, order_id: str) -> Order:
        """Reverse a paid or served order. Table state is left alone."""

        with self._uow() as uow:
            order = uow.orders.get(order_id)
            if not (order.is_paid or order.status is OrderStatus.SERVED):
                raise Conflict(
                    f"order {order.code} is neither paid nor served",
                    hint="cancel the order instead",
                )
            order.is_paid = False
            order.payment_status = PaymentStatus.REFUNDED
            self.orders.transition(order, OrderStatus.CANCELLED)
            order.updated_at = self.clock()
            logger.warning("order voided order=%s", order.code)
            return order
