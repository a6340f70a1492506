"""Order aggregate: placement, kitchen progress, discounts and payment.

Money is handled as :class:`~decimal.Decimal` and rounded half-up to two
places. The order status is never assigned from item changes directly; it is
always recomputed with :func:`~floorpos.domain.derive_status`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, List, Mapping, Sequence

from ..domain import (
    KITCHEN_STAGES,
    Conflict,
    DiscountKind,
    ItemStatus,
    NotFound,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TableStatus,
    ValidationFailed,
    derive_status,
    forced_item_status,
    is_terminal,
)
from ..models import Order, OrderItem, new_id, utcnow
from ..repos import OrderFilters
from .locks import TableLocks
from .topology import GuardedService, UowFactory, open_order

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def money(value) -> Decimal:
    """Round ``value`` half-up to two decimal places."""

    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass
class LineRequest:
    """One requested order line."""

    menu_item_id: str
    quantity: int = 1
    note: str | None = None
    item_id: str | None = None


@dataclass
class Staff:
    """Authenticated actor recorded on new orders."""

    id: str
    name: str
    role: str


@dataclass
class PaymentReceipt:
    order: Order
    change: Decimal


@dataclass
class OrderPage:
    orders: List[Order]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def _as_line(raw: LineRequest | Mapping) -> LineRequest:
    if isinstance(raw, LineRequest):
        return raw
    return LineRequest(
        menu_item_id=raw.get("menu_item_id"),
        quantity=raw.get("quantity", 1),
        note=raw.get("note"),
        item_id=raw.get("item_id"),
    )


class OrderService(GuardedService):
    """Operations on a single order and its line items."""

    def __init__(
        self,
        uow_factory: UowFactory,
        locks: TableLocks,
        clock: Callable[[], datetime] = utcnow,
        tax_rate: Decimal = Decimal("0.05"),
        code_prefix: str = "ORD",
    ) -> None:
        super().__init__(uow_factory, locks, clock)
        self.tax_rate = Decimal(str(tax_rate))
        self.code_prefix = code_prefix

    # ------------------------------------------------------------------ pricing
    def _snapshot_lines(self, uow, lines: Sequence[LineRequest]) -> List[OrderItem]:
        """Validate ``lines`` against the menu and build unsaved items.

        The first unknown or unavailable menu item fails the whole request.
        """

        items: List[OrderItem] = []
        for position, line in enumerate(lines):
            if not line.menu_item_id:
                raise ValidationFailed("every line needs a menu_item_id")
            if not isinstance(line.quantity, int) or line.quantity < 1:
                raise ValidationFailed(
                    "quantity must be at least 1",
                    details={"menu_item_id": line.menu_item_id},
                )
            menu_item = uow.menu.find(line.menu_item_id)
            if menu_item is None:
                raise ValidationFailed(
                    f"Menu item not found: {line.menu_item_id}",
                    details={"menu_item_id": line.menu_item_id},
                )
            if not menu_item.is_available:
                raise ValidationFailed(
                    f"Menu item not available: {menu_item.name}",
                    details={"menu_item_id": line.menu_item_id},
                )
            items.append(
                OrderItem(
                    id=new_id(),
                    position=position,
                    menu_item_id=menu_item.id,
                    name_snapshot=menu_item.name,
                    price_snapshot=money(menu_item.price),
                    qty=line.quantity,
                    note=line.note or None,
                    status=ItemStatus.PENDING,
                )
            )
        return items

    def _reprice(self, order: Order) -> None:
        subtotal = money(sum((i.price_snapshot * i.qty for i in order.items), Decimal("0")))
        order.subtotal = subtotal
        order.tax = money(subtotal * self.tax_rate)
        order.discount = self._discount_amount(
            subtotal, order.discount_kind, order.discount_value
        )
        order.total = money(order.subtotal + order.tax - order.discount)

    @staticmethod
    def _discount_amount(
        subtotal: Decimal, kind: DiscountKind | None, value: Decimal | None
    ) -> Decimal:
        if kind is None or value is None:
            return Decimal("0.00")
        if kind is DiscountKind.PERCENTAGE:
            return money(subtotal * Decimal(str(value)) / HUNDRED)
        return min(money(value), subtotal)

    def _next_code(self, uow) -> str:
        now = self.clock()
        stamp = int(now.timestamp() * 1000) % 1_000_000
        while True:
            code = f"{self.code_prefix}{now:%y%m%d}{stamp:06d}"
            if not uow.orders.code_exists(code):
                return code
            stamp = (stamp + 1) % 1_000_000

    # ---------------------------------------------------------------- lifecycle
    def create(
        self,
        table_id: str,
        lines: Iterable[LineRequest | Mapping],
        waiter: Staff | None = None,
        table_number: str | None = None,
    ) -> Order:
        """Place a new order on an orderable table and occupy it."""

        lines = [_as_line(raw) for raw in lines]
        if not table_id or not lines:
            raise ValidationFailed("Table ID and items are required")

        with self._guard(table_id) as uow:
            table = uow.tables.get(table_id)
            if table_number is not None and table_number != table.number:
                raise ValidationFailed(
                    f"table {table_id!r} is number {table.number}, not {table_number}"
                )
            if not table.orderable:
                raise Conflict(
                    f"table {table.number} cannot take orders directly",
                    hint="order on the group head or a sub-table",
                )
            if open_order(uow, table) is not None:
                raise Conflict(
                    f"table {table.number} already has an open order",
                    hint="edit the existing order instead",
                )

            now = self.clock()
            order = Order(
                id=new_id(),
                code=self._next_code(uow),
                table_id=table.id,
                table_number=table.number,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.UNPAID,
                is_paid=False,
                discount=Decimal("0.00"),
                waiter_id=waiter.id if waiter else None,
                waiter_name=waiter.name if waiter else None,
                created_at=now,
                updated_at=now,
            )
            order.items = self._snapshot_lines(uow, lines)
            self._reprice(order)
            uow.orders.add(order)

            table.status = TableStatus.OCCUPIED
            table.current_order_id = order.id
            logger.info(
                "order placed order=%s table=%s total=%s", order.code, table.id, order.total
            )
            return order

    @staticmethod
    def _ensure_mutable(order: Order) -> None:
        if order.is_paid or is_terminal(order.status):
            raise Conflict(
                f"order {order.code} can no longer be edited",
                details={"status": order.status.value},
            )

    def edit_items(self, order_id: str, lines: Iterable[LineRequest | Mapping]) -> Order:
        """Replace the lines of an open order.

        Lines that name an existing ``item_id`` keep that item's kitchen stage;
        new lines start ``PENDING``.
        """

        lines = [_as_line(raw) for raw in lines]
        if not lines:
            raise ValidationFailed("an order needs at least one item")
        with self._uow() as uow:
            order = uow.orders.get(order_id)
            self._ensure_mutable(order)
            existing = {item.id: item for item in order.items}
            named = [line.item_id for line in lines if line.item_id]
            repeated = sorted({i for i in named if named.count(i) > 1})
            if repeated:
                raise ValidationFailed(
                    "each order item may appear only once",
                    details={"order_id": order_id, "item_ids": repeated},
                )
            for line in lines:
                if line.item_id and line.item_id not in existing:
                    raise NotFound(
                        f"item {line.item_id!r} not found on order",
                        details={"order_id": order_id, "item_id": line.item_id},
                    )
            fresh = self._snapshot_lines(uow, lines)
            for line, item in zip(lines, fresh):
                if line.item_id:
                    item.id = line.item_id
                    item.status = existing[line.item_id].status
            order.items = self._merge_items(order, fresh)
            self._reprice(order)
            self._apply_derived_status(order)
            order.updated_at = self.clock()
            return order

    @staticmethod
    def _merge_items(order: Order, fresh: List[OrderItem]) -> List[OrderItem]:
        # Reuse persistent rows for kept ids so their primary keys stay put.
        current = {item.id: item for item in order.items}
        merged = []
        for item in fresh:
            kept = current.get(item.id)
            if kept is None:
                merged.append(item)
                continue
            kept.position = item.position
            kept.menu_item_id = item.menu_item_id
            kept.name_snapshot = item.name_snapshot
            kept.price_snapshot = item.price_snapshot
            kept.qty = item.qty
            kept.note = item.note
            merged.append(kept)
        return merged

    def update_item_status(
        self, order_id: str, item_id: str, status: ItemStatus
    ) -> Order:
        """Set one item's kitchen stage and recompute the order status."""

        try:
            status = ItemStatus(status)
        except ValueError:
            raise ValidationFailed(f"invalid item status {status!r}") from None
        if status not in KITCHEN_STAGES:
            raise ValidationFailed(
                f"item status must be one of {sorted(s.value for s in KITCHEN_STAGES)}"
            )
        with self._uow() as uow:
            order = uow.orders.get(order_id)
            item = next((i for i in order.items if i.id == item_id), None)
            if item is None:
                raise NotFound(
                    f"item {item_id!r} not found on order",
                    details={"order_id": order_id, "item_id": item_id},
                )
            if is_terminal(order.status):
                raise Conflict(f"order {order.code} is {order.status.value}")
            item.status = status
            self._apply_derived_status(order)
            order.updated_at = self.clock()
            return order

    def _apply_derived_status(self, order: Order) -> None:
        self.transition(order, derive_status(i.status for i in order.items))

    def transition(self, order: Order, status: OrderStatus) -> None:
        """Move ``order`` to ``status``, keeping the prep-time metric."""

        previous = order.status
        now = self.clock()
        if status is OrderStatus.PREPARING and previous is not OrderStatus.PREPARING:
            order.preparing_at = now
        if status is OrderStatus.READY and previous is OrderStatus.PREPARING:
            started = order.preparing_at or order.updated_at or order.created_at
            elapsed = (now - _aware(started)).total_seconds()
            order.prep_time_minutes = round(elapsed / 60)
        order.status = status
        forced = forced_item_status(status)
        if forced is not None:
            for item in order.items:
                item.status = forced

    def set_status(self, order_id: str, status: OrderStatus) -> Order:
        """Override the order status directly.

        ``SERVED`` and ``CANCELLED`` propagate to every item. Served or
        cancelled orders cannot change any more.
        """

        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationFailed(f"invalid order status {status!r}") from None
        with self._uow() as uow:
            order = uow.orders.get(order_id)
            if is_terminal(order.status):
                raise Conflict(f"order {order.code} is already {order.status.value}")
            if status is OrderStatus.CANCELLED and order.is_paid:
                raise Conflict("Cannot cancel served or paid orders")
            self.transition(order, status)
            order.updated_at = self.clock()
            logger.info("order status order=%s status=%s", order.code, status.value)
            return order

    def apply_discount(
        self, order_id: str, amount, kind: DiscountKind
    ) -> Order:
        """Apply a percentage or fixed discount to the order subtotal."""

        try:
            kind = DiscountKind(kind)
            value = Decimal(str(amount))
        except (ValueError, ArithmeticError):
            raise ValidationFailed("invalid discount") from None
        if not value.is_finite() or value < 0:
            raise ValidationFailed("discount cannot be negative")
        with self._uow() as uow:
            order = uow.orders.get(order_id)
            if order.is_paid:
                raise ValidationFailed("order is already paid")
            if is_terminal(order.status):
                raise Conflict(f"order {order.code} is {order.status.value}")
            if kind is DiscountKind.PERCENTAGE and value > HUNDRED:
                raise ValidationFailed("percentage discount must be between 0 and 100")
            if kind is DiscountKind.AMOUNT and value > order.subtotal:
                raise ValidationFailed("discount exceeds the subtotal")
            order.discount_kind = kind
            order.discount_value = money(value)
            self._reprice(order)
            order.updated_at = self.clock()
            return order

    def pay(self, order_id: str, method: PaymentMethod, tendered) -> PaymentReceipt:
        """Settle an order and return the change due."""

        with self._uow() as uow:
            order = uow.orders.get(order_id)
            receipt = self.apply_payment(order, method, tendered)
            logger.info(
                "order paid order=%s method=%s total=%s",
                order.code,
                receipt.order.payment_method.value,
                order.total,
            )
            return receipt

    def apply_payment(self, order: Order, method: PaymentMethod, tendered) -> PaymentReceipt:
        try:
            method = PaymentMethod(method)
            tendered = money(tendered)
        except (ValueError, ArithmeticError):
            raise ValidationFailed("invalid payment method or amount") from None
        if order.is_paid:
            raise ValidationFailed("order is already paid")
        if order.status is OrderStatus.CANCELLED:
            raise Conflict(f"order {order.code} is cancelled")
        if tendered < order.total:
            raise ValidationFailed(
                "amount tendered is less than the total",
                details={"total": str(order.total), "tendered": str(tendered)},
            )
        order.payment_status = PaymentStatus.PAID
        order.payment_method = method
        order.is_paid = True
        self.transition(order, OrderStatus.SERVED)
        order.updated_at = self.clock()
        return PaymentReceipt(order=order, change=money(tendered - order.total))

    def cancel(self, order_id: str) -> Order:
        """Cancel an order that is neither served nor paid."""

        with self._uow() as uow:
            order = uow.orders.get(order_id)
            if order.status is OrderStatus.SERVED or order.is_paid:
                raise Conflict("Cannot cancel served or paid orders")
            if order.status is OrderStatus.CANCELLED:
                raise Conflict(f"order {order.code} is already cancelled")
            self.transition(order, OrderStatus.CANCELLED)
            order.updated_at = self.clock()
            logger.info("order cancelled order=%s", order.code)
            return order

    # ------------------------------------------------------------------ queries
    def get(self, order_id: str) -> Order:
        with self._uow() as uow:
            return uow.orders.get(order_id)

    def list(self, filters: OrderFilters, page: int = 1, limit: int = 50) -> OrderPage:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        with self._uow() as uow:
            orders, total = uow.orders.list(filters, limit, (page - 1) * limit)
            return OrderPage(orders=orders, total=total, page=page, limit=limit)

    def active(self) -> List[Order]:
        """Orders still in the kitchen or awaiting service, oldest first."""

        with self._uow() as uow:
            return uow.orders.active()
