"""Database models for tables, orders and the menu catalog.

These models describe the schema used by the application. They are kept
isolated from any application wiring so that they can be used in tests
independently.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from .domain import (
    DiscountKind,
    Grouping,
    GroupingKind,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TableStatus,
    is_orderable,
)
from .domain import table_status

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class MenuItem(Base):
    """Catalog entries orders are priced from."""

    __tablename__ = "menu_items"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    prep_minutes = Column(Integer, nullable=False, default=15)


class DiningTable(Base):
    """A physical table or a virtual sub-table created by a split."""

    __tablename__ = "dining_tables"

    id = Column(String, primary_key=True, default=new_id)
    number = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    status = Column(Enum(TableStatus), nullable=False, default=TableStatus.AVAILABLE)
    current_order_id = Column(String, nullable=True)

    # Persisted form of the structural role; use ``grouping`` instead.
    grouping_kind = Column(
        Enum(GroupingKind), nullable=False, default=GroupingKind.PRIMITIVE
    )
    group_ref = Column(String, nullable=True)
    group_members = Column(JSON, nullable=False, default=list)
    original_capacity = Column(Integer, nullable=True)

    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    @property
    def grouping(self) -> Grouping:
        return table_status.decode(
            table_status.GroupingColumns(
                kind=self.grouping_kind or GroupingKind.PRIMITIVE,
                ref=self.group_ref,
                members=list(self.group_members or []),
                original_capacity=self.original_capacity,
            )
        )

    @grouping.setter
    def grouping(self, value: Grouping) -> None:
        cols = table_status.encode(value)
        self.grouping_kind = cols.kind
        self.group_ref = cols.ref
        self.group_members = cols.members
        self.original_capacity = cols.original_capacity

    @property
    def orderable(self) -> bool:
        return is_orderable(self.grouping, self.status)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<DiningTable {self.number} {self.status.value} cap={self.capacity}>"


class Order(Base):
    """An order placed against exactly one orderable table."""

    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=new_id)
    code = Column(String, unique=True, nullable=False)
    table_id = Column(String, nullable=False, index=True)
    table_number = Column(String, nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    tax = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount_kind = Column(Enum(DiscountKind), nullable=True)
    discount_value = Column(Numeric(10, 2), nullable=True)
    total = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(
        Enum(PaymentStatus), nullable=False, default=PaymentStatus.UNPAID
    )
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    is_paid = Column(Boolean, nullable=False, default=False)

    waiter_id = Column(String, nullable=True, index=True)
    waiter_name = Column(String, nullable=True)

    preparing_at = Column(DateTime(timezone=True), nullable=True)
    prep_time_minutes = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    version = Column(Integer, nullable=False)

    items = relationship(
        "OrderItem",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}


class OrderItem(Base):
    """Line items belonging to an order.

    Name and price are snapshotted at order time so later menu edits do not
    change historical bills.
    """

    __tablename__ = "order_items"

    id = Column(String, primary_key=True, default=new_id)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    menu_item_id = Column(String, nullable=False)
    name_snapshot = Column(String, nullable=False)
    price_snapshot = Column(Numeric(10, 2), nullable=False)
    qty = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    status = Column(Enum(ItemStatus), nullable=False, default=ItemStatus.PENDING)


class AuditLog(Base):
    """Append-only record of staff actions."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    actor = Column(String, nullable=False)
    action = Column(String, nullable=False)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
