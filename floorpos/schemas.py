"""Request and response models for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain import (
    DiscountKind,
    ItemStatus,
    MergeMaster,
    MergeMember,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SplitChild,
    SplitParent,
    TableStatus,
    original_capacity,
)
from .models import DiningTable


class LoginPayload(BaseModel):
    username: str
    password: str


# Requests


class OrderLineIn(BaseModel):
    """A menu item to put on an order."""

    menu_item_id: str
    quantity: int = Field(1, ge=1)
    note: Optional[str] = None
    item_id: Optional[str] = None


class OrderCreate(BaseModel):
    table_id: str
    table_number: Optional[str] = None
    items: List[OrderLineIn] = Field(..., min_length=1)


class OrderItemsUpdate(BaseModel):
    items: List[OrderLineIn] = Field(..., min_length=1)


class ItemStatusUpdate(BaseModel):
    status: ItemStatus


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class DiscountIn(BaseModel):
    amount: float = Field(..., ge=0)
    kind: DiscountKind = DiscountKind.PERCENTAGE


class PaymentIn(BaseModel):
    method: PaymentMethod
    amount: float = Field(..., ge=0)


class TableStatusUpdate(BaseModel):
    status: TableStatus


class SplitIn(BaseModel):
    parts: int = Field(..., ge=2)


class MergeIn(BaseModel):
    master_id: str
    table_ids: List[str] = Field(..., min_length=1)


class ReassignIn(BaseModel):
    from_table_id: str
    to_table_id: str


# Responses


class TableOut(BaseModel):
    """Flat view of a table with its grouping spelled out."""

    id: str
    number: str
    capacity: int
    status: TableStatus
    current_order_id: Optional[str] = None
    is_split: bool = False
    parent_id: Optional[str] = None
    merged_with: List[str] = []
    master_table_id: Optional[str] = None
    original_capacity: Optional[int] = None

    @classmethod
    def of(cls, table: DiningTable) -> "TableOut":
        grouping = table.grouping
        return cls(
            id=table.id,
            number=table.number,
            capacity=table.capacity,
            status=table.status,
            current_order_id=table.current_order_id,
            is_split=isinstance(grouping, SplitParent),
            parent_id=grouping.parent if isinstance(grouping, SplitChild) else None,
            merged_with=list(grouping.members) if isinstance(grouping, MergeMaster) else [],
            master_table_id=grouping.master if isinstance(grouping, MergeMember) else None,
            original_capacity=original_capacity(grouping),
        )


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    menu_item_id: str
    name: str = Field(validation_alias="name_snapshot")
    price: float = Field(validation_alias="price_snapshot")
    quantity: int = Field(validation_alias="qty")
    note: Optional[str] = None
    status: ItemStatus


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    table_id: str
    table_number: str
    items: List[OrderItemOut]
    subtotal: float
    tax: float
    discount: float
    discount_kind: Optional[DiscountKind] = None
    total: float
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    is_paid: bool
    waiter_id: Optional[str] = None
    waiter_name: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class MenuItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str
    price: float
    description: Optional[str] = None
    is_available: bool
    prep_minutes: int
