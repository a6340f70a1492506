"""SQLAlchemy-backed repository helpers for orders."""

from __future__ import annotations

from datetime import datetime
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..domain import ACTIVE, NotFound
from ..models import Order
from ..repos import OrderFilters, OrdersRepo


class SqlOrdersRepo(OrdersRepo):
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, order_id: str) -> Order:
        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFound(f"order {order_id!r} not found", details={"order_id": order_id})
        return order

    def add(self, order: Order) -> None:
        self.session.add(order)

    def code_exists(self, code: str) -> bool:
        result = self.session.execute(select(Order.id).where(Order.code == code))
        return result.first() is not None

    def list(
        self, filters: OrderFilters, limit: int, offset: int
    ) -> Tuple[List[Order], int]:
        conditions = []
        if filters.status:
            conditions.append(Order.status == filters.status)
        if filters.table_id:
            conditions.append(Order.table_id == filters.table_id)
        if filters.waiter_id:
            conditions.append(Order.waiter_id == filters.waiter_id)
        if filters.payment_status:
            conditions.append(Order.payment_status == filters.payment_status)
        if filters.start:
            conditions.append(Order.created_at >= filters.start)
        if filters.end:
            conditions.append(Order.created_at <= filters.end)

        total = self.session.execute(
            select(func.count(Order.id)).where(*conditions)
        ).scalar_one()
        result = self.session.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars()), total

    def active(self) -> List[Order]:
        result = self.session.execute(
            select(Order).where(Order.status.in_(ACTIVE)).order_by(Order.created_at)
        )
        return list(result.scalars())

    def in_range(self, start: datetime | None, end: datetime | None) -> List[Order]:
        stmt = select(Order)
        if start:
            stmt = stmt.where(Order.created_at >= start)
        if end:
            stmt = stmt.where(Order.created_at <= end)
        return list(self.session.execute(stmt).scalars())
