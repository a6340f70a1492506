from __future__ import annotations

"""Order placement, editing, status, discount and payment routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .auth import ADMIN, KITCHEN, WAITER, User, role_required
from .deps import Services, get_services
from .domain import OrderStatus, PaymentStatus
from .repos import OrderFilters
from .schemas import (
    DiscountIn,
    ItemStatusUpdate,
    OrderCreate,
    OrderItemsUpdate,
    OrderOut,
    OrderStatusUpdate,
    PaymentIn,
)
from .services import LineRequest, Staff, order_summary
from .utils.audit import audit
from .utils.responses import ok

router = APIRouter(prefix="/orders", tags=["Orders"])

MAX_LIMIT = 100

floor_staff = role_required(ADMIN, WAITER)
kitchen_staff = role_required(ADMIN, KITCHEN)
any_staff = role_required(ADMIN, WAITER, KITCHEN)


def _lines(payload) -> list[LineRequest]:
    return [
        LineRequest(
            menu_item_id=line.menu_item_id,
            quantity=line.quantity,
            note=line.note,
            item_id=line.item_id,
        )
        for line in payload.items
    ]


@router.post("")
@audit("order.create")
async def create_order(
    payload: OrderCreate,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.orders.create(
        payload.table_id,
        _lines(payload),
        waiter=Staff(id=user.username, name=user.name, role=user.role),
        table_number=payload.table_number,
    )
    return ok(OrderOut.model_validate(order))


@router.get("")
async def list_orders(
    status: Optional[OrderStatus] = None,
    table_id: Optional[str] = None,
    waiter: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    user: User = Depends(any_staff),
    svc: Services = Depends(get_services),
) -> dict:
    filters = OrderFilters(
        status=status,
        table_id=table_id,
        waiter_id=waiter,
        payment_status=payment_status,
        start=start_date,
        end=end_date,
    )
    result = svc.orders.list(filters, page=page, limit=min(limit, MAX_LIMIT))
    return ok(
        {
            "orders": [OrderOut.model_validate(o) for o in result.orders],
            "pagination": {
                "page": result.page,
                "limit": result.limit,
                "total": result.total,
                "pages": result.pages,
                "has_next": result.has_next,
                "has_prev": result.has_prev,
            },
        }
    )


@router.get("/stats/summary")
async def stats_summary(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user: User = Depends(role_required(ADMIN)),
    svc: Services = Depends(get_services),
) -> dict:
    return ok(order_summary(svc.uow, start_date, end_date))


@router.get("/{order_id}")
async def get_order(
    order_id: str, user: User = Depends(any_staff), svc: Services = Depends(get_services)
) -> dict:
    return ok(OrderOut.model_validate(svc.orders.get(order_id)))


@router.put("/{order_id}/items")
@audit("order.edit_items")
async def edit_items(
    order_id: str,
    payload: OrderItemsUpdate,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.orders.edit_items(order_id, _lines(payload))
    return ok(OrderOut.model_validate(order))


@router.patch("/{order_id}/items/{item_id}/status")
@audit("order.item_status")
async def update_item_status(
    order_id: str,
    item_id: str,
    payload: ItemStatusUpdate,
    user: User = Depends(kitchen_staff),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.orders.update_item_status(order_id, item_id, payload.status)
    return ok(OrderOut.model_validate(order))


@router.patch("/{order_id}/status")
@audit("order.status")
async def set_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: User = Depends(any_staff),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.orders.set_status(order_id, payload.status)
    return ok(OrderOut.model_validate(order))


@router.post("/{order_id}/discount")
@audit("order.discount")
async def apply_discount(
    order_id: str,
    payload: DiscountIn,
    user: User = Depends(role_required(ADMIN)),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.orders.apply_discount(order_id, payload.amount, payload.kind)
    return ok(OrderOut.model_validate(order))


@router.post("/{order_id}/pay")
@audit("order.pay")
async def pay_order(
    order_id: str,
    payload: PaymentIn,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    receipt = svc.orders.pay(order_id, payload.method, payload.amount)
    return ok({"order": OrderOut.model_validate(receipt.order), "change": float(receipt.change)})


@router.post("/{order_id}/cancel")
@audit("order.cancel")
async def cancel_order(
    order_id: str, user: User = Depends(floor_staff), svc: Services = Depends(get_services)
) -> dict:
    return ok(OrderOut.model_validate(svc.orders.cancel(order_id)))
