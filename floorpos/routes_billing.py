from __future__ import annotations

"""Billing routes: finalize or settle a table and void orders."""

from fastapi import APIRouter, Depends

from .auth import ADMIN, WAITER, User, role_required
from .deps import Services, get_services
from .schemas import OrderOut, PaymentIn, TableOut
from .services import FinalizeResult
from .utils.audit import audit
from .utils.responses import ok

router = APIRouter(prefix="/billing", tags=["Billing"])

floor_staff = role_required(ADMIN, WAITER)


def _result(result: FinalizeResult) -> dict:
    return {
        "finalized": result.finalized,
        "order": OrderOut.model_validate(result.order) if result.order else None,
        "released": [TableOut.of(t) for t in result.released],
        "recombined": TableOut.of(result.recombined) if result.recombined else None,
        "change": float(result.change) if result.change is not None else None,
    }


@router.post("/tables/{table_id}/finalize")
@audit("billing.finalize")
async def finalize_table(
    table_id: str, user: User = Depends(floor_staff), svc: Services = Depends(get_services)
) -> dict:
    return ok(_result(svc.billing.finalize(table_id)))


@router.post("/tables/{table_id}/settle")
@audit("billing.settle")
async def settle_table(
    table_id: str,
    payload: PaymentIn,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    return ok(_result(svc.billing.settle(table_id, payload.method, payload.amount)))


@router.post("/orders/{order_id}/void")
@audit("billing.void")
async def void_order(
    order_id: str,
    user: User = Depends(role_required(ADMIN)),
    svc: Services = Depends(get_services),
) -> dict:
    return ok(OrderOut.model_validate(svc.billing.void(order_id)))
