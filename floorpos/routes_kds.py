"""Kitchen display routes.

The kitchen polls the queue; item stages are moved through the order routes.
"""

from __future__ import annotations

from datetime import timezone

from fastapi import APIRouter, Depends

from .auth import ADMIN, KITCHEN, User, role_required
from .deps import Services, get_services
from .schemas import OrderOut
from .utils.responses import ok

router = APIRouter(prefix="/kds", tags=["Kitchen"])

# Orders waiting longer than this are flagged as delayed
DELAY_THRESHOLD_SECS = 900


@router.get("/queue")
async def list_queue(
    user: User = Depends(role_required(ADMIN, KITCHEN)),
    svc: Services = Depends(get_services),
) -> dict:
    """Return active orders, oldest first, with the age of the oldest one."""

    orders = svc.orders.active()
    delay = 0.0
    if orders:
        oldest = orders[0].created_at
        if oldest.tzinfo is None:
            oldest = oldest.replace(tzinfo=timezone.utc)
        delay = (svc.orders.clock() - oldest).total_seconds()
    data = {
        "orders": [OrderOut.model_validate(o) for o in orders],
        "oldest_secs": max(delay, 0.0),
        "delayed": delay > DELAY_THRESHOLD_SECS,
    }
    return ok(data)
