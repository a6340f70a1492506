from __future__ import annotations

"""Floor plan routes: table listing and topology changes."""

from collections import Counter

from fastapi import APIRouter, Depends

from .auth import ADMIN, KITCHEN, WAITER, User, role_required
from .deps import Services, get_services
from .domain import TableStatus
from .schemas import MergeIn, ReassignIn, OrderOut, SplitIn, TableOut, TableStatusUpdate
from .utils.audit import audit
from .utils.responses import ok

router = APIRouter(prefix="/tables", tags=["Tables"])

floor_staff = role_required(ADMIN, WAITER)
any_staff = role_required(ADMIN, WAITER, KITCHEN)


@router.get("")
async def list_tables(
    user: User = Depends(any_staff), svc: Services = Depends(get_services)
) -> dict:
    with svc.uow() as uow:
        tables = uow.tables.list()
        return ok([TableOut.of(t) for t in tables])


@router.get("/summary")
async def floor_summary(
    user: User = Depends(any_staff), svc: Services = Depends(get_services)
) -> dict:
    """Counts per status plus seats on tables that can seat guests now."""

    with svc.uow() as uow:
        tables = uow.tables.list()
        counts = Counter(t.status.value for t in tables)
        free_seats = sum(
            t.capacity for t in tables if t.orderable and t.status is TableStatus.AVAILABLE
        )
        return ok(
            {
                "total": len(tables),
                "by_status": dict(counts),
                "free_seats": free_seats,
            }
        )


@router.get("/{table_id}")
async def get_table(
    table_id: str, user: User = Depends(any_staff), svc: Services = Depends(get_services)
) -> dict:
    with svc.uow() as uow:
        return ok(TableOut.of(uow.tables.get(table_id)))


@router.put("/{table_id}/status")
@audit("table.status")
async def set_table_status(
    table_id: str,
    payload: TableStatusUpdate,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    table = svc.topology.set_status(table_id, payload.status)
    return ok(TableOut.of(table))


@router.post("/{table_id}/split")
@audit("table.split")
async def split_table(
    table_id: str,
    payload: SplitIn,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    result = svc.topology.split(table_id, payload.parts)
    return ok(
        {
            "parent": TableOut.of(result.parent),
            "children": [TableOut.of(c) for c in result.children],
        }
    )


@router.post("/{table_id}/unsplit")
@audit("table.unsplit")
async def unsplit_table(
    table_id: str, user: User = Depends(floor_staff), svc: Services = Depends(get_services)
) -> dict:
    return ok(TableOut.of(svc.topology.unsplit(table_id)))


@router.post("/merge")
@audit("table.merge")
async def merge_tables(
    payload: MergeIn,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    tables = svc.topology.merge(payload.master_id, payload.table_ids)
    return ok([TableOut.of(t) for t in tables])


@router.post("/{master_id}/unmerge")
@audit("table.unmerge")
async def unmerge_all(
    master_id: str, user: User = Depends(floor_staff), svc: Services = Depends(get_services)
) -> dict:
    tables = svc.topology.unmerge_all(master_id)
    return ok([TableOut.of(t) for t in tables])


@router.post("/{master_id}/unmerge/{table_id}")
@audit("table.unmerge_one")
async def unmerge_one(
    master_id: str,
    table_id: str,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    tables = svc.topology.unmerge_one(master_id, table_id)
    return ok([TableOut.of(t) for t in tables])


@router.post("/reassign")
@audit("table.reassign")
async def reassign_order(
    payload: ReassignIn,
    user: User = Depends(floor_staff),
    svc: Services = Depends(get_services),
) -> dict:
    order = svc.topology.reassign(payload.from_table_id, payload.to_table_id)
    return ok(OrderOut.model_validate(order))
