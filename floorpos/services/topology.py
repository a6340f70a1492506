"""Table topology engine: split, merge, reassign and manual status changes.

Every operation follows the same shape. The set of tables it can touch (the
named tables plus their split or merge relatives) is read first, the locks for
that set are taken, and the operation then re-reads and validates inside one
unit of work. All checks run before the first mutation, so a failure leaves
every table exactly as it was.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, List, Sequence

from ..domain import (
    MANUAL_STATES,
    PRIMITIVE,
    Conflict,
    MergeMaster,
    MergeMember,
    Primitive,
    SplitChild,
    SplitParent,
    StaleWrite,
    TableStatus,
    ValidationFailed,
    is_terminal,
    original_capacity,
    split_capacities,
)
from ..models import DiningTable, Order, utcnow
from ..repos import TablesRepo
from .locks import TableLocks

logger = logging.getLogger(__name__)

UowFactory = Callable[[], Any]


def footprint(tables: TablesRepo, table_ids: Iterable[str]) -> set[str]:
    """Return ``table_ids`` plus every table structurally tied to them.

    Raises ``NotFound`` for an unknown id.
    """

    ids: set[str] = set()
    for table in tables.get_many(table_ids):
        ids.add(table.id)
        grouping = table.grouping
        if isinstance(grouping, SplitParent):
            ids.update(grouping.children)
        elif isinstance(grouping, MergeMaster):
            ids.update(grouping.members)
        elif isinstance(grouping, SplitChild):
            ids.add(grouping.parent)
            parent = tables.get(grouping.parent).grouping
            if isinstance(parent, SplitParent):
                ids.update(parent.children)
        elif isinstance(grouping, MergeMember):
            ids.add(grouping.master)
            master = tables.get(grouping.master).grouping
            if isinstance(master, MergeMaster):
                ids.update(master.members)
    return ids


def open_order(uow, table: DiningTable) -> Order | None:
    """Return the table's current order unless it is served or cancelled."""

    if not table.current_order_id:
        return None
    order = uow.orders.get(table.current_order_id)
    if is_terminal(order.status):
        return None
    return order


def release(uow, table: DiningTable) -> None:
    """Return ``table`` to a primitive shape and restore its capacity.

    A table still holding an open order stays ``OCCUPIED`` with that order.
    """

    restored = original_capacity(table.grouping)
    if restored is not None:
        table.capacity = restored
    table.grouping = PRIMITIVE
    if open_order(uow, table) is None:
        table.status = TableStatus.AVAILABLE
        table.current_order_id = None


class GuardedService:
    """Base for services that mutate tables under :class:`TableLocks`."""

    def __init__(
        self,
        uow_factory: UowFactory,
        locks: TableLocks,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow = uow_factory
        self._locks = locks
        self.clock = clock

    @contextmanager
    def _guard(self, *table_ids: str) -> Iterator:
        """Lock the footprint of ``table_ids`` and yield a unit of work."""

        with self._uow() as uow:
            ids = footprint(uow.tables, table_ids)
        with self._locks.hold(*ids):
            with self._uow() as uow:
                if not footprint(uow.tables, table_ids) <= ids:
                    raise StaleWrite("table grouping changed while waiting")
                yield uow


@dataclass
class SplitResult:
    parent: DiningTable
    children: List[DiningTable]


class TopologyEngine(GuardedService):
    """State machine over the table set."""

    def set_status(self, table_id: str, status: TableStatus) -> DiningTable:
        """Manually move a table between AVAILABLE, OCCUPIED and RESERVED.

        Moving to AVAILABLE detaches the current order. Merge members and split
        parents cannot be changed here; undo the grouping instead.
        """

        status = TableStatus(status)
        if status not in MANUAL_STATES:
            raise ValidationFailed(
                f"status {status.value} cannot be set manually",
                details={"allowed": sorted(s.value for s in MANUAL_STATES)},
            )
        with self._guard(table_id) as uow:
            table = uow.tables.get(table_id)
            if isinstance(table.grouping, (MergeMember, SplitParent)):
                raise Conflict(
                    f"table {table.number} is part of a group",
                    hint="unmerge or unsplit the table first",
                )
            table.status = status
            if status is TableStatus.AVAILABLE:
                table.current_order_id = None
            logger.info("table status table=%s status=%s", table_id, status.value)
            return table

    def split(self, table_id: str, parts: int) -> SplitResult:
        """Subdivide an available table into ``parts`` virtual sub-tables."""

        if not isinstance(parts, int) or parts < 2:
            raise ValidationFailed("parts must be an integer of at least 2")
        with self._guard(table_id) as uow:
            table = uow.tables.get(table_id)
            if table.status is not TableStatus.AVAILABLE:
                raise Conflict(
                    f"table {table.number} is {table.status.value}, not AVAILABLE"
                )
            if not isinstance(table.grouping, Primitive):
                raise Conflict(f"table {table.number} is already grouped")
            if parts > table.capacity:
                raise ValidationFailed(
                    f"cannot split {table.capacity} seats into {parts} parts"
                )

            children = [
                DiningTable(
                    id=f"split-{table.id}-{i}",
                    number=f"{table.number}.{i + 1}",
                    capacity=seats,
                    status=TableStatus.AVAILABLE,
                    grouping=SplitChild(parent=table.id),
                )
                for i, seats in enumerate(split_capacities(table.capacity, parts))
            ]
            for child in children:
                uow.tables.add(child)
            table.grouping = SplitParent(
                children=tuple(c.id for c in children),
                original_capacity=table.capacity,
            )
            table.status = TableStatus.OCCUPIED
            logger.info("split table=%s parts=%d", table_id, parts)
            return SplitResult(parent=table, children=children)

    def unsplit(self, parent_id: str) -> DiningTable:
        """Remove all sub-tables of ``parent_id`` and restore the parent."""

        with self._guard(parent_id) as uow:
            parent = uow.tables.get(parent_id)
            if not isinstance(parent.grouping, SplitParent):
                raise Conflict(f"table {parent.number} is not split")
            children = uow.tables.children_of(parent_id)
            busy = [c.number for c in children if open_order(uow, c) is not None]
            if busy:
                raise Conflict(
                    "sub-tables still have open orders",
                    details={"tables": busy},
                    hint="settle or move those orders first",
                )
            for child in children:
                uow.tables.remove(child)
            recombine(parent)
            logger.info("unsplit table=%s", parent_id)
            return parent

    def merge(self, master_id: str, other_ids: Sequence[str]) -> List[DiningTable]:
        """Absorb ``other_ids`` into ``master_id``'s billing group."""

        other_ids = list(other_ids)
        if not other_ids:
            raise ValidationFailed("at least one table must be merged")
        if len(set(other_ids)) != len(other_ids) or master_id in other_ids:
            raise ValidationFailed("merge participants must be distinct tables")

        with self._guard(master_id, *other_ids) as uow:
            master = uow.tables.get(master_id)
            grouping = master.grouping
            if not isinstance(grouping, (Primitive, MergeMaster)):
                raise Conflict(f"table {master.number} cannot head a merge")
            others = uow.tables.get_many(other_ids)
            for other in others:
                if not isinstance(other.grouping, Primitive):
                    raise Conflict(f"table {other.number} is already grouped")
                if open_order(uow, other) is not None:
                    raise Conflict(
                        f"table {other.number} has an open order",
                        hint="reassign or settle it first",
                    )

            if isinstance(grouping, MergeMaster):
                original = grouping.original_capacity
                members = grouping.members + tuple(other_ids)
            else:
                original = master.capacity
                members = tuple(other_ids)

            for other in others:
                other.grouping = MergeMember(
                    master=master.id, original_capacity=other.capacity
                )
                other.status = TableStatus.MERGED
                other.current_order_id = None
            master.capacity = master.capacity + sum(o.capacity for o in others)
            master.grouping = MergeMaster(members=members, original_capacity=original)
            logger.info("merge master=%s members=%s", master_id, ",".join(members))
            return [master, *others]

    def unmerge_all(self, master_id: str) -> List[DiningTable]:
        """Dissolve ``master_id``'s group, restoring every participant."""

        with self._guard(master_id) as uow:
            master = uow.tables.get(master_id)
            grouping = master.grouping
            if not isinstance(grouping, MergeMaster):
                raise Conflict(f"table {master.number} is not merged")
            members = uow.tables.get_many(grouping.members)
            for table in (master, *members):
                release(uow, table)
            logger.info("unmerge master=%s", master_id)
            return [master, *members]

    def unmerge_one(self, master_id: str, table_id: str) -> List[DiningTable]:
        """Detach ``table_id`` from ``master_id``'s group.

        The master keeps the remaining members; once none remain it reverts
        to a plain table.
        """

        with self._guard(master_id, table_id) as uow:
            master = uow.tables.get(master_id)
            member = uow.tables.get(table_id)
            grouping = master.grouping
            if not isinstance(grouping, MergeMaster) or table_id not in grouping.members:
                raise Conflict(
                    f"table {member.number} is not merged into table {master.number}"
                )
            seats = original_capacity(member.grouping) or member.capacity
            remaining = tuple(m for m in grouping.members if m != table_id)

            if remaining:
                master.capacity = master.capacity - seats
                master.grouping = MergeMaster(
                    members=remaining, original_capacity=grouping.original_capacity
                )
            else:
                release(uow, master)
            release(uow, member)
            logger.info("unmerge master=%s member=%s", master_id, table_id)
            return [master, member]

    def reassign(self, from_table_id: str, to_table_id: str) -> Order:
        """Move the open order on ``from_table_id`` to ``to_table_id``."""

        if from_table_id == to_table_id:
            raise ValidationFailed("source and destination must differ")
        with self._guard(from_table_id, to_table_id) as uow:
            source = uow.tables.get(from_table_id)
            dest = uow.tables.get(to_table_id)
            order = open_order(uow, source)
            if order is None:
                raise Conflict(f"table {source.number} has no open order to move")
            if not dest.orderable:
                raise Conflict(f"table {dest.number} cannot take orders directly")
            if dest.status is not TableStatus.AVAILABLE or open_order(uow, dest):
                raise Conflict(f"table {dest.number} is not available")

            order.table_id = dest.id
            order.table_number = dest.number
            order.updated_at = self.clock()
            source.status = TableStatus.AVAILABLE
            source.current_order_id = None
            dest.status = TableStatus.OCCUPIED
            dest.current_order_id = order.id
            logger.info(
                "reassign order=%s from=%s to=%s", order.id, from_table_id, to_table_id
            )
            return order


def recombine(parent: DiningTable) -> None:
    grouping = parent.grouping
    parent.capacity = grouping.original_capacity
    parent.grouping = PRIMITIVE
    parent.status = TableStatus.AVAILABLE
    parent.current_order_id = None
