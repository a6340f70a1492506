"""SQLAlchemy implementation of :class:`~floorpos.repos.TablesRepo`."""

from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain import GroupingKind, NotFound
from ..models import DiningTable
from ..repos import TablesRepo


class SqlTablesRepo(TablesRepo):
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, table_id: str) -> DiningTable:
        table = self.session.get(DiningTable, table_id)
        if table is None:
            raise NotFound(f"table {table_id!r} not found", details={"table_id": table_id})
        return table

    def get_many(self, table_ids: Iterable[str]) -> List[DiningTable]:
        return [self.get(tid) for tid in table_ids]

    def list(self) -> List[DiningTable]:
        result = self.session.execute(select(DiningTable).order_by(DiningTable.number))
        return list(result.scalars())

    def children_of(self, parent_id: str) -> List[DiningTable]:
        result = self.session.execute(
            select(DiningTable)
            .where(
                DiningTable.grouping_kind == GroupingKind.SPLIT_CHILD,
                DiningTable.group_ref == parent_id,
            )
            .order_by(DiningTable.number)
        )
        return list(result.scalars())

    def add(self, table: DiningTable) -> None:
        self.session.add(table)

    def remove(self, table: DiningTable) -> None:
        self.session.delete(table)
