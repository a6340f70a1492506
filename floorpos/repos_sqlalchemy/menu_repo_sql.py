"""SQLAlchemy implementation of :class:`~floorpos.repos.MenuRepo`."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import MenuItem
from ..repos import MenuRepo


class SqlMenuRepo(MenuRepo):
    def __init__(self, session: Session) -> None:
        self.session = session

    def find(self, item_id: str) -> MenuItem | None:
        return self.session.get(MenuItem, item_id)

    def list(self, category: str | None = None) -> List[MenuItem]:
        stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if category:
            stmt = stmt.where(MenuItem.category == category)
        return list(self.session.execute(stmt).scalars())
