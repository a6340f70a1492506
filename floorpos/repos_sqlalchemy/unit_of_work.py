"""Transactional unit of work over a SQLAlchemy session."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ..domain import StaleWrite
from .menu_repo_sql import SqlMenuRepo
from .orders_repo_sql import SqlOrdersRepo
from .tables_repo_sql import SqlTablesRepo

logger = logging.getLogger(__name__)


class SqlUnitOfWork:
    """Open a session, expose repositories, commit or roll back on exit.

    Usage::

        with SqlUnitOfWork(SessionLocal) as uow:
            table = uow.tables.get("t1")
            table.capacity = 6

    Leaving the block normally commits. Any exception rolls back every staged
    change and propagates. A version mismatch at flush time is re-raised as
    :class:`~floorpos.domain.StaleWrite`.
    """

    session: Session

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def __enter__(self) -> "SqlUnitOfWork":
        self.session = self._session_factory()
        self.tables = SqlTablesRepo(self.session)
        self.orders = SqlOrdersRepo(self.session)
        self.menu = SqlMenuRepo(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.session.rollback()
        finally:
            self.session.close()
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning("stale write rejected: %s", exc)
            raise StaleWrite() from exc

