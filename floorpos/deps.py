"""Dependency helpers wiring services to the running application."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .models import utcnow
from .repos_sqlalchemy import SqlUnitOfWork
from .services import BillingFinalizer, OrderService, TableLocks, TopologyEngine


@dataclass
class Services:
    """Service objects sharing one session factory and one lock registry."""

    session_factory: sessionmaker
    topology: TopologyEngine
    orders: OrderService
    billing: BillingFinalizer

    def uow(self) -> SqlUnitOfWork:
        return SqlUnitOfWork(self.session_factory)


def build_services(
    session_factory: sessionmaker,
    settings: Settings,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    def uow_factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(session_factory)

    locks = TableLocks()
    orders = OrderService(
        uow_factory,
        locks,
        clock=clock,
        tax_rate=settings.tax_rate,
        code_prefix=settings.order_code_prefix,
    )
    return Services(
        session_factory=session_factory,
        topology=TopologyEngine(uow_factory, locks, clock),
        orders=orders,
        billing=BillingFinalizer(uow_factory, locks, orders),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
