"""Repository interface for order operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class OrderFilters:
    """Optional filters for :meth:`OrdersRepo.list`."""

    status: str | None = None
    table_id: str | None = None
    waiter_id: str | None = None
    payment_status: str | None = None
    start: datetime | None = None
    end: datetime | None = None


class OrdersRepo(ABC):
    """Contract for order persistence and queries."""

    @abstractmethod
    def get(self, order_id):
        """Return the order or raise ``NotFound``."""
        raise NotImplementedError

    @abstractmethod
    def add(self, order):
        """Stage a new order for insertion."""
        raise NotImplementedError

    @abstractmethod
    def code_exists(self, code):
        """Return ``True`` if an order already uses ``code``."""
        raise NotImplementedError

    @abstractmethod
    def list(self, filters, limit, offset):
        """Return ``(orders, total)`` newest first."""
        raise NotImplementedError

    @abstractmethod
    def active(self):
        """List orders that are neither served nor cancelled, oldest first."""
        raise NotImplementedError

    @abstractmethod
    def in_range(self, start, end):
        """Return every order created within ``[start, end]``."""
        raise NotImplementedError
