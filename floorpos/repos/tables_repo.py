"""Repository interface for dining tables."""

from abc import ABC, abstractmethod


class TablesRepo(ABC):
    """Contract for table persistence.

    Implementations flush with a compare-and-swap on the row version so a
    concurrent writer surfaces as ``StaleWrite`` instead of a lost update.
    """

    @abstractmethod
    def get(self, table_id):
        """Return the table or raise ``NotFound``."""
        raise NotImplementedError

    @abstractmethod
    def get_many(self, table_ids):
        """Return tables for ``table_ids`` in the given order.

        Raises ``NotFound`` naming the first unknown id.
        """
        raise NotImplementedError

    @abstractmethod
    def list(self):
        """List all tables ordered by number."""
        raise NotImplementedError

    @abstractmethod
    def children_of(self, parent_id):
        """Return the split children of ``parent_id``."""
        raise NotImplementedError

    @abstractmethod
    def add(self, table):
        """Stage a new table for insertion."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, table):
        """Stage a table for deletion."""
        raise NotImplementedError
