"""Repository interface for the menu catalog."""

from abc import ABC, abstractmethod


class MenuRepo(ABC):
    """Read access to menu items used when pricing orders."""

    @abstractmethod
    def find(self, item_id):
        """Return the menu item or ``None``."""
        raise NotImplementedError

    @abstractmethod
    def list(self, category=None):
        """List menu items, optionally restricted to ``category``."""
        raise NotImplementedError

