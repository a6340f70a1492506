"""Repository contracts used by the services layer."""

from .menu_repo import MenuRepo
from .orders_repo import OrderFilters, OrdersRepo
from .tables_repo import TablesRepo

__all__ = ["MenuRepo", "OrderFilters", "OrdersRepo", "TablesRepo"]
