import pathlib
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from floorpos.config import get_settings  # noqa: E402
from floorpos.db import init_db, make_engine, make_sessionmaker  # noqa: E402
from floorpos.deps import build_services  # noqa: E402
from floorpos.repos_sqlalchemy import SqlUnitOfWork  # noqa: E402
from floorpos.seed import seed  # noqa: E402


class FakeClock:
    """Controllable clock; starts at a fixed instant."""

    def __init__(self) -> None:
        self.now = datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    factory = make_sessionmaker(engine)
    seed(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def services(session_factory, clock):
    return build_services(session_factory, get_settings(), clock)


@pytest.fixture
def uow(session_factory):
    """Return a factory for read-only checks against the test database."""

    return lambda: SqlUnitOfWork(session_factory)


@pytest.fixture
def place(services):
    """Place an order of ``{menu_item_id: qty}`` on ``table_id``."""

    def _place(table_id: str, lines: dict[str, int] | None = None):
        lines = lines or {"1": 1}
        return services.orders.create(
            table_id, [{"menu_item_id": k, "quantity": v} for k, v in lines.items()]
        )

    return _place
