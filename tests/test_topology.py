import pathlib
import sys
from contextlib import contextmanager

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from floorpos.domain import (  # noqa: E402
    Conflict,
    MergeMaster,
    MergeMember,
    NotFound,
    Primitive,
    SplitChild,
    SplitParent,
    StaleWrite,
    TableStatus,
    ValidationFailed,
)
from floorpos.db import init_db, make_engine, make_sessionmaker  # noqa: E402
from floorpos.repos_sqlalchemy import SqlUnitOfWork  # noqa: E402
from floorpos.seed import seed  # noqa: E402
from floorpos.services import TableLocks, TopologyEngine  # noqa: E402


def _table(uow, table_id):
    with uow() as u:
        return u.tables.get(table_id)


def test_split_creates_even_children(services, uow):
    result = services.topology.split("t12", 2)

    assert [c.number for c in result.children] == ["12.1", "12.2"]
    assert [c.capacity for c in result.children] == [4, 4]
    assert all(c.status is TableStatus.AVAILABLE for c in result.children)
    parent = _table(uow, "t12")
    assert parent.status is TableStatus.OCCUPIED
    assert parent.grouping == SplitParent(
        children=("split-t12-0", "split-t12-1"), original_capacity=8
    )
    assert not parent.orderable
    assert _table(uow, "split-t12-1").grouping == SplitChild(parent="t12")


def test_split_uneven_capacity(services):
    result = services.topology.split("t13", 3)
    assert [c.capacity for c in result.children] == [4, 3, 3]


def test_split_then_unsplit_restores_table(services, uow):
    services.topology.split("t11", 4)
    services.topology.unsplit("t11")

    table = _table(uow, "t11")
    assert table.capacity == 8
    assert table.status is TableStatus.AVAILABLE
    assert isinstance(table.grouping, Primitive)
    with uow() as u:
        assert u.tables.children_of("t11") == []


@pytest.mark.parametrize("parts", [1, 0, -2])
def test_split_needs_two_parts(services, parts):
    with pytest.raises(ValidationFailed):
        services.topology.split("t12", parts)


def test_split_more_parts_than_seats(services):
    with pytest.raises(ValidationFailed):
        services.topology.split("t1", 3)


def test_split_requires_available_table(services, place):
    place("t12")
    with pytest.raises(Conflict):
        services.topology.split("t12", 2)


def test_unsplit_blocked_by_open_child_order(services, place, uow):
    services.topology.split("t12", 2)
    place("split-t12-0")

    with pytest.raises(Conflict):
        services.topology.unsplit("t12")
    assert isinstance(_table(uow, "t12").grouping, SplitParent)
    assert _table(uow, "split-t12-0").status is TableStatus.OCCUPIED


def test_unsplit_plain_table_is_conflict(services):
    with pytest.raises(Conflict):
        services.topology.unsplit("t3")


def test_merge_adds_capacity(services, uow):
    services.topology.merge("t5", ["t6"])

    master = _table(uow, "t5")
    member = _table(uow, "t6")
    assert master.capacity == 6
    assert master.grouping == MergeMaster(members=("t6",), original_capacity=2)
    assert member.status is TableStatus.MERGED
    assert member.grouping == MergeMember(master="t5", original_capacity=4)
    assert not member.orderable


def test_merge_then_unmerge_all_restores_tables(services, uow):
    services.topology.merge("t1", ["t6", "t13"])
    assert _table(uow, "t1").capacity == 2 + 4 + 10

    services.topology.unmerge_all("t1")
    for table_id, capacity in (("t1", 2), ("t6", 4), ("t13", 10)):
        table = _table(uow, table_id)
        assert table.capacity == capacity
        assert table.status is TableStatus.AVAILABLE
        assert isinstance(table.grouping, Primitive)


def test_unmerge_one_keeps_remaining_members(services, uow):
    services.topology.merge("t1", ["t2", "t7"])
    services.topology.unmerge_one("t1", "t2")

    master = _table(uow, "t1")
    assert master.capacity == 2 + 4
    assert master.grouping == MergeMaster(members=("t7",), original_capacity=2)
    assert _table(uow, "t7").status is TableStatus.MERGED
    released = _table(uow, "t2")
    assert released.status is TableStatus.AVAILABLE
    assert released.capacity == 2
    assert isinstance(released.grouping, Primitive)


def test_unmerge_last_member_reverts_master(services, uow):
    services.topology.merge("t1", ["t2"])
    services.topology.unmerge_one("t1", "t2")

    master = _table(uow, "t1")
    assert master.capacity == 2
    assert isinstance(master.grouping, Primitive)


def test_unmerge_keeps_master_order(services, place, uow):
    services.topology.merge("t5", ["t6"])
    order = place("t5")
    services.topology.unmerge_all("t5")

    master = _table(uow, "t5")
    assert master.status is TableStatus.OCCUPIED
    assert master.current_order_id == order.id
    assert master.capacity == 2


def test_merge_extends_existing_group(services, uow):
    services.topology.merge("t1", ["t2"])
    services.topology.merge("t1", ["t3"])

    master = _table(uow, "t1")
    assert master.capacity == 6
    assert master.grouping == MergeMaster(members=("t2", "t3"), original_capacity=2)


def test_merge_rejects_bad_participants(services):
    with pytest.raises(ValidationFailed):
        services.topology.merge("t1", [])
    with pytest.raises(ValidationFailed):
        services.topology.merge("t1", ["t2", "t2"])
    with pytest.raises(ValidationFailed):
        services.topology.merge("t1", ["t1"])
    with pytest.raises(NotFound):
        services.topology.merge("t1", ["nope"])


def test_merge_failure_changes_nothing(services, place, uow):
    place("t4")
    with pytest.raises(Conflict):
        services.topology.merge("t1", ["t2", "t4"])

    assert _table(uow, "t1").capacity == 2
    assert isinstance(_table(uow, "t2").grouping, Primitive)
    assert _table(uow, "t2").status is TableStatus.AVAILABLE


def test_member_cannot_join_another_group(services):
    services.topology.merge("t1", ["t2"])
    with pytest.raises(Conflict):
        services.topology.merge("t3", ["t2"])
    with pytest.raises(Conflict):
        services.topology.merge("t2", ["t3"])


def test_split_table_cannot_merge(services):
    services.topology.split("t12", 2)
    with pytest.raises(Conflict):
        services.topology.merge("t1", ["t12"])


def test_manual_status_changes(services, place, uow):
    services.topology.set_status("t3", TableStatus.RESERVED)
    assert _table(uow, "t3").status is TableStatus.RESERVED

    place("t4")
    services.topology.set_status("t4", TableStatus.AVAILABLE)
    table = _table(uow, "t4")
    assert table.status is TableStatus.AVAILABLE
    assert table.current_order_id is None


def test_manual_status_rejects_merged_and_grouped(services):
    with pytest.raises(ValidationFailed):
        services.topology.set_status("t3", TableStatus.MERGED)
    services.topology.merge("t1", ["t2"])
    with pytest.raises(Conflict):
        services.topology.set_status("t2", TableStatus.AVAILABLE)


def test_manual_status_unknown_table(services):
    with pytest.raises(NotFound):
        services.topology.set_status("t99", TableStatus.RESERVED)


def test_reassign_moves_order(services, place, uow):
    order = place("t1")
    moved = services.topology.reassign("t1", "t8")

    assert moved.table_id == "t8"
    assert moved.table_number == "08"
    source = _table(uow, "t1")
    assert source.status is TableStatus.AVAILABLE
    assert source.current_order_id is None
    dest = _table(uow, "t8")
    assert dest.status is TableStatus.OCCUPIED
    assert dest.current_order_id == order.id


def test_reassign_without_order_is_conflict(services):
    with pytest.raises(Conflict):
        services.topology.reassign("t1", "t2")


def test_reassign_rejects_grouped_or_busy_destination(services, place):
    place("t1")
    place("t3")
    services.topology.merge("t5", ["t6"])
    services.topology.split("t12", 2)

    for dest in ("t6", "t12", "t3"):
        with pytest.raises(Conflict):
            services.topology.reassign("t1", dest)
    with pytest.raises(ValidationFailed):
        services.topology.reassign("t1", "t1")


def test_concurrent_version_bump_is_stale_write(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'floor.db'}")
    init_db(engine)
    factory = make_sessionmaker(engine)
    seed(factory)

    with pytest.raises(StaleWrite):
        with SqlUnitOfWork(factory) as first:
            table = first.tables.get("t1")
            with SqlUnitOfWork(factory) as second:
                second.tables.get("t1").capacity = 3
            table.capacity = 5

    with SqlUnitOfWork(factory) as check:
        assert check.tables.get("t1").capacity == 3
    engine.dispose()


class RacingLocks(TableLocks):
    """Runs ``interleave`` once, after the footprint read and before locking."""

    def __init__(self, interleave):
        super().__init__()
        self._interleave = interleave

    @contextmanager
    def hold(self, *table_ids):
        interleave, self._interleave = self._interleave, None
        if interleave is not None:
            interleave()
        with super().hold(*table_ids) as held:
            yield held


def test_merge_landing_during_split_is_stale_write(uow, clock):
    other = TopologyEngine(uow, TableLocks(), clock)
    engine = TopologyEngine(uow, RacingLocks(lambda: other.merge("t6", ["t5"])), clock)

    with pytest.raises(StaleWrite, match="grouping changed"):
        engine.split("t5", 2)

    member = _table(uow, "t5")
    assert member.grouping == MergeMember(master="t6", original_capacity=2)
    assert member.status is TableStatus.MERGED
    assert isinstance(_table(uow, "t6").grouping, MergeMaster)
    with pytest.raises(NotFound):
        _table(uow, "split-t5-0")
