"""Table availability states and structural grouping roles.

A table's structural role (split parent, split child, merge master, merge
member or none) is a single tagged value. Persisted rows store the tag and
its payload in separate columns; :func:`encode` and :func:`decode` are the
only code that maps between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class TableStatus(str, Enum):
    """Availability states for a dining table."""

    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    MERGED = "MERGED"


# States staff may set by hand. MERGED is only ever set by a merge.
MANUAL_STATES: frozenset[TableStatus] = frozenset(
    {TableStatus.AVAILABLE, TableStatus.OCCUPIED, TableStatus.RESERVED}
)


class GroupingKind(str, Enum):
    PRIMITIVE = "primitive"
    SPLIT_PARENT = "split_parent"
    SPLIT_CHILD = "split_child"
    MERGE_MASTER = "merge_master"
    MERGE_MEMBER = "merge_member"


@dataclass(frozen=True)
class Primitive:
    """A plain table with no structural relationship."""

    kind = GroupingKind.PRIMITIVE


@dataclass(frozen=True)
class SplitParent:
    """A table subdivided into ``children``."""

    children: tuple[str, ...]
    original_capacity: int
    kind = GroupingKind.SPLIT_PARENT


@dataclass(frozen=True)
class SplitChild:
    """A virtual table carved out of ``parent``."""

    parent: str
    kind = GroupingKind.SPLIT_CHILD


@dataclass(frozen=True)
class MergeMaster:
    """The billing head of a merged group."""

    members: tuple[str, ...]
    original_capacity: int
    kind = GroupingKind.MERGE_MASTER


@dataclass(frozen=True)
class MergeMember:
    """A table absorbed into ``master``'s group."""

    master: str
    original_capacity: int
    kind = GroupingKind.MERGE_MEMBER


Grouping = Union[Primitive, SplitParent, SplitChild, MergeMaster, MergeMember]

PRIMITIVE = Primitive()


@dataclass
class GroupingColumns:
    """Flat persisted form of a :data:`Grouping`."""

    kind: GroupingKind = GroupingKind.PRIMITIVE
    ref: str | None = None
    members: list[str] = field(default_factory=list)
    original_capacity: int | None = None


def encode(grouping: Grouping) -> GroupingColumns:
    """Flatten ``grouping`` into column values."""

    if isinstance(grouping, Primitive):
        return GroupingColumns()
    if isinstance(grouping, SplitParent):
        return GroupingColumns(
            kind=GroupingKind.SPLIT_PARENT,
            members=list(grouping.children),
            original_capacity=grouping.original_capacity,
        )
    if isinstance(grouping, SplitChild):
        return GroupingColumns(kind=GroupingKind.SPLIT_CHILD, ref=grouping.parent)
    if isinstance(grouping, MergeMaster):
        return GroupingColumns(
            kind=GroupingKind.MERGE_MASTER,
            members=list(grouping.members),
            original_capacity=grouping.original_capacity,
        )
    if isinstance(grouping, MergeMember):
        return GroupingColumns(
            kind=GroupingKind.MERGE_MEMBER,
            ref=grouping.master,
            original_capacity=grouping.original_capacity,
        )
    raise TypeError(f"unknown grouping {grouping!r}")


def decode(cols: GroupingColumns) -> Grouping:
    """Rebuild the tagged grouping from column values."""

    kind = GroupingKind(cols.kind)
    if kind is GroupingKind.PRIMITIVE:
        return PRIMITIVE
    if kind is GroupingKind.SPLIT_PARENT:
        return SplitParent(
            children=tuple(cols.members or ()),
            original_capacity=_required(cols.original_capacity, kind),
        )
    if kind is GroupingKind.SPLIT_CHILD:
        return SplitChild(parent=_required(cols.ref, kind))
    if kind is GroupingKind.MERGE_MASTER:
        return MergeMaster(
            members=tuple(cols.members or ()),
            original_capacity=_required(cols.original_capacity, kind),
        )
    return MergeMember(
        master=_required(cols.ref, kind),
        original_capacity=_required(cols.original_capacity, kind),
    )


def _required(value, kind: GroupingKind):
    if value is None:
        raise ValueError(f"corrupt {kind.value} grouping: missing payload")
    return value


def original_capacity(grouping: Grouping) -> int | None:
    """Return the capacity to restore when ``grouping`` is undone."""

    return getattr(grouping, "original_capacity", None)


def is_orderable(grouping: Grouping, status: TableStatus) -> bool:
    """Return ``True`` if an order may be attached to a table directly.

    Merge members and split parents are never orderable; their group head or
    children carry orders instead.
    """

    if isinstance(grouping, (MergeMember, SplitParent)):
        return False
    return status is not TableStatus.MERGED


def split_capacities(capacity: int, parts: int) -> list[int]:
    """Divide ``capacity`` into ``parts`` seat counts as evenly as possible.

    The remainder goes one seat at a time to the first children, so the
    result always sums to ``capacity``.

    >>> split_capacities(10, 3)
    [4, 3, 3]
    """

    base, remainder = divmod(capacity, parts)
    return [base + 1 if i < remainder else base for i in range(parts)]
