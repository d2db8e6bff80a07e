"""Syndicate data models.

Defines the ``Member`` entity and the result types returned by hierarchy
operations. A member tracks two sets of structural links: the current
boss/subordinates, which change with every restructuring, and the original
boss/subordinates, which are written once at first assignment and never
overwritten. The original links are what allow a released member to take
back its former position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OperationStatus(str, Enum):
    """Outcome of a hierarchy mutation."""

    OK = "ok"
    NOT_ACTIVE = "not_active"
    NOT_INCARCERATED = "not_incarcerated"


@dataclass
class OperationResult:
    """Result of ``Hierarchy.incarcerate`` or ``Hierarchy.release``.

    Truthy only when the operation was applied. A successful incarceration
    with no eligible successor has ``successor_id`` set to None.

    Attributes:
        status: Outcome of the operation.
        member_id: ID of the member the operation was called on.
        successor_id: Successor chosen during incarceration, if any.
        boss_id: Boss the member ended up under after a release, if any.
    """

    status: OperationStatus
    member_id: int
    successor_id: int | None = None
    boss_id: int | None = None

    @property
    def ok(self) -> bool:
        """Return True when the operation was applied."""
        return self.status is OperationStatus.OK

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "status": self.status.value,
            "member_id": self.member_id,
            "successor_id": self.successor_id,
            "boss_id": self.boss_id,
        }


@dataclass(eq=False)
class Member:
    """A member of the organisation.

    ``id`` and ``age`` are fixed at creation. Every other field changes only
    through ``attach``, ``detach``, ``incarcerate`` and ``release``.

    Attributes:
        id: Unique identifier.
        age: Age, used to break succession ties.
        boss: Current direct superior, None for the godfather.
        subordinates: Current direct subordinates keyed by id.
        original_boss: First boss ever assigned.
        original_subordinates: Subordinates first assigned to this member.
        successor: Member that took over while this one is incarcerated.
    """

    id: int
    age: int
    boss: Member | None = field(default=None, repr=False)
    subordinates: dict[int, Member] = field(default_factory=dict, repr=False)
    original_boss: Member | None = field(default=None, repr=False)
    original_subordinates: dict[int, Member] = field(default_factory=dict, repr=False)
    successor: Member | None = field(default=None, repr=False)

    _assigned: bool = field(default=False, init=False, repr=False)
    _incarcerated: bool = field(default=False, init=False, repr=False)

    def attach(self, boss: Member | None) -> Member:
        """Place this member directly under *boss* (None makes it a top node).

        The first call ever made records the original assignment on both
        sides. The member is dropped from its previous boss's subordinates.

        Args:
            boss: New direct superior, or None.

        Returns:
            This member, so construction calls can be chained.
        """
        if self.boss is not None and self.boss is not boss:
            self.boss.detach(self)

        self.boss = boss
        if boss is not None:
            boss.subordinates[self.id] = self

        if not self._assigned:
            self._assigned = True
            self.original_boss = boss
            if boss is not None:
                boss.original_subordinates.setdefault(self.id, self)

        return self

    def detach(self, subordinate: Member) -> Member:
        """Remove *subordinate* from the current subordinates.

        Unknown members are ignored. The original record is not touched.
        """
        self.subordinates.pop(subordinate.id, None)
        return self

    def incarcerate(self, successor: Member | None) -> None:
        """Mark this member as incarcerated in favour of *successor*."""
        self._incarcerated = True
        self.successor = successor

    def release(self) -> None:
        """Clear the incarceration marker."""
        self._incarcerated = False
        self.successor = None

    def is_incarcerated(self) -> bool:
        """Return True while this member is incarcerated."""
        return self._incarcerated

    def subordinate_count(self) -> int:
        """Count all current subordinates, direct and indirect."""
        return len(self.get_all_subordinates())

    def get_all_subordinates(self) -> list[Member]:
        """Get all current subordinates as a flat list (DFS order)."""
        result = []
        stack = list(reversed(self.subordinates.values()))
        while stack:
            subordinate = stack.pop()
            result.append(subordinate)
            stack.extend(reversed(subordinate.subordinates.values()))
        return result

    @property
    def depth(self) -> int:
        """Number of hops to the top of the current chain of bosses."""
        depth = 0
        current = self.boss
        while current is not None:
            depth += 1
            current = current.boss
        return depth

    @property
    def is_leaf(self) -> bool:
        """Check if this member has no current subordinates."""
        return len(self.subordinates) == 0

    def to_dict(self, include_subordinates: bool = False) -> dict[str, Any]:
        """
        Convert to dictionary for JSON export.

        Args:
            include_subordinates: If True, include the nested subordinate tree
        """
        result: dict[str, Any] = {
            "id": self.id,
            "age": self.age,
            "boss_id": self.boss.id if self.boss and not self._incarcerated else None,
            "original_boss_id": self.original_boss.id if self.original_boss else None,
            "subordinate_ids": list(self.subordinates),
            "original_subordinate_ids": list(self.original_subordinates),
            "incarcerated": self._incarcerated,
            "successor_id": self.successor.id if self.successor else None,
        }

        if include_subordinates:
            stack = [(self, result)]
            while stack:
                member, node = stack.pop()
                node["subordinates"] = []
                for sub in member.subordinates.values():
                    child = sub.to_dict()
                    node["subordinates"].append(child)
                    stack.append((sub, child))

        return result

    def __repr__(self) -> str:
        """String representation for debugging."""
        state = " incarcerated" if self._incarcerated else ""
        return f"<Member {self.id} age={self.age} subordinates={len(self.subordinates)}{state}>"
