"""Hierarchy orchestration for the syndicate.

The ``Hierarchy`` owns the godfather (root member) and the table of active
members. It decides who replaces an incarcerated member and where a released
member goes back to; the members themselves record every structural edit
through ``Member.attach`` and ``Member.detach`` so that the original
assignment is never lost.

Succession picks the oldest active sibling first and falls back to the oldest
active direct subordinate. Equal ages are resolved in favour of the candidate
seen last. The search never goes deeper than one level.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from syndicate.src.models import Member, OperationResult, OperationStatus

logger = logging.getLogger(__name__)


class HierarchyError(Exception):
    """Raised when a hierarchy is built or extended with invalid input."""


class Hierarchy:
    """A rooted organisation of members that survives incarcerations.

    Every member reachable from *godfather* through current subordinate
    links at construction time is registered as active.

    Args:
        godfather: The top member. Must not have a boss.

    Raises:
        HierarchyError: If the godfather has a boss, is incarcerated, or
            the tree below it repeats a member id.

    Example::

        boss = Member(1, 80)
        hierarchy = Hierarchy(boss)
        hierarchy.recruit(Member(2, 74), boss)
        hierarchy.incarcerate(boss)
    """

    def __init__(self, godfather: Member) -> None:
        if godfather.boss is not None:
            raise HierarchyError(f"Godfather {godfather.id} must not have a boss")
        if godfather.is_incarcerated():
            raise HierarchyError(f"Godfather {godfather.id} is incarcerated")

        self._godfather = godfather
        self._members: dict[int, Member] = {}
        self._active: dict[int, Member] = {}

        godfather.attach(None)
        for member in [godfather, *godfather.get_all_subordinates()]:
            self._register(member)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def godfather(self) -> Member:
        """The current top member."""
        return self._godfather

    @property
    def active(self) -> dict[int, Member]:
        """Active members keyed by id (a copy)."""
        return dict(self._active)

    @property
    def incarcerated(self) -> list[Member]:
        """Members currently incarcerated."""
        return [m for m in self._members.values() if m.is_incarcerated()]

    def get_member(self, member_id: int) -> Member | None:
        """Return the active member with *member_id*, or None."""
        return self._active.get(member_id)

    def find_member(self, member_id: int) -> Member | None:
        """Return any known member with *member_id*, incarcerated or not."""
        return self._members.get(member_id)

    def __contains__(self, member: object) -> bool:
        return isinstance(member, Member) and self._active.get(member.id) is member

    def __len__(self) -> int:
        return len(self._active)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def recruit(self, member: Member, boss: Member) -> Member:
        """Add a new *member* directly under an active *boss*.

        Args:
            member: A member not yet known to this hierarchy.
            boss: Active member to report to.

        Returns:
            The recruited member.

        Raises:
            HierarchyError: If the id is taken or the boss is not active.
        """
        if member.id in self._members:
            raise HierarchyError(f"Member {member.id} already belongs to the hierarchy")
        if boss not in self:
            raise HierarchyError(f"Boss {boss.id} is not an active member")

        member.attach(boss)
        self._register(member)
        logger.debug("Recruited member %d under %d", member.id, boss.id)
        return member

    def _register(self, member: Member) -> None:
        if member.id in self._members:
            raise HierarchyError(f"Duplicate member id {member.id}")
        self._members[member.id] = member
        self._active[member.id] = member

    # ------------------------------------------------------------------
    # Incarceration
    # ------------------------------------------------------------------

    def incarcerate(self, member: Member) -> OperationResult:
        """Remove *member* from the organisation and restructure around it.

        The oldest active sibling absorbs the member's subordinates. Without
        one, the oldest active subordinate is promoted into the member's
        position (becoming godfather if needed) and absorbs the rest. If
        neither exists the member leaves with no replacement.

        Args:
            member: An active member.

        Returns:
            Result carrying the chosen successor id; falsy with status
            ``NOT_ACTIVE`` when *member* is not active.
        """
        if member not in self:
            logger.warning("Cannot incarcerate member %d: not active", member.id)
            return OperationResult(OperationStatus.NOT_ACTIVE, member.id)

        del self._active[member.id]
        boss = member.boss
        if boss is not None:
            boss.detach(member)

        successor = None
        if boss is not None:
            successor = self._select_successor(boss.subordinates.values(), member)

        if successor is None:
            successor = self._select_successor(member.subordinates.values(), member)
            if successor is not None:
                # Promoted into the member's position
                successor.attach(boss)
                if boss is None:
                    self._godfather = successor

        member.incarcerate(successor)

        if successor is None:
            logger.info("Member %d incarcerated with no successor", member.id)
            return OperationResult(OperationStatus.OK, member.id)

        for subordinate in list(member.subordinates.values()):
            if subordinate.is_incarcerated() or subordinate is successor:
                continue
            subordinate.attach(successor)

        logger.info("Member %d incarcerated, succeeded by %d", member.id, successor.id)
        return OperationResult(
            OperationStatus.OK,
            member.id,
            successor_id=successor.id,
            boss_id=boss.id if boss else None,
        )

    @staticmethod
    def _select_successor(candidates: Iterable[Member], excluded: Member) -> Member | None:
        """Pick the oldest active candidate; the last one seen wins ties."""
        chosen = None
        for candidate in candidates:
            if candidate is excluded or candidate.is_incarcerated():
                continue
            if chosen is None or candidate.age >= chosen.age:
                chosen = candidate
        return chosen

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self, member: Member) -> OperationResult:
        """Bring *member* back and restore its original position.

        The member goes under its original boss, or under whoever currently
        covers that boss's role. Its original subordinates that are active
        come back under it, and the same is done transitively for theirs.

        Args:
            member: An incarcerated member of this hierarchy.

        Returns:
            Result carrying the new boss id; falsy with status
            ``NOT_INCARCERATED`` when *member* is not incarcerated.
        """
        if not member.is_incarcerated() or self._members.get(member.id) is not member:
            logger.warning("Cannot release member %d: not incarcerated", member.id)
            return OperationResult(OperationStatus.NOT_INCARCERATED, member.id)

        self._active[member.id] = member
        member.release()

        returning = self._collect_returning(member)
        boss = self._resolve_boss(member)
        boss = self._above(boss, returning)

        member.attach(boss)
        if boss is None:
            previous = self._godfather
            self._godfather = member
            if (
                previous is not member
                and previous.id not in returning
                and not previous.is_incarcerated()
            ):
                previous.attach(member)

        self._restore_subordinates(member)

        logger.info(
            "Member %d released under %s",
            member.id,
            boss.id if boss else "nobody (godfather)",
        )
        return OperationResult(
            OperationStatus.OK, member.id, boss_id=boss.id if boss else None
        )

    @staticmethod
    def _resolve_boss(member: Member) -> Member | None:
        """Find who currently holds the role of the member's original boss.

        An incarcerated boss is replaced by its successor, following the
        successor markers while they lead to incarcerated members. When that
        chain dead-ends the search moves up to the next original boss.
        """
        boss = member.original_boss
        while boss is not None:
            holder = _role_holder(boss, member)
            if holder is not None:
                return holder
            boss = boss.original_boss
        return None

    @staticmethod
    def _collect_returning(member: Member) -> set[int]:
        """Ids of active members that the release will pull under *member*."""
        returning: set[int] = set()
        stack = [member]
        while stack:
            current = stack.pop()
            for subordinate in current.original_subordinates.values():
                if subordinate.is_incarcerated():
                    continue
                returning.add(subordinate.id)
                stack.append(subordinate)
        return returning

    @staticmethod
    def _above(boss: Member | None, returning: set[int]) -> Member | None:
        """Move *boss* above any member in its chain that is about to return.

        A returning member cannot also be the boss of the member pulling it
        back, so the highest such member's current boss is used instead.
        """
        result = boss
        node = boss
        while node is not None:
            if node.id in returning:
                result = node.boss
            node = node.boss
        return result

    def _restore_subordinates(self, member: Member) -> None:
        stack = [member]
        while stack:
            boss = stack.pop()
            for subordinate in list(boss.original_subordinates.values()):
                if subordinate.is_incarcerated():
                    # Reattached when it is released itself
                    boss.detach(subordinate)
                    continue
                if subordinate.boss is not boss:
                    logger.debug(
                        "Restoring member %d under %d", subordinate.id, boss.id
                    )
                    subordinate.attach(boss)
                stack.append(subordinate)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_large_groups(self, min_size: int) -> list[Member]:
        """Active members with more than *min_size* subordinates in total."""
        return [
            member
            for member in self._active.values()
            if member.subordinate_count() > min_size
        ]

    def compare_depth(self, a: Member, b: Member) -> Member | None:
        """Return whichever of *a* and *b* sits higher, or None when level."""
        depth_a = a.depth
        depth_b = b.depth
        if depth_a < depth_b:
            return a
        if depth_b < depth_a:
            return b
        return None

    @property
    def max_depth(self) -> int:
        """Depth of the deepest active member."""
        return max((m.depth for m in self._active.values()), default=0)

    def get_statistics(self) -> dict[str, Any]:
        """Get hierarchy statistics for reporting."""
        leaves = [m for m in self._active.values() if m.is_leaf]
        ages = [m.age for m in self._active.values()]
        return {
            "godfather_id": self._godfather.id,
            "active_members": len(self._active),
            "incarcerated_members": len(self.incarcerated),
            "leaf_members": len(leaves),
            "max_depth": self.max_depth,
            "avg_age": sum(ages) / len(ages) if ages else 0,
        }

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert the hierarchy to a dictionary."""
        return {
            "godfather_id": self._godfather.id,
            "statistics": self.get_statistics(),
            "incarcerated": [m.to_dict() for m in self.incarcerated],
            "root": self._godfather.to_dict(include_subordinates=True),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hierarchy:
        """Build a fresh hierarchy from a nested tree.

        Args:
            data: Mapping with ``id``, ``age`` and an optional list of
                ``subordinates`` in the same shape. A mapping with a
                ``root`` key (as produced by ``to_dict``) is also accepted.

        Raises:
            HierarchyError: On missing fields, a malformed ``subordinates``
                value or duplicate ids.
        """
        if isinstance(data, dict) and "root" in data:
            data = data["root"]

        godfather = _member_from_dict(data)
        hierarchy = cls(godfather)

        stack = [(godfather, data)]
        while stack:
            boss, node = stack.pop()
            subordinates = node.get("subordinates") or []
            if not isinstance(subordinates, list):
                raise HierarchyError(
                    f"Subordinates of member {boss.id} must be a list, "
                    f"got {type(subordinates).__name__}"
                )
            for child in subordinates:
                member = hierarchy.recruit(_member_from_dict(child), boss)
                stack.append((member, child))

        return hierarchy

    def format_tree(self, max_depth: int | None = None) -> str:
        """Render the current structure as indented text."""
        if self._godfather.is_incarcerated():
            return ""

        lines: list[str] = []
        stack = [(self._godfather, 0)]
        while stack:
            member, indent = stack.pop()
            if max_depth is not None and indent > max_depth:
                continue
            lines.append(f"{'  ' * indent}[{member.id}] age={member.age}")
            for subordinate in reversed(member.subordinates.values()):
                stack.append((subordinate, indent + 1))
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"<Hierarchy godfather={self._godfather.id} "
            f"active={len(self._active)} "
            f"incarcerated={len(self.incarcerated)}>"
        )


def _role_holder(boss: Member, member: Member) -> Member | None:
    """Active member reached from *boss* through successor markers, if any."""
    seen: set[int] = set()
    current: Member | None = boss
    while current is not None and current.id not in seen:
        if current is not member and not current.is_incarcerated():
            return current
        seen.add(current.id)
        current = current.successor
    return None


def _member_from_dict(data: dict[str, Any]) -> Member:
    if not isinstance(data, dict):
        raise HierarchyError(f"Invalid member entry: {data!r}")
    try:
        return Member(id=int(data["id"]), age=int(data["age"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise HierarchyError(f"Invalid member entry: {data!r}") from exc
