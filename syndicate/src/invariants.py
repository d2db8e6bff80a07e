"""Structural invariant checks for a syndicate hierarchy.

Used by the test-suite and the ``/invariants`` endpoint to confirm that a
sequence of incarcerations and releases left the organisation well formed.
"""

from __future__ import annotations

from syndicate.src.hierarchy import Hierarchy


def check_invariants(hierarchy: Hierarchy) -> list[str]:
    """Check a hierarchy for structural problems.

    Checks performed:
      - exactly one active member has no boss, and it is the godfather
      - boss and subordinate links agree for every active member
      - a member is active if and only if it is not incarcerated
      - every active member is reachable from the godfather

    Args:
        hierarchy: The hierarchy to inspect.

    Returns:
        List of violation messages. Empty list means valid.
    """
    errors: list[str] = []
    active = hierarchy.active

    if not active:
        return errors

    tops = [m for m in active.values() if m.boss is None]
    if len(tops) != 1:
        errors.append(
            f"Expected one member without a boss, found {sorted(m.id for m in tops)}"
        )
    godfather = hierarchy.godfather
    if godfather.id not in active:
        errors.append(f"Godfather {godfather.id} is not active")
    elif godfather.boss is not None:
        errors.append(f"Godfather {godfather.id} has boss {godfather.boss.id}")

    for member in active.values():
        boss = member.boss
        if boss is not None and boss.subordinates.get(member.id) is not member:
            errors.append(f"Member {member.id} is missing from boss {boss.id}")
        for sub_id, subordinate in member.subordinates.items():
            if subordinate.id != sub_id:
                errors.append(f"Member {member.id} lists {subordinate.id} under id {sub_id}")
            if subordinate.boss is not member:
                errors.append(f"Subordinate {sub_id} of {member.id} reports elsewhere")
            if subordinate.is_incarcerated():
                errors.append(f"Member {member.id} still lists incarcerated {sub_id}")
        if member.is_incarcerated():
            errors.append(f"Active member {member.id} is marked incarcerated")

    for member in hierarchy.incarcerated:
        if member.id in active:
            errors.append(f"Incarcerated member {member.id} is still active")

    if godfather.id in active:
        reachable = {godfather.id} | {m.id for m in godfather.get_all_subordinates()}
        unreachable = sorted(set(active) - reachable)
        if unreachable:
            errors.append(f"Members not reachable from the godfather: {unreachable}")

    return errors
