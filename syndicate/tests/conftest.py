"""Shared fixtures for syndicate tests."""

from __future__ import annotations

import pytest

from syndicate.src.hierarchy import Hierarchy
from syndicate.src.models import Member

# id, age, boss id
REFERENCE_ORGANISATION = [
    (2, 74, 1),
    (3, 70, 1),
    (4, 73, 1),
    (5, 68, 2),
    (6, 52, 5),
    (7, 64, 2),
    (8, 63, 2),
    (9, 65, 2),
    (10, 54, 5),
    (11, 56, 5),
    (12, 48, 4),
    (13, 61, 12),
    (14, 55, 12),
    (15, 69, 12),
]


def build_reference() -> Hierarchy:
    """Build the fifteen-member reference organisation.

    Godfather 1 (80) runs 2, 3 and 4. Member 2 runs 5, 7, 8 and 9, member 5
    runs 6, 10 and 11, member 4 runs 12, and 12 runs 13, 14 and 15.
    """
    hierarchy = Hierarchy(Member(1, 80))
    for member_id, age, boss_id in REFERENCE_ORGANISATION:
        hierarchy.recruit(Member(member_id, age), hierarchy.get_member(boss_id))
    return hierarchy


def _snapshot(hierarchy: Hierarchy) -> dict[str, object]:
    """Capture godfather identity and boss/subordinate ids of active members."""
    return {
        "godfather": hierarchy.godfather.id,
        "members": {
            member.id: (
                member.boss.id if member.boss else None,
                frozenset(member.subordinates),
            )
            for member in hierarchy.active.values()
        },
    }


@pytest.fixture
def organisation() -> Hierarchy:
    """The reference organisation, freshly built."""
    return build_reference()


@pytest.fixture
def reference_tree() -> dict[str, object]:
    """The reference organisation as a nested tree."""
    return {
        "id": 1,
        "age": 80,
        "subordinates": [
            {
                "id": 2,
                "age": 74,
                "subordinates": [
                    {
                        "id": 5,
                        "age": 68,
                        "subordinates": [
                            {"id": 6, "age": 52},
                            {"id": 10, "age": 54},
                            {"id": 11, "age": 56},
                        ],
                    },
                    {"id": 7, "age": 64},
                    {"id": 8, "age": 63},
                    {"id": 9, "age": 65},
                ],
            },
            {"id": 3, "age": 70},
            {
                "id": 4,
                "age": 73,
                "subordinates": [
                    {
                        "id": 12,
                        "age": 48,
                        "subordinates": [
                            {"id": 13, "age": 61},
                            {"id": 14, "age": 55},
                            {"id": 15, "age": 69},
                        ],
                    }
                ],
            },
        ],
    }


@pytest.fixture
def take_snapshot():
    """Callable capturing the current shape of a hierarchy."""
    return _snapshot
