"""FastAPI router for the syndicate hierarchy.

Exposes the in-process hierarchy operations over REST: loading an
organisation, recruiting, incarcerating, releasing, and the big-boss and
depth-comparison queries. Designed to be mounted at /api/syndicate/ by the
parent application.

The served hierarchy is a single module-level instance. Handlers are
synchronous and FastAPI runs them in a thread pool, so every handler takes
``_lock`` for the whole operation.
"""

from __future__ import annotations

import threading
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from syndicate.src.hierarchy import Hierarchy, HierarchyError
from syndicate.src.invariants import check_invariants
from syndicate.src.models import Member, OperationResult

router = APIRouter()

# ---------------------------------------------------------------------------
# Module-level hierarchy (initialized by init_hierarchy or POST /hierarchy)
# ---------------------------------------------------------------------------

_hierarchy: Hierarchy | None = None
_lock = threading.Lock()


def init_hierarchy(data: dict[str, Any] | None = None) -> Hierarchy | None:
    """Install the hierarchy served by the router.

    Args:
        data: Nested tree accepted by ``Hierarchy.from_dict``. None clears
            the served hierarchy.

    Returns:
        The installed Hierarchy, or None when cleared.

    Raises:
        HierarchyError: If *data* is not a valid tree.
    """
    global _hierarchy

    hierarchy = Hierarchy.from_dict(data) if data is not None else None
    with _lock:
        _hierarchy = hierarchy
    return hierarchy


def get_hierarchy() -> Hierarchy:
    """Return the served Hierarchy or raise.

    Raises:
        HTTPException: If no hierarchy has been loaded.
    """
    if _hierarchy is None:
        raise HTTPException(status_code=409, detail="No hierarchy loaded")
    return _hierarchy


def _known_member(hierarchy: Hierarchy, member_id: int) -> Member:
    member = hierarchy.find_member(member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


def _active_member(hierarchy: Hierarchy, member_id: int) -> Member:
    member = hierarchy.get_member(member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Active member not found")
    return member


def _check_result(result: OperationResult) -> dict[str, Any]:
    if not result:
        raise HTTPException(status_code=409, detail=result.status.value)
    return result.to_dict()


# ---------------------------------------------------------------------------
# Pydantic request models
# ---------------------------------------------------------------------------


class MemberNode(BaseModel):
    """A member and its subordinates in a nested tree."""

    id: int
    age: int = Field(..., ge=0)
    subordinates: list[MemberNode] = Field(default_factory=list)


MemberNode.model_rebuild()


class RecruitRequest(BaseModel):
    """Request body for recruiting a new member."""

    id: int
    age: int = Field(..., ge=0)
    boss_id: int


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
def health_check() -> dict[str, Any]:
    """Return service health status.

    Returns:
        Dict with status, version, and whether a hierarchy is loaded.
    """
    return {
        "status": "ok",
        "service": "syndicate",
        "version": "0.1.0",
        "hierarchy_loaded": _hierarchy is not None,
    }


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------


@router.post("/hierarchy", status_code=201)
def load_hierarchy(body: MemberNode) -> dict[str, Any]:
    """Replace the served hierarchy with a new organisation.

    Args:
        body: Nested tree rooted at the godfather.

    Returns:
        Hierarchy dict.
    """
    try:
        hierarchy = init_hierarchy(body.model_dump())
        with _lock:
            return hierarchy.to_dict()
    except HierarchyError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to load hierarchy") from exc


@router.get("/hierarchy")
def read_hierarchy() -> dict[str, Any]:
    """Return the current structure with statistics."""
    try:
        with _lock:
            return get_hierarchy().to_dict()
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to read hierarchy") from exc


@router.get("/invariants")
def read_invariants() -> dict[str, Any]:
    """Run the structural checks on the served hierarchy."""
    try:
        with _lock:
            errors = check_invariants(get_hierarchy())
        return {"valid": not errors, "errors": errors}
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to check invariants") from exc


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/members/{member_id}")
def get_member(member_id: int) -> dict[str, Any]:
    """Get a member by ID, including incarcerated members.

    Args:
        member_id: The member's ID.

    Returns:
        Member dict.
    """
    try:
        with _lock:
            return _known_member(get_hierarchy(), member_id).to_dict()
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to get member") from exc


@router.post("/members", status_code=201)
def recruit_member(body: RecruitRequest) -> dict[str, Any]:
    """Recruit a new member under an active boss.

    Args:
        body: Recruit request.

    Returns:
        Created member dict.
    """
    try:
        with _lock:
            hierarchy = get_hierarchy()
            boss = _active_member(hierarchy, body.boss_id)
            member = hierarchy.recruit(Member(id=body.id, age=body.age), boss)
            return member.to_dict()
    except HierarchyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to recruit member") from exc


@router.post("/members/{member_id}/incarcerate")
def incarcerate_member(member_id: int) -> dict[str, Any]:
    """Incarcerate a member and restructure around it.

    Returns:
        Operation result dict with the chosen successor.
    """
    try:
        with _lock:
            hierarchy = get_hierarchy()
            return _check_result(hierarchy.incarcerate(_known_member(hierarchy, member_id)))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to incarcerate member") from exc


@router.post("/members/{member_id}/release")
def release_member(member_id: int) -> dict[str, Any]:
    """Release an incarcerated member back to its original position.

    Returns:
        Operation result dict with the member's new boss.
    """
    try:
        with _lock:
            hierarchy = get_hierarchy()
            return _check_result(hierarchy.release(_known_member(hierarchy, member_id)))
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to release member") from exc


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@router.get("/big-bosses")
def big_bosses(min_subordinates: int = Query(..., ge=0)) -> dict[str, Any]:
    """List active members with more than *min_subordinates* subordinates."""
    try:
        with _lock:
            members = get_hierarchy().find_large_groups(min_subordinates)
            return {
                "min_subordinates": min_subordinates,
                "members": [
                    {"id": m.id, "age": m.age, "subordinate_count": m.subordinate_count()}
                    for m in members
                ],
            }
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to find big bosses") from exc


@router.get("/compare")
def compare_members(a: int, b: int) -> dict[str, Any]:
    """Return the id of the higher-ranked of two active members.

    ``higher_id`` is None when both sit at the same level.
    """
    try:
        with _lock:
            hierarchy = get_hierarchy()
            member_a = _active_member(hierarchy, a)
            member_b = _active_member(hierarchy, b)
            higher = hierarchy.compare_depth(member_a, member_b)
            return {
                "a": {"id": a, "depth": member_a.depth},
                "b": {"id": b, "depth": member_b.depth},
                "higher_id": higher.id if higher else None,
            }
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail="Failed to compare members") from exc
