"""Tests for the syndicate FastAPI router.

Uses the FastAPI TestClient against a router whose hierarchy is reloaded
from the reference tree before every test.
"""

from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from syndicate.src.hierarchy import Hierarchy, HierarchyError
from syndicate.src.server import get_hierarchy, init_hierarchy, router
from syndicate_server import load_organisation

PREFIX = "/api/syndicate"


@pytest.fixture
def app() -> FastAPI:
    """Create a FastAPI app with the syndicate router mounted."""
    test_app = FastAPI()
    test_app.include_router(router, prefix=PREFIX)
    return test_app


@pytest.fixture
def client(app: FastAPI, reference_tree) -> TestClient:
    """TestClient with the reference organisation loaded."""
    init_hierarchy(reference_tree)
    yield TestClient(app)
    init_hierarchy(None)


@pytest.fixture
def empty_client(app: FastAPI) -> TestClient:
    """TestClient with no hierarchy loaded."""
    init_hierarchy(None)
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        resp = client.get(f"{PREFIX}/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["hierarchy_loaded"] is True

    def test_health_without_hierarchy(self, empty_client):
        resp = empty_client.get(f"{PREFIX}/health")
        assert resp.json()["hierarchy_loaded"] is False


class TestHierarchyEndpoints:
    """Loading and reading the served hierarchy."""

    def test_read_without_hierarchy(self, empty_client):
        resp = empty_client.get(f"{PREFIX}/hierarchy")
        assert resp.status_code == 409

    def test_load(self, empty_client, reference_tree):
        resp = empty_client.post(f"{PREFIX}/hierarchy", json=reference_tree)
        assert resp.status_code == 201
        data = resp.json()
        assert data["godfather_id"] == 1
        assert data["statistics"]["active_members"] == 15

    def test_load_duplicate_ids(self, empty_client):
        body = {"id": 1, "age": 80, "subordinates": [{"id": 1, "age": 40}]}
        resp = empty_client.post(f"{PREFIX}/hierarchy", json=body)
        assert resp.status_code == 422

    def test_load_negative_age(self, empty_client):
        resp = empty_client.post(f"{PREFIX}/hierarchy", json={"id": 1, "age": -1})
        assert resp.status_code == 422

    def test_read(self, client):
        resp = client.get(f"{PREFIX}/hierarchy")
        assert resp.status_code == 200
        root = resp.json()["root"]
        assert root["id"] == 1
        assert [s["id"] for s in root["subordinates"]] == [2, 3, 4]

    def test_invariants(self, client):
        resp = client.get(f"{PREFIX}/invariants")
        assert resp.json() == {"valid": True, "errors": []}


class TestMemberEndpoints:
    """Member lookup, recruiting, incarceration and release."""

    def test_get_member(self, client):
        resp = client.get(f"{PREFIX}/members/5")
        assert resp.status_code == 200
        data = resp.json()
        assert data["age"] == 68
        assert data["boss_id"] == 2
        assert data["subordinate_ids"] == [6, 10, 11]

    def test_get_unknown_member(self, client):
        assert client.get(f"{PREFIX}/members/99").status_code == 404

    def test_recruit(self, client):
        resp = client.post(f"{PREFIX}/members", json={"id": 20, "age": 30, "boss_id": 3})
        assert resp.status_code == 201
        assert resp.json()["boss_id"] == 3
        assert client.get(f"{PREFIX}/members/3").json()["subordinate_ids"] == [20]

    def test_recruit_duplicate(self, client):
        resp = client.post(f"{PREFIX}/members", json={"id": 5, "age": 30, "boss_id": 3})
        assert resp.status_code == 409

    def test_recruit_unknown_boss(self, client):
        resp = client.post(f"{PREFIX}/members", json={"id": 20, "age": 30, "boss_id": 99})
        assert resp.status_code == 404

    def test_incarcerate(self, client):
        resp = client.post(f"{PREFIX}/members/5/incarcerate")
        assert resp.status_code == 200
        assert resp.json()["successor_id"] == 9
        member = client.get(f"{PREFIX}/members/5").json()
        assert member["incarcerated"] is True
        assert member["boss_id"] is None
        assert member["successor_id"] == 9
        assert client.get(f"{PREFIX}/members/10").json()["boss_id"] == 9

    def test_incarcerate_twice(self, client):
        client.post(f"{PREFIX}/members/5/incarcerate")
        resp = client.post(f"{PREFIX}/members/5/incarcerate")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "not_active"

    def test_release(self, client):
        client.post(f"{PREFIX}/members/5/incarcerate")
        resp = client.post(f"{PREFIX}/members/5/release")
        assert resp.status_code == 200
        assert resp.json()["boss_id"] == 2
        assert client.get(f"{PREFIX}/members/10").json()["boss_id"] == 5

    def test_release_active_member(self, client):
        resp = client.post(f"{PREFIX}/members/5/release")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "not_incarcerated"

    def test_release_unknown_member(self, client):
        assert client.post(f"{PREFIX}/members/99/release").status_code == 404


class TestQueryEndpoints:
    """Big-boss and comparison queries."""

    def test_big_bosses(self, client):
        resp = client.get(f"{PREFIX}/big-bosses", params={"min_subordinates": 4})
        assert resp.status_code == 200
        members = resp.json()["members"]
        assert [m["id"] for m in members] == [1, 2]
        assert members[0]["subordinate_count"] == 14

    def test_big_bosses_requires_threshold(self, client):
        assert client.get(f"{PREFIX}/big-bosses").status_code == 422

    def test_compare(self, client):
        resp = client.get(f"{PREFIX}/compare", params={"a": 6, "b": 8})
        data = resp.json()
        assert data["higher_id"] == 8
        assert data["a"]["depth"] == 3

    def test_compare_equal(self, client):
        resp = client.get(f"{PREFIX}/compare", params={"a": 7, "b": 12})
        assert resp.json()["higher_id"] is None

    def test_compare_incarcerated(self, client):
        client.post(f"{PREFIX}/members/6/incarcerate")
        resp = client.get(f"{PREFIX}/compare", params={"a": 6, "b": 8})
        assert resp.status_code == 404


class TestInternalErrors:
    """Unexpected failures surface as 500 with a fixed message."""

    def test_big_bosses_failure(self, client, monkeypatch):
        def broken(self, min_size):
            raise RuntimeError("boom")

        monkeypatch.setattr(Hierarchy, "find_large_groups", broken)
        resp = client.get(f"{PREFIX}/big-bosses", params={"min_subordinates": 1})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to find big bosses"

    def test_incarcerate_failure(self, client, monkeypatch):
        def broken(self, member):
            raise RuntimeError("boom")

        monkeypatch.setattr(Hierarchy, "incarcerate", broken)
        resp = client.post(f"{PREFIX}/members/5/incarcerate")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to incarcerate member"

    def test_http_errors_pass_through(self, client, monkeypatch):
        def broken(self, member):
            raise RuntimeError("boom")

        monkeypatch.setattr(Hierarchy, "release", broken)
        resp = client.post(f"{PREFIX}/members/99/release")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Member not found"


class TestLoadOrganisation:
    """Preloading the served hierarchy from a JSON file."""

    def test_load_file(self, tmp_path, reference_tree):
        path = tmp_path / "organisation.json"
        path.write_text(json.dumps(reference_tree), encoding="utf-8")
        load_organisation(path)
        try:
            assert get_hierarchy().godfather.id == 1
            assert len(get_hierarchy()) == 15
        finally:
            init_hierarchy(None)

    def test_load_file_with_null_subordinates(self, tmp_path):
        path = tmp_path / "organisation.json"
        path.write_text('{"id": 1, "age": 80, "subordinates": null}', encoding="utf-8")
        load_organisation(path)
        try:
            assert len(get_hierarchy()) == 1
        finally:
            init_hierarchy(None)

    def test_load_malformed_file(self, tmp_path):
        path = tmp_path / "organisation.json"
        path.write_text('{"id": 1, "age": 80, "subordinates": {"id": 2}}', encoding="utf-8")
        with pytest.raises(HierarchyError):
            load_organisation(path)
