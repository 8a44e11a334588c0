"""Tests for the match listing endpoint."""

import pytest
from fastapi.testclient import TestClient

from soundmates.services.batch import run_full_batch


@pytest.fixture
def computed(db, settings, scenario_listeners):
    run_full_batch(db, settings)


class TestGetMatches:
    """Test GET /api/v1/match/{user_id}."""

    def test_same_community_bonus(self, client: TestClient, computed):
        response = client.get("/api/v1/match/user-a")

        assert response.status_code == 200
        matches = response.json()
        assert len(matches) == 1

        match = matches[0]
        assert match["user_id"] == "user-b"
        assert match["combined_similarity"] == pytest.approx(0.30)
        assert match["is_same_community"] is True
        assert match["community_id"] is not None
        assert match["match_score"] == pytest.approx(0.50)
        assert [a["name"] for a in match["common_artists"]] == ["Artist Two", "Artist Three"]

    def test_symmetric(self, client: TestClient, computed):
        response = client.get("/api/v1/match/user-b")

        assert [m["user_id"] for m in response.json()] == ["user-a"]

    def test_below_threshold_excluded(self, client: TestClient, computed):
        response = client.get("/api/v1/match/user-c")

        assert response.status_code == 200
        assert response.json() == []

    def test_ordering_and_limit(self, client: TestClient, db, settings, add_listener):
        add_listener("user-a", [("1", "One", []), ("2", "Two", [])])
        add_listener("user-b", [("1", "One", []), ("2", "Two", [])])
        add_listener("user-c", [("1", "One", []), ("2", "Two", []), ("3", "Three", [])])
        run_full_batch(db, settings)

        matches = client.get("/api/v1/match/user-a").json()
        assert [m["user_id"] for m in matches] == ["user-b", "user-c"]
        assert matches[0]["match_score"] >= matches[1]["match_score"]

        limited = client.get("/api/v1/match/user-a", params={"limit": 1}).json()
        assert [m["user_id"] for m in limited] == ["user-b"]

    def test_unknown_user(self, client: TestClient):
        response = client.get("/api/v1/match/nobody")

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_invalid_limit(self, client: TestClient, computed):
        response = client.get("/api/v1/match/user-a", params={"limit": 0})

        assert response.status_code == 422
