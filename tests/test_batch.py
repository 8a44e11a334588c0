"""Tests for the similarity and community batch job."""

import pytest

from soundmates.core.logging import batch_run_var
from soundmates.models.attribute import UserArtist
from soundmates.models.community import Community
from soundmates.models.similarity import Similarity
from soundmates.services.batch import (
    COMPLETED,
    SKIPPED,
    BatchGuard,
    BatchInProgressError,
    BatchOrchestrator,
    run_batch_in_background,
    run_full_batch,
)
from soundmates.services.similarity_store import CommunityStoreWriter, load_similarity_records


def stored_scores(db) -> dict[tuple[str, str], float]:
    return {r.pair: r.combined_similarity for r in load_similarity_records(db)}


def stored_communities(db) -> dict[str, int]:
    return {c.user_id: c.community_id for c in db.query(Community).all()}


class TestFullRun:
    """Test full recomputation."""

    def test_scenario(self, db, settings, scenario_listeners):
        """A and B form the only edge and the only community; C stays out."""
        result = run_full_batch(db, settings)

        assert result.status == COMPLETED
        assert result.mode == "full"
        assert result.users_processed == 3
        assert result.similarity_pairs == 3
        assert result.edges == 1
        assert result.communities == 1

        scores = stored_scores(db)
        assert set(scores) == {("user-a", "user-b"), ("user-a", "user-c"), ("user-b", "user-c")}
        assert scores[("user-a", "user-b")] == pytest.approx(0.30)
        assert scores[("user-a", "user-c")] == 0.0

        communities = stored_communities(db)
        assert set(communities) == {"user-a", "user-b"}
        assert communities["user-a"] == communities["user-b"]

    def test_evidence_stored(self, db, settings, scenario_listeners):
        run_full_batch(db, settings)

        row = db.get(Similarity, ("user-a", "user-b"))
        assert [a["name"] for a in row.common_artists] == ["Artist Two", "Artist Three"]
        assert row.common_genres == []

    def test_single_user_skipped(self, db, settings, add_listener):
        add_listener("user-a", [("1", "One", ["rock"])])

        result = run_full_batch(db, settings)

        assert result.status == SKIPPED
        assert result.message == "Need at least 2 users to calculate similarities"
        assert result.users_processed == 1
        assert db.query(Similarity).count() == 0
        assert db.query(Community).count() == 0

    def test_no_users_skipped(self, db, settings):
        assert run_full_batch(db, settings).status == SKIPPED

    def test_idempotent(self, db, settings, scenario_listeners):
        first = run_full_batch(db, settings)
        first_scores, first_communities = stored_scores(db), stored_communities(db)

        second = run_full_batch(db, settings)

        assert second == first
        assert stored_scores(db) == first_scores
        assert stored_communities(db) == first_communities

    def test_no_edges_clears_communities(self, db, settings, scenario_listeners):
        run_full_batch(db, settings)
        strict = settings.model_copy(update={"SIMILARITY_THRESHOLD": 0.9})

        result = run_full_batch(db, strict)

        assert result.edges == 0
        assert result.communities == 0
        assert db.query(Community).count() == 0
        assert db.query(Similarity).count() == 3

    def test_failure_rolls_back(self, db, settings, scenario_listeners, add_listener, monkeypatch):
        """A failure while storing communities leaves the old results in place."""
        run_full_batch(db, settings)
        before_scores, before_communities = stored_scores(db), stored_communities(db)
        add_listener("user-d", [("1", "Artist One", [])])

        def boom(self, assignments):
            raise RuntimeError("community store unavailable")

        monkeypatch.setattr(CommunityStoreWriter, "replace_all", boom)

        with pytest.raises(RuntimeError):
            run_full_batch(db, settings)

        assert stored_scores(db) == before_scores
        assert stored_communities(db) == before_communities

    def test_zero_threshold_without_overlap(self, db, settings, add_listener):
        """Zero-weight edges from a threshold of 0 leave nothing to cluster."""
        add_listener("user-a", [("1", "One", [])])
        add_listener("user-b", [("2", "Two", [])])
        open_graph = settings.model_copy(update={"SIMILARITY_THRESHOLD": 0.0})

        result = run_full_batch(db, open_graph)

        assert result.status == COMPLETED
        assert result.edges == 1
        assert result.communities == 0
        assert db.query(Community).count() == 0
        assert stored_scores(db) == {("user-a", "user-b"): 0.0}

    def test_mixed_case_ids_keep_canonical_order(self, db, settings, add_listener):
        """Pairs are ordered by code point, so "User-B" sorts before "user-a"."""
        add_listener("user-a", [("1", "One", [])])
        add_listener("User-B", [("1", "One", [])])

        result = run_full_batch(db, settings)

        assert result.status == COMPLETED
        assert set(stored_scores(db)) == {("User-B", "user-a")}

    def test_run_tag_reset(self, db, settings, scenario_listeners):
        run_full_batch(db, settings)

        assert batch_run_var.get() is None


class TestIncrementalRun:
    """Test recomputation for a single user."""

    def test_new_user_without_overlap(self, db, settings, scenario_listeners, add_listener):
        run_full_batch(db, settings)
        add_listener("user-d", [("100", "Artist Hundred", [])])

        result = BatchOrchestrator(db, settings).run_incremental("user-d")

        assert result.status == COMPLETED
        assert result.mode == "incremental"
        assert result.similarity_pairs == 3
        assert result.edges == 1

        scores = stored_scores(db)
        assert len(scores) == 6
        assert scores[("user-a", "user-d")] == 0.0
        assert scores[("user-b", "user-d")] == 0.0
        assert scores[("user-c", "user-d")] == 0.0
        assert "user-d" not in stored_communities(db)

    def test_updates_existing_pair(self, db, settings, scenario_listeners):
        run_full_batch(db, settings)
        db.query(UserArtist).filter(
            UserArtist.user_id == "user-b", UserArtist.artist_id == "4"
        ).delete()
        db.add(UserArtist(user_id="user-b", artist_id="1", artist_name="Artist One", genres="[]"))
        db.commit()

        BatchOrchestrator(db, settings).run_incremental("user-b")

        scores = stored_scores(db)
        assert scores[("user-a", "user-b")] == pytest.approx(0.6)
        assert len(scores) == 3

    def test_new_user_joins_community(self, db, settings, scenario_listeners, add_listener):
        run_full_batch(db, settings)
        add_listener(
            "user-d",
            [("1", "Artist One", []), ("2", "Artist Two", []), ("3", "Artist Three", [])],
        )

        result = BatchOrchestrator(db, settings).run_incremental("user-d")

        communities = stored_communities(db)
        assert result.edges == 3
        assert communities["user-d"] == communities["user-a"] == communities["user-b"]
        assert "user-c" not in communities

    def test_user_without_data_skipped(self, db, settings, scenario_listeners):
        result = BatchOrchestrator(db, settings).run_incremental("user-missing")

        assert result.status == SKIPPED
        assert result.message == "User user-missing has no attribute data"
        assert db.query(Similarity).count() == 0

    def test_stale_pairs_ignored(self, db, settings, scenario_listeners):
        """Stored pairs for users whose data is gone do not become edges."""
        run_full_batch(db, settings)
        db.query(UserArtist).filter(UserArtist.user_id == "user-b").delete()
        db.commit()

        result = BatchOrchestrator(db, settings).run_incremental("user-a")

        assert result.edges == 0
        assert db.query(Community).count() == 0


class TestHobbySchema:
    def test_tags_drive_similarity(self, db, settings, add_hobbyist):
        add_hobbyist("user-a", ["hiking", "jazz"])
        add_hobbyist("user-b", ["hiking", "jazz", "chess"])
        add_hobbyist("user-c", ["surfing"])
        hobbies = settings.model_copy(update={"ATTRIBUTE_SCHEMA": "hobbies"})

        result = run_full_batch(db, hobbies)

        scores = stored_scores(db)
        assert result.edges == 1
        assert scores[("user-a", "user-b")] == pytest.approx(2 / 3)
        assert set(stored_communities(db)) == {"user-a", "user-b"}


class TestBatchGuard:
    def test_rejects_concurrent_run(self, db, settings, scenario_listeners):
        guard = BatchGuard()

        with guard.hold(db):
            assert guard.busy
            with pytest.raises(BatchInProgressError):
                BatchOrchestrator(db, settings, guard).run_full()

        assert not guard.busy
        assert db.query(Similarity).count() == 0

    def test_released_after_failure(self, db, settings, scenario_listeners, monkeypatch):
        guard = BatchGuard()
        monkeypatch.setattr(CommunityStoreWriter, "replace_all", lambda self, a: 1 / 0)

        with pytest.raises(ZeroDivisionError):
            BatchOrchestrator(db, settings, guard).run_full()

        assert not guard.busy


class TestBackgroundRun:
    def test_runs_with_own_session(self, db, database, settings, scenario_listeners):
        run_batch_in_background(database, BatchGuard(), "user-a", settings)

        db.expire_all()
        assert db.query(Similarity).count() == 2

    def test_failure_is_logged(self, db, database, settings, scenario_listeners, monkeypatch, caplog):
        monkeypatch.setattr(CommunityStoreWriter, "replace_all", lambda self, a: 1 / 0)

        run_batch_in_background(database, BatchGuard(), "user-a", settings)

        assert any("Background recompute failed" in r.message for r in caplog.records)
        db.expire_all()
        assert db.query(Similarity).count() == 0
