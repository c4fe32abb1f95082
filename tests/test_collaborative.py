"""
Unit tests for implicit ratings, the collaborative model and shared stores.
"""

import pytest

from gamepilot_identity.collaborative import CollaborativeModel, implicit_rating, implicit_ratings
from gamepilot_identity.recommender import RecommendationEngine
from gamepilot_identity.utils import ProfileStore, parse_datetime


class TestImplicitRating:
    """Session -> implicit rating"""

    def test_explicit_rating_wins(self, make_session):
        assert implicit_rating(make_session(rating=4, completed=False)) == pytest.approx(0.8)

    def test_completion_and_duration(self, make_session):
        finished = implicit_rating(make_session(completed=True, duration=240))
        abandoned = implicit_rating(make_session(completed=False, duration=5))

        assert finished == pytest.approx(1.0)
        assert abandoned < 0.5

    def test_mean_per_game(self, make_session):
        ratings = implicit_ratings([
            make_session(game_id="a", rating=5),
            make_session(game_id="a", rating=3),
        ])
        assert ratings == {"a": pytest.approx(0.8)}


class TestCollaborativeModel:
    """User-item matrix maintenance"""

    def test_add_and_remove_users(self):
        model = CollaborativeModel(min_data_points=1)
        model.add_ratings("u1", {"g1": 1.5, "g2": 0.5})
        model.add_ratings("u2", {"g1": 1.0})

        assert model.user_count == 2
        assert model.score_candidates("me", {"g1": 1.0}, ["g2"])["g2"] == pytest.approx(0.5)

        assert model.remove_user("u1") is True
        assert model.remove_user("u1") is False
        assert model.score_candidates("me", {"g1": 1.0}, ["g2"])["g2"] == 0.0

    def test_unknown_games_and_empty_ratings(self):
        model = CollaborativeModel(min_data_points=1)
        model.add_ratings("u1", {"g1": 1.0})

        assert model.score_candidates("me", {}, ["g1"]) == {"g1": 0.0}
        assert model.score_candidates("me", {"zzz": 1.0}, ["g1", "new"]) == {"g1": 0.0, "new": 0.0}

    def test_empty_model(self):
        assert CollaborativeModel().score_candidates("me", {"g1": 1.0}, ["g1"]) == {"g1": 0.0}


class TestIndexCatalog:
    """RecommendationEngine.index_catalog"""

    def test_indexes_valid_unique_games(self, catalog):
        engine = RecommendationEngine()
        raw = [g.metadata() for g in catalog] + [{"title": "broken"}, catalog[0].metadata()]

        assert engine.index_catalog(raw) == 10
        assert "g05" in engine.index

    def test_reindex_replaces_previous_catalog(self, catalog):
        engine = RecommendationEngine()
        engine.index_catalog(catalog)
        engine.index_catalog(catalog[:2])

        assert engine.index.size() == 2


class TestStoresAndParsing:
    """ProfileStore and datetime parsing helpers"""

    def test_profile_store_put_and_iter(self):
        evicted = []
        store = ProfileStore(max_profiles=2, on_evict=evicted.append)
        store.put("a", 1)
        store.put("b", 2)
        store.put("a", 10)
        store.put("c", 3)

        assert evicted == [2]
        assert list(store) == ["a", "c"]
        assert store.get("a") == 10
        assert store.remove("a") == 10

    def test_parse_datetime_formats(self):
        iso = parse_datetime("2024-03-01T20:00:00Z")

        assert iso.year == 2024 and iso.tzinfo is None
        assert parse_datetime(1709323200000) == parse_datetime(1709323200)
        assert parse_datetime("not a date") is None
        assert parse_datetime(None) is None

    def test_session_closed_flag(self, make_session):
        open_session = make_session()
        closed = make_session(end_time=open_session.start_time)

        assert not open_session.is_closed
        assert closed.is_closed
        assert closed.effective_duration == 60.0
