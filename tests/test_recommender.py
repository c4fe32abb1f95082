"""
Unit tests for the recommendation pipeline.

Covers:
- Fallback ranking for players with little history
- Ordering, count and determinism guarantees
- Context filters and vector-index narrowing
- Collaborative signal from registered players
"""

import json

import numpy as np
import pytest

from gamepilot_identity.candidates import CandidateFilter
from gamepilot_identity.config import FALLBACK_CONFIDENCE, CandidateConfig
from gamepilot_identity.features import GameFeatureBuilder
from gamepilot_identity.index import VectorSearchIndex
from gamepilot_identity.models import Game, PlayerIdentity, RecommendationContext
from gamepilot_identity.playstyle import default_playstyle
from gamepilot_identity.recommender import RecommendationEngine


@pytest.fixture
def engine():
    return RecommendationEngine()


class TestFallback:
    """Players below the session threshold"""

    def test_new_player_gets_popularity_fallback(self, engine, empty_identity, catalog):
        """No affinities and no sessions: rank by popularity, low confidence"""
        results = engine.get_recommendations(empty_identity, None, catalog, count=3)

        assert [r.game_id for r in results] == ["g05", "g10", "g06"]
        assert all(r.is_fallback for r in results)
        assert all(r.confidence == FALLBACK_CONFIDENCE for r in results)

    def test_fallback_uses_genre_affinity(self, engine, catalog, make_session):
        identity = PlayerIdentity(
            id="identity-few",
            user_id="few",
            playstyle=default_playstyle(),
            sessions=[make_session(genre="horror"), make_session(genre="horror")],
            genre_affinities={"horror": 70.0},
        )
        results = engine.get_recommendations(identity, None, catalog, count=2)

        assert [r.game_id for r in results] == ["g01", "g02"]
        assert results[0].score == pytest.approx(0.7)
        assert "You enjoy horror games" in results[0].reasons

    def test_recommend_flags_fallback(self, engine, empty_identity, catalog):
        output = engine.recommend(empty_identity, catalog)

        assert output.is_fallback is True
        assert output.current_mood == "neutral"
        assert json.loads(output.to_json())["isFallback"] is True


class TestRanking:
    """Normal-path ranking guarantees"""

    def test_horror_fan_gets_horror_first(self, engine, horror_identity, catalog):
        results = engine.get_recommendations(horror_identity, None, catalog, count=5)

        assert results[0].game_id in {"g01", "g02"}
        assert not results[0].is_fallback
        assert 0.0 < results[0].confidence <= 1.0

    def test_sorted_and_bounded(self, engine, horror_identity, catalog):
        results = engine.get_recommendations(horror_identity, None, catalog, count=4)
        keys = [(-r.score, r.game_id) for r in results]

        assert len(results) == 4
        assert keys == sorted(keys)
        assert all(0.0 <= r.score <= 1.0 for r in results)

    def test_count_larger_than_catalog(self, engine, horror_identity, catalog):
        assert len(engine.get_recommendations(horror_identity, None, catalog, count=50)) == 10

    def test_non_positive_count(self, engine, horror_identity, catalog):
        assert engine.get_recommendations(horror_identity, None, catalog, count=0) == []

    def test_repeat_calls_are_identical(self, engine, horror_identity, catalog):
        first = [r.to_dict() for r in engine.get_recommendations(horror_identity, None, catalog)]
        second = [r.to_dict() for r in engine.get_recommendations(horror_identity, None, catalog)]

        assert first == second

    def test_identical_histories_rank_identically(self, engine, horror_identity, catalog):
        twin = PlayerIdentity(
            id="identity-twin",
            user_id="twin",
            playstyle=horror_identity.playstyle,
            sessions=list(horror_identity.sessions),
            genre_affinities=dict(horror_identity.genre_affinities),
            computed_mood=horror_identity.computed_mood,
        )
        a = engine.get_recommendations(horror_identity, None, catalog)
        b = engine.get_recommendations(twin, None, catalog)

        assert [(r.game_id, r.score) for r in a] == [(r.game_id, r.score) for r in b]

    def test_reasons_never_empty(self, engine, horror_identity, catalog):
        for rec in engine.get_recommendations(horror_identity, None, catalog):
            assert 1 <= len(rec.reasons) <= 3

    def test_malformed_catalog_entries_skipped(self, engine, horror_identity):
        games = [
            {"title": "No id"},
            {"id": "d1", "title": "Dup", "genres": ["horror"]},
            {"id": "d1", "title": "Dup again", "genres": ["puzzle"]},
        ]
        results = engine.get_recommendations(horror_identity, None, games)

        assert [r.game_id for r in results] == ["d1"]
        assert results[0].title == "Dup"

    def test_context_mood_overrides_computed(self, engine, horror_identity, catalog):
        context = RecommendationContext(current_mood="relaxing")
        output = engine.recommend(horror_identity, catalog, context)
        by_id = {r.game_id: r for r in output.recommendations}

        assert output.current_mood == "relaxing"
        assert by_id["g03"].mood_match > by_id["g10"].mood_match


class TestContextFilters:
    """RecommendationContext filtering"""

    def test_genre_filter(self, engine, horror_identity, catalog):
        context = RecommendationContext(genres=["Survival Horror"])
        results = engine.get_recommendations(horror_identity, context, catalog)

        assert {r.game_id for r in results} == {"g01", "g02"}

    def test_social_filter(self, engine, horror_identity, catalog):
        context = RecommendationContext(social_context="pvp")
        ids = {r.game_id for r in engine.get_recommendations(horror_identity, context, catalog)}

        assert {"g05", "g10"} <= ids
        assert "g03" not in ids
        assert "g09" not in ids

    def test_time_filter(self, engine, horror_identity, catalog):
        context = RecommendationContext(time_available=30)
        ids = {r.game_id for r in engine.get_recommendations(horror_identity, context, catalog)}

        assert ids == {"g08", "g09"}

    def test_exclude_recently_played(self, engine, catalog, make_session):
        identity = PlayerIdentity(
            id="identity-regular",
            user_id="regular",
            playstyle=default_playstyle(),
            sessions=[make_session(game_id="g01", genre="horror") for _ in range(6)],
        )
        context = RecommendationContext(exclude_recently_played=True)
        ids = {r.game_id for r in engine.get_recommendations(identity, context, catalog)}

        assert "g01" not in ids
        assert len(ids) == 9

    def test_platform_filter_keeps_unlisted(self, engine, horror_identity):
        games = [
            Game(id="pc-only", genres=["horror"], platforms=["pc"]),
            Game(id="switch-only", genres=["horror"], platforms=["switch"]),
            Game(id="anywhere", genres=["horror"]),
        ]
        context = RecommendationContext(platform="PC")
        ids = {r.game_id for r in engine.get_recommendations(horror_identity, context, games)}

        assert ids == {"pc-only", "anywhere"}


class TestNarrowing:
    """Vector-index narrowing of large catalogs"""

    @staticmethod
    def _big_catalog(n, shift=0):
        genres = ["horror", "puzzle", "strategy", "racing", "sandbox"]
        return [Game(id=f"big-{i:04d}", genres=[genres[(i + shift) % len(genres)]]) for i in range(n)]

    def test_narrow_limits_pool(self):
        builder = GameFeatureBuilder()
        features = builder.build_many(self._big_catalog(250))
        index = VectorSearchIndex()
        for f in features:
            index.add_vector(f.game_id, f.content_vector())
        query = features[0].content_vector()

        narrowed = CandidateFilter().narrow(features, query, index, count=5)

        assert len(narrowed) == 50
        assert all(f.genres == ["horror"] for f in narrowed)

    def test_unindexed_candidates_survive(self):
        builder = GameFeatureBuilder()
        features = builder.build_many(self._big_catalog(250))
        index = VectorSearchIndex()
        for f in features[:240]:
            index.add_vector(f.game_id, f.content_vector())

        narrowed = CandidateFilter().narrow(features, features[0].content_vector(), index, count=5)
        ids = {f.game_id for f in narrowed}

        assert {f.game_id for f in features[240:]} <= ids

    def test_small_pool_untouched(self, catalog):
        features = GameFeatureBuilder().build_many(catalog)
        narrowed = CandidateFilter().narrow(features, np.ones(30), VectorSearchIndex(), count=1)

        assert narrowed == features

    def test_engine_narrows_large_catalog(self, horror_identity):
        engine = RecommendationEngine(candidate_config=CandidateConfig(narrow_threshold=20, narrow_min=10))
        results = engine.get_recommendations(horror_identity, None, self._big_catalog(100), count=3)

        assert len(results) == 3
        assert results[0].game_id.startswith("big-")
        assert engine.index.size() == 0

    def test_changed_catalog_between_calls(self, horror_identity):
        """Same ids with new genres must rank like a fresh engine would."""
        config = CandidateConfig(narrow_threshold=20, narrow_min=10)
        engine = RecommendationEngine(candidate_config=config)
        engine.get_recommendations(horror_identity, None, self._big_catalog(100), count=3)

        shifted = self._big_catalog(100, shift=1)
        results = engine.get_recommendations(horror_identity, None, shifted, count=3)
        fresh = RecommendationEngine(candidate_config=config).get_recommendations(
            horror_identity, None, shifted, count=3
        )

        assert [r.to_dict() for r in results] == [r.to_dict() for r in fresh]
        by_id = {g.id: g for g in shifted}
        assert by_id[results[0].game_id].genres == ["horror"]

    def test_indexed_catalog_then_metadata_change(self, horror_identity):
        config = CandidateConfig(narrow_threshold=20, narrow_min=10)
        engine = RecommendationEngine(candidate_config=config)
        engine.index_catalog(self._big_catalog(100))

        shifted = self._big_catalog(100, shift=2)
        results = engine.get_recommendations(horror_identity, None, shifted, count=3)
        fresh = RecommendationEngine(candidate_config=config).get_recommendations(
            horror_identity, None, shifted, count=3
        )

        assert [r.game_id for r in results] == [r.game_id for r in fresh]
        assert engine.index.size() == 100

    def test_indexed_catalog_is_used_when_current(self, horror_identity):
        config = CandidateConfig(narrow_threshold=20, narrow_min=10)
        engine = RecommendationEngine(candidate_config=config)
        catalog = self._big_catalog(100)
        engine.index_catalog(catalog)

        results = engine.get_recommendations(horror_identity, None, catalog, count=3)
        by_id = {g.id: g for g in catalog}

        assert engine._narrowing_index(catalog, engine.feature_builder.build_many(catalog)) is engine.index
        assert by_id[results[0].game_id].genres == ["horror"]


class TestCollaborative:
    """Signal from other registered players"""

    def test_similar_players_boost_shared_game(self, engine, horror_identity, catalog, make_session):
        for n in range(5):
            engine.register_user(f"peer-{n}", [
                make_session(game_id="past-0", genre="horror", rating=5),
                make_session(game_id="g06", genre="rpg", rating=5),
            ])

        results = engine.get_recommendations(horror_identity, None, catalog)
        g06 = next(r for r in results if r.game_id == "g06")

        assert g06.breakdown["collaborative"] == pytest.approx(1.0)
        assert g06.reasons[0] == "Players with similar tastes enjoyed this"

    def test_too_few_peers_give_no_signal(self, engine, horror_identity, catalog, make_session):
        for n in range(4):
            engine.register_user(f"peer-{n}", [
                make_session(game_id="past-0", genre="horror", rating=5),
                make_session(game_id="g06", genre="rpg", rating=5),
            ])

        results = engine.get_recommendations(horror_identity, None, catalog)

        assert all(r.breakdown["collaborative"] == 0.0 for r in results)

    def test_own_history_is_excluded(self, engine, horror_identity, catalog):
        engine.register_user("horror-fan", horror_identity.sessions)
        results = engine.get_recommendations(horror_identity, None, catalog)

        assert all(r.breakdown["collaborative"] == 0.0 for r in results)
