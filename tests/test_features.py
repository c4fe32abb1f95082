"""
Unit tests for feature extraction and the feature cache.
"""

import numpy as np
import pytest

from gamepilot_identity.config import DEFAULT_PLAYTIME
from gamepilot_identity.features import (
    GameFeatureBuilder,
    difficulty_label,
    difficulty_score,
)
from gamepilot_identity.models import Game
from gamepilot_identity.taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy


class TestDifficultyScore:
    """Difficulty label/number normalization"""

    def test_labels(self):
        assert difficulty_score("easy") == 0.25
        assert difficulty_score("Hard") == 0.75
        assert difficulty_score("nightmare") is None

    def test_numbers(self):
        assert difficulty_score(0.4) == pytest.approx(0.4)
        assert difficulty_score(80) == pytest.approx(0.8)
        assert difficulty_score(None) is None

    def test_label_buckets(self):
        assert difficulty_label(0.1) == "Easy"
        assert difficulty_label(0.5) == "Medium"
        assert difficulty_label(0.9) == "Hard"


class TestGameFeatureBuilder:
    """Game -> GameFeatureVector"""

    def test_aliases_resolve_to_vocabulary(self):
        """'fps' lands on the shooter slot of the genre vector"""
        features = GameFeatureBuilder().build(Game(id="x", genres=["FPS"]))

        idx = DEFAULT_TAXONOMY.genres.index("shooter")
        assert features.genre_vector[idx] == 1.0
        assert features.genres == ["shooter"]

    def test_mood_vector_is_max_normalized(self, catalog):
        builder = GameFeatureBuilder()
        for game in catalog:
            vec = builder.build(game).mood_vector
            assert vec.shape == (DEFAULT_TAXONOMY.mood_dim,)
            assert np.max(vec) == pytest.approx(1.0)

    def test_horror_game_mood_profile(self, catalog):
        features = GameFeatureBuilder().build(catalog[0])
        moods = dict(zip(DEFAULT_TAXONOMY.moods, features.mood_vector))

        assert moods["atmospheric"] == pytest.approx(1.0)
        assert moods["intense"] > moods["story-rich"]
        assert moods["relaxing"] == 0.0

    def test_genre_priors_fill_missing_metadata(self):
        """Missing difficulty/playtime fall back to genre priors, then defaults"""
        builder = GameFeatureBuilder()

        strategy = builder.build(Game(id="s", genres=["strategy"]))
        assert strategy.difficulty_score == pytest.approx(0.8)
        assert strategy.playtime_estimate == pytest.approx(90.0)

        unknown = builder.build(Game(id="u", genres=["unheard-of"]))
        assert unknown.difficulty_score == pytest.approx(0.5)
        assert unknown.playtime_estimate == pytest.approx(DEFAULT_PLAYTIME)

    def test_explicit_metadata_wins(self):
        game = Game(id="e", genres=["strategy"], difficulty="easy", average_playtime=15)
        features = GameFeatureBuilder().build(game)

        assert features.difficulty_score == pytest.approx(0.25)
        assert features.playtime_estimate == pytest.approx(15.0)

    def test_social_score(self, catalog):
        builder = GameFeatureBuilder()
        by_id = {g.id: builder.build(g) for g in catalog}

        assert by_id["g05"].social_score >= 0.9
        assert by_id["g10"].social_score >= 0.9
        assert by_id["g09"].social_score < 0.5

    def test_single_player_caps_social_prior(self):
        game = Game(id="solo-rpg", genres=["rpg"], is_multiplayer=False)
        assert GameFeatureBuilder().build(game).social_score == pytest.approx(0.3)

    def test_content_vector_length(self, catalog):
        features = GameFeatureBuilder().build(catalog[0])
        expected = DEFAULT_TAXONOMY.genre_dim + DEFAULT_TAXONOMY.mood_dim

        assert features.content_vector().shape == (expected,)


class TestFeatureCache:
    """Caching keyed by taxonomy version and metadata"""

    def test_repeat_builds_hit_cache(self, catalog):
        builder = GameFeatureBuilder()
        first = builder.build(catalog[0])
        second = builder.build(catalog[0])

        assert first is second
        assert builder.cache.hits == 1

    def test_metadata_change_rebuilds(self, catalog):
        builder = GameFeatureBuilder()
        before = builder.build(catalog[0])
        changed = Game(id="g01", title="Dread Manor", genres=["horror", "puzzle"], tags=["scary"])

        after = builder.build(changed)

        assert after is not before
        assert after.genres == ["horror", "puzzle"]

    def test_invalidate_by_game(self, catalog):
        builder = GameFeatureBuilder()
        builder.build_many(catalog[:3])

        assert builder.invalidate("g01") == 1
        assert len(builder.cache) == 2
        assert builder.invalidate() == 2

    def test_taxonomy_version_changes_key(self, catalog):
        builder = GameFeatureBuilder()
        builder.build(catalog[0])
        builder.taxonomy = MoodTaxonomy(version="test-v2")
        builder.build(catalog[0])

        assert len(builder.cache) == 2


class TestBehaviorProfile:
    """Session history -> UserBehaviorProfile"""

    def test_empty_history(self):
        profile = GameFeatureBuilder().build_behavior_profile("u", [])

        assert profile.session_count == 0
        assert profile.total_playtime == 0.0
        assert not np.any(profile.preference_vector(DEFAULT_TAXONOMY))

    def test_horror_history(self, horror_identity):
        profile = GameFeatureBuilder().build_behavior_profile("horror-fan", horror_identity.sessions)

        assert profile.session_count == 8
        assert profile.total_playtime == pytest.approx(640.0)
        assert profile.average_session_length == pytest.approx(80.0)
        assert profile.preferred_genres["horror"] == pytest.approx(0.5)
        assert profile.completion_rate == 1.0
        assert max(profile.mood_patterns, key=profile.mood_patterns.get) == "intense"
        assert len(profile.played_game_ids) == 8

    def test_preference_vector_aligns_with_content_vector(self, horror_identity, catalog):
        builder = GameFeatureBuilder()
        profile = builder.build_behavior_profile("horror-fan", horror_identity.sessions)
        pref = profile.preference_vector(DEFAULT_TAXONOMY)

        assert pref.shape == builder.build(catalog[0]).content_vector().shape
        assert np.max(pref) == pytest.approx(1.0)
