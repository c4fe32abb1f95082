"""
Unit tests for identity computation and the playstyle model.
"""

import pytest

from gamepilot_identity.config import IdentityOptions
from gamepilot_identity.identity import IdentityEngine
from gamepilot_identity.models import Playstyle, PlayerIdentity
from gamepilot_identity.playstyle import PlaystyleModel


@pytest.fixture
def engine():
    return IdentityEngine()


class TestComputeIdentity:
    """compute_identity"""

    def test_too_few_sessions_gives_default(self, engine, make_session):
        sessions = [make_session(genre="horror") for _ in range(3)]
        identity = engine.compute_identity("u", sessions)

        assert identity.id == "identity-u"
        assert identity.playstyle.primary.id == "casual"
        assert identity.moods == []
        assert identity.genre_affinities == {}
        assert identity.computed_mood is None
        assert len(identity.sessions) == 3

    def test_horror_history(self, engine, horror_sessions):
        identity = engine.compute_identity("scared", horror_sessions)

        assert identity.computed_mood == "intense"
        assert identity.genre_affinities == {"horror": 100.0}
        assert identity.mood("intense").preference == pytest.approx(100.0)
        assert all(0.0 <= m.preference <= 100.0 for m in identity.moods)
        assert identity.last_updated == horror_sessions[-1].start_time

    def test_negative_sessions_can_be_excluded(self, engine, horror_sessions, make_session):
        sessions = horror_sessions + [make_session(genre="puzzle", rating=1)]
        options = IdentityOptions(include_negative_sessions=False)

        identity = engine.compute_identity("picky", sessions, options)

        assert "puzzle" not in identity.genre_affinities
        assert len(identity.sessions) == 5

    def test_sessions_sorted_by_start_time(self, engine, horror_sessions):
        identity = engine.compute_identity("u", list(reversed(horror_sessions)))
        times = [s.start_time for s in identity.sessions]

        assert times == sorted(times)


class TestUpdateIdentity:
    """update_identity / update_mood_preference"""

    def test_explicit_preference_survives_update(self, engine, horror_sessions, make_session):
        identity = engine.compute_identity("u", horror_sessions)
        identity = engine.update_mood_preference(identity, "relaxing", 90)

        updated = engine.update_identity(identity, make_session(genre="horror", intensity=9))

        assert updated.mood("relaxing").preference == pytest.approx(90.0)
        assert len(updated.sessions) == 6
        assert updated.id == identity.id

    def test_same_session_is_not_duplicated(self, engine, horror_sessions):
        identity = engine.compute_identity("u", horror_sessions)
        updated = engine.update_identity(identity, horror_sessions[-1])

        assert len(updated.sessions) == 5

    def test_update_below_threshold_keeps_identity(self, engine, empty_identity, make_session):
        updated = engine.update_identity(empty_identity, make_session())

        assert len(updated.sessions) == 1
        assert updated.playstyle == empty_identity.playstyle
        assert empty_identity.sessions == []

    def test_update_mood_preference_clamps_and_copies(self, engine, empty_identity):
        updated = engine.update_mood_preference(empty_identity, "Creative", 150)

        assert updated.mood("creative").preference == 100.0
        assert empty_identity.moods == []


class TestMoodAndGenreAggregates:
    """compute_mood_preferences / compute_genre_affinities"""

    def test_old_sessions_fall_out_of_decay_window(self, engine, make_session):
        old = make_session(genre="casual", mood="relaxing", offset_hours=0)
        new = [make_session(genre="shooter", offset_hours=24 * 60 + n) for n in range(3)]

        moods = {m.id for m in engine.compute_mood_preferences([old] + new)}

        assert "relaxing" not in moods
        assert "intense" in moods

    def test_genre_affinity_uses_ratings(self, engine, make_session):
        sessions = [
            make_session(genre="rpg", rating=5),
            make_session(genre="rpg", rating=5),
            make_session(genre="puzzle", rating=1),
            make_session(genre="puzzle", rating=1),
        ]
        affinities = engine.compute_genre_affinities(sessions)

        assert affinities == {"rpg": 70.0, "puzzle": 30.0}


class TestPlaystyleModel:
    """Archetype matching and preferences"""

    def test_empty_history_is_casual(self):
        assert PlaystyleModel().compute_playstyle([]).primary.id == "casual"

    def test_long_tactical_sessions_are_strategist(self, make_session):
        sessions = [
            make_session(genre="strategy", tags=("tactical", "turn-based"), duration=150, completed=True)
            for _ in range(5)
        ]
        playstyle = PlaystyleModel().compute_playstyle(sessions)

        assert playstyle.primary.id == "strategist"
        assert playstyle.secondary.id == "specialist"
        assert set(playstyle.traits) == {"analytical", "dedicated"}
        assert playstyle.preferences.session_length == "long"
        assert playstyle.preferences.difficulty == "casual"
        assert playstyle.preferences.social_preference == "solo"

    def test_multiplayer_sessions(self, make_session):
        sessions = [
            make_session(genre="shooter", tags=("pvp",), intensity=8, is_multiplayer=True, duration=30)
            for _ in range(5)
        ]
        playstyle = PlaystyleModel().compute_playstyle(sessions)

        assert playstyle.primary.id == "competitor"
        assert playstyle.preferences.social_preference == "competitive"
        assert playstyle.preferences.session_length == "short"

    def test_unknown_archetype_from_dict(self):
        playstyle = Playstyle.from_dict({"primary": "wizard", "secondary": {"id": "explorer"}})

        assert playstyle.primary.id == "casual"
        assert playstyle.secondary.id == "explorer"


class TestIdentitySerialization:
    """PlayerIdentity.from_dict"""

    def test_from_dict_accepts_camel_case(self):
        identity = PlayerIdentity.from_dict({
            "id": "identity-x",
            "userId": "x",
            "genreAffinities": {"Horror": 150},
            "sessions": [
                {"id": "s2", "gameId": "g", "genre": "Horror", "startTime": "2024-03-02T20:00:00Z"},
                {"id": "s1", "gameId": "g", "genre": "Horror", "startTime": "2024-03-01T20:00:00Z"},
            ],
        })

        assert identity.user_id == "x"
        assert identity.genre_affinities == {"horror": 100.0}
        assert [s.id for s in identity.sessions] == ["s1", "s2"]
        assert identity.sessions[0].genre == "horror"

    def test_session_without_id_is_rejected(self):
        with pytest.raises(ValueError):
            PlayerIdentity.from_dict({"id": "i", "sessions": [{"gameId": "g"}]})
