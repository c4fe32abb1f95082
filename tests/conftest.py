"""
Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Session and game factories
- A small mixed-genre catalog
- Player identities with and without history
"""

from datetime import datetime, timedelta
from typing import List

import pytest

from gamepilot_identity.models import Game, GameSession, PlayerIdentity
from gamepilot_identity.playstyle import default_playstyle

BASE_TIME = datetime(2024, 3, 1, 20, 0)


@pytest.fixture
def make_session():
    """Factory for GameSession objects with sensible defaults."""
    counter = {"n": 0}

    def _make(
        game_id: str = "game-1",
        genre: str = "action",
        mood: str = "neutral",
        intensity: int = 5,
        duration: float = 60.0,
        tags=(),
        offset_hours: float = None,
        **kwargs,
    ) -> GameSession:
        counter["n"] += 1
        n = counter["n"]
        if offset_hours is None:
            offset_hours = n * 24
        return GameSession(
            id=kwargs.pop("id", f"session-{n}"),
            game_id=game_id,
            genre=genre,
            start_time=BASE_TIME + timedelta(hours=offset_hours),
            mood=mood,
            intensity=intensity,
            duration=duration,
            tags=tuple(tags),
            **kwargs,
        )

    return _make


@pytest.fixture
def horror_sessions(make_session) -> List[GameSession]:
    """Five long, high-intensity horror sessions."""
    return [
        make_session(game_id=f"horror-{i}", genre="horror", intensity=8 + (i % 2), duration=90)
        for i in range(5)
    ]


@pytest.fixture
def catalog() -> List[Game]:
    """Ten games spanning the main genres."""
    return [
        Game(id="g01", title="Dread Manor", genres=["horror"], tags=["scary", "atmospheric"], popularity=70),
        Game(id="g02", title="Night Shift", genres=["horror", "survival"], tags=["dark"], popularity=55),
        Game(id="g03", title="Cozy Farm", genres=["simulation", "casual"], tags=["relaxing", "cozy"], popularity=80),
        Game(id="g04", title="Empire Tactics", genres=["strategy"], tags=["turn-based"], popularity=60),
        Game(id="g05", title="Arena Legends", genres=["moba"], tags=["pvp", "competitive"], is_multiplayer=True, popularity=95),
        Game(id="g06", title="Starfall Saga", genres=["rpg", "adventure"], tags=["story", "open world"], popularity=85),
        Game(id="g07", title="Block Builder", genres=["sandbox"], tags=["building", "crafting"], popularity=75),
        Game(id="g08", title="Turbo Rush", genres=["racing"], tags=["fast-paced"], popularity=50),
        Game(id="g09", title="Mind Maze", genres=["puzzle"], tags=["relaxing"], average_playtime=20, popularity=40),
        Game(id="g10", title="Frontline", genres=["shooter"], tags=["pvp", "multiplayer"], is_multiplayer=True, popularity=90),
    ]


@pytest.fixture
def empty_identity() -> PlayerIdentity:
    """A brand-new player with no sessions."""
    return PlayerIdentity(id="identity-new", user_id="new-user", playstyle=default_playstyle())


@pytest.fixture
def horror_identity(make_session) -> PlayerIdentity:
    """A player with eight horror/survival sessions and matching affinities."""
    sessions = [
        make_session(
            game_id=f"past-{i}",
            genre="horror" if i % 2 == 0 else "survival",
            mood="intense",
            intensity=8,
            duration=80,
            tags=("dark",),
            completed=True,
            rating=4.5,
        )
        for i in range(8)
    ]
    return PlayerIdentity(
        id="identity-horror",
        user_id="horror-fan",
        playstyle=default_playstyle(),
        sessions=sessions,
        genre_affinities={"horror": 70.0, "survival": 55.0},
        computed_mood="intense",
    )
