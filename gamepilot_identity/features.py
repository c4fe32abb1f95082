"""
Feature Engineering Module
==========================

Turns catalog games and session histories into fixed-length vectors
suitable for similarity computation.

Feature Categories:
    1. Genre Features (multi-hot over the taxonomy genre vocabulary)
    2. Mood Features (genre -> mood table + tag hits, max-normalized)
    3. Difficulty, Social and Playtime estimates (metadata, then genre priors)
    4. Popularity / critic / user scores (scaled to 0-1)

Vectors are deterministic for a given game and taxonomy version, which is
what makes them safe to cache.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import (
    DEFAULT_DIFFICULTY,
    DEFAULT_PLAYTIME,
    DEFAULT_SOCIAL,
    DIFFICULTY_LABELS,
    SOCIAL_TAGS,
)
from .models import Difficulty, Game, GameSession
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy
from .utils import FeatureCache, clamp
from .vectors import build_vector, normalize_max

logger = logging.getLogger(__name__)


def difficulty_score(value: Difficulty) -> Optional[float]:
    """
    Map a difficulty label or number onto 0-1.

    Numbers above 1 are read as a 0-100 scale. Unknown labels give None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return DIFFICULTY_LABELS.get(value.strip().lower())
    number = float(value)
    if number > 1:
        number /= 100.0
    return clamp(number)


def difficulty_label(score: float) -> str:
    if score < 0.3:
        return "Easy"
    if score < 0.7:
        return "Medium"
    return "Hard"


def _unit(score: Optional[float], default: float = 0.5) -> float:
    return default if score is None else clamp(score / 100.0)


@dataclass
class GameFeatureVector:
    """Complete feature representation of a catalog game."""
    game_id: str
    title: str = ""

    genre_vector: np.ndarray = field(default_factory=lambda: np.zeros(0))
    mood_vector: np.ndarray = field(default_factory=lambda: np.zeros(0))

    difficulty_score: float = DEFAULT_DIFFICULTY
    social_score: float = DEFAULT_SOCIAL
    playtime_estimate: float = DEFAULT_PLAYTIME  # minutes

    popularity_score: float = 0.5
    critic_score: float = 0.5
    user_score: float = 0.5

    # Metadata kept for filters and explanations
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    platforms: List[str] = field(default_factory=list)

    def content_vector(self) -> np.ndarray:
        """Genre ⊕ mood vector compared against user preference vectors."""
        return np.concatenate([self.genre_vector, self.mood_vector])


@dataclass
class UserBehaviorProfile:
    """Aggregated view of a player's behaviour across all sessions."""
    user_id: str
    total_playtime: float = 0.0  # minutes
    average_session_length: float = 0.0
    preferred_genres: Dict[str, float] = field(default_factory=dict)
    mood_patterns: Dict[str, float] = field(default_factory=dict)
    difficulty_preference: float = DEFAULT_DIFFICULTY
    social_preference: float = 0.0
    completion_rate: float = 0.0
    last_active: Optional[datetime] = None
    session_count: int = 0
    played_game_ids: List[str] = field(default_factory=list)

    def preference_vector(self, taxonomy: MoodTaxonomy) -> np.ndarray:
        """User preference vector aligned with GameFeatureVector.content_vector."""
        genres = normalize_max(build_vector(self.preferred_genres, taxonomy.genres))
        moods = normalize_max(build_vector(self.mood_patterns, taxonomy.moods))
        return np.concatenate([genres, moods])


class GameFeatureBuilder:
    """
    Builds and caches GameFeatureVectors.

    The cache is owned by the builder; call ``invalidate`` when catalog
    metadata changes. Swapping the taxonomy changes every cache key.
    """

    def __init__(
        self,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
        cache: Optional[FeatureCache] = None,
    ):
        self.taxonomy = taxonomy
        self.cache = cache if cache is not None else FeatureCache()

    def build(self, game: Game) -> GameFeatureVector:
        key = self.cache.make_key(self.taxonomy.version, game.metadata())
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        features = self._build(game)
        self.cache.set(key, features, owner=game.id)
        return features

    def build_many(self, games: Sequence[Game]) -> List[GameFeatureVector]:
        return [self.build(g) for g in games]

    def invalidate(self, game_id: Optional[str] = None) -> int:
        return self.cache.invalidate(game_id)

    def _build(self, game: Game) -> GameFeatureVector:
        genres = [self.taxonomy.normalize_genre(g) for g in game.genres]
        tags = [t.lower() for t in game.tags]

        return GameFeatureVector(
            game_id=game.id,
            title=game.title,
            genre_vector=self.taxonomy.genre_vector(genres),
            mood_vector=self._mood_vector(genres, tags),
            difficulty_score=self._difficulty(game, genres),
            social_score=self._social(game, genres, tags),
            playtime_estimate=self._playtime(game, genres),
            popularity_score=_unit(game.popularity),
            critic_score=_unit(game.critic_score),
            user_score=_unit(game.user_score),
            genres=genres,
            tags=tags,
            platforms=list(game.platforms),
        )

    def _mood_vector(self, genres: List[str], tags: List[str]) -> np.ndarray:
        weights: Dict[str, float] = defaultdict(float)
        for genre in genres:
            for mood, weight in self.taxonomy.genre_mood_weights(genre).items():
                weights[mood] += weight
        for tag in tags:
            for mood in self.taxonomy.tag_mood_ids(tag):
                weights[mood] += 0.5
        return normalize_max(self.taxonomy.mood_vector(weights))

    def _difficulty(self, game: Game, genres: List[str]) -> float:
        explicit = difficulty_score(game.difficulty)
        if explicit is not None:
            return explicit
        prior = self.taxonomy.difficulty_prior(genres)
        return prior if prior is not None else DEFAULT_DIFFICULTY

    def _social(self, game: Game, genres: List[str], tags: List[str]) -> float:
        prior = self.taxonomy.social_prior(genres)
        base = prior if prior is not None else DEFAULT_SOCIAL
        if game.is_multiplayer:
            return max(base, 0.9)
        if SOCIAL_TAGS & set(tags):
            return max(base, 0.7)
        if game.is_multiplayer is False:
            return min(base, DEFAULT_SOCIAL)
        return base

    def _playtime(self, game: Game, genres: List[str]) -> float:
        if game.average_playtime is not None:
            return float(game.average_playtime)
        prior = self.taxonomy.playtime_prior(genres)
        return prior if prior is not None else DEFAULT_PLAYTIME

    # ------------------------------------------------------------------
    # User side
    # ------------------------------------------------------------------

    def build_behavior_profile(
        self, user_id: str, sessions: Sequence[GameSession]
    ) -> UserBehaviorProfile:
        """
        Aggregate a player's full session history.

        Args:
            user_id: Player id
            sessions: Complete session history

        Returns:
            UserBehaviorProfile (empty profile when there are no sessions)
        """
        if not sessions:
            return UserBehaviorProfile(user_id=user_id)

        durations = np.array([s.effective_duration for s in sessions])
        total = float(durations.sum())

        genre_weights: Dict[str, float] = defaultdict(float)
        mood_weights: Dict[str, float] = defaultdict(float)
        for session, minutes in zip(sessions, durations):
            genre_weights[self.taxonomy.normalize_genre(session.genre)] += minutes
            if self.taxonomy.is_known_mood(session.mood):
                mood_weights[self.taxonomy.normalize_mood(session.mood)] += minutes
            for mood, weight in self.taxonomy.genre_mood_weights(session.genre).items():
                mood_weights[mood] += minutes * weight * 0.5

        mood_total = sum(mood_weights.values()) or 1.0

        known = [s for s in sessions if s.completed is not None]
        completion = sum(1 for s in known if s.completed) / len(known) if known else 0.0

        explicit = [difficulty_score(s.difficulty) for s in sessions]
        explicit = [d for d in explicit if d is not None]
        if explicit:
            difficulty = float(np.mean(explicit))
        elif known:
            difficulty = 0.5 * (1.0 - completion) + 0.25
        else:
            difficulty = DEFAULT_DIFFICULTY

        played = []
        for session in sessions:
            if session.game_id not in played:
                played.append(session.game_id)

        return UserBehaviorProfile(
            user_id=user_id,
            total_playtime=total,
            average_session_length=total / len(sessions),
            preferred_genres={g: w / total for g, w in genre_weights.items()},
            mood_patterns={m: w / mood_total for m, w in mood_weights.items()},
            difficulty_preference=clamp(difficulty),
            social_preference=sum(1 for s in sessions if s.multiplayer) / len(sessions),
            completion_rate=completion,
            last_active=max(s.start_time for s in sessions),
            session_count=len(sessions),
            played_game_ids=played,
        )
