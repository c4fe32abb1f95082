"""
Mood Taxonomy
=============

Single, versioned lookup table for genres, moods and their relationships.

One instance is injected into the mood engine, the feature builder, the
scoring engine and the resonance tracker so that the mood a player is
classified into and the mood vectors of candidate games are always built
from the same data.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .config import (
    COMPATIBLE_MOODS,
    GENRE_ALIASES,
    GENRE_DIFFICULTY,
    GENRE_MOOD_WEIGHTS,
    GENRE_PLAYTIME,
    GENRE_SOCIAL,
    GENRE_VOCABULARY,
    MOOD_IDS,
    MOOD_SESSION_LENGTHS,
    NEUTRAL_MOOD,
    TAG_MOOD_MAP,
    TAXONOMY_VERSION,
)

logger = logging.getLogger(__name__)


class MoodTaxonomy:
    """
    Genre/mood vocabulary with weighted genre -> mood and tag -> mood maps.

    Every lookup is total: unknown genres, tags and moods resolve to an
    empty weight map or a neutral default instead of raising.
    """

    def __init__(
        self,
        version: str = TAXONOMY_VERSION,
        moods: Optional[List[str]] = None,
        genres: Optional[List[str]] = None,
        genre_moods: Optional[Dict[str, Dict[str, float]]] = None,
        tag_moods: Optional[Dict[str, List[str]]] = None,
        aliases: Optional[Dict[str, str]] = None,
        compatible: Optional[Dict[str, List[str]]] = None,
        session_lengths: Optional[Dict[str, Tuple[float, float, float]]] = None,
    ):
        self.version = version
        self.moods = list(moods if moods is not None else MOOD_IDS)
        self.genres = list(genres if genres is not None else GENRE_VOCABULARY)
        self.genre_moods = genre_moods if genre_moods is not None else GENRE_MOOD_WEIGHTS
        self.tag_moods = tag_moods if tag_moods is not None else TAG_MOOD_MAP
        self.aliases = aliases if aliases is not None else GENRE_ALIASES
        self.compatible = compatible if compatible is not None else COMPATIBLE_MOODS
        self.session_lengths = (
            session_lengths if session_lengths is not None else MOOD_SESSION_LENGTHS
        )

        self._mood_index = {m: i for i, m in enumerate(self.moods)}
        self._genre_index = {g: i for i, g in enumerate(self.genres)}

    @property
    def mood_dim(self) -> int:
        return len(self.moods)

    @property
    def genre_dim(self) -> int:
        return len(self.genres)

    def normalize_genre(self, genre: str) -> str:
        """Lowercase a genre name and resolve known aliases."""
        key = (genre or "").strip().lower()
        return self.aliases.get(key, key)

    def normalize_mood(self, mood: Optional[str]) -> str:
        key = (mood or "").strip().lower().replace("_", "-")
        return key if key in self._mood_index else NEUTRAL_MOOD

    def is_known_mood(self, mood: Optional[str]) -> bool:
        return self.normalize_mood(mood) != NEUTRAL_MOOD

    def mood_order(self, mood: str) -> int:
        """Position of a mood in the vocabulary (used for tie-breaking)."""
        return self._mood_index.get(mood, len(self.moods))

    def genre_mood_weights(self, genre: str) -> Dict[str, float]:
        weights = self.genre_moods.get(self.normalize_genre(genre))
        if weights is None:
            logger.debug("No mood mapping for genre %r", genre)
            return {}
        return weights

    def tag_mood_ids(self, tag: str) -> List[str]:
        return self.tag_moods.get((tag or "").strip().lower(), [])

    def compatible_moods(self, mood: str) -> List[str]:
        return self.compatible.get(mood, [])

    def alignment(self, predicted: str, actual: str) -> float:
        """
        Alignment between a predicted and an actual mood.

        Returns:
            1.0 on an exact match, 0.5 when the moods are compatible,
            0.0 otherwise
        """
        predicted = self.normalize_mood(predicted)
        actual = self.normalize_mood(actual)
        if predicted == actual:
            return 1.0
        if actual in self.compatible_moods(predicted) or predicted in self.compatible_moods(actual):
            return 0.5
        return 0.0

    def session_length(self, mood: str) -> Optional[Tuple[float, float, float]]:
        return self.session_lengths.get(self.normalize_mood(mood))

    # ------------------------------------------------------------------
    # Vector helpers
    # ------------------------------------------------------------------

    def genre_vector(self, genres: Iterable[str]) -> np.ndarray:
        """Multi-hot encoding of genres against the genre vocabulary."""
        vec = np.zeros(self.genre_dim)
        for genre in genres:
            idx = self._genre_index.get(self.normalize_genre(genre))
            if idx is not None:
                vec[idx] = 1.0
        return vec

    def mood_vector(self, weights: Dict[str, float]) -> np.ndarray:
        vec = np.zeros(self.mood_dim)
        for mood, weight in weights.items():
            idx = self._mood_index.get(mood)
            if idx is not None:
                vec[idx] += weight
        return vec

    def mood_target_vector(self, mood: str) -> np.ndarray:
        """
        One-hot vector for a mood with compatible moods at half weight.

        Unknown moods produce a zero vector.
        """
        vec = np.zeros(self.mood_dim)
        mood = self.normalize_mood(mood)
        if mood == NEUTRAL_MOOD:
            return vec
        vec[self._mood_index[mood]] = 1.0
        for other in self.compatible_moods(mood):
            idx = self._mood_index.get(other)
            if idx is not None:
                vec[idx] = 0.5
        return vec

    # ------------------------------------------------------------------
    # Genre priors
    # ------------------------------------------------------------------

    def difficulty_prior(self, genres: Iterable[str]) -> Optional[float]:
        values = [GENRE_DIFFICULTY[g] for g in map(self.normalize_genre, genres) if g in GENRE_DIFFICULTY]
        return max(values) if values else None

    def social_prior(self, genres: Iterable[str]) -> Optional[float]:
        values = [GENRE_SOCIAL[g] for g in map(self.normalize_genre, genres) if g in GENRE_SOCIAL]
        return float(np.mean(values)) if values else None

    def playtime_prior(self, genres: Iterable[str]) -> Optional[float]:
        values = [GENRE_PLAYTIME[g] for g in map(self.normalize_genre, genres) if g in GENRE_PLAYTIME]
        return float(np.mean(values)) if values else None


DEFAULT_TAXONOMY = MoodTaxonomy()
