"""
Hybrid Scoring Engine
=====================

Computes final scores for candidate games using a weighted combination of:
1. Collaborative signal (similar players' implicit ratings)
2. Content-based similarity (preference vector vs game genre ⊕ mood vector)
3. Mood match (current mood vs game mood vector)
4. Playstyle match (session length, difficulty, social and trait fit)

Mathematical Formulation:
-------------------------

Final Score = Σ (w_i × S_i) / Σ w_i, clipped to [0, 1]

where:
    S_collab   = Σ sim(u, v) × r_v / Σ sim(u, v)  over positive neighbours v
    S_content  = cos(p_user, genre ⊕ mood)
    S_mood     = cos(onehot(mood) + 0.5 × compatible, mood_vector)
    S_play     = mean(length_fit, difficulty_fit, social_fit, trait_fit)

Each S_i lies in [0, 1], so the final score is monotonic in every signal.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    DEFAULT_WEIGHTS,
    DIFFICULTY_LABELS,
    NEUTRAL_MOOD,
    SESSION_LENGTH_MINUTES,
    SOCIAL_PREFERENCE_SCORES,
    TRAIT_TAG_MAP,
    ModelWeights,
)
from .features import GameFeatureVector, UserBehaviorProfile
from .models import Playstyle
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy
from .utils import clamp
from .vectors import unit_similarity

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5


@dataclass
class ScoreBreakdown:
    """Detailed breakdown of how a game's score was computed."""
    game_id: str
    final_score: float

    # Component scores
    collaborative_score: float = 0.0
    content_score: float = 0.0
    mood_score: float = 0.0
    playstyle_score: float = 0.0

    # Playstyle sub-scores
    session_fit: float = 0.0
    difficulty_fit: float = 0.0
    social_fit: float = 0.0
    trait_fit: float = 0.0

    # Additional details for explanation
    current_mood: str = NEUTRAL_MOOD
    matched_genres: List[str] = field(default_factory=list)
    matched_traits: List[str] = field(default_factory=list)

    def signals(self) -> Dict[str, float]:
        return {
            "collaborative": self.collaborative_score,
            "content_based": self.content_score,
            "mood": self.mood_score,
            "playstyle": self.playstyle_score,
        }


class ScoringEngine:
    """
    Hybrid scoring engine for candidate game ranking.

    Combines collaborative and content-based signals with mood and
    playstyle fit to produce a final recommendation score.
    """

    def __init__(
        self,
        weights: ModelWeights = DEFAULT_WEIGHTS,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
    ):
        """
        Initialize scoring engine with component weights.

        Args:
            weights: Signal weights
            taxonomy: Shared genre/mood table
        """
        self.weights = weights
        self.taxonomy = taxonomy

    def score_candidates(
        self,
        candidates: Sequence[GameFeatureVector],
        profile: UserBehaviorProfile,
        playstyle: Playstyle,
        current_mood: str,
        collaborative_scores: Optional[Dict[str, float]] = None,
    ) -> List[Tuple[GameFeatureVector, float, ScoreBreakdown]]:
        """
        Score all candidate games against the player's profile.

        Args:
            candidates: Candidate game features
            profile: Player behaviour profile
            playstyle: Player playstyle
            current_mood: Mood to match (neutral/unknown scores 0.5)
            collaborative_scores: Precomputed game_id -> collaborative score

        Returns:
            List of (features, score, breakdown), sorted by score then id
        """
        collaborative_scores = collaborative_scores or {}
        preference = profile.preference_vector(self.taxonomy)
        weight_total = self.weights.total()
        results = []

        for candidate in candidates:
            breakdown = ScoreBreakdown(
                game_id=candidate.game_id,
                final_score=0.0,
                current_mood=current_mood,
            )

            breakdown.collaborative_score = clamp(collaborative_scores.get(candidate.game_id, 0.0))
            breakdown.content_score = self._compute_content_similarity(
                candidate, profile, preference, breakdown
            )
            breakdown.mood_score = self.mood_match(candidate, current_mood)
            breakdown.playstyle_score = self._compute_playstyle_match(
                candidate, profile, playstyle, breakdown
            )

            if weight_total > 0:
                final_score = (
                    self.weights.collaborative * breakdown.collaborative_score +
                    self.weights.content_based * breakdown.content_score +
                    self.weights.mood * breakdown.mood_score +
                    self.weights.playstyle * breakdown.playstyle_score
                ) / weight_total
            else:
                final_score = 0.0

            final_score = float(np.clip(final_score, 0, 1))
            breakdown.final_score = final_score
            results.append((candidate, final_score, breakdown))

        results.sort(key=lambda x: (-x[1], x[0].game_id))
        return results

    def _compute_content_similarity(
        self,
        candidate: GameFeatureVector,
        profile: UserBehaviorProfile,
        preference: np.ndarray,
        breakdown: ScoreBreakdown,
    ) -> float:
        """
        S_content = cos(p_user, genre ⊕ mood)
        """
        breakdown.matched_genres = sorted(
            g for g in candidate.genres if profile.preferred_genres.get(g, 0) > 0
        )
        return unit_similarity(preference, candidate.content_vector())

    def mood_match(self, candidate: GameFeatureVector, current_mood: str) -> float:
        """
        S_mood = cos(onehot(mood) + 0.5 × compatible, mood_vector)

        Neutral or unknown moods score 0.5 for every game.
        """
        if not self.taxonomy.is_known_mood(current_mood):
            return NEUTRAL_SCORE
        target = self.taxonomy.mood_target_vector(current_mood)
        return unit_similarity(target, candidate.mood_vector)

    def _compute_playstyle_match(
        self,
        candidate: GameFeatureVector,
        profile: UserBehaviorProfile,
        playstyle: Playstyle,
        breakdown: ScoreBreakdown,
    ) -> float:
        """
        Average of session-length, difficulty, social and trait fit.
        """
        prefs = playstyle.preferences

        preferred_minutes = SESSION_LENGTH_MINUTES.get(prefs.session_length, SESSION_LENGTH_MINUTES["medium"])
        if profile.session_count:
            preferred_minutes = 0.5 * preferred_minutes + 0.5 * profile.average_session_length
        estimate = candidate.playtime_estimate
        breakdown.session_fit = 1.0 - abs(estimate - preferred_minutes) / max(estimate, preferred_minutes, 1.0)

        target_difficulty = DIFFICULTY_LABELS.get(prefs.difficulty, 0.5)
        if profile.session_count:
            target_difficulty = 0.5 * target_difficulty + 0.5 * profile.difficulty_preference
        breakdown.difficulty_fit = 1.0 - abs(candidate.difficulty_score - target_difficulty)

        target_social = SOCIAL_PREFERENCE_SCORES.get(prefs.social_preference, 0.1)
        breakdown.social_fit = 1.0 - abs(candidate.social_score - target_social)

        trait_tags = set()
        for trait in set(playstyle.traits) | set(playstyle.primary.traits):
            trait_tags.update(TRAIT_TAG_MAP.get(trait, []))
        if trait_tags:
            game_terms = set(candidate.tags) | set(candidate.genres)
            matched = sorted(game_terms & trait_tags)
            breakdown.matched_traits = matched
            breakdown.trait_fit = min(1.0, len(matched) / 2.0)
        else:
            breakdown.trait_fit = NEUTRAL_SCORE

        score = np.mean([
            breakdown.session_fit,
            breakdown.difficulty_fit,
            breakdown.social_fit,
            breakdown.trait_fit,
        ])
        return clamp(score)
