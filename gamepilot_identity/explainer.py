"""
Explanation Generator Module
============================

Turns score breakdowns into the short ``reasons`` shown next to each
recommendation, plus a confidence estimate.

A signal earns a reason when it exceeds the reason threshold; reasons are
ordered by signal strength and capped at three.
"""

from typing import Dict, List

import numpy as np

from .config import DEFAULT_MODEL_CONFIG, ModelConfig
from .features import GameFeatureVector
from .scoring import ScoreBreakdown
from .utils import clamp

DEFAULT_REASON = "Recommended for you"


class ExplanationGenerator:
    """Generates human-readable reasons for recommendations."""

    def __init__(self, config: ModelConfig = DEFAULT_MODEL_CONFIG):
        self.config = config

    def generate_reasons(self, breakdown: ScoreBreakdown) -> List[str]:
        """
        List the signals that exceeded the reason threshold.

        Args:
            breakdown: Score breakdown from the scoring engine

        Returns:
            Up to ``max_reasons`` reasons, strongest first
        """
        templates = {
            "collaborative": lambda: "Players with similar tastes enjoyed this",
            "content_based": lambda: self._genre_reason(breakdown),
            "mood": lambda: f"Perfect for your {breakdown.current_mood} mood",
            "playstyle": lambda: "Fits your playstyle",
        }
        signals = breakdown.signals()
        strong = [
            name for name in sorted(signals, key=lambda k: -signals[k])
            if signals[name] > self.config.reason_threshold
        ]
        reasons = [templates[name]() for name in strong[:self.config.max_reasons]]
        return reasons or [DEFAULT_REASON]

    def _genre_reason(self, breakdown: ScoreBreakdown) -> str:
        if breakdown.matched_genres:
            return f"Matches your favorite genres ({', '.join(breakdown.matched_genres[:2])})"
        return "Matches your favorite genres"

    def fallback_reasons(
        self,
        game: GameFeatureVector,
        genre_affinities: Dict[str, float],
    ) -> List[str]:
        """Reasons for the genre-affinity-only ranking."""
        liked = sorted(
            (g for g in game.genres if genre_affinities.get(g, 0) > 0),
            key=lambda g: -genre_affinities[g],
        )
        reasons = []
        if liked:
            reasons.append(f"You enjoy {liked[0]} games")
        if game.popularity_score >= 0.7:
            reasons.append("Popular with players")
        reasons.append("Play a few more sessions for personalized picks")
        return reasons[:self.config.max_reasons]

    def confidence(self, breakdown: ScoreBreakdown, session_count: int) -> float:
        """
        Confidence in a normal-path recommendation.

        Blends how much history backs the profile with how much the four
        signals agree with each other.
        """
        history = min(1.0, session_count / float(self.config.confidence_sessions))
        values = list(breakdown.signals().values())
        agreement = 1.0 - float(np.std(values)) * 2.0
        return clamp(0.7 * history + 0.3 * clamp(agreement))
