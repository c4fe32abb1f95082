"""
Mood Engine
===========

Infers a player's current mood from their recent play sessions.

Each session in the trailing window votes for mood candidates:

    votes(s) = explicit mood      x 1.0
             + genre -> mood table x 0.8
             + tag -> mood lookups x 0.4
             + intensity bucket    x 0.8   (>= 7 intense, <= 3 relaxing)

and every vote is scaled by

    w(s) = decay^age(s) x (0.5 + min(duration, 240) / 120)

where age is 0 for the newest session. The mood with the largest total
wins; confidence is its share of all votes.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_MOOD_CONFIG, NEUTRAL_MOOD, MoodConfig
from .models import GameSession, UserMood
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy
from .utils import clamp

logger = logging.getLogger(__name__)

TIE_TOLERANCE = 1e-9


@dataclass
class MoodAnalysis:
    """Result of classifying a session window."""
    mood: str
    confidence: float  # 0-1
    intensity: float  # 0-1
    triggers: List[str] = field(default_factory=list)
    reasoning: List[str] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "mood": self.mood,
            "confidence": round(self.confidence, 4),
            "intensity": round(self.intensity, 4),
            "triggers": list(self.triggers),
            "reasoning": list(self.reasoning),
            "scores": {m: round(s, 4) for m, s in self.scores.items()},
        }


@dataclass
class MoodForecast:
    """
    Predicted mood for the next session.

    ``confidence`` is on the same 0-1 scale as ``MoodAnalysis.confidence``
    and is what the resonance tracker compares against engagement.
    """
    predicted_mood: str
    confidence: float
    expected_duration: Optional[float] = None  # minutes
    alternatives: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "predictedMood": self.predicted_mood,
            "confidence": round(self.confidence, 4),
            "expectedDuration": self.expected_duration,
            "alternatives": {m: round(s, 4) for m, s in self.alternatives.items()},
        }


# (session, weight, weighted votes per mood)
Contribution = Tuple[GameSession, float, Dict[str, float]]


class MoodEngine:
    """
    Recency- and duration-weighted mood voting over a session window.

    The engine holds no per-user state; every method is a pure function
    of its arguments.
    """

    def __init__(
        self,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
        config: MoodConfig = DEFAULT_MOOD_CONFIG,
    ):
        self.taxonomy = taxonomy
        self.config = config

    # ------------------------------------------------------------------
    # Windowing and voting
    # ------------------------------------------------------------------

    def window(self, sessions: Sequence[GameSession]) -> List[GameSession]:
        """
        Select the trailing window of sessions, oldest first.

        The time window is anchored at the newest session rather than the
        wall clock so results only depend on the input.
        """
        ordered = sorted(sessions, key=lambda s: s.start_time)
        if self.config.window_size > 0:
            ordered = ordered[-self.config.window_size:]
        if ordered and self.config.window_days > 0:
            cutoff = ordered[-1].start_time - timedelta(days=self.config.window_days)
            ordered = [s for s in ordered if s.start_time >= cutoff]
        return ordered

    def session_votes(self, session: GameSession) -> Dict[str, float]:
        """Unweighted mood votes cast by a single session."""
        cfg = self.config
        votes: Dict[str, float] = defaultdict(float)

        if self.taxonomy.is_known_mood(session.mood):
            votes[self.taxonomy.normalize_mood(session.mood)] += cfg.explicit_mood_weight

        for mood, weight in self.taxonomy.genre_mood_weights(session.genre).items():
            votes[mood] += weight * cfg.genre_vote_weight

        for tag in session.tags:
            for mood in self.taxonomy.tag_mood_ids(tag):
                votes[mood] += cfg.tag_vote_weight

        if session.intensity >= cfg.high_intensity:
            votes["intense"] += cfg.intensity_vote_weight
        elif session.intensity <= cfg.low_intensity:
            votes["relaxing"] += cfg.intensity_vote_weight

        return dict(votes)

    def session_weight(self, session: GameSession, age: int) -> float:
        cfg = self.config
        recency = cfg.recency_decay ** age
        duration = min(session.effective_duration, cfg.duration_cap)
        return recency * (cfg.duration_base + duration / cfg.duration_scale)

    def contributions(self, window: Sequence[GameSession]) -> List[Contribution]:
        results = []
        newest = len(window) - 1
        for i, session in enumerate(window):
            weight = self.session_weight(session, newest - i)
            votes = {m: v * weight for m, v in self.session_votes(session).items()}
            results.append((session, weight, votes))
        return results

    @staticmethod
    def aggregate(contributions: Sequence[Contribution]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for _, _, votes in contributions:
            for mood, value in votes.items():
                totals[mood] += value
        return dict(totals)

    def _pick_winner(self, totals: Dict[str, float], window: Sequence[GameSession]) -> str:
        best = max(totals.values())
        tied = [m for m, v in totals.items() if best - v <= TIE_TOLERANCE]
        if len(tied) == 1:
            return tied[0]

        for session in reversed(window):
            mood = self.taxonomy.normalize_mood(session.mood)
            if mood in tied:
                return mood
        return min(tied, key=self.taxonomy.mood_order)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze_mood(self, sessions: Sequence[GameSession]) -> MoodAnalysis:
        """
        Classify the player's current mood.

        Args:
            sessions: Session history in any order

        Returns:
            MoodAnalysis; ``neutral`` with confidence 0 when there is
            nothing to vote on
        """
        window = self.window(sessions)
        contributions = self.contributions(window)
        totals = self.aggregate(contributions)
        total = sum(totals.values())

        if not window or total <= 0:
            logger.debug("No mood votes in window of %d sessions", len(window))
            return MoodAnalysis(
                mood=NEUTRAL_MOOD,
                confidence=0.0,
                intensity=0.0,
                reasoning=["Not enough session history to infer a mood"],
            )

        winner = self._pick_winner(totals, window)
        confidence = clamp(totals[winner] / total)

        weight_sum = sum(w for _, w, _ in contributions)
        intensity = sum(w * s.intensity for s, w, _ in contributions) / weight_sum / 10.0

        trigger_scores: Dict[str, float] = defaultdict(float)
        reasoning = []
        for session, _, votes in reversed(contributions):
            share = votes.get(winner, 0.0)
            if share <= 0:
                continue
            for tag in session.tags:
                trigger_scores[tag] += share
            trigger_scores[self.taxonomy.normalize_genre(session.genre)] += share
            reasoning.append(
                f"{session.game_id} ({session.genre}, {session.effective_duration:.0f} min, "
                f"intensity {session.intensity}) added {share:.2f} to {winner}"
            )

        triggers = sorted(trigger_scores, key=lambda t: (-trigger_scores[t], t))
        return MoodAnalysis(
            mood=winner,
            confidence=confidence,
            intensity=clamp(intensity),
            triggers=triggers[:self.config.max_triggers],
            reasoning=reasoning,
            scores={m: totals[m] for m in sorted(totals, key=self.taxonomy.mood_order)},
        )

    def update_mood_preferences(
        self,
        user_moods: Sequence[UserMood],
        sessions: Sequence[GameSession],
    ) -> List[UserMood]:
        """
        Nudge mood preferences toward the recency-weighted mood mix.

        The input is never mutated; updated copies are returned, with one
        entry per mood id.
        """
        window = self.window(sessions)
        totals = self.aggregate(self.contributions(window))
        updated = [
            replace(m, triggers=list(m.triggers), associated_genres=list(m.associated_genres))
            for m in user_moods
        ]
        if not totals:
            return updated

        by_id = {m.id: m for m in updated}
        peak = max(totals.values())
        for mood in sorted(totals, key=self.taxonomy.mood_order):
            entry = by_id.get(mood)
            if entry is None:
                entry = UserMood(id=mood)
                by_id[mood] = entry
                updated.append(entry)
            target = 100.0 * totals[mood] / peak
            entry.preference = clamp(
                entry.preference + self.config.preference_rate * (target - entry.preference),
                0.0,
                100.0,
            )

        newest = window[-1]
        newest_mood = self.taxonomy.normalize_mood(newest.mood)
        if newest_mood in by_id:
            entry = by_id[newest_mood]
            entry.frequency += 1
            entry.last_experienced = newest.start_time
            genre = self.taxonomy.normalize_genre(newest.genre)
            if genre and genre not in entry.associated_genres:
                entry.associated_genres.append(genre)
            for tag in newest.tags:
                if tag not in entry.triggers:
                    entry.triggers.append(tag)

        return updated

    def forecast_mood(self, sessions: Sequence[GameSession]) -> MoodForecast:
        """Predict the mood and length of the next session."""
        analysis = self.analyze_mood(sessions)
        window = self.window(sessions)
        if analysis.mood == NEUTRAL_MOOD:
            return MoodForecast(predicted_mood=NEUTRAL_MOOD, confidence=0.0)

        contributions = self.contributions(window)
        matching = [
            (s, w) for s, w, _ in contributions
            if self.taxonomy.normalize_mood(s.mood) == analysis.mood
        ] or [(s, w) for s, w, _ in contributions]
        weight_sum = sum(w for _, w in matching)
        expected = sum(s.effective_duration * w for s, w in matching) / weight_sum

        total = sum(analysis.scores.values())
        others = sorted(
            (m for m in analysis.scores if m != analysis.mood),
            key=lambda m: (-analysis.scores[m], self.taxonomy.mood_order(m)),
        )
        alternatives = {m: analysis.scores[m] / total for m in others[:2]}

        return MoodForecast(
            predicted_mood=analysis.mood,
            confidence=analysis.confidence,
            expected_duration=round(expected, 1),
            alternatives=alternatives,
        )
