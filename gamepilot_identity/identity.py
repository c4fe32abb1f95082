"""
Identity Engine
===============

Builds and maintains a PlayerIdentity from the player's session history:
genre affinities, playstyle, mood preferences and the current computed mood.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import replace
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import DEFAULT_IDENTITY_OPTIONS, IDENTITY_SCHEMA_VERSION, NEUTRAL_MOOD, IdentityOptions
from .models import GameSession, PlayerIdentity, UserMood
from .mood import MoodEngine
from .playstyle import PlaystyleModel, default_playstyle
from .utils import clamp

logger = logging.getLogger(__name__)


class IdentityEngine:
    """Computes player identities from sessions."""

    def __init__(
        self,
        mood_engine: Optional[MoodEngine] = None,
        playstyle_model: Optional[PlaystyleModel] = None,
    ):
        self.mood_engine = mood_engine or MoodEngine()
        self.playstyle_model = playstyle_model or PlaystyleModel()

    def _usable_sessions(
        self, sessions: Sequence[GameSession], options: IdentityOptions
    ) -> List[GameSession]:
        ordered = sorted(sessions, key=lambda s: s.start_time)
        if not options.include_negative_sessions:
            ordered = [
                s for s in ordered
                if s.rating is None or s.rating > options.negative_rating
            ]
        return ordered

    def compute_identity(
        self,
        user_id: str,
        sessions: Sequence[GameSession],
        options: Optional[IdentityOptions] = None,
        identity_id: Optional[str] = None,
    ) -> PlayerIdentity:
        """
        Compute a fresh identity.

        Args:
            user_id: Owner of the sessions
            sessions: Full session history
            options: Decay window, minimum sessions and filtering
            identity_id: Keep an existing identity id

        Returns:
            PlayerIdentity; the default identity when there are fewer
            sessions than ``options.min_sessions_for_computation``
        """
        options = options or DEFAULT_IDENTITY_OPTIONS
        usable = self._usable_sessions(sessions, options)
        identity_id = identity_id or f"identity-{user_id}"
        last_updated = usable[-1].start_time if usable else None

        if len(usable) < options.min_sessions_for_computation:
            logger.debug(
                "Only %d sessions for %s, returning default identity", len(usable), user_id
            )
            return PlayerIdentity(
                id=identity_id,
                user_id=user_id,
                playstyle=default_playstyle(),
                sessions=usable,
                last_updated=last_updated,
            )

        analysis = self.mood_engine.analyze_mood(usable)
        return PlayerIdentity(
            id=identity_id,
            user_id=user_id,
            playstyle=self.playstyle_model.compute_playstyle(usable),
            moods=self.compute_mood_preferences(usable, options),
            sessions=usable,
            genre_affinities=self.compute_genre_affinities(usable),
            computed_mood=None if analysis.mood == NEUTRAL_MOOD else analysis.mood,
            last_updated=last_updated,
            version=IDENTITY_SCHEMA_VERSION,
        )

    def update_identity(
        self,
        identity: PlayerIdentity,
        new_session: GameSession,
        options: Optional[IdentityOptions] = None,
    ) -> PlayerIdentity:
        """
        Fold a new session into an identity.

        Mood preferences are nudged from their current values rather than
        recomputed, so explicit user choices decay gradually instead of
        being overwritten.
        """
        options = options or DEFAULT_IDENTITY_OPTIONS
        sessions = [s for s in identity.sessions if s.id != new_session.id] + [new_session]
        recomputed = self.compute_identity(
            identity.user_id, sessions, options, identity_id=identity.id
        )
        if len(recomputed.sessions) < options.min_sessions_for_computation:
            return replace(
                identity,
                sessions=recomputed.sessions,
                last_updated=recomputed.last_updated,
            )

        moods = self.mood_engine.update_mood_preferences(identity.moods, recomputed.sessions)
        return replace(
            recomputed,
            moods=moods,
            version=max(identity.version, IDENTITY_SCHEMA_VERSION),
        )

    def update_mood_preference(
        self, identity: PlayerIdentity, mood_id: str, preference: float
    ) -> PlayerIdentity:
        """Explicitly set how much a player likes a mood (0-100)."""
        mood_id = mood_id.lower()
        preference = clamp(preference, 0.0, 100.0)
        moods = []
        found = False
        for mood in identity.moods:
            if mood.id == mood_id:
                mood = replace(mood, preference=preference)
                found = True
            moods.append(mood)
        if not found:
            moods.append(UserMood(id=mood_id, preference=preference))
        return replace(identity, moods=moods)

    def compute_mood_preferences(
        self,
        sessions: Sequence[GameSession],
        options: Optional[IdentityOptions] = None,
    ) -> List[UserMood]:
        """
        Mood preferences from the sessions inside the decay window.

        Preference is the recency-weighted vote total scaled so the
        strongest mood sits at 100.
        """
        options = options or DEFAULT_IDENTITY_OPTIONS
        ordered = sorted(sessions, key=lambda s: s.start_time)
        if not ordered:
            return []

        cutoff = ordered[-1].start_time - timedelta(days=options.mood_decay_days)
        recent = [s for s in ordered if s.start_time >= cutoff]

        contributions = self.mood_engine.contributions(recent)
        totals = self.mood_engine.aggregate(contributions)
        if not totals:
            return []
        peak = max(totals.values())

        taxonomy = self.mood_engine.taxonomy
        frequency: Counter = Counter()
        last_seen = {}
        genres: Dict[str, List[str]] = defaultdict(list)
        tags: Dict[str, Counter] = defaultdict(Counter)
        for session, _, votes in contributions:
            mood = taxonomy.normalize_mood(session.mood)
            if mood != NEUTRAL_MOOD:
                frequency[mood] += 1
                last_seen[mood] = session.start_time
            for voted in votes:
                genre = taxonomy.normalize_genre(session.genre)
                if genre not in genres[voted]:
                    genres[voted].append(genre)
                tags[voted].update(session.tags)

        moods = []
        for mood in sorted(totals, key=taxonomy.mood_order):
            moods.append(UserMood(
                id=mood,
                preference=round(100.0 * totals[mood] / peak, 2),
                frequency=frequency.get(mood, 0),
                last_experienced=last_seen.get(mood),
                triggers=[t for t, _ in tags[mood].most_common(5)],
                associated_genres=genres[mood],
            ))
        return moods

    def compute_genre_affinities(self, sessions: Sequence[GameSession]) -> Dict[str, float]:
        """
        Genre affinity on a 0-100 scale.

        affinity = share_of_sessions x 100 + (avg_rating - 3) x 10
        """
        if not sessions:
            return {}
        counts: Counter = Counter()
        ratings: Dict[str, List[float]] = defaultdict(list)
        for session in sessions:
            genre = self.mood_engine.taxonomy.normalize_genre(session.genre)
            counts[genre] += 1
            if session.rating is not None:
                ratings[genre].append(session.rating)

        total = len(sessions)
        affinities = {}
        for genre, count in counts.items():
            score = count / total * 100.0
            if ratings[genre]:
                score += (float(np.mean(ratings[genre])) - 3.0) * 10.0
            affinities[genre] = round(clamp(score, 0.0, 100.0), 2)
        return affinities
