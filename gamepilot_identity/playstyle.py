"""
Playstyle Model
===============

Derives a playstyle archetype, traits and preferences from session history.
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import (
    CREATIVE_TAGS,
    DEFAULT_ARCHETYPE,
    GAMEPLAY_TAGS,
    GRAPHICS_TAGS,
    MULTIPLAYER_TAGS,
    PLAYSTYLE_ARCHETYPES,
    STORY_TAGS,
    STRATEGY_TAGS,
    TRAIT_TAG_MAP,
)
from .models import GameSession, Playstyle, PlaystyleArchetype, PlaystylePreferences

logger = logging.getLogger(__name__)


def archetype(archetype_id: str) -> PlaystyleArchetype:
    """Look up an archetype by id, falling back to the default one."""
    key = archetype_id.lower() if archetype_id else DEFAULT_ARCHETYPE
    entry = PLAYSTYLE_ARCHETYPES.get(key)
    if entry is None:
        logger.debug("Unknown archetype %r, using %s", archetype_id, DEFAULT_ARCHETYPE)
        key = DEFAULT_ARCHETYPE
        entry = PLAYSTYLE_ARCHETYPES[key]
    return PlaystyleArchetype(
        id=key,
        name=str(entry["name"]),
        description=str(entry["description"]),
        traits=list(entry["traits"]),
    )


def default_playstyle() -> Playstyle:
    return Playstyle(primary=archetype(DEFAULT_ARCHETYPE), preferences=PlaystylePreferences())


def _tag_share(sessions: Sequence[GameSession], tags: set) -> float:
    hits = sum(1 for s in sessions if tags & set(s.tags) or s.genre in tags)
    return hits / len(sessions)


class PlaystyleModel:
    """Rule-based playstyle classification."""

    def extract_traits(self, sessions: Sequence[GameSession]) -> Counter:
        """
        Count behavioural traits observed across sessions.

        Args:
            sessions: Session history

        Returns:
            Counter of trait -> number of sessions showing it
        """
        traits: Counter = Counter()
        for session in sessions:
            tags = set(session.tags) | {session.genre}
            observed = set()
            if session.effective_duration > 120:
                observed.add("dedicated")
            if session.intensity >= 8:
                observed.update(("competitive", "skill-focused"))
            if session.intensity <= 3:
                observed.add("relaxed")
            if tags & STORY_TAGS:
                observed.add("curious")
            if session.multiplayer or tags & MULTIPLAYER_TAGS:
                observed.add("cooperative")
            if tags & CREATIVE_TAGS:
                observed.add("imaginative")
            if tags & STRATEGY_TAGS:
                observed.add("analytical")
            for trait, trait_tags in TRAIT_TAG_MAP.items():
                if tags & set(trait_tags):
                    observed.add(trait)
            traits.update(observed)
        return traits

    def match_archetypes(self, traits: Counter) -> List[PlaystyleArchetype]:
        """Rank archetypes by how much of their trait list is observed."""
        scores: Dict[str, float] = {}
        total = sum(traits.values()) or 1
        for key, entry in PLAYSTYLE_ARCHETYPES.items():
            wanted = list(entry["traits"])
            score = sum(traits.get(t, 0) for t in wanted) / total
            coverage = sum(1 for t in wanted if traits.get(t, 0) > 0) / len(wanted)
            scores[key] = 0.6 * score + 0.4 * coverage
        ranked = sorted(scores, key=lambda k: (-scores[k], k))
        return [archetype(k) for k in ranked if scores[k] > 0]

    def compute_preferences(self, sessions: Sequence[GameSession]) -> PlaystylePreferences:
        if not sessions:
            return PlaystylePreferences()

        avg_duration = float(np.mean([s.effective_duration for s in sessions]))
        if avg_duration < 45:
            session_length = "short"
        elif avg_duration < 90:
            session_length = "medium"
        else:
            session_length = "long"

        known = [s for s in sessions if s.completed is not None]
        completion = (sum(1 for s in known if s.completed) / len(known)) if known else 0.6
        if completion > 0.8:
            difficulty = "casual"
        elif completion > 0.5:
            difficulty = "normal"
        elif completion > 0.3:
            difficulty = "hard"
        else:
            difficulty = "expert"

        multiplayer = sum(1 for s in sessions if s.multiplayer) / len(sessions)
        if multiplayer > 0.6:
            social = "competitive"
        elif multiplayer > 0.3:
            social = "cooperative"
        else:
            social = "solo"

        return PlaystylePreferences(
            session_length=session_length,
            difficulty=difficulty,
            social_preference=social,
            story_focus=round(100 * _tag_share(sessions, STORY_TAGS), 1),
            graphics_focus=round(100 * _tag_share(sessions, GRAPHICS_TAGS), 1),
            gameplay_focus=round(100 * _tag_share(sessions, GAMEPLAY_TAGS | {"action", "shooter"}), 1),
        )

    def compute_playstyle(self, sessions: Sequence[GameSession]) -> Playstyle:
        """
        Build a Playstyle from sessions.

        Returns the default casual playstyle when there are no sessions.
        """
        if not sessions:
            return default_playstyle()

        traits = self.extract_traits(sessions)
        ranked = self.match_archetypes(traits)
        primary: Optional[PlaystyleArchetype] = ranked[0] if ranked else archetype(DEFAULT_ARCHETYPE)
        secondary = ranked[1] if len(ranked) > 1 else None

        return Playstyle(
            primary=primary,
            secondary=secondary,
            traits=[t for t, _ in sorted(traits.items(), key=lambda kv: (-kv[1], kv[0]))],
            preferences=self.compute_preferences(sessions),
        )
