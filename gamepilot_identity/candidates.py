"""
Candidate Filtering Module
==========================

Narrows the candidate catalog before full scoring:
1. Context filters (recently played, genres, platform, social context, time)
2. Vector-index narrowing for large catalogs

Narrowing is an optimization only: every surviving candidate is still
scored with the full weighted formula.
"""

import logging
from typing import Iterable, List, Optional, Set

import numpy as np

from .config import DEFAULT_CANDIDATE_CONFIG, CandidateConfig
from .features import GameFeatureVector
from .index import VectorSearchIndex
from .models import GameSession, RecommendationContext
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy

logger = logging.getLogger(__name__)

SOLO_CONTEXTS = {"solo", "single", "singleplayer", "single-player"}
GROUP_CONTEXTS = {"co-op", "coop", "cooperative", "pvp", "competitive", "multiplayer", "social"}


class CandidateFilter:
    """
    Applies request context to a list of candidate feature vectors.

    Strategy:
        1. Drop games played in the last ``recent_window`` sessions
        2. Keep games sharing a requested genre
        3. Keep games on the requested platform (unlisted platforms pass)
        4. Keep games matching the social context
        5. Keep games that fit in the available time
    """

    def __init__(
        self,
        config: CandidateConfig = DEFAULT_CANDIDATE_CONFIG,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
    ):
        self.config = config
        self.taxonomy = taxonomy

    def recently_played(self, sessions: Iterable[GameSession]) -> Set[str]:
        ordered = sorted(sessions, key=lambda s: s.start_time)
        return {s.game_id for s in ordered[-self.config.recent_window:]}

    def filter(
        self,
        candidates: List[GameFeatureVector],
        context: Optional[RecommendationContext],
        sessions: Iterable[GameSession] = (),
    ) -> List[GameFeatureVector]:
        """
        Apply context filters.

        Args:
            candidates: Candidate game features
            context: Request context (no filtering when None)
            sessions: Player session history, for "recently played"

        Returns:
            Candidates that pass every requested filter, order preserved
        """
        if context is None:
            return list(candidates)

        kept = list(candidates)
        before = len(kept)

        if context.exclude_recently_played:
            recent = self.recently_played(sessions)
            kept = [c for c in kept if c.game_id not in recent]

        if context.genres:
            wanted = {self.taxonomy.normalize_genre(g) for g in context.genres}
            kept = [c for c in kept if wanted & set(c.genres)]

        if context.platform:
            platform = context.platform.lower()
            kept = [c for c in kept if not c.platforms or platform in c.platforms]

        if context.social_context:
            kept = [c for c in kept if self._social_ok(c, context.social_context)]

        if context.time_available is not None and context.time_available > 0:
            limit = context.time_available * self.config.time_slack
            kept = [c for c in kept if c.playtime_estimate <= limit]

        logger.debug("Context filters kept %d of %d candidates", len(kept), before)
        return kept

    def _social_ok(self, candidate: GameFeatureVector, social_context: str) -> bool:
        mode = social_context.strip().lower()
        if mode in SOLO_CONTEXTS:
            return candidate.social_score < self.config.solo_max_social
        if mode in GROUP_CONTEXTS:
            return candidate.social_score >= self.config.group_min_social
        logger.debug("Unknown social context %r ignored", social_context)
        return True

    def narrow(
        self,
        candidates: List[GameFeatureVector],
        query: np.ndarray,
        index: VectorSearchIndex,
        count: int,
    ) -> List[GameFeatureVector]:
        """
        Keep the candidates nearest to ``query`` when the pool is large.

        Candidates missing from the index are kept so narrowing never
        silently drops a game.
        """
        if len(candidates) <= self.config.narrow_threshold or not np.any(query):
            return candidates

        top_k = max(count * self.config.narrow_factor, self.config.narrow_min)
        ids = {c.game_id for c in candidates}
        hits = index.search(query, top_k=top_k, allowed_ids=ids)
        keep = {h.id for h in hits}
        keep.update(i for i in ids if i not in index)

        narrowed = [c for c in candidates if c.game_id in keep]
        logger.debug("Index narrowed %d candidates to %d", len(candidates), len(narrowed))
        return narrowed
