"""
Main Recommendation Engine
==========================

Orchestrates the complete recommendation pipeline:
1. Validate catalog entries and build game feature vectors
2. Build the player's behaviour profile and resolve the current mood
3. Apply context filters, then narrow large pools with the vector index
4. Score candidates (collaborative, content, mood, playstyle)
5. Generate reasons and confidence
6. Return a ranked, deterministic list

Players with too little history get the fallback ranking: genre affinity
only, flagged with low confidence. Nothing in this pipeline raises for
missing data.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .candidates import CandidateFilter
from .collaborative import CollaborativeModel, implicit_ratings
from .config import (
    DEFAULT_CANDIDATE_CONFIG,
    DEFAULT_MODEL_CONFIG,
    FALLBACK_CONFIDENCE,
    NUM_RECOMMENDATIONS,
    CandidateConfig,
    ModelConfig,
)
from .explainer import ExplanationGenerator
from .features import GameFeatureBuilder, GameFeatureVector, difficulty_label
from .index import VectorSearchIndex
from .models import Game, GameRecommendation, GameSession, PlayerIdentity, RecommendationContext
from .mood import MoodEngine
from .scoring import ScoreBreakdown, ScoringEngine
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy

logger = logging.getLogger(__name__)

GameInput = Union[Game, Dict[str, Any]]


@dataclass
class RecommendationOutput:
    """Complete recommendation output."""
    user_id: str
    current_mood: str
    is_fallback: bool
    recommendations: List[GameRecommendation] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "userId": self.user_id,
            "currentMood": self.current_mood,
            "isFallback": self.is_fallback,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class RecommendationEngine:
    """
    Main recommendation engine.

    Holds the shared taxonomy, the feature cache, the collaborative
    user-item model and the vector index. Scoring itself is stateless, so
    repeated calls with the same inputs return the same ranking.
    """

    def __init__(
        self,
        config: ModelConfig = DEFAULT_MODEL_CONFIG,
        candidate_config: CandidateConfig = DEFAULT_CANDIDATE_CONFIG,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
        feature_builder: Optional[GameFeatureBuilder] = None,
        mood_engine: Optional[MoodEngine] = None,
        collaborative: Optional[CollaborativeModel] = None,
        index: Optional[VectorSearchIndex] = None,
    ):
        """
        Initialize the recommendation engine.

        Args:
            config: Weights and thresholds
            candidate_config: Context filter and narrowing settings
            taxonomy: Shared genre/mood table
            feature_builder: Feature builder (owns the feature cache)
            mood_engine: Mood engine used when no mood is supplied
            collaborative: User-item model of other players
            index: Vector index used to narrow large catalogs
        """
        self.config = config
        self.taxonomy = taxonomy
        self.feature_builder = feature_builder or GameFeatureBuilder(taxonomy)
        self.mood_engine = mood_engine or MoodEngine(taxonomy)
        self.collaborative = collaborative or CollaborativeModel(config.min_data_points)
        self.index = index if index is not None else VectorSearchIndex()
        # game_id -> feature cache key of the vector held in self.index
        self._indexed_keys: Dict[str, str] = {}
        self.candidate_filter = CandidateFilter(candidate_config, taxonomy)
        self.scoring = ScoringEngine(config.weights, taxonomy)
        self.explainer = ExplanationGenerator(config)

    # ------------------------------------------------------------------
    # Catalog and population
    # ------------------------------------------------------------------

    def register_user(self, user_id: str, sessions: Sequence[GameSession]) -> None:
        """Add (or refresh) another player's history for collaborative scoring."""
        self.collaborative.add_user(user_id, sessions)

    def index_catalog(self, games: Sequence[GameInput]) -> int:
        """
        Rebuild the vector index from a catalog.

        Returns:
            Number of indexed games
        """
        self.index.clear()
        self._indexed_keys = {}
        valid = self._validate_games(games)
        for game, features in zip(valid, self.feature_builder.build_many(valid)):
            self._indexed_keys[game.id] = self._feature_key(game)
            self.index.add_vector(
                features.game_id,
                features.content_vector(),
                {"title": features.title, "genres": list(features.genres)},
            )
        logger.info("Indexed %d catalog games", self.index.size())
        return self.index.size()

    def _validate_games(self, games: Sequence[GameInput]) -> List[Game]:
        valid = []
        seen = set()
        for entry in games:
            if isinstance(entry, Game):
                game = entry
            else:
                try:
                    game = Game.from_dict(entry)
                except (TypeError, ValueError, AttributeError) as e:
                    logger.warning("Skipping malformed catalog entry: %s", e)
                    continue
            if game.id in seen:
                continue
            seen.add(game.id)
            valid.append(game)
        return valid

    def _feature_key(self, game: Game) -> str:
        builder = self.feature_builder
        return builder.cache.make_key(builder.taxonomy.version, game.metadata())

    def _narrowing_index(
        self, games: Sequence[Game], features: Sequence[GameFeatureVector]
    ) -> VectorSearchIndex:
        """
        Index to narrow ``features`` with.

        The catalog index is used only when it holds the current vector of
        every candidate; otherwise a per-call index is built from ``features``.
        """
        keys = {g.id: self._feature_key(g) for g in games}
        if all(self._indexed_keys.get(f.game_id) == keys[f.game_id] for f in features):
            return self.index

        logger.debug("Catalog index is stale for this pool, indexing %d candidates", len(features))
        index = VectorSearchIndex()
        for f in features:
            index.add_vector(f.game_id, f.content_vector(), {"title": f.title})
        return index

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def resolve_mood(
        self, identity: PlayerIdentity, context: Optional[RecommendationContext] = None
    ) -> str:
        """Current mood from the context, the stored identity, or the sessions."""
        if context is not None and self.taxonomy.is_known_mood(context.current_mood):
            return self.taxonomy.normalize_mood(context.current_mood)
        if self.taxonomy.is_known_mood(identity.computed_mood):
            return self.taxonomy.normalize_mood(identity.computed_mood)
        return self.mood_engine.analyze_mood(identity.sessions).mood

    def get_recommendations(
        self,
        identity: PlayerIdentity,
        context: Optional[RecommendationContext] = None,
        candidate_games: Sequence[GameInput] = (),
        count: int = NUM_RECOMMENDATIONS,
    ) -> List[GameRecommendation]:
        """
        Rank candidate games for a player.

        Args:
            identity: Player identity with session history
            context: Optional request filters and mood override
            candidate_games: Catalog entries (Game or raw dicts)
            count: Maximum number of results

        Returns:
            Recommendations sorted by descending score (ties by game id)
        """
        if count <= 0:
            return []

        games = self._validate_games(candidate_games)
        features = self.feature_builder.build_many(games)
        features = self.candidate_filter.filter(features, context, identity.sessions)
        mood = self.resolve_mood(identity, context)

        if len(identity.sessions) < self.config.min_data_points:
            logger.info(
                "User %s has %d sessions, using fallback ranking",
                identity.user_id, len(identity.sessions),
            )
            return self._fallback(identity, features, mood, count)

        profile = self.feature_builder.build_behavior_profile(identity.user_id, identity.sessions)
        query = profile.preference_vector(self.taxonomy)
        if len(features) > self.candidate_filter.config.narrow_threshold:
            index = self._narrowing_index(games, features)
            features = self.candidate_filter.narrow(features, query, index, count)

        collaborative_scores = self.collaborative.score_candidates(
            identity.user_id,
            implicit_ratings(identity.sessions),
            [f.game_id for f in features],
        )
        scored = self.scoring.score_candidates(
            features, profile, identity.playstyle, mood, collaborative_scores
        )

        results = []
        for candidate, score, breakdown in scored[:count]:
            results.append(self._to_recommendation(
                candidate,
                score,
                breakdown,
                confidence=self.explainer.confidence(breakdown, len(identity.sessions)),
            ))

        logger.info(
            "Generated %d recommendations for %s (mood=%s, pool=%d)",
            len(results), identity.user_id, mood, len(features),
        )
        return results

    def recommend(
        self,
        identity: PlayerIdentity,
        candidate_games: Sequence[GameInput],
        context: Optional[RecommendationContext] = None,
        count: int = NUM_RECOMMENDATIONS,
    ) -> RecommendationOutput:
        """Run ``get_recommendations`` and wrap the result for output."""
        recommendations = self.get_recommendations(identity, context, candidate_games, count)
        return RecommendationOutput(
            user_id=identity.user_id,
            current_mood=self.resolve_mood(identity, context),
            is_fallback=len(identity.sessions) < self.config.min_data_points,
            recommendations=recommendations,
        )

    def _fallback(
        self,
        identity: PlayerIdentity,
        features: List[GameFeatureVector],
        mood: str,
        count: int,
    ) -> List[GameRecommendation]:
        """Genre-affinity-only ranking for players with little history."""
        affinities = {
            self.taxonomy.normalize_genre(g): v for g, v in identity.genre_affinities.items()
        }

        def affinity(f: GameFeatureVector) -> float:
            return max((affinities.get(g, 0.0) for g in f.genres), default=0.0) / 100.0

        ranked = sorted(
            features,
            key=lambda f: (-affinity(f), -f.popularity_score, f.game_id),
        )

        results = []
        for candidate in ranked[:count]:
            score = affinity(candidate)
            results.append(GameRecommendation(
                game_id=candidate.game_id,
                title=candidate.title,
                score=score,
                reasons=self.explainer.fallback_reasons(candidate, affinities),
                mood_match=self.scoring.mood_match(candidate, mood),
                playstyle_match=0.0,
                social_match=candidate.social_score,
                estimated_playtime=candidate.playtime_estimate,
                difficulty=difficulty_label(candidate.difficulty_score),
                tags=list(candidate.tags),
                confidence=FALLBACK_CONFIDENCE,
                is_fallback=True,
                breakdown={"genre_affinity": score},
            ))
        return results

    def _to_recommendation(
        self,
        candidate: GameFeatureVector,
        score: float,
        breakdown: ScoreBreakdown,
        confidence: float,
    ) -> GameRecommendation:
        return GameRecommendation(
            game_id=candidate.game_id,
            title=candidate.title,
            score=score,
            reasons=self.explainer.generate_reasons(breakdown),
            mood_match=breakdown.mood_score,
            playstyle_match=breakdown.playstyle_score,
            social_match=breakdown.social_fit,
            estimated_playtime=candidate.playtime_estimate,
            difficulty=difficulty_label(candidate.difficulty_score),
            tags=list(candidate.tags),
            confidence=confidence,
            is_fallback=False,
            breakdown=breakdown.signals(),
        )
