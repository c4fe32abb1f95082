"""
Dynamic Difficulty Assessment
=============================

Per-user difficulty profiles that learn from session performance and keep
players inside their flow-state zone: the band of difficulty that is hard
enough to stay engaging without becoming frustrating.

All skill, difficulty and performance values are on a 0-1 scale.

    performance = 0.5 + 0.2·completed + 0.1·(rating - 3) + 0.02·(intensity - 5)
                  + metric adjustments                                   (clamped)
    skill'      = skill + α (performance - skill),
    α           = base_rate + adaptability × adaptive_rate
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.stats import linregress

from .config import DEFAULT_DIFFICULTY_CONFIG, DIFFICULTY_LABELS, MAX_PROFILES, DifficultyConfig
from .features import difficulty_score
from .models import Game, GameSession
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy
from .utils import ProfileStore, clamp

logger = logging.getLogger(__name__)

GameLike = Union[Game, Dict[str, Any], None]


@dataclass
class FlowStateZone:
    min: float
    max: float
    optimal: float


@dataclass
class LearningPoint:
    game_id: str
    timestamp: datetime
    difficulty: float
    performance: float
    time_to_master: float = 0.0  # minutes
    attempts: int = 1
    success: bool = False


@dataclass
class DifficultyProfile:
    user_id: str
    skill_level: float = 0.5
    adaptability_rate: float = 0.5
    preferred_difficulty: float = 0.55
    frustration_threshold: float = 0.3
    flow_state_zone: FlowStateZone = field(default_factory=lambda: FlowStateZone(0.4, 0.7, 0.55))
    genre_difficulties: Dict[str, float] = field(default_factory=dict)
    learning_curve: List[LearningPoint] = field(default_factory=list)
    skill_history: List[Tuple[datetime, float]] = field(default_factory=list)
    recent_sessions: Deque[GameSession] = field(default_factory=lambda: deque(maxlen=50))


@dataclass
class DifficultyFactors:
    recent_performance: float
    consistency: float
    improvement: float  # -1..1
    genre_familiarity: float


@dataclass
class DifficultyMetrics:
    current_skill: float
    recommended_difficulty: float
    adjustment_strategy: str  # increase | decrease | maintain
    adjustment_reason: str
    confidence: float
    factors: DifficultyFactors


@dataclass
class AccessibilitySettings:
    color_blind_mode: bool = False
    subtitles: bool = True
    camera_shake: float = 0.5
    game_speed: float = 1.0


@dataclass
class DifficultySettings:
    """Concrete game settings. Multipliers are relative to the game default (1.0)."""
    base_difficulty: float = 0.5
    aim_assist: float = 0.25
    enemy_health: float = 1.0
    resource_abundance: float = 1.0
    time_limits: float = 1.0
    hint_frequency: float = 0.5
    accessibility: AccessibilitySettings = field(default_factory=AccessibilitySettings)


@dataclass
class AdaptiveRecommendation:
    game_id: str
    recommended_difficulty: str
    difficulty_settings: DifficultySettings
    reasoning: List[str]
    expected_performance: float
    adjustment_strategy: str
    confidence: float


@dataclass
class TimeOfDayPattern:
    hour: int
    average_performance: float
    optimal_difficulty: float
    session_count: int


@dataclass
class DifficultyInsights:
    skill_progression: List[Tuple[datetime, float]] = field(default_factory=list)
    optimal_difficulty_times: List[TimeOfDayPattern] = field(default_factory=list)
    improvement_rate: float = 0.0
    consistency_score: float = 0.5
    recommendations: List[str] = field(default_factory=list)


def difficulty_level(value: float) -> str:
    if value < 0.35:
        return "easy"
    if value < 0.65:
        return "medium"
    if value < 0.85:
        return "hard"
    return "expert"


def _consistency(values: Sequence[float]) -> float:
    if not values:
        return 0.5
    return clamp(1.0 - 4.0 * float(np.var(values)))


class DifficultyAssessor:
    """
    Difficulty state machine keyed by user id.

    Profiles live in a bounded ProfileStore; pass ``on_evict`` through a
    custom store to persist profiles before they are dropped.
    """

    def __init__(
        self,
        config: DifficultyConfig = DEFAULT_DIFFICULTY_CONFIG,
        store: Optional[ProfileStore] = None,
        taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
    ):
        self.config = config
        self.store: ProfileStore = store if store is not None else ProfileStore(MAX_PROFILES)
        self.taxonomy = taxonomy

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def create_profile(self, user_id: str) -> DifficultyProfile:
        cfg = self.config
        low, high, optimal = cfg.default_flow_zone
        return DifficultyProfile(
            user_id=user_id,
            skill_level=cfg.default_skill,
            adaptability_rate=cfg.default_adaptability,
            preferred_difficulty=optimal,
            frustration_threshold=cfg.default_frustration,
            flow_state_zone=FlowStateZone(low, high, optimal),
            recent_sessions=deque(maxlen=cfg.session_history),
        )

    def get_profile(self, user_id: str) -> Optional[DifficultyProfile]:
        """Return the stored profile without creating one."""
        return self.store.get(user_id)

    def _profile(self, user_id: str) -> DifficultyProfile:
        return self.store.get_or_create(user_id, self.create_profile)

    def _game_genre(self, game: GameLike) -> Optional[str]:
        if game is None:
            return None
        genres = game.genres if isinstance(game, Game) else game.get("genres") or []
        if isinstance(genres, str):
            genres = [genres]
        return self.taxonomy.normalize_genre(genres[0]) if genres else None

    @staticmethod
    def _game_id(game: GameLike) -> str:
        if game is None:
            return ""
        return game.id if isinstance(game, Game) else str(game.get("id", ""))

    # ------------------------------------------------------------------
    # Performance estimation
    # ------------------------------------------------------------------

    def performance_score(
        self,
        session: GameSession,
        metrics: Optional[Dict[str, float]] = None,
    ) -> float:
        """
        Estimate performance in a session on a 0-1 scale.

        ``metrics["performance"]`` overrides the estimate. Other optional
        keys: ``accuracy`` (0-100), ``deaths`` and ``score`` (0-100).
        """
        metrics = metrics or {}
        if metrics.get("performance") is not None:
            return clamp(float(metrics["performance"]))

        score = 0.5
        if session.completed:
            score += 0.2
        if session.rating is not None:
            score += (session.rating - 3.0) * 0.1
        score += (session.intensity - 5) * 0.02

        if metrics.get("accuracy") is not None:
            score += (float(metrics["accuracy"]) - 50.0) / 100.0 * 0.2
        if metrics.get("deaths") is not None:
            score -= min(float(metrics["deaths"]), 10.0) * 0.02
        if metrics.get("score") is not None:
            score += (float(metrics["score"]) - 50.0) / 100.0 * 0.1
        return clamp(score)

    def estimate_session_difficulty(
        self,
        session: GameSession,
        metrics: Optional[Dict[str, float]] = None,
    ) -> float:
        metrics = metrics or {}
        if metrics.get("difficulty") is not None:
            return clamp(float(metrics["difficulty"]))
        explicit = difficulty_score(session.difficulty)
        if explicit is not None:
            return explicit

        value = 0.5
        if session.completed:
            value += 0.1
        if session.rating is not None and session.rating > 4:
            value += 0.15
        elif session.rating is not None and session.rating < 2:
            value -= 0.15
        value += (session.intensity - 5) * 0.03
        return clamp(value)

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    def _recent_performances(
        self, profile: DifficultyProfile, recent_sessions: Sequence[GameSession]
    ) -> List[float]:
        if recent_sessions:
            return [self.performance_score(s) for s in recent_sessions]
        window = profile.learning_curve[-self.config.adaptation_window:]
        return [p.performance for p in window]

    def _improvement(self, profile: DifficultyProfile) -> float:
        window = [p.performance for p in profile.learning_curve[-self.config.adaptation_window:]]
        if len(window) < 3:
            return 0.0
        slope = linregress(np.arange(len(window)), window).slope
        # Total change across the window rather than per-session change
        return clamp(float(slope) * (len(window) - 1), -1.0, 1.0)

    def assess_difficulty(
        self,
        user_id: str,
        game: GameLike = None,
        recent_sessions: Sequence[GameSession] = (),
    ) -> DifficultyMetrics:
        """
        Assess a player's current skill and the difficulty to aim for.

        Args:
            user_id: Player id (a default profile is created on first contact)
            game: Game being played; its first genre drives familiarity
            recent_sessions: Latest sessions; the learning curve is used
                when empty

        Returns:
            DifficultyMetrics with an increase / decrease / maintain strategy
        """
        cfg = self.config
        with self.store.lock:
            profile = self._profile(user_id)
            performances = self._recent_performances(profile, recent_sessions)
            recent = float(np.mean(performances)) if performances else profile.skill_level
            consistency = _consistency(performances)
            improvement = self._improvement(profile)

            genre = self._game_genre(game)
            familiarity = profile.genre_difficulties.get(genre, profile.skill_level) if genre else profile.skill_level

            current_skill = clamp(
                0.45 * recent
                + 0.15 * consistency
                + 0.25 * familiarity
                + 0.15 * (0.5 + 0.5 * improvement)
            )

            zone = profile.flow_state_zone
            if recent > zone.max:
                strategy = "increase"
                recommended = max(zone.optimal, current_skill) + cfg.adjustment_step
                reason = (
                    f"Recent performance ({recent:.2f}) is above your flow zone "
                    f"({zone.min:.2f}-{zone.max:.2f}); raising the challenge"
                )
            elif recent < zone.min:
                strategy = "decrease"
                recommended = min(zone.optimal, current_skill) - cfg.adjustment_step
                reason = (
                    f"Recent performance ({recent:.2f}) is below your flow zone "
                    f"({zone.min:.2f}-{zone.max:.2f}); easing off"
                )
            else:
                strategy = "maintain"
                recommended = zone.optimal
                reason = "You are in your flow zone; keep the current difficulty"

            data_points = len(recent_sessions) + len(profile.learning_curve)
            confidence = clamp(0.7 * min(1.0, data_points / 20.0) + 0.3 * consistency)

        logger.debug("Difficulty for %s: skill=%.2f strategy=%s", user_id, current_skill, strategy)
        return DifficultyMetrics(
            current_skill=current_skill,
            recommended_difficulty=clamp(recommended),
            adjustment_strategy=strategy,
            adjustment_reason=reason,
            confidence=confidence,
            factors=DifficultyFactors(
                recent_performance=recent,
                consistency=consistency,
                improvement=improvement,
                genre_familiarity=familiarity,
            ),
        )

    def generate_adaptive_recommendations(
        self,
        user_id: str,
        game: GameLike,
        target_difficulty: Union[str, float, None] = None,
    ) -> AdaptiveRecommendation:
        """
        Concrete difficulty settings for a game.

        Args:
            user_id: Player id
            game: Game to tune
            target_difficulty: Optional label (easy/medium/hard/expert) or 0-1 value

        Returns:
            AdaptiveRecommendation; a default medium recommendation when
            the player has no profile yet
        """
        game_id = self._game_id(game)
        profile = self.get_profile(user_id)
        target = difficulty_score(target_difficulty) if target_difficulty is not None else None

        if profile is None:
            base = target if target is not None else 0.5
            return AdaptiveRecommendation(
                game_id=game_id,
                recommended_difficulty=difficulty_level(base),
                difficulty_settings=self._settings(base, 0.0),
                reasoning=["Default recommendation - more data needed"],
                expected_performance=0.5,
                adjustment_strategy="maintain",
                confidence=0.3,
            )

        with self.store.lock:
            genre = self._game_genre(game)
            genre_difficulty = profile.genre_difficulties.get(genre) if genre else None
            base = 0.6 * profile.skill_level + 0.4 * (
                genre_difficulty if genre_difficulty is not None else 0.5
            )

            reasoning = [f"Skill level {profile.skill_level:.2f} across {len(profile.learning_curve)} sessions"]
            if genre_difficulty is not None:
                reasoning.append(f"Genre experience in {genre}: {genre_difficulty:.2f}")

            recent = list(profile.recent_sessions)[-3:]
            if len(profile.recent_sessions) > 3:
                recent_perf = float(np.mean([self.performance_score(s) for s in recent]))
                if recent_perf < 0.4:
                    base -= 0.1
                    reasoning.append("Recent sessions were a struggle; easing the baseline")

            effective = clamp(target if target is not None else base)
            gap = effective - profile.skill_level
            if gap > 0.05:
                strategy = "increase"
            elif gap < -0.05:
                strategy = "decrease"
            else:
                strategy = "maintain"

            if target is not None:
                reasoning.append(f"Tuned for requested difficulty {effective:.2f}")
            if gap > 0.15:
                reasoning.append("Target is well above current skill; extra assists enabled")

            label = (
                target_difficulty.strip().lower()
                if isinstance(target_difficulty, str) and target_difficulty.strip().lower() in DIFFICULTY_LABELS
                else difficulty_level(effective)
            )
            confidence = clamp(
                0.6 * min(1.0, len(profile.learning_curve) / 20.0)
                + 0.4 * (1.0 if genre_difficulty is not None else 0.5)
            )

        return AdaptiveRecommendation(
            game_id=game_id,
            recommended_difficulty=label,
            difficulty_settings=self._settings(effective, gap),
            reasoning=reasoning,
            expected_performance=clamp(0.5 + (profile.skill_level - effective)),
            adjustment_strategy=strategy,
            confidence=confidence,
        )

    def _settings(self, difficulty: float, gap: float) -> DifficultySettings:
        """
        Derive concrete settings from a difficulty and the skill gap.

        A positive gap means the target is harder than the player's skill,
        which adds assistance on top of the base difficulty.
        """
        strain = max(0.0, gap)
        return DifficultySettings(
            base_difficulty=difficulty,
            aim_assist=clamp(0.5 - difficulty + 0.25 + strain),
            enemy_health=clamp(1.0 + (difficulty - 0.5) - 0.5 * strain, 0.5, 1.5),
            resource_abundance=clamp(1.0 + (0.5 - difficulty) + 0.5 * strain, 0.5, 1.5),
            time_limits=clamp(1.0 + (0.5 - difficulty) + 0.5 * strain, 0.5, 1.5),
            hint_frequency=clamp(1.0 - difficulty + strain),
            accessibility=AccessibilitySettings(
                color_blind_mode=False,
                subtitles=True,
                camera_shake=clamp(0.5 - strain),
                game_speed=round(1.0 - min(0.25, 0.5 * strain), 3),
            ),
        )

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def update_difficulty_profile(
        self,
        user_id: str,
        session: GameSession,
        performance_metrics: Optional[Dict[str, float]] = None,
    ) -> DifficultyProfile:
        """
        Learn from a finished session.

        Appends a LearningPoint, moves ``skill_level`` by an EMA whose
        smoothing factor grows with ``adaptability_rate``, updates the
        genre's difficulty and re-centres the flow zone.
        """
        cfg = self.config
        with self.store.lock:
            profile = self._profile(user_id)
            performance = self.performance_score(session, performance_metrics)
            difficulty = self.estimate_session_difficulty(session, performance_metrics)

            alpha = cfg.base_learning_rate + profile.adaptability_rate * cfg.adaptive_learning_rate
            profile.skill_level = clamp(profile.skill_level + alpha * (performance - profile.skill_level))

            genre = self.taxonomy.normalize_genre(session.genre)
            if genre:
                current = profile.genre_difficulties.get(genre, cfg.default_skill)
                profile.genre_difficulties[genre] = clamp(
                    current + cfg.genre_learning_rate * (performance - current)
                )

            profile.learning_curve.append(LearningPoint(
                game_id=session.game_id,
                timestamp=session.start_time,
                difficulty=difficulty,
                performance=performance,
                time_to_master=session.effective_duration,
                attempts=1,
                success=bool(session.completed),
            ))
            if len(profile.learning_curve) > cfg.max_learning_points:
                del profile.learning_curve[:-cfg.max_learning_points]

            profile.skill_history.append((session.start_time, profile.skill_level))
            if len(profile.skill_history) > cfg.max_learning_points:
                del profile.skill_history[:-cfg.max_learning_points]
            profile.recent_sessions.append(session)

            profile.adaptability_rate = self._adaptability(profile)
            if len(profile.learning_curve) >= cfg.min_points_for_flow:
                profile.flow_state_zone = self._flow_zone(profile)
            profile.preferred_difficulty = profile.flow_state_zone.optimal

        return profile

    def _adaptability(self, profile: DifficultyProfile) -> float:
        """Players who improve quickly adapt faster."""
        improvement = self._improvement(profile)
        return clamp(0.5 + 0.5 * improvement, 0.1, 1.0)

    def _flow_zone(self, profile: DifficultyProfile) -> FlowStateZone:
        """Centre the flow zone on the difficulty bucket with the best performance."""
        cfg = self.config
        buckets: Dict[float, List[LearningPoint]] = defaultdict(list)
        for point in profile.learning_curve:
            buckets[round(point.difficulty, 1)].append(point)

        best_key = max(
            buckets,
            key=lambda k: (np.mean([p.performance for p in buckets[k]]), -k),
        )
        optimal = float(np.mean([p.difficulty for p in buckets[best_key]]))
        low, high = cfg.flow_bounds
        optimal = clamp(optimal, low, high)
        return FlowStateZone(
            min=max(low, optimal - cfg.flow_half_width),
            max=min(high, optimal + cfg.flow_half_width),
            optimal=optimal,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_difficulty_insights(self, user_id: str) -> DifficultyInsights:
        """
        Reporting view of a player's difficulty history. Never creates or
        mutates a profile.
        """
        profile = self.get_profile(user_id)
        if profile is None or not profile.learning_curve:
            return DifficultyInsights(
                recommendations=["Play a few more sessions to unlock difficulty insights"],
            )

        with self.store.lock:
            points = list(profile.learning_curve)
            progression = list(profile.skill_history)
            zone = profile.flow_state_zone

        performances = [p.performance for p in points]
        window = min(self.config.adaptation_window, len(points) // 2)
        if window > 0:
            improvement_rate = float(
                np.mean(performances[-window:]) - np.mean(performances[-2 * window:-window])
            )
        else:
            improvement_rate = 0.0
        consistency = _consistency(performances[-self.config.adaptation_window:])

        by_hour: Dict[int, List[LearningPoint]] = defaultdict(list)
        for point in points:
            by_hour[point.timestamp.hour].append(point)
        patterns = [
            TimeOfDayPattern(
                hour=hour,
                average_performance=float(np.mean([p.performance for p in hour_points])),
                optimal_difficulty=float(np.mean([p.difficulty for p in hour_points])),
                session_count=len(hour_points),
            )
            for hour, hour_points in by_hour.items()
            if len(hour_points) >= self.config.min_sessions_per_hour
        ]
        patterns.sort(key=lambda p: (-p.average_performance, p.hour))

        recommendations = []
        if improvement_rate > 0.05:
            recommendations.append("You are improving steadily; try a harder difficulty")
        elif improvement_rate < -0.05:
            recommendations.append("Performance is dipping; consider taking a break or easing off")
        if consistency < 0.6:
            recommendations.append("Results vary a lot between sessions; shorter sessions may help")
        if patterns:
            recommendations.append(f"You perform best around {patterns[0].hour:02d}:00")
        if not recommendations:
            recommendations.append(
                f"Stay around difficulty {zone.optimal:.2f} to remain in your flow zone"
            )

        return DifficultyInsights(
            skill_progression=progression,
            optimal_difficulty_times=patterns[:self.config.top_time_patterns],
            improvement_rate=improvement_rate,
            consistency_score=consistency,
            recommendations=recommendations,
        )
