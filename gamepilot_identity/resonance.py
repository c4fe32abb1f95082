"""
Session Resonance
=================

Measures how well a mood forecast matched what actually happened in a
session, and aggregates those measurements over time.

    resonance = 0.5 × mood_alignment
              + 0.2 × duration_fit
              + 0.3 × engagement_correlation

Forecast confidence is on a 0-1 scale, the same scale as
``MoodForecast.confidence``. Engagement and satisfaction are reported
on 0-100.

Both entry points are pure functions: nothing is stored and inputs are
never mutated. Callers persist the returned records.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import (
    DEFAULT_RESONANCE_WEIGHTS,
    MIN_RECORDS_FOR_TREND,
    TREND_THRESHOLD,
    ResonanceWeights,
)
from .mood import MoodForecast
from .taxonomy import DEFAULT_TAXONOMY, MoodTaxonomy
from .utils import clamp

logger = logging.getLogger(__name__)

OUTSIDE_RANGE_FIT = 0.2
UNKNOWN_FIT = 0.5
STRONG_RESONANCE = 0.6


@dataclass(frozen=True)
class SessionData:
    duration: float  # minutes
    engagement: float  # 0-100
    satisfaction: float  # 0-100
    game_ids: tuple = ()


@dataclass(frozen=True)
class ResonanceFactors:
    mood_alignment: float
    duration_fit: float
    engagement_correlation: float


@dataclass(frozen=True)
class SessionResonance:
    session_id: str
    user_id: str
    predicted_mood: str
    actual_mood: str
    resonance_score: float
    confidence_delta: float
    session_data: SessionData
    factors: ResonanceFactors
    timestamp: datetime


@dataclass
class ResonanceInsights:
    strongest_predictions: List[str] = field(default_factory=list)
    weakest_predictions: List[str] = field(default_factory=list)
    optimal_session_length: Dict[str, float] = field(default_factory=dict)
    engagement_patterns: Dict[str, float] = field(default_factory=dict)


@dataclass
class SessionResonanceAnalysis:
    total_sessions: int = 0
    average_resonance: float = 0.0
    mood_accuracy: Dict[str, float] = field(default_factory=dict)
    improvement_trend: str = "stable"
    insights: ResonanceInsights = field(default_factory=ResonanceInsights)


def _duration_fit(
    forecast: MoodForecast, duration: float, taxonomy: MoodTaxonomy
) -> float:
    if forecast.expected_duration is not None and forecast.expected_duration > 0:
        expected = forecast.expected_duration
        return clamp(1.0 - abs(duration - expected) / max(duration, expected))

    bounds = taxonomy.session_length(forecast.predicted_mood)
    if bounds is None:
        return UNKNOWN_FIT
    low, ideal, high = bounds
    if duration < low or duration > high:
        return OUTSIDE_RANGE_FIT
    # Inside the range: 1.0 at the ideal, decaying linearly to 0.5 at the edges
    edge = ideal - low if duration < ideal else high - ideal
    if edge <= 0:
        return 1.0
    return clamp(1.0 - 0.5 * abs(duration - ideal) / edge)


def calculate_session_resonance(
    session_id: str,
    user_id: str,
    forecast: MoodForecast,
    actual_mood: str,
    session_data: SessionData,
    taxonomy: MoodTaxonomy = DEFAULT_TAXONOMY,
    timestamp: Optional[datetime] = None,
    weights: ResonanceWeights = DEFAULT_RESONANCE_WEIGHTS,
) -> SessionResonance:
    """
    Score how well a forecast matched a finished session.

    Args:
        session_id: Session being scored
        user_id: Owner of the session
        forecast: Forecast made before the session
        actual_mood: Mood the player reported or was classified into
        session_data: Duration and 0-100 engagement/satisfaction
        taxonomy: Shared mood table (compatibility and session lengths)
        timestamp: Record time; defaults to now
        weights: Factor weights

    Returns:
        Immutable SessionResonance record
    """
    alignment = taxonomy.alignment(forecast.predicted_mood, actual_mood)
    duration_fit = _duration_fit(forecast, max(0.0, session_data.duration), taxonomy)

    confidence = clamp(forecast.confidence)
    observed = clamp((session_data.engagement + session_data.satisfaction) / 200.0)
    engagement_correlation = 1.0 - abs(confidence - observed)

    score = clamp(
        weights.mood_alignment * alignment
        + weights.duration_fit * duration_fit
        + weights.engagement_correlation * engagement_correlation
    )

    return SessionResonance(
        session_id=session_id,
        user_id=user_id,
        predicted_mood=taxonomy.normalize_mood(forecast.predicted_mood),
        actual_mood=taxonomy.normalize_mood(actual_mood),
        resonance_score=score,
        confidence_delta=abs(confidence - alignment),
        session_data=session_data,
        factors=ResonanceFactors(
            mood_alignment=alignment,
            duration_fit=duration_fit,
            engagement_correlation=engagement_correlation,
        ),
        timestamp=timestamp or datetime.now(),
    )


def _trend(records: Sequence[SessionResonance]) -> str:
    if len(records) < MIN_RECORDS_FOR_TREND:
        return "stable"
    half = len(records) // 2
    first = float(np.mean([r.resonance_score for r in records[:half]]))
    second = float(np.mean([r.resonance_score for r in records[half:]]))
    if second - first > TREND_THRESHOLD:
        return "improving"
    if second - first < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def analyze_session_resonance(records: Sequence[SessionResonance]) -> SessionResonanceAnalysis:
    """
    Aggregate resonance records.

    The trend compares the first and second half of the records in
    timestamp order. An empty input yields an empty analysis.
    """
    if not records:
        return SessionResonanceAnalysis()

    ordered = sorted(records, key=lambda r: r.timestamp)

    groups: Dict[str, List[SessionResonance]] = defaultdict(list)
    for record in ordered:
        groups[record.predicted_mood].append(record)

    accuracy = {
        mood: float(np.mean([r.resonance_score for r in group]))
        for mood, group in groups.items()
    }
    ranked = sorted(accuracy, key=lambda m: (-accuracy[m], m))

    session_lengths = {}
    engagement = {}
    for mood, group in groups.items():
        strong = [r for r in group if r.resonance_score >= STRONG_RESONANCE] or group
        session_lengths[mood] = round(float(np.mean([r.session_data.duration for r in strong])), 1)
        engagement[mood] = round(float(np.mean([r.session_data.engagement for r in group])), 1)

    analysis = SessionResonanceAnalysis(
        total_sessions=len(ordered),
        average_resonance=float(np.mean([r.resonance_score for r in ordered])),
        mood_accuracy=accuracy,
        improvement_trend=_trend(ordered),
        insights=ResonanceInsights(
            strongest_predictions=ranked[:3],
            weakest_predictions=list(reversed(ranked))[:3],
            optimal_session_length=session_lengths,
            engagement_patterns=engagement,
        ),
    )
    logger.debug(
        "Resonance over %d sessions: avg=%.3f trend=%s",
        analysis.total_sessions, analysis.average_resonance, analysis.improvement_trend,
    )
    return analysis
