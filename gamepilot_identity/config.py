"""
Configuration and constants for the GamePilot identity engine.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

# =============================================================================
# RUNTIME CONFIGURATION
# =============================================================================
LOG_LEVEL = os.environ.get("GAMEPILOT_LOG_LEVEL", "WARNING")
MIN_DATA_POINTS = int(os.environ.get("GAMEPILOT_MIN_DATA_POINTS", "5"))
MAX_PROFILES = int(os.environ.get("GAMEPILOT_MAX_PROFILES", "10000"))

# =============================================================================
# RECOMMENDATION WEIGHTS
# =============================================================================
@dataclass
class ModelWeights:
    """Weights for the four recommendation signals."""
    collaborative: float = 0.4
    content_based: float = 0.3
    mood: float = 0.2
    playstyle: float = 0.1

    def total(self) -> float:
        return self.collaborative + self.content_based + self.mood + self.playstyle


DEFAULT_WEIGHTS = ModelWeights()


@dataclass
class ModelConfig:
    """Thresholds shared by the recommendation pipeline."""
    weights: ModelWeights = field(default_factory=ModelWeights)

    # Below this many sessions (or co-raters) a signal is not trusted
    min_data_points: int = MIN_DATA_POINTS

    # A signal above this value earns a reason line
    reason_threshold: float = 0.6
    max_reasons: int = 3

    # Sessions needed for full confidence on the normal path
    confidence_sessions: int = 20


DEFAULT_MODEL_CONFIG = ModelConfig()

FALLBACK_CONFIDENCE = 0.2
NUM_RECOMMENDATIONS = 10

# =============================================================================
# CANDIDATE FILTERING
# =============================================================================
@dataclass
class CandidateConfig:
    """Configuration for context filtering and index narrowing."""
    # How many trailing sessions count as "recently played"
    recent_window: int = 10

    # Slack allowed over the caller's available time
    time_slack: float = 1.2

    # Social score cut-offs for the social_context filter
    solo_max_social: float = 0.85
    group_min_social: float = 0.5

    # Narrow with the vector index when more candidates than this survive
    narrow_threshold: int = 200
    narrow_factor: int = 5
    narrow_min: int = 50


DEFAULT_CANDIDATE_CONFIG = CandidateConfig()

# =============================================================================
# MOOD ENGINE
# =============================================================================
@dataclass
class MoodConfig:
    """Windowing and voting weights for mood inference."""
    window_size: int = 10
    window_days: float = 0.0  # 0 disables the time window

    # Exponential recency decay, newest session has age 0
    recency_decay: float = 0.85

    explicit_mood_weight: float = 1.0
    genre_vote_weight: float = 0.8
    tag_vote_weight: float = 0.4
    intensity_vote_weight: float = 0.8

    high_intensity: int = 7
    low_intensity: int = 3

    # Duration weight = base + min(duration, cap) / scale
    duration_base: float = 0.5
    duration_cap: float = 240.0
    duration_scale: float = 120.0

    # Step size when nudging UserMood.preference
    preference_rate: float = 0.2
    max_triggers: int = 5


DEFAULT_MOOD_CONFIG = MoodConfig()

DEFAULT_SESSION_MINUTES = 60.0

# =============================================================================
# IDENTITY
# =============================================================================
@dataclass
class IdentityOptions:
    """Options for computing a player identity from sessions."""
    mood_decay_days: float = 30.0
    min_sessions_for_computation: int = 5
    include_negative_sessions: bool = True

    # Ratings at or below this are "negative"
    negative_rating: float = 2.0


DEFAULT_IDENTITY_OPTIONS = IdentityOptions()

IDENTITY_SCHEMA_VERSION = 1

# =============================================================================
# DIFFICULTY ASSESSMENT
# =============================================================================
@dataclass
class DifficultyConfig:
    """Defaults and learning rates for the difficulty assessor."""
    default_skill: float = 0.5
    default_adaptability: float = 0.5
    default_frustration: float = 0.3
    default_flow_zone: Tuple[float, float, float] = (0.4, 0.7, 0.55)

    # EMA alpha = base_learning_rate + adaptability_rate * adaptive_learning_rate
    base_learning_rate: float = 0.05
    adaptive_learning_rate: float = 0.25
    genre_learning_rate: float = 0.2

    adaptation_window: int = 10
    min_points_for_flow: int = 5
    flow_half_width: float = 0.15
    flow_bounds: Tuple[float, float] = (0.2, 0.85)

    adjustment_step: float = 0.1
    session_history: int = 50
    max_learning_points: int = 200

    # Time-of-day patterns need at least this many sessions per hour
    min_sessions_per_hour: int = 3
    top_time_patterns: int = 3


DEFAULT_DIFFICULTY_CONFIG = DifficultyConfig()

DIFFICULTY_LABELS = {
    "casual": 0.25,
    "easy": 0.25,
    "medium": 0.5,
    "normal": 0.5,
    "hard": 0.75,
    "expert": 0.9,
}

# =============================================================================
# RESONANCE
# =============================================================================
@dataclass
class ResonanceWeights:
    """Weights of the three resonance factors."""
    mood_alignment: float = 0.5
    duration_fit: float = 0.2
    engagement_correlation: float = 0.3


DEFAULT_RESONANCE_WEIGHTS = ResonanceWeights()

TREND_THRESHOLD = 0.1
MIN_RECORDS_FOR_TREND = 4

# =============================================================================
# MOOD TAXONOMY
# =============================================================================
TAXONOMY_VERSION = "2024.1"

NEUTRAL_MOOD = "neutral"

MOOD_IDS = [
    "intense",
    "relaxing",
    "strategic",
    "story-rich",
    "competitive",
    "creative",
    "social",
    "exploratory",
    "atmospheric",
    "gritty",
]

GENRE_VOCABULARY = [
    "action",
    "adventure",
    "rpg",
    "strategy",
    "puzzle",
    "simulation",
    "sports",
    "racing",
    "shooter",
    "horror",
    "platformer",
    "fighting",
    "survival",
    "sandbox",
    "roguelike",
    "mmo",
    "moba",
    "indie",
    "casual",
    "visual-novel",
]

GENRE_ALIASES = {
    "fps": "shooter",
    "first-person shooter": "shooter",
    "third-person shooter": "shooter",
    "role-playing": "rpg",
    "role playing": "rpg",
    "jrpg": "rpg",
    "action rpg": "rpg",
    "rts": "strategy",
    "turn-based strategy": "strategy",
    "4x": "strategy",
    "sim": "simulation",
    "survival horror": "horror",
    "roguelite": "roguelike",
    "mmorpg": "mmo",
    "open world": "sandbox",
    "visual novel": "visual-novel",
    "beat 'em up": "fighting",
}

# Weighted genre -> mood table, shared by mood inference and feature vectors
GENRE_MOOD_WEIGHTS: Dict[str, Dict[str, float]] = {
    "action": {"intense": 0.9, "competitive": 0.4, "gritty": 0.3},
    "adventure": {"exploratory": 0.9, "story-rich": 0.6, "atmospheric": 0.4},
    "rpg": {"story-rich": 0.9, "exploratory": 0.6, "strategic": 0.4},
    "strategy": {"strategic": 1.0, "competitive": 0.3},
    "puzzle": {"relaxing": 0.6, "strategic": 0.6, "creative": 0.3},
    "simulation": {"relaxing": 0.7, "creative": 0.6},
    "sports": {"competitive": 0.9, "social": 0.6, "intense": 0.3},
    "racing": {"intense": 0.7, "competitive": 0.7},
    "shooter": {"intense": 0.9, "competitive": 0.6, "gritty": 0.4},
    "horror": {"intense": 0.8, "atmospheric": 0.7, "gritty": 0.6, "story-rich": 0.3},
    "platformer": {"relaxing": 0.4, "intense": 0.4, "exploratory": 0.3},
    "fighting": {"competitive": 0.9, "intense": 0.7},
    "survival": {"gritty": 0.8, "intense": 0.5, "exploratory": 0.5},
    "sandbox": {"creative": 0.9, "exploratory": 0.7, "relaxing": 0.3},
    "roguelike": {"intense": 0.6, "strategic": 0.5},
    "mmo": {"social": 0.9, "exploratory": 0.4, "competitive": 0.3},
    "moba": {"competitive": 1.0, "social": 0.6, "strategic": 0.5},
    "indie": {"atmospheric": 0.5, "creative": 0.4},
    "casual": {"relaxing": 0.9, "social": 0.3},
    "visual-novel": {"story-rich": 1.0, "relaxing": 0.4},
}

TAG_MOOD_MAP: Dict[str, List[str]] = {
    "relaxing": ["relaxing"],
    "cozy": ["relaxing"],
    "chill": ["relaxing"],
    "casual": ["relaxing"],
    "intense": ["intense"],
    "fast-paced": ["intense"],
    "difficult": ["intense", "gritty"],
    "souls-like": ["intense", "gritty"],
    "scary": ["intense", "atmospheric"],
    "dark": ["gritty", "atmospheric"],
    "atmospheric": ["atmospheric"],
    "story": ["story-rich"],
    "story rich": ["story-rich"],
    "narrative": ["story-rich"],
    "choices matter": ["story-rich"],
    "tactical": ["strategic"],
    "turn-based": ["strategic"],
    "management": ["strategic"],
    "pvp": ["competitive"],
    "competitive": ["competitive"],
    "esports": ["competitive"],
    "multiplayer": ["social"],
    "co-op": ["social"],
    "online": ["social"],
    "building": ["creative"],
    "crafting": ["creative"],
    "open world": ["exploratory"],
    "exploration": ["exploratory"],
    "survival": ["gritty"],
    "post-apocalyptic": ["gritty"],
}

COMPATIBLE_MOODS: Dict[str, List[str]] = {
    "intense": ["competitive", "gritty"],
    "relaxing": ["creative", "exploratory"],
    "strategic": ["competitive", "story-rich"],
    "story-rich": ["exploratory", "atmospheric"],
    "competitive": ["intense", "social"],
    "creative": ["relaxing", "exploratory"],
    "social": ["competitive", "relaxing"],
    "exploratory": ["story-rich", "atmospheric", "creative"],
    "atmospheric": ["story-rich", "exploratory", "gritty"],
    "gritty": ["intense", "atmospheric"],
}

# (min, ideal, max) session minutes per mood
MOOD_SESSION_LENGTHS: Dict[str, Tuple[float, float, float]] = {
    "intense": (20, 45, 90),
    "relaxing": (30, 60, 120),
    "strategic": (45, 90, 180),
    "story-rich": (45, 90, 180),
    "competitive": (20, 40, 90),
    "creative": (45, 120, 240),
    "social": (30, 90, 180),
    "exploratory": (45, 90, 180),
    "atmospheric": (30, 60, 120),
    "gritty": (30, 60, 120),
}

# =============================================================================
# GENRE PRIORS
# =============================================================================
GENRE_DIFFICULTY: Dict[str, float] = {
    "action": 0.6,
    "adventure": 0.4,
    "rpg": 0.7,
    "strategy": 0.8,
    "puzzle": 0.9,
    "simulation": 0.5,
    "sports": 0.4,
    "racing": 0.5,
    "shooter": 0.6,
    "horror": 0.6,
    "fighting": 0.7,
    "roguelike": 0.8,
    "casual": 0.2,
}

GENRE_SOCIAL: Dict[str, float] = {
    "action": 0.7,
    "adventure": 0.4,
    "rpg": 0.8,
    "strategy": 0.6,
    "puzzle": 0.2,
    "simulation": 0.3,
    "sports": 0.9,
    "racing": 0.6,
    "mmo": 1.0,
    "moba": 1.0,
    "fighting": 0.7,
    "visual-novel": 0.1,
}

# Typical minutes per session
GENRE_PLAYTIME: Dict[str, float] = {
    "action": 45,
    "adventure": 60,
    "rpg": 90,
    "strategy": 90,
    "puzzle": 30,
    "simulation": 75,
    "sports": 30,
    "racing": 30,
    "shooter": 40,
    "horror": 60,
    "fighting": 25,
    "sandbox": 90,
    "mmo": 120,
    "moba": 40,
    "casual": 20,
}

SOCIAL_TAGS = {"multiplayer", "co-op", "pvp", "mmo", "online"}

DEFAULT_DIFFICULTY = 0.5
DEFAULT_SOCIAL = 0.3
DEFAULT_PLAYTIME = 60.0

# =============================================================================
# PLAYSTYLE
# =============================================================================
TRAIT_TAG_MAP: Dict[str, List[str]] = {
    "competitive": ["pvp", "competitive", "esports", "ranked"],
    "skill-focused": ["difficult", "souls-like", "precision"],
    "curious": ["story", "narrative", "exploration", "open world"],
    "cooperative": ["co-op", "multiplayer", "online"],
    "imaginative": ["building", "crafting", "sandbox", "creative"],
    "analytical": ["strategy", "tactical", "puzzle", "turn-based"],
    "dedicated": ["grind", "long", "open world"],
    "relaxed": ["relaxing", "cozy", "casual"],
}

STORY_TAGS = {"story", "narrative", "story rich", "choices matter", "rpg"}
GRAPHICS_TAGS = {"beautiful", "atmospheric", "graphics", "cinematic"}
GAMEPLAY_TAGS = {"action", "fast-paced", "difficult", "tactical", "combat"}
MULTIPLAYER_TAGS = {"multiplayer", "co-op", "pvp", "online", "mmo"}
CREATIVE_TAGS = {"building", "crafting", "sandbox", "creative"}
STRATEGY_TAGS = {"strategy", "tactical", "turn-based", "management"}

PLAYSTYLE_ARCHETYPES: Dict[str, Dict[str, object]] = {
    "achiever": {
        "name": "Achiever",
        "description": "Driven by completion, mastery and progression",
        "traits": ["dedicated", "skill-focused", "competitive"],
    },
    "explorer": {
        "name": "Explorer",
        "description": "Seeks discovery, lore and hidden corners",
        "traits": ["curious", "dedicated", "relaxed"],
    },
    "socializer": {
        "name": "Socializer",
        "description": "Plays for the people and shared moments",
        "traits": ["cooperative", "relaxed"],
    },
    "competitor": {
        "name": "Competitor",
        "description": "Thrives on ranked play and beating others",
        "traits": ["competitive", "skill-focused"],
    },
    "creative": {
        "name": "Creative",
        "description": "Builds, crafts and expresses through play",
        "traits": ["imaginative", "relaxed"],
    },
    "strategist": {
        "name": "Strategist",
        "description": "Plans ahead and optimizes systems",
        "traits": ["analytical", "dedicated"],
    },
    "casual": {
        "name": "Casual",
        "description": "Plays for fun in short, relaxed bursts",
        "traits": ["relaxed"],
    },
    "specialist": {
        "name": "Specialist",
        "description": "Goes deep on a single genre or game",
        "traits": ["skill-focused", "dedicated", "analytical"],
    },
}

DEFAULT_ARCHETYPE = "casual"

SESSION_LENGTH_MINUTES = {
    "short": 30.0,
    "medium": 75.0,
    "long": 150.0,
}

SOCIAL_PREFERENCE_SCORES = {
    "solo": 0.1,
    "cooperative": 0.7,
    "competitive": 0.9,
}
