"""
Data Model
==========

Typed records exchanged with the session store, the game catalog and the
identity store. Loosely-typed input is validated once in the ``from_dict``
constructors; everything downstream can rely on the documented types and
defaults.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import DEFAULT_SESSION_MINUTES, IDENTITY_SCHEMA_VERSION, NEUTRAL_MOOD
from .utils import clamp, parse_datetime

logger = logging.getLogger(__name__)

Difficulty = Union[str, float, None]


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _as_float(value: Any, name: str, default: Optional[float] = None) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r, using default %r", name, value, default)
        return default


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _as_difficulty(value: Any) -> Difficulty:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value.strip().lower()
    return _as_float(value, "difficulty")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class GameSession:
    """A single play session. Immutable once closed."""
    id: str
    game_id: str
    genre: str
    start_time: datetime
    mood: str = NEUTRAL_MOOD
    intensity: int = 5
    end_time: Optional[datetime] = None
    duration: Optional[float] = None  # minutes
    tags: Tuple[str, ...] = ()
    difficulty: Difficulty = None
    is_multiplayer: Optional[bool] = None
    rating: Optional[float] = None  # 1-5
    completed: Optional[bool] = None
    user_id: Optional[str] = None

    @property
    def effective_duration(self) -> float:
        """Session length in minutes, falling back to end - start, then 60."""
        if self.duration is not None and self.duration > 0:
            return float(self.duration)
        if self.end_time is not None and self.end_time > self.start_time:
            return (self.end_time - self.start_time).total_seconds() / 60.0
        return DEFAULT_SESSION_MINUTES

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None

    @property
    def multiplayer(self) -> bool:
        if self.is_multiplayer is not None:
            return self.is_multiplayer
        return any(t.lower() in ("multiplayer", "co-op", "pvp", "online", "mmo") for t in self.tags)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSession":
        session_id = _pick(data, "id", "sessionId")
        if session_id is None:
            raise ValueError("session is missing required field 'id'")

        start = parse_datetime(_pick(data, "startTime", "start_time"))
        if start is None:
            logger.warning("Session %s has no valid start time, using epoch", session_id)
            start = datetime(1970, 1, 1)

        game = data.get("game") if isinstance(data.get("game"), dict) else {}
        genre = _pick(data, "genre", default=None)
        if genre is None:
            genres = _as_list(game.get("genres"))
            genre = genres[0] if genres else "unknown"

        intensity = _as_float(_pick(data, "intensity"), "intensity", 5.0)
        tags = _as_list(_pick(data, "tags", default=game.get("tags")))

        return cls(
            id=str(session_id),
            game_id=str(_pick(data, "gameId", "game_id", default=game.get("id", ""))),
            genre=str(genre).lower(),
            start_time=start,
            end_time=parse_datetime(_pick(data, "endTime", "end_time")),
            duration=_as_float(_pick(data, "duration"), "duration"),
            mood=str(_pick(data, "mood", default=NEUTRAL_MOOD)).lower(),
            intensity=int(round(clamp(intensity, 1, 10))),
            tags=tuple(t.lower() for t in tags),
            difficulty=_as_difficulty(_pick(data, "difficulty")),
            is_multiplayer=_as_bool(_pick(data, "isMultiplayer", "is_multiplayer")),
            rating=_as_float(_pick(data, "rating"), "rating"),
            completed=_as_bool(_pick(data, "completed")),
            user_id=_pick(data, "userId", "user_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gameId": self.game_id,
            "genre": self.genre,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "duration": self.duration,
            "mood": self.mood,
            "intensity": self.intensity,
            "tags": list(self.tags),
            "difficulty": self.difficulty,
            "isMultiplayer": self.is_multiplayer,
            "rating": self.rating,
            "completed": self.completed,
            "userId": self.user_id,
        }


@dataclass
class UserMood:
    """A player's standing relationship with one mood."""
    id: str
    preference: float = 50.0  # 0-100
    frequency: int = 0
    last_experienced: Optional[datetime] = None
    triggers: List[str] = field(default_factory=list)
    associated_genres: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.preference = clamp(self.preference, 0.0, 100.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserMood":
        return cls(
            id=str(_pick(data, "id", "moodId", default=NEUTRAL_MOOD)).lower(),
            preference=_as_float(_pick(data, "preference"), "preference", 50.0),
            frequency=int(_as_float(_pick(data, "frequency"), "frequency", 0.0)),
            last_experienced=parse_datetime(_pick(data, "lastExperienced", "last_experienced")),
            triggers=_as_list(data.get("triggers")),
            associated_genres=_as_list(_pick(data, "associatedGenres", "associated_genres")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "preference": round(self.preference, 2),
            "frequency": self.frequency,
            "lastExperienced": _iso(self.last_experienced),
            "triggers": list(self.triggers),
            "associatedGenres": list(self.associated_genres),
        }


@dataclass
class PlaystylePreferences:
    session_length: str = "medium"  # short | medium | long
    difficulty: str = "normal"  # casual | normal | hard | expert
    social_preference: str = "solo"  # solo | cooperative | competitive
    story_focus: float = 70.0
    graphics_focus: float = 60.0
    gameplay_focus: float = 80.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlaystylePreferences":
        default = cls()
        return cls(
            session_length=_pick(data, "sessionLength", "session_length", default=default.session_length),
            difficulty=_pick(data, "difficulty", default=default.difficulty),
            social_preference=_pick(
                data, "socialPreference", "social_preference", default=default.social_preference
            ),
            story_focus=_as_float(_pick(data, "storyFocus", "story_focus"), "storyFocus", default.story_focus),
            graphics_focus=_as_float(
                _pick(data, "graphicsFocus", "graphics_focus"), "graphicsFocus", default.graphics_focus
            ),
            gameplay_focus=_as_float(
                _pick(data, "gameplayFocus", "gameplay_focus"), "gameplayFocus", default.gameplay_focus
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionLength": self.session_length,
            "difficulty": self.difficulty,
            "socialPreference": self.social_preference,
            "storyFocus": round(self.story_focus, 1),
            "graphicsFocus": round(self.graphics_focus, 1),
            "gameplayFocus": round(self.gameplay_focus, 1),
        }


@dataclass
class PlaystyleArchetype:
    id: str
    name: str
    description: str = ""
    traits: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "traits": list(self.traits),
        }


@dataclass
class Playstyle:
    primary: PlaystyleArchetype
    secondary: Optional[PlaystyleArchetype] = None
    traits: List[str] = field(default_factory=list)
    preferences: PlaystylePreferences = field(default_factory=PlaystylePreferences)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Playstyle":
        from .playstyle import archetype  # avoid a cycle at import time

        def _archetype(value: Any) -> Optional[PlaystyleArchetype]:
            if value is None:
                return None
            if isinstance(value, dict):
                return archetype(str(value.get("id", "casual")))
            return archetype(str(value))

        return cls(
            primary=_archetype(data.get("primary")) or archetype("casual"),
            secondary=_archetype(data.get("secondary")),
            traits=_as_list(data.get("traits")),
            preferences=PlaystylePreferences.from_dict(data.get("preferences") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.to_dict(),
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "traits": list(self.traits),
            "preferences": self.preferences.to_dict(),
        }


@dataclass
class PlayerIdentity:
    """Everything the engine knows about one player."""
    id: str
    user_id: str
    playstyle: Playstyle
    moods: List[UserMood] = field(default_factory=list)
    sessions: List[GameSession] = field(default_factory=list)
    genre_affinities: Dict[str, float] = field(default_factory=dict)  # 0-100
    computed_mood: Optional[str] = None
    last_updated: Optional[datetime] = None
    version: int = IDENTITY_SCHEMA_VERSION

    def mood(self, mood_id: str) -> Optional[UserMood]:
        for mood in self.moods:
            if mood.id == mood_id:
                return mood
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerIdentity":
        user_id = _pick(data, "userId", "user_id")
        identity_id = _pick(data, "id", default=user_id)
        if identity_id is None:
            raise ValueError("identity is missing required field 'id'")

        sessions = [GameSession.from_dict(s) for s in data.get("sessions") or []]
        affinities = {}
        for genre, value in (_pick(data, "genreAffinities", "genre_affinities", default={}) or {}).items():
            affinities[str(genre).lower()] = clamp(_as_float(value, "genre affinity", 0.0), 0.0, 100.0)

        return cls(
            id=str(identity_id),
            user_id=str(user_id if user_id is not None else identity_id),
            playstyle=Playstyle.from_dict(data.get("playstyle") or {}),
            moods=[UserMood.from_dict(m) for m in data.get("moods") or []],
            sessions=sorted(sessions, key=lambda s: s.start_time),
            genre_affinities=affinities,
            computed_mood=_pick(data, "computedMood", "computed_mood"),
            last_updated=parse_datetime(_pick(data, "lastUpdated", "last_updated")),
            version=int(_as_float(_pick(data, "version"), "version", float(IDENTITY_SCHEMA_VERSION))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "moods": [m.to_dict() for m in self.moods],
            "playstyle": self.playstyle.to_dict(),
            "sessions": [s.to_dict() for s in self.sessions],
            "genreAffinities": {g: round(v, 2) for g, v in self.genre_affinities.items()},
            "computedMood": self.computed_mood,
            "lastUpdated": _iso(self.last_updated),
            "version": self.version,
        }


@dataclass
class Game:
    """
    Catalog entry.

    Only ``id`` is required. Missing metadata is filled from genre priors
    by the feature builder.
    """
    id: str
    title: str = ""
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    is_multiplayer: Optional[bool] = None
    average_playtime: Optional[float] = None  # minutes per session
    difficulty: Difficulty = None
    popularity: Optional[float] = None  # 0-100
    critic_score: Optional[float] = None  # 0-100
    user_score: Optional[float] = None  # 0-100
    platforms: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Game":
        game_id = _pick(data, "id", "gameId", "appid")
        if game_id is None:
            raise ValueError("game is missing required field 'id'")

        def _score(*keys: str) -> Optional[float]:
            value = _as_float(_pick(data, *keys), keys[0])
            return clamp(value, 0.0, 100.0) if value is not None else None

        playtime = _as_float(
            _pick(data, "averagePlaytime", "average_playtime", "playtime"), "averagePlaytime"
        )
        if playtime is not None and playtime <= 0:
            playtime = None

        return cls(
            id=str(game_id),
            title=str(_pick(data, "title", "name", default="")),
            genres=[g.lower() for g in _as_list(data.get("genres"))],
            tags=[t.lower() for t in _as_list(data.get("tags"))],
            is_multiplayer=_as_bool(_pick(data, "isMultiplayer", "is_multiplayer")),
            average_playtime=playtime,
            difficulty=_as_difficulty(data.get("difficulty")),
            popularity=_score("popularity"),
            critic_score=_score("criticScore", "critic_score", "metacritic"),
            user_score=_score("userScore", "user_score"),
            platforms=[p.lower() for p in _as_list(data.get("platforms"))],
        )

    def metadata(self) -> Dict[str, Any]:
        """Plain dict of every field, used to fingerprint cached features."""
        return {
            "id": self.id,
            "title": self.title,
            "platforms": sorted(self.platforms),
            "genres": sorted(self.genres),
            "tags": sorted(self.tags),
            "is_multiplayer": self.is_multiplayer,
            "average_playtime": self.average_playtime,
            "difficulty": self.difficulty,
            "popularity": self.popularity,
            "critic_score": self.critic_score,
            "user_score": self.user_score,
        }


@dataclass
class RecommendationContext:
    """Per-request filters and overrides."""
    current_mood: Optional[str] = None
    exclude_recently_played: bool = False
    genres: List[str] = field(default_factory=list)
    platform: Optional[str] = None
    social_context: Optional[str] = None  # solo | co-op | pvp
    time_available: Optional[float] = None  # minutes

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendationContext":
        return cls(
            current_mood=_pick(data, "currentMood", "current_mood"),
            exclude_recently_played=bool(
                _as_bool(_pick(data, "excludeRecentlyPlayed", "exclude_recently_played")) or False
            ),
            genres=[g.lower() for g in _as_list(data.get("genres"))],
            platform=_pick(data, "platform"),
            social_context=_pick(data, "socialContext", "social_context"),
            time_available=_as_float(_pick(data, "timeAvailable", "time_available"), "timeAvailable"),
        )


@dataclass
class GameRecommendation:
    """A single ranked game with its reasoning."""
    game_id: str
    title: str
    score: float
    reasons: List[str] = field(default_factory=list)
    mood_match: float = 0.0
    playstyle_match: float = 0.0
    social_match: float = 0.0
    estimated_playtime: float = 0.0
    difficulty: str = "Medium"
    tags: List[str] = field(default_factory=list)
    confidence: float = 0.0
    is_fallback: bool = False
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gameId": self.game_id,
            "title": self.title,
            "score": round(self.score, 4),
            "reasons": list(self.reasons),
            "moodMatch": round(self.mood_match, 4),
            "playstyleMatch": round(self.playstyle_match, 4),
            "socialMatch": round(self.social_match, 4),
            "estimatedPlaytime": round(self.estimated_playtime, 1),
            "difficulty": self.difficulty,
            "tags": list(self.tags),
            "confidence": round(self.confidence, 4),
            "isFallback": self.is_fallback,
            "breakdown": {k: round(v, 4) for k, v in self.breakdown.items()},
        }
