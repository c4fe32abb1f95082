"""
Utility Functions
=================

Common utilities used across the GamePilot identity engine.
"""

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return float(max(low, min(high, value)))


def fingerprint(data: Any) -> str:
    """Generate a stable MD5 key from JSON-serializable data."""
    data_str = json.dumps(data, sort_keys=True, default=str)
    return hashlib.md5(data_str.encode()).hexdigest()


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string, epoch seconds or datetime.

    Returns:
        A datetime, or None when the value cannot be interpreted
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Millisecond epochs come from JS clients
        seconds = value / 1000.0 if value > 1e11 else value
        return datetime.fromtimestamp(seconds)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        # Keep all datetimes naive so they compare with each other
        if parsed.tzinfo is not None:
            parsed = parsed.replace(tzinfo=None)
        return parsed
    return None


class FeatureCache:
    """
    In-memory cache of derived feature vectors.

    Keys combine a namespace (the taxonomy version) with a fingerprint of
    the source data, so a metadata change or a taxonomy bump produces a
    new key. ``invalidate`` drops entries explicitly when the catalog changes.
    """

    def __init__(self, max_entries: int = 50000):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self._owners: Dict[str, str] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def make_key(self, namespace: str, data: Any) -> str:
        return f"{namespace}:{fingerprint(data)}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

    def set(self, key: str, value: Any, owner: Optional[str] = None) -> None:
        """Set value in cache, remembering which item it belongs to."""
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if owner is not None:
                self._owners[key] = owner
            while len(self._entries) > self.max_entries:
                old_key, _ = self._entries.popitem(last=False)
                self._owners.pop(old_key, None)

    def invalidate(self, owner: Optional[str] = None) -> int:
        """
        Drop cached entries.

        Args:
            owner: Only drop entries for this item id; all entries when None

        Returns:
            Number of entries removed
        """
        with self._lock:
            if owner is None:
                count = len(self._entries)
                self._entries.clear()
                self._owners.clear()
            else:
                keys = [k for k, o in self._owners.items() if o == owner]
                for key in keys:
                    self._entries.pop(key, None)
                    self._owners.pop(key, None)
                count = len(keys)
        logger.debug("Invalidated %d cached feature entries", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)


class ProfileStore(Generic[T]):
    """
    Bounded, thread-safe ``user_id -> profile`` store with LRU eviction.

    ``on_evict`` receives each evicted profile so a caller can flush it to
    durable storage before it leaves memory.
    """

    def __init__(
        self,
        max_profiles: int = 10000,
        on_evict: Optional[Callable[[T], None]] = None,
    ):
        self.max_profiles = max_profiles
        self.on_evict = on_evict
        self._profiles: "OrderedDict[str, T]" = OrderedDict()
        self.lock = threading.RLock()

    def get(self, user_id: str) -> Optional[T]:
        """Return a profile without creating it or touching LRU order."""
        with self.lock:
            return self._profiles.get(user_id)

    def get_or_create(self, user_id: str, factory: Callable[[str], T]) -> T:
        with self.lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                profile = factory(user_id)
                self._profiles[user_id] = profile
                self._evict_overflow()
            else:
                self._profiles.move_to_end(user_id)
            return profile

    def put(self, user_id: str, profile: T) -> None:
        with self.lock:
            self._profiles[user_id] = profile
            self._profiles.move_to_end(user_id)
            self._evict_overflow()

    def remove(self, user_id: str) -> Optional[T]:
        with self.lock:
            return self._profiles.pop(user_id, None)

    def _evict_overflow(self) -> None:
        while len(self._profiles) > self.max_profiles:
            user_id, profile = self._profiles.popitem(last=False)
            logger.debug("Evicting profile for user %s", user_id)
            if self.on_evict is not None:
                self.on_evict(profile)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._profiles.keys()))
