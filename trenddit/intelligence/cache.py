"""
Confidence-scored intelligence cache.

In-process store keyed by logical query. Entries carry a confidence and an
access history; when the store is full the least valuable tenth is evicted,
where value blends freshness, access frequency and confidence.
"""

import hashlib
import json
import logging
import math
import re
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import BaseModel

from .models.cache import CacheConfig, CacheEntry, CacheStats
from .models.common import clamp
from .models.intelligence import IntelligenceType, MarketChange, ProcessedIntelligence
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE = 0.7
EVICTION_FRACTION = 0.1
AGE_HORIZON = timedelta(hours=24)

# Value score weights
AGE_WEIGHT = 0.3
ACCESS_WEIGHT = 0.4
CONFIDENCE_WEIGHT = 0.3
ACCESS_SATURATION = 10

INTEL_KEY_PREFIX = "intel"


def _json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def canonical_json(data: Any) -> str:
    """Deterministic JSON form of cached data."""
    if isinstance(data, BaseModel):
        return data.model_dump_json()
    return json.dumps(data, sort_keys=True, default=_json_default)


def data_hash(data: Any) -> str:
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


class IntelligenceCache:
    """
    Thread-safe in-memory cache with confidence-driven TTL and value-based eviction.

    Reads during an eviction see either the full pre-eviction map or the
    post-eviction map: the survivors are built aside and swapped in.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        scorer: Optional[ConfidenceScorer] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or CacheConfig()
        self.scorer = scorer or ConfidenceScorer()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._eviction_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    # Core operations

    def set(
        self,
        key: str,
        data: Any,
        ttl: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        confidence: Optional[float] = None,
    ) -> CacheEntry:
        """
        Store a value.

        Args:
            key: Logical query key
            data: Value to cache
            ttl: Seconds to live; defaults to the configured TTL
            tags: Tags used for invalidation and filtering
            confidence: Trust in the value, clamped to [0, 1]; defaults to 0.7
        """
        now = self._clock()
        ttl_seconds = self.config.default_ttl if ttl is None else ttl
        entry = CacheEntry(
            key=key,
            data=data,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
            access_count=0,
            last_accessed=now,
            tags=list(tags or []),
            confidence=clamp(DEFAULT_CONFIDENCE if confidence is None else confidence, default=DEFAULT_CONFIDENCE),
            data_hash=data_hash(data),
        )

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.config.max_cache_size:
                self._evict_least_valuable(now)
            self._entries[key] = entry

        logger.debug(f"Cached {key} (ttl={ttl_seconds}s, confidence={entry.confidence:.2f})")
        return entry

    def get(self, key: str) -> Optional[Any]:
        """Get a value, or None on a miss."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.expires_at <= now:
                del self._entries[key]
                self._misses += 1
                return None

            if data_hash(entry.data) != entry.data_hash:
                logger.warning(f"Cache integrity check failed for {key}, dropping entry")
                del self._entries[key]
                self._misses += 1
                return None

            entry.access_count += 1
            entry.last_accessed = now
            self._hits += 1
            return entry.data

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Entry metadata without counting an access."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expires_at <= self._clock():
                return None
            return entry.model_copy()

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self):
        with self._lock:
            self._entries = {}
            self._hits = 0
            self._misses = 0
            self._eviction_count = 0

    # Invalidation

    def invalidate(self, pattern: Union[str, re.Pattern, MarketChange]) -> int:
        """
        Remove entries by key substring, key regex, or market change.

        A market change removes every entry whose data or tags mention any
        affected entity. Returns the number of entries removed.
        """
        if isinstance(pattern, MarketChange):
            return self._remove_where(lambda key, entry: self._affected_by(entry, pattern))
        if isinstance(pattern, re.Pattern):
            return self._remove_where(lambda key, entry: pattern.search(key) is not None)
        return self._remove_where(lambda key, entry: pattern in key)

    def invalidate_by_tags(self, tags: Iterable[str]) -> int:
        wanted = set(tags)
        return self._remove_where(lambda key, entry: any(tag in wanted for tag in entry.tags))

    def purge_expired(self) -> int:
        now = self._clock()
        return self._remove_where(lambda key, entry: entry.expires_at <= now)

    def _remove_where(self, predicate: Callable[[str, CacheEntry], bool]) -> int:
        with self._lock:
            survivors = {k: e for k, e in self._entries.items() if not predicate(k, e)}
            removed = len(self._entries) - len(survivors)
            self._entries = survivors
        if removed:
            logger.info(f"Invalidated {removed} cache entries")
        return removed

    @staticmethod
    def _affected_by(entry: CacheEntry, change: MarketChange) -> bool:
        content = canonical_json(entry.data).lower()
        tags = [tag.lower() for tag in entry.tags]
        for entity in change.affected_entities:
            needle = entity.lower()
            if not needle:
                continue
            if needle in content or any(needle in tag for tag in tags):
                return True
        return False

    # Eviction

    def entry_value(self, entry: CacheEntry, now: Optional[datetime] = None) -> float:
        """
        Value score used for eviction. Not clamped: very old entries go negative.
        """
        now = now or self._clock()
        age_score = 1 - (now - entry.created_at) / AGE_HORIZON
        access_score = min(1.0, entry.access_count / ACCESS_SATURATION)
        return (
            AGE_WEIGHT * age_score
            + ACCESS_WEIGHT * access_score
            + CONFIDENCE_WEIGHT * entry.confidence
        )

    def _evict_least_valuable(self, now: datetime):
        """Drop the lowest-value tenth (at least one). Caller holds the lock."""
        if not self._entries:
            return

        ranked = sorted(self._entries.items(), key=lambda item: self.entry_value(item[1], now))
        to_evict = max(1, math.floor(len(ranked) * EVICTION_FRACTION))
        evicted = {key for key, _ in ranked[:to_evict]}

        self._entries = {k: e for k, e in self._entries.items() if k not in evicted}
        self._eviction_count += len(evicted)
        logger.debug(f"Evicted {len(evicted)} cache entries")

    # Confidence-based caching

    def cache_with_confidence(self, key: str, record: ProcessedIntelligence) -> CacheEntry:
        """
        Cache a record with a TTL that grows with its scored confidence.
        """
        confidence = self.scorer.calculate_confidence(record, now=self._clock())

        if confidence > 0.8:
            ttl = self.config.default_ttl * 2
        elif confidence > 0.6:
            ttl = self.config.default_ttl
        else:
            ttl = self.config.default_ttl / 2

        return self.set(
            key,
            record,
            ttl=ttl,
            confidence=confidence,
            tags=[*record.tags, record.type.value],
        )

    def cache_intelligence(self, records: Iterable[ProcessedIntelligence]) -> int:
        count = 0
        for record in records:
            self.cache_with_confidence(intelligence_key(record), record)
            count += 1
        return count

    def get_cached_intelligence(
        self,
        intelligence_type: Optional[IntelligenceType] = None,
        max_age: Optional[float] = None,
    ) -> list[ProcessedIntelligence]:
        """
        Cached records, newest first.

        Args:
            intelligence_type: Only records of this type
            max_age: Only entries cached within this many seconds
        """
        prefix = f"{INTEL_KEY_PREFIX}:"
        if intelligence_type is not None:
            prefix += f"{IntelligenceType(intelligence_type).value}:"

        now = self._clock()
        with self._lock:
            candidates = [
                (entry.created_at, key)
                for key, entry in self._entries.items()
                if key.startswith(prefix)
                and (max_age is None or (now - entry.created_at).total_seconds() <= max_age)
            ]

        records = []
        for _, key in sorted(candidates, reverse=True):
            data = self.get(key)
            if isinstance(data, ProcessedIntelligence):
                records.append(data)
        return records

    def get_confidence_breakdown(self, record: ProcessedIntelligence) -> dict[str, float]:
        return self.scorer.get_confidence_breakdown(record, now=self._clock())

    def update_accuracy(self, intelligence_type, outcome: float):
        self.scorer.update_accuracy(intelligence_type, outcome)

    # Introspection

    def get_entries(
        self,
        min_confidence: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        max_age: Optional[float] = None,
    ) -> list[CacheEntry]:
        """Snapshot of live entries matching all given filters."""
        wanted = set(tags) if tags else None
        now = self._clock()

        with self._lock:
            entries = list(self._entries.values())

        result = []
        for entry in entries:
            if entry.expires_at <= now:
                continue
            if min_confidence is not None and entry.confidence < min_confidence:
                continue
            if wanted and not wanted.intersection(entry.tags):
                continue
            if max_age is not None and (now - entry.created_at).total_seconds() > max_age:
                continue
            result.append(entry.model_copy())
        return result

    def get_stats(self) -> CacheStats:
        with self._lock:
            entries = list(self._entries.values())
            hits, misses, evictions = self._hits, self._misses, self._eviction_count

        lookups = hits + misses
        return CacheStats(
            total_entries=len(entries),
            hits=hits,
            misses=misses,
            hit_rate=hits / lookups if lookups else 0.0,
            eviction_count=evictions,
            total_size=sum(len(canonical_json(e.data)) for e in entries),
            average_confidence=(
                sum(e.confidence for e in entries) / len(entries) if entries else 0.0
            ),
        )


def intelligence_key(record: ProcessedIntelligence) -> str:
    return f"{INTEL_KEY_PREFIX}:{record.type.value}:{record.id}"
