"""Freshness-aware detail cache for per-store lookups.

The cache maps a store identifier to the last detail lookup for that store
and persists as a single JSON object:

    {"<id>": {"icon": ..., "name": ..., "desc": ..., "geom": ..., "ts": ...}}

Entries never expire on their own; callers ask is_stale() with a classifier
so confirmed-brand entries can be trusted longer than ambiguous ones.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from src.shared.constants import CACHE
from src.shared.io import read_json, write_json_atomic

__all__ = [
    'CacheEntry',
    'CacheIOFailure',
    'DetailCache',
]


class CacheIOFailure(OSError):
    """Raised when the cache store cannot be written."""


@dataclass
class CacheEntry:
    """Last resolved detail for one store.

    Attributes:
        icon: Map icon string reported by the detail lookup
        name: Display name
        desc: Free-text description (usually the street address)
        geom: GeoJSON geometry dict or None
        ts: ISO-8601 timestamp of the lookup, None until stored
    """
    icon: str = ""
    name: str = ""
    desc: str = ""
    geom: Optional[Dict[str, Any]] = None
    ts: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted shape."""
        return {
            'icon': self.icon,
            'name': self.name,
            'desc': self.desc,
            'geom': self.geom,
            'ts': self.ts,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CacheEntry':
        """Build an entry from its persisted shape, tolerating missing keys."""
        geom = data.get('geom')
        return cls(
            icon=str(data.get('icon') or ""),
            name=str(data.get('name') or ""),
            desc=str(data.get('desc') or ""),
            geom=geom if isinstance(geom, dict) else None,
            ts=data.get('ts'),
        )

    def resolved_at(self) -> Optional[datetime]:
        """Parse ts into an aware datetime, None if absent or malformed."""
        if not self.ts:
            return None
        try:
            stamp = datetime.fromisoformat(str(self.ts).replace('Z', '+00:00'))
        except ValueError:
            return None
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp


class DetailCache:
    """Persistent id -> CacheEntry map with a two-tier freshness policy.

    Usage:
        cache = DetailCache('docs/cache-icons.json')
        cache.load()

        entry = cache.get(store_id)
        if cache.is_stale(entry, classify):
            cache.put(store_id, CacheEntry(icon=..., geom=...))

        cache.save()

    Workers in one process write disjoint keys; the lock only guards the
    dict itself. A single process owns the backing file during a run.
    """

    def __init__(
        self,
        path: Union[str, Path] = CACHE.CACHE_PATH,
        ttl_confirmed: timedelta = timedelta(days=CACHE.TTL_CONFIRMED_DAYS),
        ttl_other: timedelta = timedelta(days=CACHE.TTL_OTHER_DAYS),
        clock: Callable[[], datetime] = None,
    ):
        """Initialize an empty cache bound to a file.

        Args:
            path: Location of the JSON store
            ttl_confirmed: Max age for entries the classifier accepts
            ttl_other: Max age for every other entry
            clock: Returns the current aware datetime (tests inject one)
        """
        self.path = Path(path)
        self.ttl_confirmed = ttl_confirmed
        self.ttl_other = ttl_other
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, store_id) -> bool:
        with self._lock:
            return str(store_id) in self._entries

    def get(self, store_id) -> Optional[CacheEntry]:
        """Return the entry for store_id, or None."""
        with self._lock:
            return self._entries.get(str(store_id))

    def put(self, store_id, entry: CacheEntry) -> CacheEntry:
        """Store an entry unconditionally, stamping ts with the current time.

        Returns:
            The stored entry
        """
        entry.ts = self._clock().isoformat()
        with self._lock:
            self._entries[str(store_id)] = entry
        return entry

    def is_stale(self, entry: Optional[CacheEntry], classify: Callable[[CacheEntry], bool]) -> bool:
        """Decide whether an entry must be re-resolved.

        Args:
            entry: Entry to check (None counts as stale)
            classify: Returns True when the entry is a confirmed positive

        Returns:
            True if the entry is missing, unstamped, or older than its TTL
        """
        if entry is None:
            return True
        resolved_at = entry.resolved_at()
        if resolved_at is None:
            return True
        ttl = self.ttl_confirmed if classify(entry) else self.ttl_other
        return self._clock() - resolved_at > ttl

    def load(self) -> int:
        """Replace in-memory entries with the persisted store.

        A missing, unreadable or malformed store yields an empty cache.

        Returns:
            Number of entries loaded
        """
        data = read_json(self.path)
        entries: Dict[str, CacheEntry] = {}

        if data is None:
            logging.info(f"No detail cache found at {self.path}, starting empty")
        elif not isinstance(data, dict):
            logging.warning(f"Detail cache at {self.path} is not a JSON object, starting empty")
        else:
            for store_id, raw in data.items():
                if isinstance(raw, dict):
                    entries[str(store_id)] = CacheEntry.from_dict(raw)
                else:
                    logging.debug(f"Dropping malformed cache entry for {store_id}")
            logging.info(f"Loaded {len(entries)} cached details from {self.path}")

        with self._lock:
            self._entries = entries
        return len(entries)

    def save(self) -> None:
        """Persist all entries atomically.

        Raises:
            CacheIOFailure: If the store cannot be written
        """
        with self._lock:
            snapshot = {store_id: entry.to_dict() for store_id, entry in self._entries.items()}
        try:
            write_json_atomic(snapshot, self.path)
        except OSError as e:
            raise CacheIOFailure(f"Failed to save detail cache {self.path}: {e}") from e
        logging.info(f"Saved {len(snapshot)} cached details to {self.path}")
