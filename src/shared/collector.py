"""Collector and deduplicator for store hints.

Listing feeds report the same store several times, often with partial
data. The collector folds every RawHint into one AggregateHint per store
id; resolve_record() then layers the cached detail lookup on top.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.shared.cache import CacheEntry

__all__ = [
    'AggregateHint',
    'HintCollector',
    'RawHint',
    'ResolvedRecord',
    'evaluate_acceptance',
    'has_point_geometry',
    'merge_hints',
    'resolve_record',
]


@dataclass
class RawHint:
    """Partial, unvalidated observation of one store from a listing source."""
    id: Any
    icon: str = ""
    name: str = ""
    description: str = ""
    geometry: Optional[Dict[str, Any]] = None


@dataclass
class AggregateHint:
    """Every hint seen for one store id during the current run."""
    icons: List[str] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    descriptions: List[str] = field(default_factory=list)
    geometry: Optional[Dict[str, Any]] = None


@dataclass
class ResolvedRecord:
    """Final per-store view used for acceptance and output."""
    id: str
    icon: str
    name: str
    description: str
    geometry: Optional[Dict[str, Any]]


class HintCollector:
    """Fold RawHints into AggregateHints keyed by store id.

    Ids keep first-seen order. Hints without an id are dropped since they
    cannot be correlated with anything.
    """

    def __init__(self):
        self.aggregates: Dict[str, AggregateHint] = {}
        self.discarded = 0

    def add(self, hint: RawHint) -> None:
        store_id = str(hint.id).strip() if hint.id is not None else ""
        if not store_id:
            self.discarded += 1
            return

        agg = self.aggregates.get(store_id)
        if agg is None:
            agg = self.aggregates[store_id] = AggregateHint()

        if hint.icon:
            agg.icons.append(hint.icon)
        if hint.name:
            agg.names.append(hint.name)
        if hint.description:
            agg.descriptions.append(hint.description)
        # First geometry wins
        if agg.geometry is None and hint.geometry:
            agg.geometry = hint.geometry

    def merge(self, hints: Iterable[RawHint]) -> Dict[str, AggregateHint]:
        for hint in hints:
            self.add(hint)
        return self.aggregates


def merge_hints(hints: Iterable[RawHint]) -> Dict[str, AggregateHint]:
    """Merge a hint stream into a fresh id -> AggregateHint map."""
    return HintCollector().merge(hints)


def _first(values: List[str]) -> str:
    return values[0] if values else ""


def resolve_record(store_id: str, aggregate: Optional[AggregateHint], entry: Optional[CacheEntry]) -> ResolvedRecord:
    """Combine hints and cached detail, preferring the cached fields.

    The detail lookup is focused on one store, so its non-empty fields win;
    the first hint value fills anything it left empty. A cached geometry that
    is not a usable point gives way to the hint geometry.
    """
    aggregate = aggregate or AggregateHint()
    entry = entry or CacheEntry()
    return ResolvedRecord(
        id=str(store_id),
        icon=entry.icon or _first(aggregate.icons),
        name=entry.name or _first(aggregate.names),
        description=entry.desc or _first(aggregate.descriptions),
        geometry=entry.geom if has_point_geometry(entry.geom) else aggregate.geometry,
    )


def evaluate_acceptance(
    aggregate: Optional[AggregateHint],
    entry: Optional[CacheEntry],
    predicate: Callable[[str, str], bool],
) -> bool:
    """Run the acceptance predicate once over every signal for a store.

    All hint icons plus the cached icon form the icon text; all hint names
    and descriptions plus the cached name and description form the free
    text. A positive signal from any single source is enough.
    """
    aggregate = aggregate or AggregateHint()
    icons = list(aggregate.icons)
    texts = list(aggregate.names) + list(aggregate.descriptions)
    if entry is not None:
        icons.append(entry.icon)
        texts.extend([entry.name, entry.desc])
    icon_text = " ".join(i for i in icons if i)
    free_text = " ".join(t for t in texts if t)
    return bool(predicate(icon_text, free_text))


def has_point_geometry(geom: Any) -> bool:
    """True for a GeoJSON Point with finite, in-range [lon, lat]."""
    if not isinstance(geom, dict) or geom.get('type') != 'Point':
        return False
    coords = geom.get('coordinates')
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return False
    # GeoJSON positions are JSON numbers; bool is an int subclass
    if any(not isinstance(c, (int, float)) or isinstance(c, bool) for c in coords[:2]):
        return False
    lon, lat = float(coords[0]), float(coords[1])
    if not (math.isfinite(lon) and math.isfinite(lat)):
        return False
    return -180 <= lon <= 180 and -90 <= lat <= 90
