"""Resolve-and-cache pipeline shared by store sources.

A source adapter supplies three things: the RawHints it gathered from its
listing feeds, a resolver that looks up one store id, and the acceptance
predicate for the target brand. The pipeline does the rest:

    hints -> merge by id -> consult cache -> resolve stale ids in a pool
          -> save cache -> accept and geolocate -> write snapshot

All run state lives on a PipelineContext built per run.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from src.shared.cache import CacheEntry, CacheIOFailure, DetailCache
from src.shared.collector import (
    AggregateHint,
    RawHint,
    evaluate_acceptance,
    has_point_geometry,
    merge_hints,
    resolve_record,
)
from src.shared.concurrency import TaskPool
from src.shared.constants import CACHE, OUTPUT, PAUSE, WORKERS
from src.shared.export_service import ExportService, SnapshotWriter

__all__ = [
    'PipelineContext',
    'RunSummary',
    'build_features',
    'initialize_pipeline_context',
    'resolve_pending',
    'run_pipeline',
    'select_for_resolution',
]

Predicate = Callable[[str, str], bool]
Resolver = Callable[[str], Optional[Dict[str, Any]]]


@dataclass
class RunSummary:
    """Counts reported at the end of a run."""
    ids_seen: int = 0
    pending: int = 0
    resolved: int = 0
    failed: int = 0
    skipped: int = 0
    accepted: int = 0
    written: bool = False
    cache_saved: bool = False


@dataclass
class PipelineContext:
    """Per-run state handed to every pipeline step.

    Attributes:
        source_name: Source tag used in log lines and metadata
        cache: Detail cache for this run
        writer: Snapshot writer for the output artifact
        predicate: Acceptance predicate (icon_text, free_text) -> bool
        brand: Brand label written on output features
        parallel_workers: Task pool size
        item_pause: Seconds each worker sleeps between items
        deadline: Optional time.monotonic() value after which no new
            lookups are dispatched
        summary: Counters filled in as the run progresses
    """
    source_name: str
    cache: DetailCache
    writer: SnapshotWriter
    predicate: Predicate
    brand: str
    parallel_workers: int = WORKERS.POOL_SIZE
    item_pause: float = PAUSE.ITEM_PAUSE
    deadline: Optional[float] = None
    summary: RunSummary = field(default_factory=RunSummary)

    def classify(self, entry: CacheEntry) -> bool:
        """True when a cache entry on its own is a confirmed positive."""
        return bool(self.predicate(entry.icon, f"{entry.name} {entry.desc}"))


def initialize_pipeline_context(
    source_name: str,
    config: Dict[str, Any],
    predicate: Predicate,
    brand: str,
) -> PipelineContext:
    """Build a PipelineContext from a loaded pipeline config dict.

    Args:
        source_name: Source tag (e.g. 'consum')
        config: Settings from config_loader.load_pipeline_config()
        predicate: Acceptance predicate for the target brand
        brand: Brand label for output features

    Returns:
        PipelineContext ready for run_pipeline()
    """
    cache = DetailCache(
        config.get('cache_path', CACHE.CACHE_PATH),
        ttl_confirmed=timedelta(days=config.get('ttl_confirmed_days', CACHE.TTL_CONFIRMED_DAYS)),
        ttl_other=timedelta(days=config.get('ttl_other_days', CACHE.TTL_OTHER_DAYS)),
    )
    writer = SnapshotWriter(config.get('output_path', OUTPUT.OUTPUT_PATH))

    max_runtime = config.get('max_runtime')
    deadline = time.monotonic() + max_runtime if max_runtime is not None else None

    parallel_workers = config.get('parallel_workers', WORKERS.POOL_SIZE)
    logging.info(f"[{source_name}] Parallel workers: {parallel_workers}")

    return PipelineContext(
        source_name=source_name,
        cache=cache,
        writer=writer,
        predicate=predicate,
        brand=brand,
        parallel_workers=parallel_workers,
        item_pause=config.get('item_pause', PAUSE.ITEM_PAUSE),
        deadline=deadline,
    )


def select_for_resolution(
    ctx: PipelineContext,
    aggregates: Dict[str, AggregateHint],
    refresh: bool = False,
) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
    """Pick the store ids whose cached detail can't be reused.

    An id needs a lookup when it has no cache entry, its entry is stale, or
    nothing marks it as a positive and the cached lookup carried no icon
    (an ambiguous record gets another try). A fresh confirmed-positive entry
    is always reused.

    Returns:
        (store_id, hint_geometry) pairs in first-seen order
    """
    pending = []
    for store_id, agg in aggregates.items():
        entry = ctx.cache.get(store_id)
        if refresh or entry is None or ctx.cache.is_stale(entry, ctx.classify):
            pending.append((store_id, agg.geometry))
            continue

        confirmed = ctx.classify(entry)
        hinted = evaluate_acceptance(agg, None, ctx.predicate)
        if not confirmed and not hinted and not entry.icon:
            pending.append((store_id, agg.geometry))

    logging.info(
        f"[{ctx.source_name}] {len(pending)} of {len(aggregates)} ids need a detail lookup"
    )
    return pending


def resolve_pending(
    ctx: PipelineContext,
    pending: List[Tuple[str, Optional[Dict[str, Any]]]],
    resolver: Resolver,
) -> List[str]:
    """Look up pending ids in the task pool and store results in the cache.

    A resolver that returns None or raises leaves the cached entry (if any)
    untouched. A lookup without a usable point keeps the hint geometry.

    Returns:
        Ids that were resolved
    """
    def _resolve_one(item: Tuple[str, Optional[Dict[str, Any]]]) -> Optional[str]:
        store_id, hint_geom = item
        detail = resolver(store_id)
        if detail is None:
            return None
        geom = detail.get('geom') or detail.get('geometry')
        if not has_point_geometry(geom) and hint_geom:
            geom = hint_geom
        ctx.cache.put(store_id, CacheEntry(
            icon=str(detail.get('icon') or ""),
            name=str(detail.get('name') or ""),
            desc=str(detail.get('desc') or detail.get('description') or ""),
            geom=geom,
        ))
        if not geom:
            logging.debug(f"[{ctx.source_name}] No geometry found for {store_id}")
        return store_id

    pool = TaskPool(
        concurrency=ctx.parallel_workers,
        item_pause=ctx.item_pause,
        deadline=ctx.deadline,
        name=ctx.source_name,
    )
    resolved = pool.run(pending, _resolve_one)

    ctx.summary.resolved += len(resolved)
    ctx.summary.failed += len(pending) - len(resolved) - pool.skipped
    ctx.summary.skipped += pool.skipped
    return resolved


def build_features(ctx: PipelineContext, aggregates: Dict[str, AggregateHint]) -> List[Dict[str, Any]]:
    """Accept and geolocate every collected id.

    The predicate runs once per id against hints and cached detail
    together. Accepted records without a usable point are left out.

    Returns:
        GeoJSON features sorted by id
    """
    features = []
    missing_geometry = 0
    for store_id, agg in aggregates.items():
        entry = ctx.cache.get(store_id)
        if not evaluate_acceptance(agg, entry, ctx.predicate):
            continue
        record = resolve_record(store_id, agg, entry)
        if not has_point_geometry(record.geometry):
            missing_geometry += 1
            continue
        features.append(ExportService.build_feature(record, ctx.brand))

    if missing_geometry:
        logging.warning(
            f"[{ctx.source_name}] Skipped {missing_geometry} accepted stores without valid coordinates"
        )
    features.sort(key=lambda f: f["properties"]["id"])
    return features


def run_pipeline(
    ctx: PipelineContext,
    hints: Iterable[RawHint],
    resolver: Resolver,
    refresh: bool = False,
    limit: Optional[int] = None,
) -> RunSummary:
    """Run one full resolve-and-cache pass and write the snapshot.

    Args:
        ctx: Context for this run
        hints: RawHints gathered by the source adapter
        resolver: Per-id detail lookup
        refresh: Re-resolve every id regardless of cache freshness
        limit: Optional cap on lookups performed this run

    Returns:
        RunSummary with counts and whether the snapshot was written

    Raises:
        OSError: If the output artifact cannot be written
    """
    summary = ctx.summary
    aggregates = merge_hints(hints)
    summary.ids_seen = len(aggregates)
    logging.info(f"[{ctx.source_name}] Unique store ids: {summary.ids_seen}")
    if not aggregates:
        logging.error(f"[{ctx.source_name}] No store ids collected from any source")

    ctx.cache.load()
    pending = select_for_resolution(ctx, aggregates, refresh=refresh)
    if limit is not None and len(pending) > limit:
        logging.info(f"[{ctx.source_name}] Limited to {limit} lookups")
        pending = pending[:limit]
    summary.pending = len(pending)

    if pending:
        resolve_pending(ctx, pending, resolver)

    try:
        ctx.cache.save()
        summary.cache_saved = True
    except CacheIOFailure as e:
        logging.error(f"[{ctx.source_name}] {e}")

    features = build_features(ctx, aggregates)
    summary.accepted = len(features)

    metadata = ExportService.build_metadata(
        ctx.source_name,
        summary.ids_seen,
        summary.accepted,
        resolved=summary.resolved,
        failed=summary.failed,
    )
    summary.written = ctx.writer.write(features, metadata)

    logging.info(
        f"[{ctx.source_name}] Done: {summary.accepted} {ctx.brand} stores "
        f"({summary.resolved} looked up, {summary.failed} failed)"
    )
    return summary
