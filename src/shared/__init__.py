"""Shared pipeline components for all store sources"""

from .http import (
    FetchRequest,
    FetchResponse,
    TransientFetchFailure,
    fetch_with_retry,
    get_json,
)

from .concurrency import (
    TaskPool,
    run_pool,
)

from .cache import (
    CacheEntry,
    CacheIOFailure,
    DetailCache,
)

from .collector import (
    AggregateHint,
    HintCollector,
    RawHint,
    ResolvedRecord,
    evaluate_acceptance,
    has_point_geometry,
    merge_hints,
    resolve_record,
)

from .export_service import (
    ExportService,
    SnapshotWriter,
)

from .pipeline import (
    PipelineContext,
    RunSummary,
    initialize_pipeline_context,
    run_pipeline,
)

from .config_loader import (
    load_pipeline_config,
    validate_pipeline_config,
)

from .logging_config import setup_logging

__all__ = [
    # Retrying fetcher
    'FetchRequest',
    'FetchResponse',
    'TransientFetchFailure',
    'fetch_with_retry',
    'get_json',
    # Task pool
    'TaskPool',
    'run_pool',
    # Detail cache
    'CacheEntry',
    'CacheIOFailure',
    'DetailCache',
    # Collector
    'AggregateHint',
    'HintCollector',
    'RawHint',
    'ResolvedRecord',
    'evaluate_acceptance',
    'has_point_geometry',
    'merge_hints',
    'resolve_record',
    # Snapshot output
    'ExportService',
    'SnapshotWriter',
    # Pipeline
    'PipelineContext',
    'RunSummary',
    'initialize_pipeline_context',
    'run_pipeline',
    # Configuration and logging
    'load_pipeline_config',
    'validate_pipeline_config',
    'setup_logging',
]
