"""Centralized constants for the Charter store map builder.

This module provides frozen dataclass-based configuration groups for the
magic numbers used throughout the codebase. Values here are the defaults;
config/pipeline.yaml and CLI flags override most of them at run time.

Usage:
    from src.shared.constants import HTTP, CACHE, WORKERS

    timeout = HTTP.TIMEOUT
    ttl_days = CACHE.TTL_CONFIRMED_DAYS
    workers = WORKERS.POOL_SIZE
"""

from dataclasses import dataclass

__all__ = [
    'CACHE',
    'CacheDefaults',
    'HTTP',
    'HttpDefaults',
    'LOGGING',
    'LoggingDefaults',
    'OUTPUT',
    'OutputDefaults',
    'PAUSE',
    'PauseDefaults',
    'WORKERS',
    'WorkerDefaults',
]


@dataclass(frozen=True)
class HttpDefaults:
    """HTTP request configuration defaults.

    These values control retry behavior and timeouts for every request
    routed through the retrying fetcher.
    """

    MAX_RETRIES: int = 3
    """Maximum number of attempts per request."""

    TIMEOUT: float = 12.0
    """Per-attempt request timeout in seconds."""

    RETRY_BASE_DELAY: float = 0.4
    """Backoff base in seconds; attempt N waits RETRY_BASE_DELAY * N."""

    ERROR_SNIPPET_LENGTH: int = 120
    """Characters of a failed response body kept in error messages."""


@dataclass(frozen=True)
class CacheDefaults:
    """Detail cache freshness settings.

    Stores confirmed as Charter rarely change brand, so they are trusted
    much longer than ambiguous records.
    """

    TTL_CONFIRMED_DAYS: int = 90
    """Days a confirmed-positive cache entry stays fresh."""

    TTL_OTHER_DAYS: int = 14
    """Days any other cache entry stays fresh."""

    CACHE_PATH: str = "docs/cache-icons.json"
    """Default location of the persisted detail cache."""


@dataclass(frozen=True)
class PauseDefaults:
    """Throttle pauses against the upstream site."""

    ITEM_PAUSE: float = 0.04
    """Seconds a pool worker waits after each item."""

    FEED_PAUSE: float = 0.12
    """Seconds between feed page requests."""

    FALLBACK_PAUSE: float = 0.08
    """Seconds before trying the next detail URL variant."""


@dataclass(frozen=True)
class WorkerDefaults:
    """Parallel worker configuration."""

    POOL_SIZE: int = 8
    """Number of concurrent resolver workers."""


@dataclass(frozen=True)
class OutputDefaults:
    """Snapshot output settings."""

    OUTPUT_PATH: str = "docs/charter.geojson"
    """Default location of the GeoJSON artifact."""


@dataclass(frozen=True)
class LoggingDefaults:
    """Logging configuration.

    Controls log file rotation settings.
    """

    LOG_FILE: str = "logs/charter.log"
    """Default log file path."""

    MAX_BYTES: int = 10 * 1024 * 1024
    """Maximum log file size before rotation (10MB)."""

    BACKUP_COUNT: int = 5
    """Number of backup log files to keep."""


# Singleton instances for easy import
HTTP = HttpDefaults()
CACHE = CacheDefaults()
PAUSE = PauseDefaults()
WORKERS = WorkerDefaults()
OUTPUT = OutputDefaults()
LOGGING = LoggingDefaults()
