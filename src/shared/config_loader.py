"""Pipeline settings loading and validation.

Settings come from config/pipeline.yaml, fall back to the defaults in
src.shared.constants, and can be overridden by environment variables
(usually set through a .env file) and then by CLI flags.
"""

import logging
import os
from typing import Any, Dict, List

import yaml

from src.shared.constants import CACHE, HTTP, OUTPUT, PAUSE, WORKERS

__all__ = [
    'DEFAULT_CONFIG_PATH',
    'ENV_OVERRIDES',
    'default_pipeline_config',
    'load_pipeline_config',
    'validate_pipeline_config',
]

DEFAULT_CONFIG_PATH = "config/pipeline.yaml"

# Environment variable -> (config key, type)
ENV_OVERRIDES = {
    'CHARTER_OUTPUT_PATH': ('output_path', str),
    'CHARTER_CACHE_PATH': ('cache_path', str),
    'CHARTER_WORKERS': ('parallel_workers', int),
}

NUMERIC_FIELDS = (
    'item_pause', 'feed_pause', 'timeout', 'retry_base_delay',
    'ttl_confirmed_days', 'ttl_other_days', 'max_runtime',
)


def default_pipeline_config() -> Dict[str, Any]:
    """Settings used when the YAML file is missing or silent."""
    return {
        'source': 'consum',
        'output_path': OUTPUT.OUTPUT_PATH,
        'cache_path': CACHE.CACHE_PATH,
        'parallel_workers': WORKERS.POOL_SIZE,
        'item_pause': PAUSE.ITEM_PAUSE,
        'feed_pause': PAUSE.FEED_PAUSE,
        'timeout': HTTP.TIMEOUT,
        'max_retries': HTTP.MAX_RETRIES,
        'retry_base_delay': HTTP.RETRY_BASE_DELAY,
        'ttl_confirmed_days': CACHE.TTL_CONFIRMED_DAYS,
        'ttl_other_days': CACHE.TTL_OTHER_DAYS,
        'max_runtime': None,
    }


def load_pipeline_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load pipeline settings merged over the defaults.

    Args:
        config_path: Path to the YAML settings file

    Returns:
        Settings dict (defaults if the file can't be read)
    """
    config = default_pipeline_config()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError:
        logging.info(f"Config file {config_path} not found, using defaults")
        loaded = None
    except yaml.YAMLError as e:
        logging.error(f"Invalid YAML syntax in {config_path}: {e}")
        loaded = None

    # Handle empty YAML files (safe_load returns None)
    if isinstance(loaded, dict):
        config.update({k: v for k, v in loaded.items() if v is not None})
    elif loaded is not None:
        logging.error(f"Config file {config_path} must be a mapping, using defaults")

    for env_var, (key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if not value:
            continue
        try:
            config[key] = cast(value)
        except ValueError:
            logging.warning(f"Ignoring {env_var}={value!r}: expected {cast.__name__}")

    return config


def validate_pipeline_config(config: Dict[str, Any]) -> List[str]:
    """Check settings for common mistakes before a run.

    Args:
        config: Settings dict from load_pipeline_config()

    Returns:
        List of validation errors (empty if config is valid)
    """
    errors = []

    for field in NUMERIC_FIELDS:
        value = config.get(field)
        if value is None and field == 'max_runtime':
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            errors.append(f"'{field}' must be a non-negative number")

    for field in ('parallel_workers', 'max_retries'):
        value = config.get(field)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            errors.append(f"'{field}' must be a positive integer")

    for field in ('output_path', 'cache_path'):
        value = config.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"'{field}' must be a non-empty path")

    feeds = config.get('feeds')
    if feeds is not None:
        if not isinstance(feeds, list) or not feeds:
            errors.append("'feeds' must be a non-empty list of URLs")
        else:
            for feed in feeds:
                if not isinstance(feed, str) or not feed.startswith(('http://', 'https://')):
                    errors.append(f"Feed {feed!r} must be a valid HTTP/HTTPS URL")

    # Only compare if both values are numeric to avoid TypeError on invalid configs
    confirmed = config.get('ttl_confirmed_days')
    other = config.get('ttl_other_days')
    if isinstance(confirmed, (int, float)) and isinstance(other, (int, float)) and confirmed < other:
        errors.append(
            f"'ttl_confirmed_days' ({confirmed}) cannot be shorter than 'ttl_other_days' ({other})"
        )

    return errors
