#!/usr/bin/env python3
"""
CLI for the Charter store map builder

Usage:
    python run.py                          # Full run with config/pipeline.yaml
    python run.py --refresh                # Ignore cache freshness, re-resolve all stores
    python run.py --limit 50               # At most 50 detail lookups this run
    python run.py --max-runtime 600        # Stop dispatching lookups after 10 minutes
    python run.py --status                 # Show snapshot and cache status
"""

import argparse
import logging
import sys
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from src.shared.cache import DetailCache
from src.shared.config_loader import (
    DEFAULT_CONFIG_PATH,
    load_pipeline_config,
    validate_pipeline_config,
)
from src.shared.export_service import count_features
from src.shared.io import read_json
from src.shared.logging_config import setup_logging
from src.shared.constants import LOGGING
from src.scrapers import get_available_sources, get_source_module


def non_negative_float(value: str) -> float:
    """argparse type for seconds/limits that can't be negative"""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a number, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative number, got {value}")
    return number


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1"""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value}")
    return number


def setup_parser() -> argparse.ArgumentParser:
    """Setup command line argument parser"""
    parser = argparse.ArgumentParser(
        description="Charter store map builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--source', '-s',
        type=str,
        choices=get_available_sources(),
        default=None,
        help='Store source to run (default: from config)'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Settings file (default: {DEFAULT_CONFIG_PATH})'
    )

    # Paths
    parser.add_argument('--output', '-o', type=str, default=None, help='GeoJSON output path')
    parser.add_argument('--cache', type=str, default=None, help='Detail cache path')

    # Execution options
    parser.add_argument(
        '--workers', '-w',
        type=positive_int,
        default=None,
        help='Concurrent detail lookups'
    )
    parser.add_argument(
        '--limit',
        type=positive_int,
        default=None,
        help='Maximum detail lookups this run'
    )
    parser.add_argument(
        '--refresh',
        action='store_true',
        help='Re-resolve every store, ignoring cache freshness'
    )
    parser.add_argument(
        '--max-runtime',
        type=non_negative_float,
        default=None,
        metavar='SECONDS',
        help='Stop dispatching new lookups after this many seconds'
    )

    # Status
    parser.add_argument(
        '--status',
        action='store_true',
        help='Show snapshot and cache status without running'
    )

    # Logging
    parser.add_argument(
        '--log-file',
        type=str,
        default=LOGGING.LOG_FILE,
        help=f'Log file path (default: {LOGGING.LOG_FILE})'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    return parser


def apply_cli_overrides(config: dict, args) -> dict:
    """Layer CLI flags over the loaded settings"""
    overrides = {
        'source': args.source,
        'output_path': args.output,
        'cache_path': args.cache,
        'parallel_workers': args.workers,
        'max_runtime': args.max_runtime,
    }
    merged = dict(config)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return merged


def show_status(config: dict) -> None:
    """Print snapshot and cache status"""
    output_path = config['output_path']
    cache_path = config['cache_path']

    print("\n" + "=" * 60)
    print("CHARTER MAP STATUS")
    print("=" * 60)

    feature_count = count_features(output_path)
    if feature_count is None:
        print(f"  Snapshot: not found or unreadable ({output_path})")
    else:
        snapshot = read_json(output_path) or {}
        generated_at = (snapshot.get('metadata') or {}).get('generated_at', 'unknown')
        print(f"  Snapshot: {feature_count} features ({output_path})")
        print(f"  Generated at: {generated_at}")

    cache = DetailCache(
        cache_path,
        ttl_confirmed=timedelta(days=config['ttl_confirmed_days']),
        ttl_other=timedelta(days=config['ttl_other_days']),
    )
    cache.load()
    print(f"  Cache: {len(cache)} entries ({cache_path})")

    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = setup_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(args.log_file, level=log_level)

    config = apply_cli_overrides(load_pipeline_config(args.config), args)

    config_errors = validate_pipeline_config(config)
    if config_errors:
        print("Configuration errors found:", file=sys.stderr)
        for error in config_errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    if args.status:
        show_status(config)
        return 0

    source = config.get('source', 'consum')
    try:
        source_module = get_source_module(source)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.info(f"Running source: {source}")
    if args.limit:
        logging.info(f"Limit: {args.limit} lookups")
    if args.refresh:
        logging.info("Refresh mode enabled (cache freshness ignored)")

    try:
        summary = source_module.run(
            config,
            source=source,
            refresh=args.refresh,
            limit=args.limit,
        )
    except KeyboardInterrupt:
        logging.info("Run interrupted by user")
        return 130
    except Exception as e:
        logging.error(f"Run failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if summary.written:
        print(f"\nTOTAL {source}: {summary.accepted} stores -> {config['output_path']}")
    else:
        print(f"\nNo stores resolved; kept previous snapshot at {config['output_path']}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
