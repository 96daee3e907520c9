"""Core scraping functions for the Consum store locator (Charter banner)"""

import logging
import re
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests
from bs4 import BeautifulSoup

from config import consum_config
from src.shared.collector import RawHint
from src.shared.constants import HTTP, PAUSE
from src.shared.delays import pause
from src.shared.http import TransientFetchFailure, get_json
from src.shared.pipeline import RunSummary, initialize_pipeline_context, run_pipeline
from src.shared.session_factory import create_session_factory


CHARTER_ICON_PATTERN = re.compile(r'charter', re.IGNORECASE)
CHARTER_TEXT_PATTERN = re.compile(r'\bcharter\b', re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r'\s+')


class SourceUnreachable(RuntimeError):
    """Raised when not a single listing feed page could be fetched."""


def is_charter(icon_text: str, free_text: str) -> bool:
    """Acceptance predicate: Charter icon, or the word Charter in the text."""
    return bool(
        CHARTER_ICON_PATTERN.search(icon_text or "")
        or CHARTER_TEXT_PATTERN.search(free_text or "")
    )


def clean_text(value: Any) -> str:
    """Reduce a markup-bearing field to single-spaced plain text."""
    if value is None:
        return ""
    text = str(value)
    if '<' in text or '&' in text:
        text = BeautifulSoup(text, 'html.parser').get_text(' ')
    return WHITESPACE_PATTERN.sub(' ', text).strip()


def find_features(payload: Any) -> Optional[List[Any]]:
    """Return the first list stored under a 'features' key anywhere in payload.

    The map endpoints wrap their GeoJSON in Drupal AJAX commands whose shape
    changes between pages, so the search walks lists and dicts depth-first.
    """
    if not payload:
        return None
    if isinstance(payload, list):
        for element in payload:
            found = find_features(element)
            if found is not None:
                return found
        return None
    if isinstance(payload, dict):
        if isinstance(payload.get('features'), list):
            return payload['features']
        for value in payload.values():
            found = find_features(value)
            if found is not None:
                return found
    return None


def _feature_fields(feature: Dict[str, Any]) -> Dict[str, Any]:
    props = feature.get('properties')
    if not isinstance(props, dict):
        props = {}
    geom = feature.get('geometry')
    return {
        'icon': str(props.get('icon') or ""),
        'name': clean_text(props.get('tooltip') or props.get('title') or ""),
        'desc': clean_text(props.get('description') or ""),
        'geom': geom if isinstance(geom, dict) else None,
        'entity_id': props.get('entity_id'),
    }


def feature_to_hint(feature: Any) -> Optional[RawHint]:
    """Convert one listing feature into a RawHint (None if not a feature)."""
    if not isinstance(feature, dict):
        return None
    fields = _feature_fields(feature)
    entity_id = fields['entity_id']
    return RawHint(
        id=str(entity_id).strip() if entity_id is not None else "",
        icon=fields['icon'],
        name=fields['name'],
        description=fields['desc'],
        geometry=fields['geom'],
    )


def feature_to_detail(feature: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a detail-endpoint feature into a resolver result."""
    fields = _feature_fields(feature)
    return {key: fields[key] for key in ('icon', 'name', 'desc', 'geom')}


def feed_page_urls(base_url: str) -> Iterator[str]:
    """Yield the base feed URL, then ?page=N and ?p=N variants."""
    yield base_url
    for param in consum_config.PAGE_PARAMS:
        for page in range(1, consum_config.MAX_PAGES + 1):
            yield f"{base_url}?{param}={page}"


class ConsumSource:
    """Listing feeds and per-store lookups against consum.es.

    Usage:
        source = ConsumSource(config)
        hints = source.collect_hints()
        detail = source.resolve('12345')
    """

    def __init__(self, config: Dict[str, Any], session_factory: Callable[[], requests.Session] = None):
        self.feeds = config.get('feeds') or consum_config.FEEDS
        self.timeout = config.get('timeout', HTTP.TIMEOUT)
        self.max_retries = config.get('max_retries', HTTP.MAX_RETRIES)
        self.retry_base_delay = config.get('retry_base_delay', HTTP.RETRY_BASE_DELAY)
        self.feed_pause = config.get('feed_pause', PAUSE.FEED_PAUSE)
        self.session_factory = session_factory or create_session_factory()
        self.pages_answered = 0

    def _get_json(self, session: requests.Session, url: str) -> Any:
        return get_json(
            session,
            url,
            headers=consum_config.get_headers(),
            timeout=self.timeout,
            max_attempts=self.max_retries,
            base_delay=self.retry_base_delay,
        )

    def fetch_feed_features(self, session: requests.Session, base_url: str) -> List[Dict[str, Any]]:
        """Collect features from every page of one listing feed.

        Pages without features are skipped. A paginated page shorter than
        PAGE_SIZE is taken as the last one.
        """
        features: List[Dict[str, Any]] = []
        for url in feed_page_urls(base_url):
            try:
                payload = self._get_json(session, url)
                self.pages_answered += 1
                page_features = find_features(payload) or []
            except TransientFetchFailure as e:
                logging.warning(f"[consum] Skipping feed page {url}: {e.last_error}")
                page_features = []

            if page_features:
                features.extend(page_features)
                if url != base_url and len(page_features) < consum_config.PAGE_SIZE:
                    break
            pause(self.feed_pause)
        return features

    def collect_hints(self) -> List[RawHint]:
        """Gather RawHints from all configured feeds.

        Raises:
            SourceUnreachable: If no page of any feed could be fetched
        """
        hints: List[RawHint] = []
        self.pages_answered = 0
        session = self.session_factory()
        try:
            for feed in self.feeds:
                features = self.fetch_feed_features(session, feed)
                feed_hints = [h for h in map(feature_to_hint, features) if h is not None]
                logging.info(f"[consum] {len(feed_hints)} store hints from {feed}")
                hints.extend(feed_hints)
        finally:
            session.close()

        if self.feeds and not self.pages_answered:
            raise SourceUnreachable(f"No listing feed answered ({len(self.feeds)} feeds tried)")
        return hints

    def resolve(self, store_id: str) -> Optional[Dict[str, Any]]:
        """Look up one store, trying each detail URL variant in order.

        Returns:
            Detail dict with icon/name/desc/geom. Fields are empty when the
            site answered on every URL variant but knows no such store.

        Raises:
            TransientFetchFailure: If no variant returned a feature and at
                least one of them could not be fetched
        """
        session = self.session_factory()
        last_failure: Optional[TransientFetchFailure] = None
        try:
            for index, template in enumerate(consum_config.DETAIL_URL_TEMPLATES):
                if index:
                    pause(PAUSE.FALLBACK_PAUSE)
                url = template.format(store_id=store_id)
                try:
                    payload = self._get_json(session, url)
                except TransientFetchFailure as e:
                    last_failure = e
                    continue
                features = find_features(payload) or []
                if features and isinstance(features[0], dict):
                    return feature_to_detail(features[0])
        finally:
            session.close()

        # A variant that could not be fetched may still know the store
        if last_failure is not None:
            raise last_failure
        logging.debug(f"[consum] No detail feature for store {store_id}")
        return {'icon': "", 'name': "", 'desc': "", 'geom': None}


def run(config: dict, **kwargs) -> RunSummary:
    """Standard source entry point.

    Args:
        config: Pipeline settings from config_loader.load_pipeline_config()
        **kwargs: Additional options
            - source: str - Source name for logging
            - refresh: bool - Re-resolve every store regardless of cache
            - limit: int - Max detail lookups this run
            - session_factory: callable - Override session creation

    Returns:
        RunSummary for the run
    """
    source_name = kwargs.get('source', 'consum')
    refresh = kwargs.get('refresh', False)
    limit = kwargs.get('limit')

    try:
        ctx = initialize_pipeline_context(source_name, config, is_charter, brand=consum_config.BRAND)
        source = ConsumSource(config, session_factory=kwargs.get('session_factory'))
        hints = source.collect_hints()
        return run_pipeline(ctx, hints, source.resolve, refresh=refresh, limit=limit)
    except Exception as e:
        logging.error(f"[{source_name}] Fatal error: {e}", exc_info=True)
        raise
