"""Session factory for store sources.

requests.Session is NOT thread-safe, so each pool worker needs its own
session instance. Headers are passed per-request by the fetcher, so the
sessions themselves stay unconfigured.
"""

from typing import Callable

import requests


__all__ = [
    'create_session_factory',
]


def create_session_factory() -> Callable[[], requests.Session]:
    """Create a factory function that produces per-worker sessions.

    Returns:
        Callable that creates new session instances

    Usage:
        session_factory = create_session_factory()

        # In worker function
        def lookup(store_id):
            session = session_factory()
            try:
                ...
            finally:
                session.close()
    """
    def factory() -> requests.Session:
        return requests.Session()

    return factory
