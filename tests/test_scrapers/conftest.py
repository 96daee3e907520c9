"""Shared fixtures for source adapter unit tests."""

import json

import pytest
from unittest.mock import Mock, patch

import requests


@pytest.fixture
def url_session():
    """Factory for a mock session answering by URL.

    Usage:
        session = url_session({url: payload_or_status})

    Unlisted URLs answer 404.
    """
    def _create(routes):
        session = Mock(spec=requests.Session)

        def _request(method, url, **kwargs):
            response = Mock(spec=requests.Response)
            answer = routes.get(url, 404)
            if isinstance(answer, int):
                response.status_code = answer
                response.text = ""
            else:
                response.status_code = 200
                response.text = json.dumps(answer)
            return response

        session.request.side_effect = _request
        return session

    return _create


@pytest.fixture
def no_sleep():
    """Disable throttle pauses and retry backoff."""
    # Every module sleeps through the same time module
    with patch('src.shared.delays.time.sleep') as mock_sleep:
        yield mock_sleep
