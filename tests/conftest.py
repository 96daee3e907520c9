"""Pytest configuration and fixtures for pipeline tests"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from unittest.mock import Mock

import requests


@pytest.fixture
def mock_response_factory():
    """Factory for creating mock HTTP responses.

    Usage:
        response = mock_response_factory(status_code=200, json_data={"features": []})
        response = mock_response_factory(status_code=503, text="Service Unavailable")
    """
    def _create_response(
        status_code: int = 200,
        text: str = "",
        json_data: Optional[object] = None,
    ):
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.text = json.dumps(json_data) if json_data is not None else text
        response.ok = 200 <= status_code < 400
        return response

    return _create_response


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    return Mock(spec=requests.Session)


@pytest.fixture
def point():
    """Factory for GeoJSON point geometries."""
    def _point(lon: float, lat: float) -> dict:
        return {"type": "Point", "coordinates": [lon, lat]}
    return _point


@pytest.fixture
def icon_predicate():
    """Acceptance predicate keyed on the icon text only."""
    return lambda icon_text, free_text: "charter" in icon_text.lower()


@pytest.fixture
def write_cache_file(tmp_path):
    """Write a detail cache store and return its path.

    Entries without a 'ts' are stamped with the current time.
    """
    def _write(entries: dict, name: str = "cache-icons.json") -> Path:
        path = tmp_path / name
        now = datetime.now(timezone.utc).isoformat()
        data = {}
        for store_id, entry in entries.items():
            data[store_id] = {"icon": "", "name": "", "desc": "", "geom": None, "ts": now, **entry}
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write
