"""Delay utilities for throttling requests.

This module provides the short pauses used between upstream requests to
avoid tripping the site's protective blocking.
"""

import logging
import time

__all__ = [
    'pause',
]


def pause(seconds: float) -> None:
    """Sleep for a fixed throttle interval (no-op for zero or negative).

    Args:
        seconds: Delay in seconds
    """
    if seconds and seconds > 0:
        time.sleep(seconds)
        logging.debug(f"Paused {seconds:.2f} seconds")
