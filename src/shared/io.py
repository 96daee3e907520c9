"""File I/O helpers for the cache store and the output artifact.

Writes go through a temp file in the target directory followed by an
atomic rename, so an interrupted run never leaves a half-written file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

__all__ = [
    'read_json',
    'write_json_atomic',
]


def write_json_atomic(data: Any, filepath: Union[str, Path], indent: Optional[int] = None) -> None:
    """Serialize data to JSON using atomic write (temp file + rename).

    Args:
        data: Data to save (will be JSON serialized)
        filepath: Destination path; parent directories are created
        indent: Optional JSON indent (compact output when None)

    Raises:
        OSError: If filesystem operations fail
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in same directory so the rename stays on one filesystem
    temp_fd, temp_path = tempfile.mkstemp(
        suffix='.tmp',
        dir=path.parent,
        prefix=path.name + '.'
    )

    try:
        with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(temp_path, str(path))
    except BaseException:
        Path(temp_path).unlink(missing_ok=True)
        raise

    logging.debug(f"Wrote {path}")


def read_json(filepath: Union[str, Path]) -> Optional[Any]:
    """Load a JSON file.

    Args:
        filepath: Path to the file

    Returns:
        Parsed data, or None if the file is missing, unreadable or invalid
    """
    path = Path(filepath)
    if not path.exists():
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        logging.warning(f"Failed to read {filepath}: {e}")
        return None
