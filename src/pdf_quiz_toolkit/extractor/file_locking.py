"""
Module: extractor.file_locking

Purpose:
    Locked JSON updates for output files that several extraction runs may
    write at once (timing logs). Uses portalocker so the lock works on Mac,
    Windows and Linux.

Key Functions:
    - update_json_locked: Read, modify and rewrite a JSON file under an
      exclusive lock

Dependencies:
    - portalocker: Cross-platform file locking

Used By:
    - extractor.timing: TimingLog.save(merge=True)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict

import portalocker

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0

JsonDict = Dict[str, Any]


def update_json_locked(
    path: Path,
    modifier: Callable[[JsonDict], JsonDict],
    default: Callable[[], JsonDict] = dict,
    timeout: float = LOCK_TIMEOUT_SECONDS,
) -> JsonDict:
    """
    Apply `modifier` to the JSON object stored at `path`.

    The file is created if missing. An empty file reads as `default()`.
    The whole read-modify-write happens while holding an exclusive lock.

    Args:
        path: JSON file to update.
        modifier: Receives the current data, returns the data to write.
        default: Factory for the initial data.
        timeout: Seconds to wait for the lock.

    Returns:
        The data written.

    Raises:
        portalocker.exceptions.LockException: If the lock is not acquired
            within `timeout`.
        json.JSONDecodeError: If the file holds invalid JSON.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)

    with portalocker.Lock(
        str(path),
        mode="r+",
        timeout=timeout,
        encoding="utf-8",
    ) as f:
        raw = f.read()
        data = modifier(json.loads(raw) if raw.strip() else default())
        f.seek(0)
        f.truncate()
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.flush()

    logger.debug(f"Updated {path.name} under lock")
    return data
