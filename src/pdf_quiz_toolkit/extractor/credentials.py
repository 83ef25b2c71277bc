"""
Module: extractor.credentials

Purpose:
    Round-robin pool of API credentials shared by concurrent chunk
    extractions. Each lease is one atomic read-then-advance, so the sequence
    observed across all threads is a contiguous rotation.

Key Classes:
    - CredentialPool: Thread-safe round-robin key rotation

Dependencies:
    - threading (std)

Used By:
    - extractor.client: Leases one credential per attempt
    - extractor.pipeline: Owns the pool for a run
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Iterable, Mapping, Optional

from pdf_quiz_toolkit.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEYS_ENV_VAR = "GEMINI_KEYS"


def mask_credential(credential: str) -> str:
    """Masked form of a credential for log lines: '...abcd'."""
    if len(credential) <= 4:
        return "****"
    return f"...{credential[-4:]}"


class CredentialPool:
    """
    Fixed set of credentials leased in round-robin order.

    The cursor advances on every lease regardless of what the caller does
    with the credential. Pool size is fixed at construction.

    Example:
        >>> pool = CredentialPool(["k0", "k1", "k2"])
        >>> [pool.lease() for _ in range(4)]
        ['k0', 'k1', 'k2', 'k0']
    """

    def __init__(self, keys: Iterable[str]):
        """
        Initialize the pool.

        Args:
            keys: Credentials. Surrounding whitespace is stripped and blank
                entries are dropped.

        Raises:
            ValueError: If no usable credential remains.
        """
        cleaned = tuple(k.strip() for k in keys if k and k.strip())
        if not cleaned:
            raise ValueError("CredentialPool needs at least one credential")
        self._keys = cleaned
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CredentialPool":
        """
        Build a pool from the comma-separated GEMINI_KEYS variable.

        Raises:
            ConfigurationError: If the variable is missing or holds no keys.
        """
        env = os.environ if environ is None else environ
        raw = env.get(KEYS_ENV_VAR, "")
        try:
            pool = cls(raw.split(","))
        except ValueError as e:
            raise ConfigurationError(
                f"Please set {KEYS_ENV_VAR} to a comma-separated list of API keys"
            ) from e
        logger.debug(f"Loaded {len(pool)} credential(s) from {KEYS_ENV_VAR}")
        return pool

    def lease(self) -> str:
        """Return the credential at the cursor and advance the cursor."""
        with self._lock:
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
        return key

    @property
    def cursor(self) -> int:
        """Index of the credential the next lease will return."""
        with self._lock:
            return self._cursor

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"CredentialPool(size={len(self._keys)})"
