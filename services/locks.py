"""
Per-variant mutual exclusion.

Replace and Unreplace read-modify-write a remote pool with no remote-side
concurrency token, so at most one of them may touch a given
(product_id, variant_id) at a time. Different variants proceed independently.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

VariantKey = Tuple[str, str]


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[VariantKey, threading.Lock] = {}

    def _lock_for(self, key: VariantKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, product_id: str, variant_id: str) -> Iterator[None]:
        lock = self._lock_for((str(product_id), str(variant_id)))
        with lock:
            yield


__all__ = ["KeyedLocks", "VariantKey"]
