"""Memoized active-account lookup."""

import threading
from typing import Callable, Dict, Optional


class ActiveAccountCache:
    """Compute-once cache of provider name to active account name.

    The first get() runs the loader under a lock, so concurrent first
    callers share a single computation. A failed load is not cached. Every
    get() returns a fresh copy of the cached mapping.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._accounts: Optional[Dict[str, str]] = None

    @property
    def loaded(self) -> bool:
        return self._accounts is not None

    def get(self, loader: Callable[[], Dict[str, str]]) -> Dict[str, str]:
        """Return a copy of the cached accounts, loading them on first use."""
        with self._lock:
            if self._accounts is None:
                self._accounts = dict(loader())
            return dict(self._accounts)

    def reset(self):
        """Forget the cached accounts so the next get() reloads them."""
        with self._lock:
            self._accounts = None
