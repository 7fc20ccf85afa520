"""Per-run record of the (name, version) pairs already resolved."""

from __future__ import annotations

import threading
from typing import Set

from versioning.models import PackageKey


class ResolutionMemo:
    """In-process set of resolved package keys.

    Scoped to one top-level resolve; callers must clear() it before each
    new run. Access is guarded so concurrent completions never corrupt it.
    """

    def __init__(self) -> None:
        self._keys: Set[PackageKey] = set()
        self._lock = threading.Lock()

    def set(self, name: str, version: str) -> None:
        with self._lock:
            self._keys.add((name, version))

    def has(self, name: str, version: str) -> bool:
        with self._lock:
            return (name, version) in self._keys

    def claim(self, name: str, version: str) -> bool:
        """Atomically mark a key; False if it was already present."""
        with self._lock:
            if (name, version) in self._keys:
                return False
            self._keys.add((name, version))
            return True

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


# Shared memo for CLI runs (cleared before each invocation)
resolved_packages = ResolutionMemo()
