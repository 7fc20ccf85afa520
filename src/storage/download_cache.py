"""Durable record of downloaded package versions.

Persisted as a JSON document ``{package_name: [version, ...]}`` under the
data directory so separate fetch runs skip tarballs they already produced.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Dict, List, Optional

from constants import Constants

logger = logging.getLogger(__name__)


def default_cache_path(data_dir: Optional[str] = None) -> str:
    return os.path.join(data_dir or Constants.DATA_DIR, Constants.DOWNLOAD_CACHE_FILE)


class DownloadCache:
    """Package name -> set of downloaded versions, backed by a JSON file."""

    def __init__(self, path: Optional[str] = None):
        self._path = path or default_cache_path()
        self._lock = threading.Lock()
        self._data: Dict[str, List[str]] = self._load()

    @property
    def path(self) -> str:
        return self._path

    def _load(self) -> Dict[str, List[str]]:
        if not os.path.isfile(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable download cache %s: %s", self._path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed download cache %s", self._path)
            return {}
        return {
            str(name): [str(v) for v in versions]
            for name, versions in raw.items()
            if isinstance(versions, list)
        }

    def _save(self) -> None:
        """Write the document atomically; caller holds the lock."""
        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".packages-cache-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def exists(self, name: str, version: str) -> bool:
        with self._lock:
            return version in self._data.get(name, ())

    def add(self, name: str, version: str) -> List[str]:
        """Record a downloaded version; returns the package's version list."""
        with self._lock:
            versions = self._data.setdefault(name, [])
            if version not in versions:
                versions.append(version)
                self._save()
            return list(versions)

    def versions(self, name: str) -> List[str]:
        with self._lock:
            return list(self._data.get(name, ()))

    def clear(self) -> None:
        with self._lock:
            self._data = {}
            self._save()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._data.values())
