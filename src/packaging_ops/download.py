"""Download resolved packages as tarballs into a destination folder."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from constants import Constants
from registry.npm.client import NpmRegistryClient
from storage.download_cache import DownloadCache
from versioning.models import ResolvedVersion

from .tarball_name import tarball_filename

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[str, float], None]


@dataclass
class DownloadResult:
    """Outcome of one tarball download."""
    name: str
    version: str
    is_latest: bool
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """Split items into consecutive chunks of at most `size`."""
    size = max(1, int(size))
    return [items[i:i + size] for i in range(0, len(items), size)]


async def download_package(
    client: NpmRegistryClient,
    package: ResolvedVersion,
    dest_folder: str,
) -> DownloadResult:
    """Download one tarball; failures are captured in the result."""
    path = os.path.join(dest_folder, tarball_filename(package.name, package.version, package.is_latest))
    try:
        await client.stream_tarball(package.name, package.version, path)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Error: failed to download %s@%s: %s", package.name, package.version, e)
        return DownloadResult(package.name, package.version, package.is_latest, error=str(e))
    return DownloadResult(package.name, package.version, package.is_latest, path=path)


async def download_packages(
    packages: Sequence[ResolvedVersion],
    client: NpmRegistryClient,
    dest_folder: str = ".",
    cache: Optional[DownloadCache] = None,
    concurrency: int = Constants.DOWNLOAD_CONCURRENCY,
    reporter: Optional[ProgressReporter] = None,
) -> List[DownloadResult]:
    """Download tarballs in chunks of `concurrency`.

    Packages already recorded in `cache` are skipped; each success is added
    to it. A chunk finishes before the next one starts. One result is
    returned per attempted package, so the caller can reconcile counts
    against the requested list.
    """
    if cache is not None:
        to_download = [p for p in packages if not cache.exists(p.name, p.version)]
    else:
        to_download = list(packages)

    skipped = len(packages) - len(to_download)
    if skipped:
        logger.info("%d packages already in cache", skipped)

    results: List[DownloadResult] = []
    total = len(to_download)
    for chunk in chunked(to_download, concurrency):
        chunk_results = await asyncio.gather(
            *(download_package(client, package, dest_folder) for package in chunk)
        )
        for result in chunk_results:
            results.append(result)
            if result.ok and cache is not None:
                cache.add(result.name, result.version)
            if reporter:
                reporter(f"Fetching packages: {result.name}@{result.version}", len(results) / total)
    return results
