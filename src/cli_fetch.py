"""CLI entry point for the fetch command.

Resolves the requested packages' dependency trees, downloads every tarball
into a destination folder and optionally bundles the folder into a .tar.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cli_config import RuntimeConfig
from constants import Constants, ExitCodes
from common.progress import StageProgress
from packaging_ops.archive import create_archive
from packaging_ops.download import DownloadResult, download_packages
from registry.npm.client import NpmRegistryClient
from registry.npm.search import get_top_packages
from resolution.fetcher import ManifestFetcher
from resolution.memo import resolved_packages
from resolution.resolver import DependencyResolver
from storage.download_cache import DownloadCache, default_cache_path
from versioning.models import ResolutionContext, ResolvedVersion
from versioning.parser import build_root_manifest, build_top_manifest, load_package_json

logger = logging.getLogger(__name__)

USAGE_HINT = """Required arguments are missing.
    Please run:
        // For packages list
        npo fetch package1 package2

        // For package.json file
        npo fetch -p ./package.json

        // To fetch top npm packages
        npo fetch --top 1000"""


def count_stages(args: Any) -> int:
    """Top-package runs get an extra leading stage."""
    if getattr(args, "TOP", None) and not getattr(args, "PACKAGE_JSON", None) and not getattr(args, "PACKAGES", None):
        return 3
    return 2


def default_destination(now: datetime) -> str:
    return f"{Constants.DEST_PREFIX}{now.strftime(Constants.DEST_TIME_FORMAT)}"


def format_duration(start: datetime, end: datetime) -> str:
    """HH:MM:SS:ms."""
    total_ms = int((end - start).total_seconds() * 1000)
    seconds, milliseconds = divmod(total_ms, 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}:{milliseconds}"


def build_root(args: Any, progress: StageProgress) -> Optional[Dict[str, Any]]:
    """Root manifest from package.json, a package list, or the top packages."""
    if getattr(args, "PACKAGE_JSON", None):
        return load_package_json(args.PACKAGE_JSON)
    if getattr(args, "PACKAGES", None):
        return build_root_manifest(args.PACKAGES)
    if getattr(args, "TOP", None):
        progress(f"Fetch top {args.TOP} npm packages...")
        top = get_top_packages(args.TOP, reporter=progress)
        print(progress.complete(f"Fetch top {len(top)} npm packages completed"))
        return build_top_manifest(top)
    return None


async def resolve_and_download(
    root: Dict[str, Any],
    args: Any,
    config: RuntimeConfig,
    dest_folder: str,
    cache: Optional[DownloadCache],
    progress: StageProgress,
) -> Tuple[List[ResolvedVersion], List[DownloadResult]]:
    """Run the resolve and download stages on one registry session."""
    async with NpmRegistryClient(config.registry, config.request_timeout) as client:
        resolver = DependencyResolver(ManifestFetcher(client), resolved_packages, progress)
        context = ResolutionContext(
            include_dev=bool(getattr(args, "DEV", False)),
            include_peer=bool(getattr(args, "PEER", False)),
            include_optional=bool(getattr(args, "OPTIONAL", False)),
        )
        progress("Resolving dependencies...")
        dependencies = await resolver.resolve(root, context)
        print(progress.complete(f"Resolving dependencies completed with {len(dependencies)} packages"))

        progress("Fetching packages...")
        results = await download_packages(dependencies, client, dest_folder, cache, config.concurrency, progress)
        progress.hide()
    return dependencies, results


def run_fetch(args: Any, config: RuntimeConfig) -> int:
    """Execute the fetch command; returns an exit code."""
    start = datetime.now()
    dest_folder = getattr(args, "DEST", None) or default_destination(start)
    progress = StageProgress(count_stages(args))

    try:
        root = build_root(args, progress)
    finally:
        progress.hide()
    if root is None or root.get("dependencies") is None:
        print(USAGE_HINT)
        return ExitCodes.USAGE_ERROR.value

    os.makedirs(dest_folder, exist_ok=True)
    resolved_packages.clear()
    cache = DownloadCache(default_cache_path(config.cache_dir)) if getattr(args, "CACHE", True) else None

    try:
        dependencies, results = asyncio.run(
            resolve_and_download(root, args, config, dest_folder, cache, progress)
        )
    finally:
        progress.hide()

    completed = [r for r in results if r.ok]
    in_cache = len(dependencies) - len(results)
    display = str(len(results)) if len(completed) == len(results) else f"{len(completed)}/{len(results)}"
    cached_note = f" ({in_cache} packages already in cache)" if in_cache else ""
    print(progress.complete(f"Fetching packages completed with {display} packages{cached_note}"))
    for failed in (r for r in results if not r.ok):
        logger.warning("Not downloaded: %s@%s (%s)", failed.name, failed.version, failed.error)

    if not results:
        if os.path.isdir(dest_folder) and not os.listdir(dest_folder):
            os.rmdir(dest_folder)
        print("No packages found to fetch. Add --no-cache flag to disable cache")
        return ExitCodes.SUCCESS.value

    destination = dest_folder
    if getattr(args, "TAR", True):
        destination = create_archive(dest_folder)
        if not getattr(args, "DEST", None):
            shutil.rmtree(dest_folder)

    print(f"      Duration: {format_duration(start, datetime.now())}")
    print(f"      Destination folder: {destination}")
    return ExitCodes.SUCCESS.value
