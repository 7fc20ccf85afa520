"""Manifest lookup with the registry fallback rules."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from registry.npm.client import NpmRegistryClient
from registry.npm.errors import PackageNotFoundError, VersionNotFoundError
from versioning.models import Manifest

logger = logging.getLogger(__name__)


class ManifestFetcher:
    """Resolve ``name@version_or_tag`` to a Manifest.

    Fallbacks, in order:
      * version missing but the package has a latest tag: use that version;
      * package/version missing for a non-latest request: retry with the
        package's default (latest) version;
      * missing for a latest request: PackageNotFoundError.
    Everything else propagates.
    """

    def __init__(self, client: NpmRegistryClient):
        self._client = client

    async def fetch(self, name: str, version_or_tag: Optional[str] = None) -> Manifest:
        spec = version_or_tag or Constants.LATEST_TAG
        if spec == Constants.LATEST_TAG:
            doc = await self._fetch_document(name, spec)
            return Manifest.from_document(doc, is_latest=True)

        doc, tags = await asyncio.gather(
            self._fetch_document(name, spec),
            self._client.fetch_dist_tags(name),
        )
        is_latest = tags.get(Constants.LATEST_TAG) == doc.get("version")
        return Manifest.from_document(doc, is_latest=is_latest)

    async def _fetch_document(self, name: str, spec: str) -> dict:
        try:
            return await self._client.fetch_version_document(name, spec)
        except VersionNotFoundError as e:
            latest = e.dist_tags.get(Constants.LATEST_TAG)
            if not latest:
                raise
            logger.warning("%s@%s not found, using latest tag %s", name, spec, latest)
            return await self._client.fetch_version_document(name, latest)
        except PackageNotFoundError:
            if spec == Constants.LATEST_TAG:
                raise PackageNotFoundError(name, spec) from None
            logger.warning("%s@%s not found, retrying with the registry default", name, spec)
            if is_debug_enabled(logger):
                logger.debug(
                    "Manifest fallback",
                    extra=extra_context(
                        event="fallback",
                        component="fetcher",
                        outcome="not_found_default_tag",
                        target=f"{name}@{spec}",
                    ),
                )
            return await self._client.fetch_version_document(name, Constants.LATEST_TAG)
