"""NPM registry client: package documents, version manifests and tarballs."""

from __future__ import annotations

import asyncio
import logging
import os
import urllib.parse
from typing import Any, Dict, Optional, Tuple

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from storage.response_cache import ResponseCache

from .errors import PackageNotFoundError, RegistryResponseError, VersionNotFoundError

logger = logging.getLogger(__name__)

# The abbreviated package document carries dist-tags and the version list,
# which is all the tag lookup needs.
ABBREVIATED_ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
JSON_ACCEPT = "application/json"
_CHUNK_SIZE = 64 * 1024


class NpmRegistryClient:
    """Async client for one npm-compatible registry.

    Use as an async context manager, or call start()/stop() explicitly.
    The connector limit is the ceiling on in-flight requests.
    """

    def __init__(
        self,
        registry: str = Constants.REGISTRY_URL_NPM,
        timeout: int = Constants.REQUEST_TIMEOUT,
        cache: Optional[ResponseCache] = None,
        connection_limit: int = Constants.HTTP_CONNECTION_LIMIT,
    ):
        """Initialize the registry client.

        Args:
            registry: Registry base URL.
            timeout: Connect and read timeout in seconds.
            cache: Shared response cache; a private one is created if omitted.
            connection_limit: Max simultaneous connections.
        """
        self._registry = registry.rstrip("/")
        # Per-socket limits only: time spent queued for a pooled connection must
        # not count against a request.
        self._timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)
        self._connection_limit = connection_limit
        self._cache = cache if cache is not None else ResponseCache(Constants.HTTP_CACHE_TTL_SEC)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def registry(self) -> str:
        return self._registry

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._connection_limit)
            self._session = aiohttp.ClientSession(timeout=self._timeout, connector=connector)

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "NpmRegistryClient":
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def package_url(self, name: str) -> str:
        """URL of a package document; scoped names encode their slash."""
        return f"{self._registry}/{urllib.parse.quote(name, safe='@')}"

    def version_url(self, name: str, version_or_tag: str) -> str:
        return f"{self.package_url(name)}/{urllib.parse.quote(version_or_tag, safe='')}"

    def tarball_url(self, name: str, version: str) -> str:
        """Conventional tarball location: {registry}/{name}/-/{basename}-{version}.tgz."""
        basename = name.split("/", 1)[1] if name.startswith("@") and "/" in name else name
        return f"{self._registry}/{name}/-/{basename}-{version}{Constants.TARBALL_EXT}"

    async def fetch_package_document(self, name: str) -> Dict[str, Any]:
        """Fetch the abbreviated package document (packument).

        Raises:
            PackageNotFoundError: the registry does not know the package.
            RegistryResponseError: any other non-2xx or unreadable body.
        """
        status, data = await self._get_json(self.package_url(name), ABBREVIATED_ACCEPT)
        if status == 404:
            raise PackageNotFoundError(name)
        return data

    async def fetch_dist_tags(self, name: str) -> Dict[str, str]:
        """Return the package's dist-tags (tag -> version)."""
        doc = await self.fetch_package_document(name)
        tags = doc.get("dist-tags") or {}
        return {str(k): str(v) for k, v in tags.items()}

    async def fetch_version_document(self, name: str, version_or_tag: str) -> Dict[str, Any]:
        """Fetch the manifest of one version (or the version a tag points at).

        A 404 is disambiguated through the package document: an unknown
        package raises PackageNotFoundError, a known package raises
        VersionNotFoundError carrying its dist-tags.
        """
        status, data = await self._get_json(self.version_url(name, version_or_tag), JSON_ACCEPT)
        if status != 404:
            return data

        try:
            tags = await self.fetch_dist_tags(name)
        except PackageNotFoundError:
            raise PackageNotFoundError(name, version_or_tag) from None
        raise VersionNotFoundError(name, version_or_tag, tags)

    async def stream_tarball(
        self,
        name: str,
        version: str,
        dest_path: str,
        url: Optional[str] = None,
    ) -> int:
        """Stream a tarball to dest_path and return the byte count.

        Data lands in a sibling ``.part`` file first so a failed transfer
        never leaves a truncated tarball behind.
        """
        await self.start()
        assert self._session is not None
        target = url or self.tarball_url(name, version)
        tmp_path = dest_path + ".part"
        written = 0
        with Timer() as t:
            try:
                async with self._session.get(target) as response:
                    if response.status == 404:
                        raise PackageNotFoundError(name, version)
                    if response.status >= 400:
                        raise RegistryResponseError(safe_url(target), response.status)
                    with open(tmp_path, "wb") as fh:
                        async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
                            fh.write(chunk)
                            written += len(chunk)
                os.replace(tmp_path, dest_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

        if is_debug_enabled(logger):
            logger.debug(
                "Tarball saved",
                extra=extra_context(
                    event="download",
                    component="client",
                    action="stream_tarball",
                    target=safe_url(target),
                    bytes=written,
                    duration_ms=t.duration_ms(),
                    package_manager="npm",
                ),
            )
        return written

    async def _get_json(self, url: str, accept: str) -> Tuple[int, Any]:
        """GET a JSON document through the response cache.

        404 is returned to the caller as (404, None); 5xx and transport
        errors are retried, then raised.
        """
        cache_key = f"{url}\naccept={accept}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP cache hit",
                    extra=extra_context(event="cache_hit", component="client", target=safe_url(url)),
                )
            return cached

        await self.start()
        assert self._session is not None
        safe_target = safe_url(url)
        last_error: Optional[BaseException] = None

        for attempt in range(Constants.HTTP_RETRY_MAX):
            if attempt:
                await asyncio.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
            with Timer() as t:
                try:
                    async with self._session.get(url, headers={"Accept": accept}) as response:
                        status = response.status
                        if status >= 500:
                            last_error = RegistryResponseError(safe_target, status)
                            continue
                        if status == 404:
                            result: Tuple[int, Any] = (404, None)
                        elif status >= 400:
                            raise RegistryResponseError(safe_target, status)
                        else:
                            try:
                                body = await response.json(content_type=None)
                            except ValueError as e:
                                raise RegistryResponseError(safe_target, status, "invalid JSON") from e
                            if not isinstance(body, dict):
                                raise RegistryResponseError(safe_target, status, "unexpected document")
                            result = (status, body)
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    last_error = e
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP request exception",
                            extra=extra_context(
                                event="http_exception",
                                component="client",
                                action="GET",
                                outcome=type(e).__name__,
                                attempt=attempt + 1,
                                target=safe_target,
                            ),
                        )
                    continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="client",
                        action="GET",
                        status_code=result[0],
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        package_manager="npm",
                    ),
                )
            self._cache.set(cache_key, result)
            return result

        assert last_error is not None
        raise last_error
