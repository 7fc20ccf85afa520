"""NPM search endpoint: the highest-ranked packages."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled

from .errors import RegistryResponseError

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[str, float], None]


def _search_url(base_url: str, size: int, offset: int) -> str:
    return f"{base_url}?text={Constants.SEARCH_QUERY}&size={size}&from={offset}"


def page_sizes(quantity: int, page_size: int = Constants.SEARCH_PAGE_SIZE) -> List[int]:
    """Sizes of the successive search pages needed for `quantity` results.

    Every page is full except possibly the last, which holds the remainder.
    """
    if quantity <= 0:
        return []
    pages = math.ceil(quantity / page_size)
    remainder = quantity % page_size
    return [page_size if (i < pages - 1 or remainder == 0) else remainder for i in range(pages)]


def get_top_packages(
    quantity: int = 1000,
    reporter: Optional[ProgressReporter] = None,
    search_url: str = Constants.SEARCH_URL_NPM,
) -> List[Dict[str, Any]]:
    """Fetch the top packages by popularity, quality and maintenance.

    Args:
        quantity: How many packages to fetch; capped at SEARCH_MAX_PACKAGES.
        reporter: Optional (message, fraction) progress callback.
        search_url: Registry search endpoint.

    Returns:
        list: ``{"name", "version", "score"}`` dicts in ranking order.

    Raises:
        RegistryResponseError: a page could not be fetched.
    """
    total = min(quantity, Constants.SEARCH_MAX_PACKAGES)
    packages: List[Dict[str, Any]] = []
    message = f"Fetch top {total} npm packages..."

    offset = 0
    for size in page_sizes(total):
        url = _search_url(search_url, size, offset)
        status, _, data = get_json(url)
        if status != 200 or not isinstance(data, dict):
            raise RegistryResponseError(url, status, "search page unavailable")

        for obj in data.get("objects", []):
            pkg = obj.get("package", {})
            if not pkg.get("name"):
                continue
            packages.append({
                "name": pkg["name"],
                "version": pkg.get("version", Constants.LATEST_TAG),
                "score": obj.get("score"),
            })

        if is_debug_enabled(logger):
            logger.debug(
                "Search page fetched",
                extra=extra_context(
                    event="search_page",
                    component="search",
                    offset=offset,
                    size=size,
                    count=len(packages),
                ),
            )
        if reporter:
            reporter(message, len(packages) / total)
        offset += size

    return packages
