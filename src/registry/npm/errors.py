"""Registry error types raised by the npm client."""

from __future__ import annotations

from typing import Dict, Optional


class RegistryError(Exception):
    """Base class for registry failures."""


class PackageNotFoundError(RegistryError):
    """The registry has no such package (or version document), npm's E404."""

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version
        target = f"{name}@{version}" if version else name
        super().__init__(f"{target} not found")


class VersionNotFoundError(RegistryError):
    """The package exists but not at the requested version, npm's ETARGET."""

    def __init__(self, name: str, version: str, dist_tags: Optional[Dict[str, str]] = None):
        self.name = name
        self.version = version
        self.dist_tags = dict(dist_tags or {})
        super().__init__(f"No matching version found for {name}@{version}")


class RegistryResponseError(RegistryError):
    """Any other non-2xx status or an unreadable body."""

    def __init__(self, url: str, status: int, detail: str = ""):
        self.url = url
        self.status = status
        message = f"Registry responded {status} for {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
