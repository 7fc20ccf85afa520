"""Tarball file names as a carrier of package identity.

Encoding: ``{name with first "/" -> "-"}-{version}[-latest].tgz``.
Decoding reverses it with the same regular expressions the publish step
has always used. The mapping is lossy: names containing ``-latest`` or
digits, and prerelease versions, do not round-trip (see the tests).
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional

from constants import Constants

_NAME_RE = re.compile(r"(.*)-")
_VERSION_RE = re.compile(r"(\d.*).tgz")


@dataclass(frozen=True)
class TarballIdentity:
    """What a tarball file name says about its package."""
    filename: str
    name: Optional[str]
    version: Optional[str]
    is_latest: bool

    @property
    def full_name(self) -> str:
        """``name@version`` when both parsed, else the cleaned file name."""
        if self.name and self.version:
            return f"{self.name}@{self.version}"
        return self.clear_filename

    @property
    def clear_filename(self) -> str:
        return self.filename.replace(Constants.LATEST_SUFFIX + Constants.TARBALL_EXT, Constants.TARBALL_EXT, 1)


def tarball_filename(name: str, version: str, is_latest: bool = False) -> str:
    """File name for a downloaded tarball."""
    suffix = Constants.LATEST_SUFFIX if is_latest else ""
    return f"{name.replace('/', '-', 1)}-{version}{suffix}{Constants.TARBALL_EXT}"


def parse_tarball_filename(path: str) -> TarballIdentity:
    """Recover name, version and the latest flag from a tarball path.

    Raises:
        ValueError: the file is not a ``.tgz``.
    """
    filename = os.path.basename(path)
    if not filename.endswith(Constants.TARBALL_EXT):
        raise ValueError(f'The file "{filename}" does not have a tgz extension')

    is_latest = (Constants.LATEST_SUFFIX + Constants.TARBALL_EXT) in filename
    clear_name = filename.replace(Constants.LATEST_SUFFIX + Constants.TARBALL_EXT, Constants.TARBALL_EXT, 1)
    if clear_name.startswith("@"):
        clear_name = clear_name.replace("-", "/", 1)

    name_match = _NAME_RE.search(clear_name)
    version_match = _VERSION_RE.search(clear_name)
    return TarballIdentity(
        filename=filename,
        name=name_match.group(1) if name_match else None,
        version=version_match.group(1) if version_match else None,
        is_latest=is_latest,
    )
