"""Specifier normalization and package request parsing."""

import json
import logging
import os
import re
from typing import Dict, Iterable, List, Tuple

import semantic_version

from constants import Constants

logger = logging.getLogger(__name__)

_RANGE_PREFIXES = ("^", "~")
# Closest semver-looking substring, the way npm's coerce() scans a string
_COERCE_RE = re.compile(r"(?<!\d)(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?!\d)")


class ManifestFileError(Exception):
    """Raised when a package.json input cannot be used."""


def normalize_spec(raw: str) -> str:
    """Turn a raw specifier into a concrete version or the "latest" tag.

    Strips one leading ``^``/``~``; keeps the rest when it is a valid
    version, otherwise coerces the first version-looking substring
    ("~2.0" -> "2.0.0", ">=1.2 <2" -> "1.2.0"). Anything else, dist-tags
    included, maps to "latest". Never raises.
    """
    if raw is None:
        return Constants.LATEST_TAG
    cleaned = str(raw).strip()
    for prefix in _RANGE_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break

    if semantic_version.validate(cleaned):
        return cleaned

    match = _COERCE_RE.search(cleaned)
    if not match:
        return Constants.LATEST_TAG
    try:
        return str(semantic_version.Version.coerce(match.group(0)))
    except ValueError:
        return Constants.LATEST_TAG


def parse_package_token(token: str) -> Tuple[str, str]:
    """Split a ``name[@version]`` request; scoped names keep their ``@``.

    >>> parse_package_token("@babel/core@7.0.0")
    ('@babel/core', '7.0.0')
    """
    token = token.strip()
    scoped = token.startswith("@")
    body = token[1:] if scoped else token
    name, _, version = body.partition("@")
    if scoped:
        name = "@" + name
    return name, version or Constants.LATEST_TAG


def build_root_manifest(tokens: Iterable[str]) -> Dict[str, Dict[str, str]]:
    """Synthesize a package.json-like mapping from CLI package tokens."""
    dependencies: Dict[str, str] = {}
    for token in tokens:
        if not token or not token.strip():
            continue
        name, version = parse_package_token(token)
        dependencies[name] = version
    return {"dependencies": dependencies}


def build_top_manifest(packages: List[Dict[str, str]]) -> Dict[str, Dict[str, str]]:
    """Synthesize a root mapping from search results."""
    return {"dependencies": {pkg["name"]: pkg["version"] for pkg in packages}}


def load_package_json(path: str) -> Dict:
    """Read a package.json file, or the one inside a directory.

    Raises:
        ManifestFileError: missing file, invalid JSON, or no dependencies map.
    """
    if os.path.isdir(path):
        path = os.path.join(path, Constants.PACKAGE_JSON_FILE)
    if not os.path.isfile(path):
        raise ManifestFileError(f'The path "{path}" does not exist')

    try:
        with open(path, "r", encoding="utf-8") as file:
            data = json.load(file)
    except json.JSONDecodeError as e:
        raise ManifestFileError(f"Couldn't parse {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("dependencies"), dict):
        raise ManifestFileError("The package.json does not contain a dependencies list")
    logger.debug("Loaded %s with %d dependencies", path, len(data["dependencies"]))
    return data
