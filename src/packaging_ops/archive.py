"""Bundle a destination folder into a single ``.tar`` and back."""

from __future__ import annotations

import logging
import os
import tarfile

from constants import Constants

logger = logging.getLogger(__name__)


def create_archive(folder: str) -> str:
    """Write ``<folder>.tar`` holding the folder under its own name."""
    folder = os.path.normpath(folder)
    archive_path = folder + Constants.ARCHIVE_EXT
    with tarfile.open(archive_path, "w") as archive:
        archive.add(folder, arcname=os.path.basename(folder))
    logger.debug("Created archive %s", archive_path)
    return archive_path


def extract_archive(path: str) -> str:
    """Extract a ``.tar`` bundle beside itself; returns the package folder."""
    with tarfile.open(path, "r") as archive:
        archive.extractall(os.path.dirname(os.path.abspath(path)), filter="data")
    return path[: -len(Constants.ARCHIVE_EXT)]
