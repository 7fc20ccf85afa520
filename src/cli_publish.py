"""CLI entry point for the publish command."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from typing import Any, List

from cli_config import RuntimeConfig
from constants import ExitCodes
from packaging_ops.publish import publish_path

logger = logging.getLogger(__name__)


def _npm(*args: str) -> List[str]:
    return [shutil.which("npm") or "npm", *args]


def prepare_npm(args: Any) -> None:
    """Log in (unless skipped) and point npm at the target registry.

    Raises:
        subprocess.CalledProcessError: npm exited non-zero.
    """
    if not getattr(args, "SKIP_LOGIN", False):
        print("npm login")
        subprocess.run(_npm("login"), check=True)
    if getattr(args, "REGISTRY", None):
        subprocess.run(_npm("set", "registry", args.REGISTRY), check=True)


def run_publish(args: Any, config: RuntimeConfig) -> int:
    """Execute the publish command; returns an exit code."""
    path = args.PATH
    if not os.path.exists(path):
        raise FileNotFoundError(f'The path "{path}" does not exist')

    prepare_npm(args)
    summary = asyncio.run(
        publish_path(
            path,
            concurrency=config.publish_concurrency,
            force=bool(getattr(args, "FORCE", False)),
            delete_after=bool(getattr(args, "DEL_PACKAGE", False)),
        )
    )

    for name in summary.published:
        print(name)
    for name in summary.existing:
        print(f"{name} - already exists")
    print(
        f"Published {len(summary.published)}, already existing {len(summary.existing)}, "
        f"failed {len(summary.failed)}"
    )
    if not summary.ok:
        logger.error("Failed to publish: %s", ", ".join(summary.failed))
        return ExitCodes.PUBLISH_ERROR.value
    return ExitCodes.SUCCESS.value
