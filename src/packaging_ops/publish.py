"""Publish downloaded tarballs to a registry through the npm CLI."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tarfile
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List

from constants import Constants
from common.logging_utils import redact

from .archive import extract_archive
from .download import chunked
from .tarball_name import TarballIdentity, parse_tarball_filename

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """npm publish failed for a reason other than a conflict."""

    def __init__(self, package: str, stderr: str):
        self.package = package
        self.stderr = stderr
        detail = redact(stderr.strip()) if stderr else "unknown error"
        super().__init__(f"{package}: {detail}")


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


CommandRunner = Callable[[List[str]], Awaitable[CommandResult]]


async def run_command(args: List[str]) -> CommandResult:
    """Run a command without a shell and capture its output."""
    executable = shutil.which(args[0]) or args[0]
    proc = await asyncio.create_subprocess_exec(
        executable,
        *args[1:],
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return CommandResult(
        proc.returncode if proc.returncode is not None else 1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


@dataclass
class PublishOutcome:
    """Result of publishing one tarball."""
    identity: TarballIdentity
    status: str  # "published" | "republished" | "exists"
    output: str = ""


@dataclass
class PublishSummary:
    published: List[str] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def build_publish_command(path: str, identity: TarballIdentity, force: bool = False) -> List[str]:
    """npm publish arguments; non-latest versions get a name@version tag."""
    command = ["npm", "publish", path]
    if identity.name and identity.version and not identity.is_latest:
        command += ["--tag", f"{identity.name}@{identity.version}"]
    if force:
        command.append("--force")
    return command


def _is_conflict(stderr: str) -> bool:
    return Constants.NPM_PUBLISH_CONFLICT in (stderr or "")


def _is_permission_error(stderr: str) -> bool:
    return Constants.NPM_PERMISSION_DENIED in (stderr or "")


def strip_publish_config(tarball_path: str, work_dir: str, output_path: str) -> str:
    """Repack a tarball with its ``publishConfig`` field renamed.

    A ``publishConfig.registry`` in the archived package.json pins the
    package to its original registry; renaming the field lets npm publish
    to the configured one.
    """
    os.makedirs(work_dir, exist_ok=True)
    with tarfile.open(tarball_path, "r:gz") as archive:
        archive.extractall(work_dir, filter="data")

    package_json = os.path.join(work_dir, "package", Constants.PACKAGE_JSON_FILE)
    with open(package_json, "r", encoding="utf-8") as fh:
        content = fh.read()
    content = content.replace(Constants.PUBLISH_CONFIG_FIELD, Constants.PUBLISH_CONFIG_REMOVED, 1)
    with open(package_json, "w", encoding="utf-8") as fh:
        fh.write(content)

    with tarfile.open(output_path, "w:gz") as archive:
        archive.add(os.path.join(work_dir, "package"), arcname="package")
    return output_path


async def _republish(
    path: str,
    identity: TarballIdentity,
    force: bool,
    runner: CommandRunner,
) -> CommandResult:
    base = path[: -len(Constants.TARBALL_EXT)]
    work_dir = base
    temp_tarball = base + "-temp" + Constants.TARBALL_EXT
    try:
        strip_publish_config(path, work_dir, temp_tarball)
        return await runner(build_publish_command(temp_tarball, identity, force))
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
        if os.path.exists(temp_tarball):
            os.remove(temp_tarball)


async def publish_tarball(
    path: str,
    force: bool = False,
    delete_after: bool = False,
    runner: CommandRunner = run_command,
) -> PublishOutcome:
    """Publish one tarball.

    A publish conflict counts as success. A permission error triggers one
    republish with ``publishConfig`` neutralized.

    Raises:
        ValueError: not a ``.tgz`` file.
        PublishError: npm failed for any other reason.
    """
    identity = parse_tarball_filename(path)
    full_name = identity.full_name

    result = await runner(build_publish_command(path, identity, force))
    status = "published"
    if result.returncode != 0:
        if _is_conflict(result.stderr):
            logger.info("%s - already exists", full_name)
            return PublishOutcome(identity, "exists", result.stderr)
        if not _is_permission_error(result.stderr):
            raise PublishError(full_name, result.stderr)

        logger.info("%s - overriding publishConfig.registry in package.json", full_name)
        result = await _republish(path, identity, force, runner)
        if result.returncode != 0:
            if _is_conflict(result.stderr):
                logger.info("%s - already exists", full_name)
                return PublishOutcome(identity, "exists", result.stderr)
            raise PublishError(full_name, result.stderr)
        status = "republished"

    if delete_after:
        os.remove(path)
        logger.info("published package: %s, deleted file: %s", full_name, identity.clear_filename)
    else:
        logger.info("published package: %s", full_name)
    return PublishOutcome(identity, status, result.stdout)


def list_tarballs(folder: str) -> List[str]:
    return sorted(
        os.path.join(folder, name)
        for name in os.listdir(folder)
        if name.endswith(Constants.TARBALL_EXT) and os.path.isfile(os.path.join(folder, name))
    )


async def publish_folder(
    folder: str,
    concurrency: int = Constants.PUBLISH_CONCURRENCY,
    force: bool = False,
    delete_after: bool = False,
    runner: CommandRunner = run_command,
) -> PublishSummary:
    """Publish every tarball in a folder, `concurrency` at a time.

    Failures are logged and collected; they never stop sibling packages.
    """
    summary = PublishSummary()
    for chunk in chunked(list_tarballs(folder), concurrency):
        outcomes = await asyncio.gather(
            *(publish_tarball(path, force, delete_after, runner) for path in chunk),
            return_exceptions=True,
        )
        for path, outcome in zip(chunk, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Error: publish failed for %s: %s", os.path.basename(path), outcome)
                summary.failed.append(os.path.basename(path))
            elif outcome.status == "exists":
                summary.existing.append(outcome.identity.full_name)
            else:
                summary.published.append(outcome.identity.full_name)
    return summary


async def publish_path(
    path: str,
    concurrency: int = Constants.PUBLISH_CONCURRENCY,
    force: bool = False,
    delete_after: bool = False,
    runner: CommandRunner = run_command,
) -> PublishSummary:
    """Publish a ``.tar`` bundle, a single ``.tgz``, or a folder of tarballs.

    Raises:
        FileNotFoundError: the path does not exist.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f'The path "{path}" does not exist')

    if os.path.isdir(path):
        return await publish_folder(path, concurrency, force, delete_after, runner)

    if path.endswith(Constants.ARCHIVE_EXT):
        folder = extract_archive(path)
        summary = await publish_folder(folder, concurrency, force, delete_after, runner)
        if delete_after and os.path.isdir(folder) and not os.listdir(folder):
            shutil.rmtree(folder)
        return summary

    summary = PublishSummary()
    outcome = await publish_tarball(path, force, delete_after, runner)
    if outcome.status == "exists":
        summary.existing.append(outcome.identity.full_name)
    else:
        summary.published.append(outcome.identity.full_name)
    return summary
