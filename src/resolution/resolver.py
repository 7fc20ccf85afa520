"""Recursive dependency resolver.

Expands a manifest's dependency maps into a flat, de-duplicated list of
concrete package versions. Sibling manifests at one level are fetched
concurrently; a node's children are fetched only once its own manifest is
in hand, so in-flight requests stay bounded by the branching factor.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import DependencySpec, Manifest, ResolutionContext, ResolvedVersion
from versioning.parser import normalize_spec

from .fetcher import ManifestFetcher
from .memo import ResolutionMemo

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[str, float], None]


class ProgressTracker:
    """Cumulative resolve progress, owned by the top-level call.

    Only depth-0 edges advance the fraction, one share per edge once its
    whole subtree is done; the total tree size is unknown up front.
    """

    def __init__(self, reporter: Optional[ProgressReporter] = None):
        self._reporter = reporter
        self.fraction = 0.0

    def advance(self, amount: float) -> None:
        self.fraction = min(1.0, self.fraction + amount)

    def report(self, message: str) -> None:
        if self._reporter:
            self._reporter(message, self.fraction)


def collect_edges(manifest: Manifest, context: ResolutionContext) -> List[DependencySpec]:
    """Merge the enabled dependency maps and normalize every specifier.

    Merge order is dependencies < dev < peer < optional: a name present in
    several maps keeps its first position and takes the last value.
    """
    merged = dict(manifest.dependencies)
    if context.include_dev:
        merged.update(manifest.dev_dependencies)
    if context.include_peer:
        merged.update(manifest.peer_dependencies)
    if context.include_optional:
        merged.update(manifest.optional_dependencies)
    return [DependencySpec(name, normalize_spec(spec)) for name, spec in merged.items()]


class DependencyResolver:
    """Resolve manifests into ResolvedVersion lists using a shared memo."""

    def __init__(
        self,
        fetcher: ManifestFetcher,
        memo: Optional[ResolutionMemo] = None,
        reporter: Optional[ProgressReporter] = None,
    ):
        self._fetcher = fetcher
        self._memo = memo if memo is not None else ResolutionMemo()
        self._reporter = reporter
        self.failures: List[DependencySpec] = []

    @property
    def memo(self) -> ResolutionMemo:
        return self._memo

    async def resolve(
        self,
        manifest: Union[Manifest, Mapping[str, Any]],
        context: Optional[ResolutionContext] = None,
        progress: Optional[ProgressTracker] = None,
    ) -> List[ResolvedVersion]:
        """Return the manifest's transitive dependencies, parents before children.

        Entries already in the memo are skipped; a failing edge is logged
        and left out together with its subtree.
        """
        if not isinstance(manifest, Manifest):
            manifest = Manifest.from_document(manifest)
        context = context or ResolutionContext()
        if progress is None:
            progress = ProgressTracker(self._reporter)
        top_level = context.depth == 0

        edges = collect_edges(manifest, context)
        if not edges:
            return []
        share = 1 / len(edges)

        pending = [edge for edge in edges if not self._memo.has(edge.name, edge.version_range)]
        fetched = await asyncio.gather(*(self._fetch(edge) for edge in pending))

        # Claim every surviving sibling before descending so a child that
        # depends on a sibling does not emit it again.
        survivors: List[Manifest] = []
        for child in fetched:
            if child is None or not self._memo.claim(child.name, child.version):
                continue
            progress.report(f"Resolving dependencies: {child.name}@{child.version}")
            survivors.append(child)

        if top_level:
            progress.advance(share * (len(edges) - len(survivors)))

        if is_debug_enabled(logger):
            logger.debug(
                "Resolved level",
                extra=extra_context(
                    event="resolve_level",
                    component="resolver",
                    depth=context.depth,
                    edges=len(edges),
                    fetched=len(pending),
                    kept=len(survivors),
                ),
            )

        result: List[ResolvedVersion] = []
        for child in survivors:
            result.append(ResolvedVersion(child.name, child.version, child.is_latest))
            result.extend(await self.resolve(child, context.descend(), progress))
            if top_level:
                progress.advance(share)
        return result

    async def _fetch(self, edge: DependencySpec) -> Optional[Manifest]:
        try:
            child = await self._fetcher.fetch(edge.name, edge.version_range)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Error: failed to resolve %s@%s: %s", edge.name, edge.version_range, e)
            self.failures.append(edge)
            return None
        if not child.version:
            logger.error("Error: registry returned no version for %s@%s", edge.name, edge.version_range)
            self.failures.append(edge)
            return None
        if not child.name:
            child = dataclasses.replace(child, name=edge.name)
        return child
