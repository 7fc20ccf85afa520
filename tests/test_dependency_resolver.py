"""Tests for recursive dependency resolution."""

import asyncio

import pytest

from registry.npm.errors import PackageNotFoundError
from resolution.memo import ResolutionMemo
from resolution.resolver import DependencyResolver, ProgressTracker, collect_edges
from versioning.models import DependencySpec, Manifest, ResolutionContext, ResolvedVersion


class FakeFetcher:
    """In-memory registry keyed by (name, version) with a latest map."""

    def __init__(self, packages, latest=None):
        self.packages = packages
        self.latest = latest or {}
        self.calls = []

    async def fetch(self, name, version_or_tag=None):
        spec = version_or_tag or "latest"
        self.calls.append((name, spec))
        await asyncio.sleep(0)
        version = self.latest.get(name) if spec == "latest" else spec
        doc = self.packages.get((name, version))
        if doc is None:
            raise PackageNotFoundError(name, spec)
        return Manifest.from_document(
            dict(doc, name=name, version=version),
            is_latest=self.latest.get(name) == version,
        )


def pkg(**deps):
    return {"dependencies": deps}


def resolve(fetcher, root, context=None, memo=None, progress=None):
    resolver = DependencyResolver(fetcher, memo if memo is not None else ResolutionMemo())
    result = asyncio.run(resolver.resolve(root, context, progress))
    return resolver, result


def keys(result):
    return [entry.key for entry in result]


class TestCollectEdges:
    """Dependency map merging and specifier normalization."""

    def test_runtime_only_by_default(self):
        """Only dependencies are walked unless other kinds are enabled."""
        manifest = Manifest(dependencies={"a": "1.0.0"}, dev_dependencies={"b": "1.0.0"})
        assert collect_edges(manifest, ResolutionContext()) == [DependencySpec("a", "1.0.0")]

    def test_later_kinds_override_earlier(self):
        """A name in several maps takes the later map's specifier."""
        manifest = Manifest(
            dependencies={"a": "1.0.0", "b": "1.0.0"},
            dev_dependencies={"a": "2.0.0"},
            peer_dependencies={"c": "3.0.0"},
            optional_dependencies={"a": "4.0.0"},
        )
        context = ResolutionContext(include_dev=True, include_peer=True, include_optional=True)
        assert collect_edges(manifest, context) == [
            DependencySpec("a", "4.0.0"),
            DependencySpec("b", "1.0.0"),
            DependencySpec("c", "3.0.0"),
        ]

    def test_specifiers_normalized(self):
        """Ranges become concrete versions and tags become latest."""
        manifest = Manifest(dependencies={"a": "^1.2.3", "b": "next"})
        assert collect_edges(manifest, ResolutionContext()) == [
            DependencySpec("a", "1.2.3"),
            DependencySpec("b", "latest"),
        ]


class TestDependencyResolver:
    """Traversal order, de-duplication, failures and progress."""

    def test_single_leaf_latest(self):
        """A leaf requested at latest resolves to the latest version."""
        fetcher = FakeFetcher({("leaf", "1.0.0"): pkg()}, {"leaf": "1.0.0"})
        _, result = resolve(fetcher, {"dependencies": {"leaf": "latest"}})
        assert result == [ResolvedVersion("leaf", "1.0.0", True)]

    def test_empty_manifest(self):
        """No dependency maps means nothing to resolve."""
        fetcher = FakeFetcher({})
        _, result = resolve(fetcher, {})
        assert result == []
        assert fetcher.calls == []

    def test_parents_precede_children_depth_first(self):
        """Each subtree is emitted right after its parent."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): pkg(c="1.0.0"),
            ("b", "1.0.0"): pkg(d="1.0.0"),
            ("c", "1.0.0"): pkg(),
            ("d", "1.0.0"): pkg(),
        })
        _, result = resolve(fetcher, pkg(a="1.0.0", b="1.0.0"))
        assert keys(result) == [("a", "1.0.0"), ("c", "1.0.0"), ("b", "1.0.0"), ("d", "1.0.0")]

    def test_diamond_emits_shared_dependency_once(self):
        """Two parents of the same version produce a single entry."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): pkg(c="1.0.0"),
            ("b", "1.0.0"): pkg(c="1.0.0"),
            ("c", "1.0.0"): pkg(),
        })
        _, result = resolve(fetcher, pkg(a="1.0.0", b="1.0.0"))
        assert keys(result) == [("a", "1.0.0"), ("c", "1.0.0"), ("b", "1.0.0")]
        assert fetcher.calls.count(("c", "1.0.0")) == 1

    def test_tag_resolving_to_known_version_is_dropped(self):
        """A latest edge resolving to an already emitted version is not repeated."""
        fetcher = FakeFetcher(
            {
                ("a", "1.0.0"): pkg(x="1.0.0"),
                ("b", "1.0.0"): pkg(x="latest"),
                ("x", "1.0.0"): pkg(),
            },
            {"x": "1.0.0"},
        )
        _, result = resolve(fetcher, pkg(a="1.0.0", b="1.0.0"))
        assert keys(result) == [("a", "1.0.0"), ("x", "1.0.0"), ("b", "1.0.0")]
        assert ("x", "latest") in fetcher.calls

    def test_cycle_terminates(self):
        """Mutually dependent packages resolve once each."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): pkg(b="1.0.0"),
            ("b", "1.0.0"): pkg(a="1.0.0"),
        })
        _, result = resolve(fetcher, pkg(a="1.0.0"))
        assert keys(result) == [("a", "1.0.0"), ("b", "1.0.0")]

    def test_siblings_claimed_before_descending(self):
        """A child depending on its sibling does not emit the sibling again."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): pkg(b="1.0.0"),
            ("b", "1.0.0"): pkg(),
        })
        _, result = resolve(fetcher, pkg(a="1.0.0", b="1.0.0"))
        assert keys(result) == [("a", "1.0.0"), ("b", "1.0.0")]
        assert fetcher.calls.count(("b", "1.0.0")) == 1

    def test_prepopulated_memo_skips_without_fetching(self):
        """Keys already in the memo are neither fetched nor emitted."""
        fetcher = FakeFetcher({("a", "1.0.0"): pkg()})
        memo = ResolutionMemo()
        memo.set("a", "1.0.0")
        _, result = resolve(fetcher, pkg(a="1.0.0"), memo=memo)
        assert result == []
        assert fetcher.calls == []

    def test_second_run_without_clear_is_empty(self):
        """Reusing a memo suppresses everything; clearing restores the result."""
        fetcher = FakeFetcher({("a", "1.0.0"): pkg(b="1.0.0"), ("b", "1.0.0"): pkg()})
        memo = ResolutionMemo()
        _, first = resolve(fetcher, pkg(a="1.0.0"), memo=memo)
        _, second = resolve(fetcher, pkg(a="1.0.0"), memo=memo)
        memo.clear()
        _, third = resolve(fetcher, pkg(a="1.0.0"), memo=memo)

        assert second == []
        assert third == first

    def test_empty_memo_passed_in_is_used(self):
        """An empty caller memo is shared, not replaced by a private one."""
        fetcher = FakeFetcher({("a", "1.0.0"): pkg()})
        memo = ResolutionMemo()
        resolver, _ = resolve(fetcher, pkg(a="1.0.0"), memo=memo)
        assert resolver.memo is memo
        assert memo.has("a", "1.0.0")

    def test_failed_edge_is_omitted_with_its_subtree(self):
        """A failing fetch is recorded while siblings still resolve."""
        fetcher = FakeFetcher({("a", "1.0.0"): pkg()})
        resolver, result = resolve(fetcher, pkg(a="1.0.0", ghost="2.0.0"))
        assert keys(result) == [("a", "1.0.0")]
        assert resolver.failures == [DependencySpec("ghost", "2.0.0")]

    def test_caret_specifier_fetches_base_version(self):
        """Range operators are stripped before the fetch."""
        fetcher = FakeFetcher({("a", "1.2.0"): pkg()})
        _, result = resolve(fetcher, pkg(a="^1.2.0"))
        assert fetcher.calls == [("a", "1.2.0")]
        assert keys(result) == [("a", "1.2.0")]

    def test_is_latest_reflects_registry_tag(self):
        """Entries carry whether they are the registry's latest."""
        fetcher = FakeFetcher(
            {("a", "1.0.0"): pkg(), ("b", "2.0.0"): pkg()},
            {"a": "1.5.0", "b": "2.0.0"},
        )
        _, result = resolve(fetcher, pkg(a="1.0.0", b="2.0.0"))
        assert [entry.is_latest for entry in result] == [False, True]

    def test_dev_flag_applies_to_every_level(self):
        """Enabled kinds are walked in transitive manifests too."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): {"dependencies": {}, "devDependencies": {"b": "1.0.0"}},
            ("b", "1.0.0"): pkg(),
            ("t", "1.0.0"): pkg(),
        })
        root = {"dependencies": {"a": "1.0.0"}, "devDependencies": {"t": "1.0.0"}}

        _, without_dev = resolve(fetcher, root)
        _, with_dev = resolve(fetcher, root, ResolutionContext(include_dev=True))

        assert keys(without_dev) == [("a", "1.0.0")]
        assert keys(with_dev) == [("a", "1.0.0"), ("b", "1.0.0"), ("t", "1.0.0")]

    def test_progress_is_monotonic_and_completes(self):
        """Reported fractions never decrease and the run ends at 1.0."""
        fetcher = FakeFetcher({
            ("a", "1.0.0"): pkg(c="1.0.0", d="1.0.0"),
            ("b", "1.0.0"): pkg(c="1.0.0"),
            ("c", "1.0.0"): pkg(),
            ("d", "1.0.0"): pkg(),
        })
        reports = []
        tracker = ProgressTracker(lambda message, fraction: reports.append((message, fraction)))
        resolve(fetcher, pkg(a="1.0.0", b="1.0.0", ghost="1.0.0"), progress=tracker)

        fractions = [fraction for _, fraction in reports]
        assert fractions == sorted(fractions)
        assert all(0.0 <= f <= 1.0 for f in fractions)
        assert tracker.fraction == pytest.approx(1.0)
        assert reports[0][0] == "Resolving dependencies: a@1.0.0"

    def test_reporter_on_resolver_used_without_explicit_tracker(self):
        """The resolver's reporter receives resolving messages."""
        fetcher = FakeFetcher({("a", "1.0.0"): pkg()})
        reports = []
        resolver = DependencyResolver(fetcher, reporter=lambda m, f: reports.append(m))
        asyncio.run(resolver.resolve(pkg(a="1.0.0")))
        assert reports == ["Resolving dependencies: a@1.0.0"]
