"""Tests for command line parsing."""

import pytest

from args import parse_args


class TestFetchArgs:
    """fetch command flags."""

    def test_packages_and_defaults(self):
        ns = parse_args(["fetch", "lodash", "@babel/core@7.0.0"])
        assert ns.COMMAND == "fetch"
        assert ns.PACKAGES == ["lodash", "@babel/core@7.0.0"]
        assert ns.TAR is True
        assert ns.CACHE is True
        assert ns.DEV is False
        assert ns.LOG_LEVEL is None

    def test_alias(self):
        assert parse_args(["f", "react"]).COMMAND == "fetch"

    def test_package_json_and_options(self):
        ns = parse_args([
            "fetch", "-p", "./app", "--no-tar", "--no-cache", "--dev", "--peer", "--optional",
            "-d", "out", "-r", "https://npm.internal/", "-c", "8", "--loglevel", "debug",
        ])
        assert ns.PACKAGE_JSON == "./app"
        assert ns.PACKAGES == []
        assert (ns.TAR, ns.CACHE) == (False, False)
        assert (ns.DEV, ns.PEER, ns.OPTIONAL) == (True, True, True)
        assert ns.DEST == "out"
        assert ns.REGISTRY == "https://npm.internal/"
        assert ns.CONCURRENCY == 8
        assert ns.LOG_LEVEL == "DEBUG"

    def test_top(self):
        assert parse_args(["fetch", "--top", "100"]).TOP == 100


class TestPublishArgs:
    """publish command flags."""

    def test_defaults(self):
        ns = parse_args(["publish", "packages.tar"])
        assert ns.COMMAND == "publish"
        assert ns.PATH == "packages.tar"
        assert ns.SKIP_LOGIN is False
        assert ns.FORCE is False
        assert ns.CONCURRENT is None
        assert ns.DEL_PACKAGE is False

    def test_options(self):
        ns = parse_args(["p", "./out", "-s", "-f", "-c", "4", "--del-package", "-r", "http://localhost:4873"])
        assert ns.COMMAND == "publish"
        assert ns.SKIP_LOGIN and ns.FORCE and ns.DEL_PACKAGE
        assert ns.CONCURRENT == 4
        assert ns.REGISTRY == "http://localhost:4873"

    def test_path_required(self):
        with pytest.raises(SystemExit):
            parse_args(["publish"])


def test_command_required():
    with pytest.raises(SystemExit):
        parse_args([])


def test_invalid_log_level():
    with pytest.raises(SystemExit):
        parse_args(["fetch", "a", "--loglevel", "LOUD"])


def test_shared_flags_follow_either_subcommand():
    """--config, --loglevel and --logfile are accepted after both subcommands."""
    for argv in (["fetch", "a"], ["publish", "x.tgz"]):
        ns = parse_args(argv + ["--config", "npo.yml", "--loglevel", "info", "--logfile", "npo.log"])
        assert (ns.CONFIG, ns.LOG_LEVEL, ns.LOG_FILE) == ("npo.yml", "INFO", "npo.log")
