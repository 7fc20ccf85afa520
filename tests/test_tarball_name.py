"""Tests for tarball file name encoding and parsing."""

import pytest

from packaging_ops.tarball_name import parse_tarball_filename, tarball_filename


class TestTarballFilename:
    """Encoding package identity into file names."""

    def test_plain(self):
        assert tarball_filename("lodash", "4.17.21") == "lodash-4.17.21.tgz"

    def test_latest_suffix(self):
        assert tarball_filename("lodash", "4.17.21", is_latest=True) == "lodash-4.17.21-latest.tgz"

    def test_scoped_slash_replaced(self):
        """Only the scope separator becomes a dash."""
        assert tarball_filename("@babel/core", "7.0.0") == "@babel-core-7.0.0.tgz"


class TestParseTarballFilename:
    """Decoding file names back into identities."""

    def test_plain(self):
        identity = parse_tarball_filename("/tmp/out/lodash-4.17.21.tgz")
        assert identity.name == "lodash"
        assert identity.version == "4.17.21"
        assert identity.is_latest is False
        assert identity.full_name == "lodash@4.17.21"

    def test_latest(self):
        identity = parse_tarball_filename("lodash-4.17.21-latest.tgz")
        assert identity.is_latest is True
        assert identity.version == "4.17.21"
        assert identity.clear_filename == "lodash-4.17.21.tgz"

    def test_scoped(self):
        identity = parse_tarball_filename(tarball_filename("@babel/core", "7.0.0", True))
        assert identity.name == "@babel/core"
        assert identity.version == "7.0.0"
        assert identity.is_latest is True

    def test_hyphenated_name(self):
        identity = parse_tarball_filename("left-pad-1.3.0.tgz")
        assert identity.full_name == "left-pad@1.3.0"

    def test_not_a_tarball(self):
        with pytest.raises(ValueError):
            parse_tarball_filename("notes.txt")

    def test_unparseable_falls_back_to_file_name(self):
        """Without a version the full name is the cleaned file name."""
        identity = parse_tarball_filename("bundle.tgz")
        assert identity.name is None
        assert identity.version is None
        assert identity.full_name == "bundle.tgz"


class TestKnownLossyNames:
    """Names the file name scheme cannot represent faithfully."""

    def test_digit_in_name_shifts_version(self):
        """The version starts at the first digit, even inside the name."""
        identity = parse_tarball_filename(tarball_filename("es5-ext", "0.10.53"))
        assert identity.name == "es5-ext"
        assert identity.version == "5-ext-0.10.53"

    def test_prerelease_version_shifts_name(self):
        """The name runs to the last dash, swallowing the release part."""
        identity = parse_tarball_filename(tarball_filename("foo", "1.0.0-beta.1"))
        assert identity.name == "foo-1.0.0"
        assert identity.version == "1.0.0-beta.1"

    def test_latest_prerelease_tag_looks_like_suffix(self):
        """A version ending in -latest is read as the latest marker."""
        identity = parse_tarball_filename(tarball_filename("foo", "1.0.0-latest"))
        assert identity.is_latest is True
        assert identity.version == "1.0.0"
