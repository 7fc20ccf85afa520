"""Argument parsing functionality for the npm offline packager."""

import argparse
from constants import Constants


def _add_common_arguments(parser):
    """Logging and config flags accepted by every command."""
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS,
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with its fetch and publish commands."""
    parser = argparse.ArgumentParser(
        prog="npo",
        description="Fetch and publish npm packages for a private npm registry",
        add_help=True,
    )
    parser.add_argument("-v", "--version",
                        action="version",
                        version=Constants.VERSION)

    commands = parser.add_subparsers(dest="COMMAND", metavar="{fetch,publish}")
    commands.required = True

    fetch = commands.add_parser("fetch",
                                aliases=["f"],
                                help="Fetch packages tarball from npm registry")
    fetch.set_defaults(COMMAND="fetch")
    fetch.add_argument("PACKAGES",
                       help="Packages to fetch, as name or name@version",
                       nargs="*",
                       default=[])
    fetch.add_argument("-p", "--package-json",
                       dest="PACKAGE_JSON",
                       help="The path to package.json file (or its folder)",
                       action="store",
                       type=str)
    fetch.add_argument("--top",
                       dest="TOP",
                       help=f"Fetch top packages from npm registry api. <max: {Constants.SEARCH_MAX_PACKAGES}>",
                       action="store",
                       type=int)
    fetch.add_argument("-d", "--dest",
                       dest="DEST",
                       help="Packages destination folder",
                       action="store",
                       type=str)
    fetch.add_argument("--no-tar",
                       dest="TAR",
                       help="Do not create a tar file from all packages",
                       action="store_false")
    fetch.add_argument("--no-cache",
                       dest="CACHE",
                       help="Do not consult or update the download cache",
                       action="store_false")
    fetch.add_argument("--dev",
                       dest="DEV",
                       help="Resolve dev dependencies",
                       action="store_true")
    fetch.add_argument("--peer",
                       dest="PEER",
                       help="Resolve peer dependencies",
                       action="store_true")
    fetch.add_argument("--optional",
                       dest="OPTIONAL",
                       help="Resolve optional dependencies",
                       action="store_true")
    fetch.add_argument("-r", "--registry",
                       dest="REGISTRY",
                       help=f"The registry url (default: {Constants.REGISTRY_URL_NPM})",
                       action="store",
                       type=str)
    fetch.add_argument("-c", "--concurrency",
                       dest="CONCURRENCY",
                       help=f"How many tarballs to download concurrently (default: {Constants.DOWNLOAD_CONCURRENCY})",
                       action="store",
                       type=int)
    _add_common_arguments(fetch)

    publish = commands.add_parser("publish",
                                  aliases=["p"],
                                  help="Publish packages tarball to private npm registry")
    publish.set_defaults(COMMAND="publish")
    publish.add_argument("PATH",
                         help="A .tgz package, a folder of packages, or a .tar bundle")
    publish.add_argument("-r", "--registry",
                         dest="REGISTRY",
                         help="The private registry url",
                         action="store",
                         type=str)
    publish.add_argument("-s", "--skip-login",
                         dest="SKIP_LOGIN",
                         help="Skip the npm login command",
                         action="store_true")
    publish.add_argument("-f", "--force",
                         dest="FORCE",
                         help="Publish with the --force flag",
                         action="store_true")
    publish.add_argument("-c", "--concurrent",
                         dest="CONCURRENT",
                         help=f"How many packages to publish concurrently (default: {Constants.PUBLISH_CONCURRENCY})",
                         action="store",
                         type=int)
    publish.add_argument("--del-package",
                         dest="DEL_PACKAGE",
                         help="Delete the package file (.tgz) after a successful publish",
                         action="store_true")
    _add_common_arguments(publish)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
