"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    PUBLISH_ERROR = 3
    USAGE_ERROR = 4


class DependencyKinds(Enum):
    """Dependency maps of a package manifest, in merge order.

    Args:
        Enum (string): Manifest field holding the dependency map.
    """

    DEPENDENCIES = "dependencies"
    DEV = "devDependencies"
    PEER = "peerDependencies"
    OPTIONAL = "optionalDependencies"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    APP_NAME = "npm-offline-packager"
    VERSION = "1.0.0"
    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    SEARCH_URL_NPM = "https://registry.npmjs.com/-/v1/search"
    SEARCH_QUERY = "boost-exact:false&popularity=1.0&quality=1.0&maintenance=1.0"
    SEARCH_PAGE_SIZE = 250
    SEARCH_MAX_PACKAGES = 5250
    LATEST_TAG = "latest"
    PACKAGE_JSON_FILE = "package.json"
    TARBALL_EXT = ".tgz"
    ARCHIVE_EXT = ".tar"
    LATEST_SUFFIX = "-latest"
    DEST_PREFIX = "packages_"
    DEST_TIME_FORMAT = "%m%d%Y.%H%M%S"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    FILE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    HTTP_CONNECTION_LIMIT = 50
    DOWNLOAD_CONCURRENCY = 20
    PUBLISH_CONCURRENCY = 20
    DATA_DIR = os.path.join(os.path.expanduser("~"), ".npm-offline-packager")
    DOWNLOAD_CACHE_FILE = os.path.join("db", "packages-cache.json")

    ENV_REGISTRY = "NPO_REGISTRY"
    ENV_CACHE_DIR = "NPO_CACHE_DIR"
    ENV_LOG_LEVEL = "NPO_LOG_LEVEL"

    # npm CLI error markers inspected by the publish step
    NPM_PUBLISH_CONFLICT = "EPUBLISHCONFLICT"
    NPM_PERMISSION_DENIED = "EPERM: operation not permitted"
    PUBLISH_CONFIG_FIELD = '"publishConfig"'
    PUBLISH_CONFIG_REMOVED = '"publishConfigRemoved"'
