"""npo - fetch npm packages with their dependency trees for offline use,
and publish them to a private registry.

    Returns:
        int: Exit code
"""
import logging
import subprocess
import sys

import aiohttp

from args import parse_args
from cli_config import build_runtime_config
from constants import ExitCodes
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from packaging_ops.publish import PublishError
from registry.npm.errors import RegistryError

logger = logging.getLogger(__name__)


def setup_logging(args):
    """Configure logging from --loglevel / NPO_LOG_LEVEL and --logfile."""
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)
        logger.info("Logging to file: %s", log_file)


def exit_code_for(exc):
    """Map an uncaught exception to the process exit code."""
    if isinstance(exc, (RegistryError, aiohttp.ClientError, ConnectionError, TimeoutError)):
        return ExitCodes.CONNECTION_ERROR.value
    if isinstance(exc, (PublishError, subprocess.CalledProcessError)):
        return ExitCodes.PUBLISH_ERROR.value
    # file problems (ManifestFileError, OSError) and anything unexpected
    return ExitCodes.FILE_ERROR.value


def run(args):
    """Dispatch the parsed command; returns an exit code."""
    config = build_runtime_config(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND, target=config.registry)
        )
    if args.COMMAND == "fetch":
        from cli_fetch import run_fetch  # pylint: disable=import-outside-toplevel
        return run_fetch(args, config)
    from cli_publish import run_publish  # pylint: disable=import-outside-toplevel
    return run_publish(args, config)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)

    try:
        code = run(args)
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        code = ExitCodes.USAGE_ERROR.value
    except Exception as e:  # pylint: disable=broad-exception-caught
        # No stack traces for users unless running at DEBUG
        logger.error("%s", e or type(e).__name__, exc_info=is_debug_enabled(logger))
        code = exit_code_for(e)
    sys.exit(code)


if __name__ == "__main__":
    main()
