"""Runtime configuration: defaults, config file, environment and CLI flags.

Precedence, lowest to highest: Constants defaults, the YAML/JSON file given
with --config, NPO_* environment variables, explicit CLI flags. A broken
config file is reported and ignored so the CLI keeps working.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """Effective settings for one CLI invocation."""

    registry: str = Constants.REGISTRY_URL_NPM
    concurrency: int = Constants.DOWNLOAD_CONCURRENCY
    publish_concurrency: int = Constants.PUBLISH_CONCURRENCY
    request_timeout: int = Constants.REQUEST_TIMEOUT
    cache_dir: str = Constants.DATA_DIR


_INT_KEYS = ("concurrency", "publish_concurrency", "request_timeout")


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML (or JSON) config file into a dict; {} when unusable."""
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", config_path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not a mapping", config_path)
        return {}
    return data


def _apply_mapping(config: RuntimeConfig, values: Mapping[str, Any], source: str) -> None:
    for key, value in values.items():
        if value is None or not hasattr(config, key):
            continue
        if key in _INT_KEYS:
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring %s=%r from %s: not an integer", key, value, source)
                continue
            if value <= 0:
                logger.warning("Ignoring %s=%r from %s: must be positive", key, value, source)
                continue
        setattr(config, key, value)


def build_runtime_config(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> RuntimeConfig:
    """Merge every configuration source for this run."""
    environ = os.environ if environ is None else environ
    config = RuntimeConfig()

    _apply_mapping(config, load_config_file(getattr(args, "CONFIG", None)), "config file")

    env_values = {
        "registry": environ.get(Constants.ENV_REGISTRY),
        "cache_dir": environ.get(Constants.ENV_CACHE_DIR),
    }
    _apply_mapping(config, env_values, "environment")

    cli_values = {
        "registry": getattr(args, "REGISTRY", None),
        "concurrency": getattr(args, "CONCURRENCY", None),
        "publish_concurrency": getattr(args, "CONCURRENT", None),
    }
    _apply_mapping(config, cli_values, "command line")
    return config
