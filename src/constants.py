"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional


class ChecksumPolicy(Enum):
    """Checksum verification policy of a remote repository.

    Args:
        Enum (string): Policy names as they appear in POM and config files.
    """

    FAIL = "fail"
    WARN = "warn"
    IGNORE = "ignore"


class UpdatePolicy(Enum):
    """Update policy of a remote repository.

    Args:
        Enum (string): Policy names as they appear in POM and config files.
    """

    ALWAYS = "always"
    DAILY = "daily"
    NEVER = "never"
    INTERVAL = "interval"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project."""

    CENTRAL_REPOSITORY_ID = "central"
    CENTRAL_REPOSITORY_URL = "https://repo.maven.apache.org/maven2"
    DEFAULT_LAYOUT = "default"
    LOCAL_REPOSITORY = os.path.join("~", ".m2", "repository")
    POM_EXTENSION = "pom"
    DEFAULT_PLUGIN_GROUP_ID = "org.apache.maven.plugins"
    SNAPSHOT_SUFFIX = "-SNAPSHOT"
    CHECKSUM_EXTENSION = ".sha1"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    USER_AGENT = "bomresolve/0.1"

    ENV_CONFIG = "BOMRESOLVE_CONFIG"
    ENV_LOG_LEVEL = "BOMRESOLVE_LOG_LEVEL"
    ENV_LOG_FORMAT = "BOMRESOLVE_LOG_FORMAT"
    CONFIG_FILE_NAME = "bomresolve.yml"


def _config_candidates(explicit: Optional[str] = None):
    """Yield config file locations in precedence order."""
    if explicit:
        yield explicit
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        yield env_path
    yield os.path.join(os.getcwd(), Constants.CONFIG_FILE_NAME)
    yield os.path.join(
        os.path.expanduser("~"), ".config", "bomresolve", Constants.CONFIG_FILE_NAME
    )


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Return the first YAML config mapping found, or an empty dict.

    An unreadable or malformed file is logged and treated as empty so a bad
    config never aborts resolution.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    for candidate in _config_candidates(path):
        if not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            logging.getLogger(__name__).warning(
                "Failed to load config %s: %s", candidate, exc
            )
            return {}
        if isinstance(data, dict):
            return data
        logging.getLogger(__name__).warning(
            "Ignoring config %s: top level is not a mapping", candidate
        )
        return {}
    return {}
