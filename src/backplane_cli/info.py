"""
backplane-cli build and environment information

Environment variable names, default paths and build version lookup.
"""

from typing import Callable, Optional

# Environment variables
BACKPLANE_URL_ENV_NAME = "BACKPLANE_URL"
BACKPLANE_PROXY_ENV_NAME = "HTTPS_PROXY"
BACKPLANE_CONFIG_PATH_ENV_NAME = "BACKPLANE_CONFIG"
BACKPLANE_DEBUG_ENV_NAME = "BACKPLANE_DEBUG"
BACKPLANE_LENIENT_ENV_NAME = "BACKPLANE_CONFIG_LENIENT"
OCM_CONFIG_ENV_NAME = "OCM_CONFIG"

# Configuration
BACKPLANE_CONFIG_DEFAULT_FILE_PATH = ".config/backplane"
BACKPLANE_CONFIG_DEFAULT_FILE_NAME = "config.json"
OCM_CONFIG_DEFAULT_FILE_PATH = ".config/ocm"
OCM_CONFIG_DEFAULT_FILE_NAME = "ocm.json"

# Session
BACKPLANE_DEFAULT_SESSION_DIRECTORY = "backplane"

DISTRIBUTION_NAME = "backplane-cli"

# Set by release tooling; empty for development builds
VERSION = ""


def _installed_version() -> Optional[str]:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return None


def get_build_version(read_build_info: Callable[[], Optional[str]] = _installed_version) -> str:
    """Get the version of the running build.

    A version stamped by release tooling wins; otherwise the installed
    distribution metadata is used.

    Args:
        read_build_info: Callable returning the installed version or None

    Returns:
        Version string without a leading 'v', or 'unknown'
    """
    if VERSION:
        return VERSION

    installed = read_build_info()
    if installed:
        return installed.lstrip("v")

    return "unknown"
