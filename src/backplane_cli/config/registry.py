"""
OCM environment registry

Resolves the active OCM environment to the endpoints it exposes. The
resolver only depends on the EnvironmentRegistry interface; the OCM
client config implementation is used by the CLI.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from backplane_cli.config.loader import get_home_directory
from backplane_cli.info import (
    OCM_CONFIG_DEFAULT_FILE_NAME,
    OCM_CONFIG_DEFAULT_FILE_PATH,
    OCM_CONFIG_ENV_NAME,
)
from backplane_cli.logging_config import get_logger

logger = get_logger("config.registry")

# Endpoint kinds
API_ENDPOINT = "api"
BACKPLANE_ENDPOINT = "backplane"


@dataclass(frozen=True)
class Environment:
    """A named OCM environment and its endpoints."""

    name: str
    endpoints: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def get_endpoint_url(self, kind: str) -> Tuple[str, bool]:
        """Look up an endpoint URL.

        Returns:
            Tuple of (url, found)
        """
        url = self.endpoints.get(kind, "")
        return url, bool(url)


def _environment(name: str, api: str, backplane: str) -> Environment:
    return Environment(name, MappingProxyType({API_ENDPOINT: api, BACKPLANE_ENDPOINT: backplane}))


KNOWN_ENVIRONMENTS = (
    _environment("production", "https://api.openshift.com", "https://api.backplane.openshift.com"),
    _environment("staging", "https://api.stage.openshift.com", "https://api.stage.backplane.openshift.com"),
    _environment(
        "integration",
        "https://api.integration.openshift.com",
        "https://api.integration.backplane.openshift.com",
    ),
)


class EnvironmentRegistry(ABC):
    """Source of the currently active environment."""

    @abstractmethod
    def get_active_environment(self) -> Environment:
        """Get the environment the operator is logged in to."""


class StaticRegistry(EnvironmentRegistry):
    """Registry that always answers with the same environment."""

    def __init__(self, environment: Environment):
        self.environment = environment

    def get_active_environment(self) -> Environment:
        return self.environment


class OcmConfigRegistry(EnvironmentRegistry):
    """Registry backed by the OCM client config file.

    The file's 'url' key is the API URL of the environment the operator
    logged in to with 'ocm login'.
    """

    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Raises:
            PathResolutionError: If no config path is given and the home
                directory cannot be determined
        """
        environ = os.environ if environ is None else environ
        if config_path is None:
            if environ.get(OCM_CONFIG_ENV_NAME):
                config_path = Path(environ[OCM_CONFIG_ENV_NAME])
            else:
                config_path = get_home_directory(environ) / OCM_CONFIG_DEFAULT_FILE_PATH / OCM_CONFIG_DEFAULT_FILE_NAME
        self.config_path = config_path

    def _api_url(self) -> str:
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("No OCM config at %s", self.config_path)
            return ""
        except (OSError, ValueError) as e:
            logger.warning("Unable to read OCM config %s: %s", self.config_path, e)
            return ""
        if not isinstance(data, dict):
            return ""
        url = data.get("url") or ""
        return url.rstrip("/") if isinstance(url, str) else ""

    def get_active_environment(self) -> Environment:
        api_url = self._api_url()
        for environment in KNOWN_ENVIRONMENTS:
            known, _ = environment.get_endpoint_url(API_ENDPOINT)
            if api_url == known:
                return environment

        # Unknown or custom environments expose no backplane endpoint
        name = api_url or "unknown"
        return Environment(name, MappingProxyType({API_ENDPOINT: api_url} if api_url else {}))
