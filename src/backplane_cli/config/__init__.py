"""
Backplane configuration resolution

Layered loading, validation, API URL resolution and proxy selection.
"""

from backplane_cli.config.loader import Settings, get_config_directory, get_config_file_path, load_settings
from backplane_cli.config.models import (
    AccessRequestsJiraConfiguration,
    BackplaneConfiguration,
    JiraTransitionsNames,
)
from backplane_cli.config.proxy import ProbeTransport, RequestsProbeTransport, select_proxy
from backplane_cli.config.resolver import get_backplane_configuration, resolve_backplane_url
from backplane_cli.config.validator import ValidationReport, validate_config

__all__ = [
    "AccessRequestsJiraConfiguration",
    "BackplaneConfiguration",
    "JiraTransitionsNames",
    "ProbeTransport",
    "RequestsProbeTransport",
    "Settings",
    "ValidationReport",
    "get_backplane_configuration",
    "get_config_directory",
    "get_config_file_path",
    "load_settings",
    "resolve_backplane_url",
    "select_proxy",
    "validate_config",
]
