"""
Backplane configuration validation

Hard policy checks raise ConfigValidationError; soft checks are logged
as warnings and never abort the command.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from backplane_cli.config.loader import Settings
from backplane_cli.config.models import (
    JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY,
    PAGERDUTY_API_KEY_KEY,
    PROXY_URL_KEY,
    URL_KEY,
    AccessRequestsJiraConfiguration,
)
from backplane_cli.exceptions import ConfigValidationError
from backplane_cli.info import BACKPLANE_LENIENT_ENV_NAME, BACKPLANE_PROXY_ENV_NAME
from backplane_cli.logging_config import get_logger

logger = get_logger("config.validator")

DEPRECATED_URL_WARNING = "Manual URL configuration is deprecated, please remove URL key from Backplane configuration"
MISSING_PAGERDUTY_KEY_WARNING = (
    "No PagerDuty API Key configuration available. "
    "This will result in failure of `ocm-backplane login --pd <incident-id>` command."
)


@dataclass
class ValidationReport:
    """Outcome of validating raw settings."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def to_dict(self) -> dict:
        return {
            "valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def lenient_mode_enabled(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Whether BACKPLANE_CONFIG_LENIENT asks for lenient validation."""
    environ = os.environ if environ is None else environ
    return environ.get(BACKPLANE_LENIENT_ENV_NAME, "").lower() in ("1", "true", "yes")


def check_proxy_configured(settings: Settings, environ: Mapping[str, str]) -> Optional[str]:
    """Get the policy violation message when no proxy is configured.

    Returns:
        The error message, or None when proxy-url or HTTPS_PROXY is set
    """
    if not settings.proxy_candidates() and not environ.get(BACKPLANE_PROXY_ENV_NAME):
        return (
            f"{PROXY_URL_KEY} must be set explicitly in either config file "
            f"or via the environment {BACKPLANE_PROXY_ENV_NAME}"
        )
    return None


def validate_config(
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
    strict: bool = True,
) -> ValidationReport:
    """Validate raw settings before URL and proxy resolution.

    Args:
        settings: Merged settings from the loader
        environ: Environment mapping (default: os.environ)
        strict: Raise on a missing proxy. False downgrades it to a
            warning for offline test runs and controlled migrations.

    Returns:
        Report with the warnings raised (and, in lenient mode, errors)

    Raises:
        ConfigValidationError: If no proxy is configured and strict is True
    """
    environ = os.environ if environ is None else environ
    report = ValidationReport()

    proxy_error = check_proxy_configured(settings, environ)
    if proxy_error:
        if strict:
            raise ConfigValidationError(proxy_error, field=PROXY_URL_KEY)
        report.errors.append(proxy_error)
        logger.warning("%s (lenient mode, continuing)", proxy_error)

    if settings.get_string(URL_KEY) and URL_KEY in settings.file_keys:
        report.warn(DEPRECATED_URL_WARNING)

    if not settings.get_string(PAGERDUTY_API_KEY_KEY):
        logger.info(MISSING_PAGERDUTY_KEY_WARNING)
        report.warnings.append(MISSING_PAGERDUTY_KEY_WARNING)

    return report


def check_access_requests_config(
    jira_config: AccessRequestsJiraConfiguration,
    source: str = "",
    report: Optional[ValidationReport] = None,
) -> List[str]:
    """Warn about referenced Jira projects without transitions.

    Args:
        jira_config: Parsed access-request configuration
        source: Config file path, for messages
        report: Optional report to record warnings on

    Returns:
        The warning messages
    """
    messages = []
    for project in jira_config.missing_transitions():
        message = (
            f"content unmarshalled from '{JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY}' in '{source}' "
            f"config file is inconsistent: no transitions defined for project '{project}'"
        )
        messages.append(message)
        if report is not None:
            report.warn(message)
        else:
            logger.warning(message)
    return messages
