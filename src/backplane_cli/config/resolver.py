"""
Effective backplane configuration

Runs the resolution pipeline: load settings, validate, resolve the API
URL, select a proxy and parse the Jira access-request settings. Any
fatal error propagates and no configuration is produced.
"""

import os
from typing import Mapping, Optional, Tuple

from backplane_cli.config.loader import Settings, load_settings
from backplane_cli.config.models import (
    ASSUME_INITIAL_ARN_KEY,
    JIRA_BASE_URL_KEY,
    JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY,
    JIRA_TOKEN_KEY,
    PAGERDUTY_API_KEY_KEY,
    PROD_ENV_NAME_KEY,
    SESSION_DIR_KEY,
    URL_KEY,
    AccessRequestsJiraConfiguration,
    BackplaneConfiguration,
    parse_access_requests_config,
)
from backplane_cli.config.proxy import PROBE_TIMEOUT, ProbeTransport, select_proxy
from backplane_cli.config.registry import BACKPLANE_ENDPOINT, EnvironmentRegistry, OcmConfigRegistry
from backplane_cli.config.validator import (
    ValidationReport,
    check_access_requests_config,
    lenient_mode_enabled,
    validate_config,
)
from backplane_cli.exceptions import ConfigParseError, RegistryResolutionError
from backplane_cli.info import BACKPLANE_URL_ENV_NAME
from backplane_cli.logging_config import get_logger

logger = get_logger("config.resolver")


def get_backplane_env(key: str, environ: Mapping[str, str]) -> Tuple[str, bool]:
    """Get a backplane environment variable.

    Returns:
        Tuple of (value, found); empty values count as not found
    """
    value = environ.get(key, "")
    if value:
        logger.info("Backplane key %s set via env vars: %s", key, value)
        return value, True
    return "", False


def get_backplane_url_from_registry(registry: EnvironmentRegistry) -> str:
    """Get the backplane API URL of the active OCM environment.

    Raises:
        RegistryResolutionError: If the environment has no backplane endpoint
    """
    environment = registry.get_active_environment()
    url, found = environment.get_endpoint_url(BACKPLANE_ENDPOINT)
    if not found:
        raise RegistryResolutionError(
            f"the requested API endpoint is not available for the OCM environment: {environment.name}",
            environment=environment.name,
        )
    logger.info("Backplane URL retrieved via OCM environment: %s", url)
    return url


def resolve_backplane_url(
    environ: Optional[Mapping[str, str]] = None,
    registry: Optional[EnvironmentRegistry] = None,
    fallback_url: str = "",
) -> str:
    """Resolve the backplane API URL.

    BACKPLANE_URL wins (deprecated, with a warning); otherwise the active
    OCM environment decides. A deprecated url key from the config file is
    only used when the environment has no backplane endpoint.

    Args:
        environ: Environment mapping (default: os.environ)
        registry: Environment registry (default: OcmConfigRegistry)
        fallback_url: Deprecated url value from the config file

    Raises:
        RegistryResolutionError: If the active environment has no endpoint
            and there is no fallback URL
    """
    environ = os.environ if environ is None else environ

    url, found = get_backplane_env(BACKPLANE_URL_ENV_NAME, environ)
    if found:
        logger.warning(
            "Manual URL configuration is deprecated, please unset the environment %s",
            BACKPLANE_URL_ENV_NAME,
        )
        return url

    if registry is None:
        registry = OcmConfigRegistry(environ=environ)
    try:
        return get_backplane_url_from_registry(registry)
    except RegistryResolutionError as e:
        if not fallback_url:
            raise
        logger.warning("%s; using deprecated url from the config file: %s", e.message, fallback_url)
        return fallback_url


def resolve_access_requests_config(
    settings: Settings,
    report: Optional[ValidationReport] = None,
) -> AccessRequestsJiraConfiguration:
    """Parse and check the Jira access-request settings.

    A malformed section is a warning; an empty configuration is used.
    """
    source = str(settings.config_path or "")
    try:
        jira_config = parse_access_requests_config(settings.get(JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY))
    except ConfigParseError as e:
        message = (
            f"failed to unmarshal '{JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY}' entry as json "
            f"in '{source}' config file: {e.message}"
        )
        if report is not None:
            report.warn(message)
        else:
            logger.warning(message)
        return AccessRequestsJiraConfiguration()

    check_access_requests_config(jira_config, source, report)
    return jira_config


def build_configuration(
    settings: Settings,
    url: str,
    proxy_url: Optional[str],
    jira_config: AccessRequestsJiraConfiguration,
) -> BackplaneConfiguration:
    """Assemble the immutable configuration from resolved parts."""
    return BackplaneConfiguration(
        url=url,
        proxy_url=proxy_url,
        session_directory=settings.get_string(SESSION_DIR_KEY),
        assume_initial_arn=settings.get_string(ASSUME_INITIAL_ARN_KEY),
        prod_env_name=settings.get_string(PROD_ENV_NAME_KEY),
        pagerduty_api_key=settings.get_string(PAGERDUTY_API_KEY_KEY),
        jira_base_url=settings.get_string(JIRA_BASE_URL_KEY),
        jira_token=settings.get_string(JIRA_TOKEN_KEY),
        jira_config_for_access_requests=jira_config,
    )


def get_backplane_configuration(
    environ: Optional[Mapping[str, str]] = None,
    registry: Optional[EnvironmentRegistry] = None,
    transport: Optional[ProbeTransport] = None,
    strict: Optional[bool] = None,
    probe_timeout: float = PROBE_TIMEOUT,
    max_workers: int = 1,
    deadline: Optional[float] = None,
) -> BackplaneConfiguration:
    """Resolve the effective backplane configuration.

    Args:
        environ: Environment mapping (default: os.environ)
        registry: Environment registry (default: OcmConfigRegistry)
        transport: Proxy probe transport (default: requests)
        strict: Fail on a missing proxy. None reads BACKPLANE_CONFIG_LENIENT,
            which is off unless explicitly enabled.
        probe_timeout: Per-proxy probe timeout in seconds
        max_workers: Probe proxies concurrently with this many workers
        deadline: Upper bound in seconds for all proxy probing

    Returns:
        The effective configuration

    Raises:
        PathResolutionError: If the config path cannot be determined
        ConfigParseError: If the config file is not valid JSON
        ConfigValidationError: If no proxy is configured in strict mode
        RegistryResolutionError: If the API URL cannot be resolved
    """
    environ = dict(os.environ if environ is None else environ)
    if strict is None:
        strict = not lenient_mode_enabled(environ)

    settings = load_settings(environ)
    validate_config(settings, environ, strict=strict)

    fallback_url = settings.get_string(URL_KEY) if URL_KEY in settings.file_keys else ""
    url = resolve_backplane_url(environ, registry, fallback_url)

    proxy_url = select_proxy(
        settings.proxy_candidates(),
        url,
        transport=transport,
        timeout=probe_timeout,
        max_workers=max_workers,
        deadline=deadline,
    )

    jira_config = resolve_access_requests_config(settings)

    return build_configuration(settings, url, proxy_url, jira_config)
