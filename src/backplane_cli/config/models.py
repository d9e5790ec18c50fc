"""
Backplane configuration data model

Immutable records for the effective configuration and the Jira settings
used by access-request workflows.
"""

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import requests

from backplane_cli.exceptions import ConfigParseError, NetworkError
from backplane_cli.logging_config import get_logger

logger = get_logger("config")

# Config file keys
URL_KEY = "url"
PROXY_URL_KEY = "proxy-url"
SESSION_DIR_KEY = "session-dir"
ASSUME_INITIAL_ARN_KEY = "assume-initial-arn"
PROD_ENV_NAME_KEY = "prod-env-name"
PAGERDUTY_API_KEY_KEY = "pd-key"
JIRA_BASE_URL_KEY = "jira-base-url"
JIRA_TOKEN_KEY = "jira-token"
JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY = "jira-config-for-access-requests"

PROD_ENV_NAME_DEFAULT_VALUE = "production"
JIRA_BASE_URL_DEFAULT_VALUE = "https://issues.redhat.com"

JIRA_CONFIG_FOR_ACCESS_REQUESTS_DEFAULT_VALUE: Dict[str, Any] = {
    "default-project": "SDAINT",
    "default-issue-type": "Story",
    "prod-project": "OHSS",
    "prod-issue-type": "Incident",
    "project-to-transitions-names": {
        "SDAINT": {
            "on-creation": "In Progress",
            "on-approval": "In Progress",
            "on-error": "Closed",
        },
        "OHSS": {
            "on-creation": "Pending Customer",
            "on-approval": "New",
            "on-error": "Cancelled",
        },
    },
}

CONNECTION_CHECK_TIMEOUT = 5.0


def default_settings() -> Dict[str, Any]:
    """Get the built-in defaults for optional keys.

    Returns a fresh copy so callers may not alter the module constants.
    """
    return {
        PROD_ENV_NAME_KEY: PROD_ENV_NAME_DEFAULT_VALUE,
        JIRA_BASE_URL_KEY: JIRA_BASE_URL_DEFAULT_VALUE,
        JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY: copy.deepcopy(JIRA_CONFIG_FOR_ACCESS_REQUESTS_DEFAULT_VALUE),
    }


@dataclass(frozen=True)
class JiraTransitionsNames:
    """Transition names applied to an access-request issue."""

    on_creation: str = ""
    on_approval: str = ""
    on_error: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "on-creation": self.on_creation,
            "on-approval": self.on_approval,
            "on-error": self.on_error,
        }


@dataclass(frozen=True)
class AccessRequestsJiraConfiguration:
    """Jira projects and issue types used for access requests."""

    default_project: str = ""
    default_issue_type: str = ""
    prod_project: str = ""
    prod_issue_type: str = ""
    project_to_transitions_names: Mapping[str, JiraTransitionsNames] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def referenced_projects(self) -> Tuple[str, str]:
        """Projects that access requests may be filed against."""
        return (self.default_project, self.prod_project)

    def missing_transitions(self) -> Tuple[str, ...]:
        """Referenced projects without a transitions entry, in reference order."""
        return tuple(
            project for project in self.referenced_projects()
            if project not in self.project_to_transitions_names
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default-project": self.default_project,
            "default-issue-type": self.default_issue_type,
            "prod-project": self.prod_project,
            "prod-issue-type": self.prod_issue_type,
            "project-to-transitions-names": {
                project: names.to_dict()
                for project, names in self.project_to_transitions_names.items()
            },
        }


def _expect_str(raw: Mapping[str, Any], key: str, section: str) -> str:
    value = raw.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigParseError(
            f"'{key}' in '{section}' must be a string, got {type(value).__name__}",
            config_key=section,
        )
    return value


def parse_transitions_names(raw: Any, project: str = "") -> JiraTransitionsNames:
    """Parse one project's transition names.

    Args:
        raw: Mapping with on-creation/on-approval/on-error keys
        project: Project key, used in error messages

    Returns:
        Parsed transition names

    Raises:
        ConfigParseError: If the entry is not an object of strings
    """
    section = f"{JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY}.project-to-transitions-names"
    if not isinstance(raw, Mapping):
        raise ConfigParseError(
            f"transitions for project '{project}' must be an object",
            config_key=section,
        )
    return JiraTransitionsNames(
        on_creation=_expect_str(raw, "on-creation", section),
        on_approval=_expect_str(raw, "on-approval", section),
        on_error=_expect_str(raw, "on-error", section),
    )


def parse_access_requests_config(raw: Any) -> AccessRequestsJiraConfiguration:
    """Parse the jira-config-for-access-requests section.

    Unknown keys are ignored. Missing keys become empty values.

    Args:
        raw: The decoded JSON value of the section

    Returns:
        Parsed configuration

    Raises:
        ConfigParseError: If the section is not well-formed
    """
    section = JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY
    if raw is None:
        return AccessRequestsJiraConfiguration()
    if not isinstance(raw, Mapping):
        raise ConfigParseError(
            f"'{section}' must be an object, got {type(raw).__name__}",
            config_key=section,
        )

    raw_transitions = raw.get("project-to-transitions-names") or {}
    if not isinstance(raw_transitions, Mapping):
        raise ConfigParseError(
            "'project-to-transitions-names' must be an object",
            config_key=section,
        )

    transitions = {
        str(project): parse_transitions_names(names, str(project))
        for project, names in raw_transitions.items()
    }

    return AccessRequestsJiraConfiguration(
        default_project=_expect_str(raw, "default-project", section),
        default_issue_type=_expect_str(raw, "default-issue-type", section),
        prod_project=_expect_str(raw, "prod-project", section),
        prod_issue_type=_expect_str(raw, "prod-issue-type", section),
        project_to_transitions_names=MappingProxyType(transitions),
    )


@dataclass(frozen=True)
class BackplaneConfiguration:
    """The effective configuration for one command invocation.

    Built once by ``resolver.get_backplane_configuration`` and read-only
    afterwards.
    """

    url: str
    proxy_url: Optional[str] = None
    session_directory: str = ""
    assume_initial_arn: str = ""
    prod_env_name: str = PROD_ENV_NAME_DEFAULT_VALUE
    pagerduty_api_key: str = ""
    jira_base_url: str = JIRA_BASE_URL_DEFAULT_VALUE
    jira_token: str = ""
    jira_config_for_access_requests: AccessRequestsJiraConfiguration = field(
        default_factory=AccessRequestsJiraConfiguration
    )

    def proxies(self) -> Dict[str, str]:
        """Proxy mapping for requests, empty when no proxy is selected."""
        if not self.proxy_url:
            return {}
        return {"http": self.proxy_url, "https": self.proxy_url}

    def check_connectivity(self, session_factory=requests.Session) -> Tuple[bool, Optional[Exception]]:
        """Test the connection to the backplane API.

        Issues a single HEAD request to the API URL through the selected
        proxy. Any HTTP response counts as reachable.

        Args:
            session_factory: Callable returning a requests-compatible session

        Returns:
            Tuple of (reachable, error)
        """
        session = session_factory()
        try:
            session.trust_env = False
            session.head(self.url, proxies=self.proxies(), timeout=CONNECTION_CHECK_TIMEOUT)
        except (requests.RequestException, ValueError) as e:
            return False, e
        finally:
            session.close()
        return True, None

    def check_api_connection(self, session_factory=requests.Session) -> None:
        """Validate the API connection via the configured proxy and VPN.

        Raises:
            NetworkError: If the API cannot be reached
        """
        ok, err = self.check_connectivity(session_factory)
        if not ok:
            raise NetworkError(
                f"Unable to connect to backplane API at {self.url}",
                endpoint=self.url,
                details=str(err),
            )

    def to_dict(self, mask: bool = True) -> Dict[str, Any]:
        """Render the configuration with config-file key names.

        Args:
            mask: Replace secret values with asterisks
        """
        def secret(value: str) -> str:
            return "********" if (mask and value) else value

        return {
            URL_KEY: self.url,
            PROXY_URL_KEY: self.proxy_url,
            SESSION_DIR_KEY: self.session_directory,
            ASSUME_INITIAL_ARN_KEY: self.assume_initial_arn,
            PROD_ENV_NAME_KEY: self.prod_env_name,
            PAGERDUTY_API_KEY_KEY: secret(self.pagerduty_api_key),
            JIRA_BASE_URL_KEY: self.jira_base_url,
            JIRA_TOKEN_KEY: secret(self.jira_token),
            JIRA_CONFIG_FOR_ACCESS_REQUESTS_KEY: self.jira_config_for_access_requests.to_dict(),
        }
