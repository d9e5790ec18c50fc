"""
backplane-cli Exceptions

Custom exception types for configuration resolution, with remediation
suggestions shown to the operator.
"""

from typing import Optional


class BackplaneError(Exception):
    """Base exception for all backplane-cli errors."""

    def __init__(
        self,
        message: str,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            remediation: Suggested fix for the user
            details: Technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.remediation = remediation
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.remediation:
            parts.append(f"To fix: {self.remediation}")
        return "\n".join(parts)


class PathResolutionError(BackplaneError):
    """The configuration file path could not be determined."""

    def __init__(
        self,
        message: str,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        if not remediation:
            remediation = "Set BACKPLANE_CONFIG to the path of your backplane config.json"
        super().__init__(message, remediation, details)


class ConfigParseError(BackplaneError):
    """The configuration file (or a section of it) is malformed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        config_key: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.path = path
        self.config_key = config_key
        if not remediation:
            if config_key:
                remediation = f"Check the '{config_key}' entry in your backplane configuration"
            elif path:
                remediation = f"Fix the JSON syntax in {path}"
        super().__init__(message, remediation, details)


class RegistryResolutionError(BackplaneError):
    """The active environment has no backplane endpoint registered."""

    def __init__(
        self,
        message: str,
        environment: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.environment = environment
        if not remediation:
            remediation = "Log in to a supported OCM environment with 'ocm login' and try again"
        super().__init__(message, remediation, details)


class ConfigValidationError(BackplaneError):
    """The configuration violates a required policy."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.field = field
        if not remediation and field:
            remediation = f"Set '{field}' in your backplane configuration"
        super().__init__(message, remediation, details)


class NetworkError(BackplaneError):
    """The backplane API could not be reached."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.endpoint = endpoint
        if not remediation:
            remediation = "Check your VPN connection and the configured proxy-url, then try again."
        super().__init__(message, remediation, details)


class SessionError(BackplaneError):
    """Local session workspace errors."""

    def __init__(
        self,
        message: str,
        session_path: Optional[str] = None,
        remediation: Optional[str] = None,
        details: Optional[str] = None
    ):
        self.session_path = session_path
        if not remediation and session_path:
            remediation = f"Check the permissions of {session_path}"
        super().__init__(message, remediation, details)


class ProbeFailure(BackplaneError):
    """A proxy candidate failed its health probe.

    Always recovered by the proxy selector; never reaches the CLI.
    """

    def __init__(
        self,
        message: str,
        proxy_url: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None
    ):
        self.proxy_url = proxy_url
        self.status_code = status_code
        super().__init__(message, None, details)


# Error code mapping for CLI exit codes
ERROR_CODES = {
    PathResolutionError: 10,
    ConfigParseError: 11,
    RegistryResolutionError: 12,
    ConfigValidationError: 13,
    NetworkError: 14,
    SessionError: 15,
    BackplaneError: 1,
}


def get_error_code(error: Exception) -> int:
    """Get the exit code for an error type."""
    for error_type, code in ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return 1
