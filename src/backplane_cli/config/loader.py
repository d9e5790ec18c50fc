"""
Layered backplane configuration loader

Merges built-in defaults, the JSON config file and environment overrides
into one read-only Settings view. No process-wide state is kept: every
input is an explicit argument.
"""

import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional

from backplane_cli.config.models import PROXY_URL_KEY, URL_KEY, default_settings
from backplane_cli.exceptions import ConfigParseError, PathResolutionError
from backplane_cli.info import (
    BACKPLANE_CONFIG_DEFAULT_FILE_NAME,
    BACKPLANE_CONFIG_DEFAULT_FILE_PATH,
    BACKPLANE_CONFIG_PATH_ENV_NAME,
    BACKPLANE_PROXY_ENV_NAME,
    BACKPLANE_URL_ENV_NAME,
)
from backplane_cli.logging_config import get_logger

logger = get_logger("config.loader")

# Environment variables that override a config key, highest precedence
ENV_BINDINGS = {
    PROXY_URL_KEY: BACKPLANE_PROXY_ENV_NAME,
    URL_KEY: BACKPLANE_URL_ENV_NAME,
}


class Settings(Mapping):
    """Read-only merged settings with provenance.

    Behaves like a mapping of config-file keys to values.
    """

    def __init__(
        self,
        values: Mapping[str, Any],
        file_keys: FrozenSet[str] = frozenset(),
        env_keys: FrozenSet[str] = frozenset(),
        config_path: Optional[Path] = None,
        config_file_found: bool = False,
    ):
        self._values = MappingProxyType(dict(values))
        self.file_keys = file_keys
        self.env_keys = env_keys
        self.config_path = config_path
        self.config_file_found = config_file_found

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Settings(path={self.config_path}, keys={sorted(self._values)})"

    def get_string(self, key: str) -> str:
        """Get a value as a string; absent, null and non-string values give ''."""
        value = self._values.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return ""

    def proxy_candidates(self) -> List[str]:
        """Get proxy-url as an ordered candidate list.

        A single string becomes a one-element list; non-string entries of
        an array are dropped.
        """
        value = self._values.get(PROXY_URL_KEY)
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, (list, tuple)):
            return [item for item in value if isinstance(item, str)]
        logger.debug("proxy-url has unsupported type %s, ignoring", type(value).__name__)
        return []

    def source_of(self, key: str) -> str:
        """Where a key's value came from: env, file, default or unset."""
        if key in self.env_keys:
            return "env"
        if key in self.file_keys:
            return "file"
        if key in self._values:
            return "default"
        return "unset"


def get_home_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the user home directory, preferring HOME from environ.

    Raises:
        PathResolutionError: If the home directory cannot be determined
    """
    environ = os.environ if environ is None else environ
    home = environ.get("HOME")
    if home:
        return Path(home)
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise PathResolutionError(
            "Unable to determine the user home directory",
            details=str(e),
        ) from e


def get_config_file_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the backplane configuration file path.

    BACKPLANE_CONFIG wins when present; otherwise
    ~/.config/backplane/config.json.

    Args:
        environ: Environment mapping (default: os.environ)

    Returns:
        Path to the config file (which may not exist)

    Raises:
        PathResolutionError: If the home directory cannot be determined
    """
    environ = os.environ if environ is None else environ

    if BACKPLANE_CONFIG_PATH_ENV_NAME in environ:
        return Path(environ[BACKPLANE_CONFIG_PATH_ENV_NAME])

    return (
        get_home_directory(environ)
        / BACKPLANE_CONFIG_DEFAULT_FILE_PATH
        / BACKPLANE_CONFIG_DEFAULT_FILE_NAME
    )


def get_config_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the directory holding the backplane config file."""
    return get_config_file_path(environ).parent


def read_config_file(path: Path) -> Optional[Dict[str, Any]]:
    """Read the JSON config file.

    Args:
        path: Config file path

    Returns:
        Decoded object, or None when the file does not exist

    Raises:
        ConfigParseError: If the file is not a valid JSON object
    """
    if not path.is_file():
        logger.debug("No backplane config file at %s", path)
        return None

    try:
        contents = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigParseError(
            f"Unable to parse backplane config file {path}",
            path=str(path),
            details=str(e),
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(
            f"Unable to read backplane config file {path}",
            path=str(path),
            remediation=f"Check that {path} is a readable UTF-8 file",
            details=str(e),
        ) from e

    if not isinstance(contents, dict):
        raise ConfigParseError(
            f"Backplane config file {path} must contain a JSON object",
            path=str(path),
            details=f"top-level value is {type(contents).__name__}",
        )

    logger.debug("Loaded backplane config file %s", path)
    return contents


def merge_settings(
    defaults: Mapping[str, Any],
    file_contents: Optional[Mapping[str, Any]],
    environ: Mapping[str, str],
    config_path: Optional[Path] = None,
) -> Settings:
    """Merge the configuration layers.

    Precedence, highest first: bound environment variables, file values,
    defaults. Empty environment values do not override.

    Args:
        defaults: Built-in defaults for optional keys
        file_contents: Decoded config file, or None when absent
        environ: Environment snapshot
        config_path: Path the file was read from, for provenance

    Returns:
        Merged settings
    """
    merged: Dict[str, Any] = dict(defaults)
    file_keys: FrozenSet[str] = frozenset()

    if file_contents is not None:
        merged.update(file_contents)
        file_keys = frozenset(file_contents)

    env_keys = set()
    for key, env_name in ENV_BINDINGS.items():
        value = environ.get(env_name)
        if value:
            merged[key] = value
            env_keys.add(key)

    return Settings(
        merged,
        file_keys=file_keys,
        env_keys=frozenset(env_keys),
        config_path=config_path,
        config_file_found=file_contents is not None,
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from defaults, the config file and the environment.

    Args:
        environ: Environment mapping (default: os.environ)

    Returns:
        Merged settings

    Raises:
        PathResolutionError: If the config path cannot be determined
        ConfigParseError: If the config file is malformed
    """
    environ = dict(os.environ if environ is None else environ)
    path = get_config_file_path(environ)
    file_contents = read_config_file(path)
    return merge_settings(default_settings(), file_contents, environ, config_path=path)
