"""Tests for the layered configuration loader."""

from pathlib import Path
from unittest.mock import patch

import pytest


class TestConfigFilePath:
    """Test config file path resolution."""

    def test_default_path_under_home(self, environ, home_dir):
        """Test the default path is ~/.config/backplane/config.json."""
        from backplane_cli.config.loader import get_config_file_path

        assert get_config_file_path(environ) == home_dir / ".config" / "backplane" / "config.json"

    def test_env_override(self, environ, tmp_path):
        """Test BACKPLANE_CONFIG names the file explicitly."""
        from backplane_cli.config.loader import get_config_file_path

        environ["BACKPLANE_CONFIG"] = str(tmp_path / "custom.json")
        assert get_config_file_path(environ) == tmp_path / "custom.json"

    def test_config_directory(self, environ, home_dir):
        """Test the config directory is the file's parent."""
        from backplane_cli.config.loader import get_config_directory

        assert get_config_directory(environ) == home_dir / ".config" / "backplane"

    def test_missing_home_is_fatal(self):
        """Test an undeterminable home directory raises PathResolutionError."""
        from backplane_cli.config.loader import get_config_file_path
        from backplane_cli.exceptions import PathResolutionError

        with patch.object(Path, "home", side_effect=RuntimeError("Could not determine home directory.")):
            with pytest.raises(PathResolutionError) as exc_info:
                get_config_file_path({})
        assert "home directory" in str(exc_info.value)


class TestReadConfigFile:
    """Test reading the JSON config file."""

    def test_missing_file_is_not_an_error(self, tmp_path):
        """Test a missing file yields None."""
        from backplane_cli.config.loader import read_config_file

        assert read_config_file(tmp_path / "absent.json") is None

    def test_reads_object(self, write_config):
        """Test a valid JSON object is returned."""
        from backplane_cli.config.loader import read_config_file

        path = write_config({"proxy-url": "http://proxy:8080"})
        assert read_config_file(path) == {"proxy-url": "http://proxy:8080"}

    def test_invalid_json_is_fatal(self, write_config):
        """Test invalid JSON raises ConfigParseError."""
        from backplane_cli.config.loader import read_config_file
        from backplane_cli.exceptions import ConfigParseError

        path = write_config("{not json")
        with pytest.raises(ConfigParseError) as exc_info:
            read_config_file(path)
        assert exc_info.value.path == str(path)
        assert "Details:" in str(exc_info.value)

    def test_non_object_is_fatal(self, write_config):
        """Test a top-level array raises ConfigParseError."""
        from backplane_cli.config.loader import read_config_file
        from backplane_cli.exceptions import ConfigParseError

        path = write_config("[1, 2]")
        with pytest.raises(ConfigParseError):
            read_config_file(path)


class TestMergeSettings:
    """Test the pure merge of defaults, file and environment."""

    def test_defaults_only(self):
        """Test defaults pass through untouched."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings({"prod-env-name": "production"}, None, {})
        assert dict(settings) == {"prod-env-name": "production"}
        assert settings.config_file_found is False
        assert settings.source_of("prod-env-name") == "default"

    def test_file_overrides_defaults(self):
        """Test file values win over defaults."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings({"prod-env-name": "production"}, {"prod-env-name": "prod2"}, {})
        assert settings["prod-env-name"] == "prod2"
        assert settings.source_of("prod-env-name") == "file"
        assert settings.config_file_found is True

    def test_https_proxy_overrides_file(self):
        """Test HTTPS_PROXY wins over proxy-url in the file."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings(
            {}, {"proxy-url": ["http://file:1"]}, {"HTTPS_PROXY": "http://env:2"}
        )
        assert settings["proxy-url"] == "http://env:2"
        assert settings.proxy_candidates() == ["http://env:2"]
        assert settings.source_of("proxy-url") == "env"

    def test_empty_env_does_not_override(self):
        """Test an empty HTTPS_PROXY leaves the file value."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings({}, {"proxy-url": "http://file:1"}, {"HTTPS_PROXY": ""})
        assert settings["proxy-url"] == "http://file:1"

    def test_backplane_url_env_binding(self):
        """Test BACKPLANE_URL is bound to the url key."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings({}, None, {"BACKPLANE_URL": "https://example.test"})
        assert settings.get_string("url") == "https://example.test"

    def test_inputs_not_mutated(self):
        """Test merging leaves its arguments unchanged."""
        from backplane_cli.config.loader import merge_settings

        defaults = {"a": 1}
        file_contents = {"b": 2}
        merge_settings(defaults, file_contents, {"HTTPS_PROXY": "http://p:1"})
        assert defaults == {"a": 1}
        assert file_contents == {"b": 2}

    def test_settings_are_read_only(self):
        """Test Settings cannot be modified."""
        from backplane_cli.config.loader import merge_settings

        settings = merge_settings({"a": 1}, None, {})
        with pytest.raises(TypeError):
            settings["a"] = 2


class TestProxyCandidates:
    """Test proxy-url normalisation."""

    @pytest.mark.parametrize("value, expected", [
        (None, []),
        ("", []),
        ("http://p:1", ["http://p:1"]),
        (["http://a:1", "http://b:2"], ["http://a:1", "http://b:2"]),
        (["http://a:1", 5, None, "http://b:2"], ["http://a:1", "http://b:2"]),
        ({"not": "a list"}, []),
    ])
    def test_normalisation(self, value, expected):
        """Test string, list and invalid proxy-url values."""
        from backplane_cli.config.loader import merge_settings

        file_contents = {} if value is None else {"proxy-url": value}
        assert merge_settings({}, file_contents, {}).proxy_candidates() == expected


class TestLoadSettings:
    """Test loading from disk."""

    def test_no_file_no_env_gives_documented_defaults(self, environ):
        """Test settings equal the built-in defaults exactly."""
        from backplane_cli.config.loader import load_settings

        settings = load_settings(environ)

        assert dict(settings) == {
            "prod-env-name": "production",
            "jira-base-url": "https://issues.redhat.com",
            "jira-config-for-access-requests": {
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
            },
        }
        assert settings.config_file_found is False

    def test_file_values_loaded(self, environ, write_config):
        """Test file keys appear in the settings."""
        from backplane_cli.config.loader import load_settings

        path = write_config({"session-dir": "sessions", "prod-env-name": "prod-x"})
        settings = load_settings(environ)

        assert settings.config_path == path
        assert settings.get_string("session-dir") == "sessions"
        assert settings.get_string("prod-env-name") == "prod-x"
        assert settings.get_string("jira-base-url") == "https://issues.redhat.com"

    def test_invalid_file_aborts(self, environ, write_config):
        """Test an unparsable file aborts loading."""
        from backplane_cli.config.loader import load_settings
        from backplane_cli.exceptions import ConfigParseError

        write_config("{\"proxy-url\": ")
        with pytest.raises(ConfigParseError):
            load_settings(environ)

    def test_defaults_are_fresh_copies(self, environ):
        """Test callers cannot alter the module defaults through settings."""
        from backplane_cli.config.loader import load_settings
        from backplane_cli.config.models import JIRA_CONFIG_FOR_ACCESS_REQUESTS_DEFAULT_VALUE

        settings = load_settings(environ)
        settings["jira-config-for-access-requests"]["default-project"] = "CHANGED"
        assert JIRA_CONFIG_FOR_ACCESS_REQUESTS_DEFAULT_VALUE["default-project"] == "SDAINT"
