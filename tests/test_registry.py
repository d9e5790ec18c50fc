"""Tests for the OCM environment registry."""

import json
from unittest.mock import patch

import pytest


class TestEnvironment:
    """Test endpoint lookup."""

    def test_known_endpoint(self):
        from backplane_cli.config.registry import KNOWN_ENVIRONMENTS

        production = KNOWN_ENVIRONMENTS[0]
        assert production.name == "production"
        assert production.get_endpoint_url("backplane") == ("https://api.backplane.openshift.com", True)

    def test_missing_endpoint(self):
        from backplane_cli.config.registry import Environment

        assert Environment("custom").get_endpoint_url("backplane") == ("", False)


class TestOcmConfigRegistry:
    """Test resolving the active environment from ocm.json."""

    def _write(self, tmp_path, contents):
        path = tmp_path / "ocm.json"
        path.write_text(contents if isinstance(contents, str) else json.dumps(contents))
        return path

    def test_staging_environment(self, tmp_path):
        """Test the OCM API URL selects the matching environment."""
        from backplane_cli.config.registry import OcmConfigRegistry

        path = self._write(tmp_path, {"url": "https://api.stage.openshift.com/"})
        environment = OcmConfigRegistry(config_path=path).get_active_environment()

        assert environment.name == "staging"
        assert environment.get_endpoint_url("backplane") == ("https://api.stage.backplane.openshift.com", True)

    def test_ocm_config_env_var(self, tmp_path):
        """Test OCM_CONFIG points at the file."""
        from backplane_cli.config.registry import OcmConfigRegistry

        path = self._write(tmp_path, {"url": "https://api.integration.openshift.com"})
        registry = OcmConfigRegistry(environ={"OCM_CONFIG": str(path)})

        assert registry.config_path == path
        assert registry.get_active_environment().name == "integration"

    def test_unknown_environment_has_no_backplane(self, tmp_path):
        """Test custom OCM URLs expose no backplane endpoint."""
        from backplane_cli.config.registry import OcmConfigRegistry

        path = self._write(tmp_path, {"url": "https://api.custom.example"})
        environment = OcmConfigRegistry(config_path=path).get_active_environment()

        assert environment.name == "https://api.custom.example"
        assert environment.get_endpoint_url("backplane") == ("", False)

    def test_missing_file(self, tmp_path):
        """Test a missing ocm.json yields an unknown environment."""
        from backplane_cli.config.registry import OcmConfigRegistry

        environment = OcmConfigRegistry(config_path=tmp_path / "absent.json").get_active_environment()
        assert environment.name == "unknown"
        assert environment.get_endpoint_url("backplane")[1] is False

    def test_corrupt_file(self, tmp_path):
        from backplane_cli.config.registry import OcmConfigRegistry

        path = self._write(tmp_path, "{broken")
        environment = OcmConfigRegistry(config_path=path).get_active_environment()
        assert environment.get_endpoint_url("backplane")[1] is False

    def test_default_path_uses_home_from_environ(self, tmp_path):
        """Test the default ocm.json is looked up under the given HOME."""
        from backplane_cli.config.registry import OcmConfigRegistry

        ocm_dir = tmp_path / ".config" / "ocm"
        ocm_dir.mkdir(parents=True)
        (ocm_dir / "ocm.json").write_text(json.dumps({"url": "https://api.stage.openshift.com"}))

        registry = OcmConfigRegistry(environ={"HOME": str(tmp_path)})

        assert registry.config_path == ocm_dir / "ocm.json"
        assert registry.get_active_environment().name == "staging"

    def test_no_home_directory(self):
        """Test an undeterminable home directory raises PathResolutionError."""
        from backplane_cli.config.registry import OcmConfigRegistry
        from backplane_cli.exceptions import PathResolutionError

        with patch("pathlib.Path.home", side_effect=RuntimeError("no home")):
            with pytest.raises(PathResolutionError):
                OcmConfigRegistry(environ={})


class TestStaticRegistry:
    def test_returns_environment(self):
        from backplane_cli.config.registry import Environment, StaticRegistry

        environment = Environment("test", {"backplane": "https://bp.example"})
        assert StaticRegistry(environment).get_active_environment() is environment
