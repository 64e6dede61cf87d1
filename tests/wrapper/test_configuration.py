"""
Unit tests for wrapper configuration loading.
"""

import pytest
import yaml

from wrapperkit.core.directory import DistributionBase
from wrapperkit.core.exceptions import ConfigurationError
from wrapperkit.wrapper.configuration import (
    PASSWORD_ENV_VAR,
    USER_ENV_VAR,
    configuration_from_properties,
    load_properties,
    load_wrapper_configuration,
    parse_property_overrides,
    render_wrapper_configuration,
)

URL = "https://example.org/dist/tool-1.2.3.zip"
CHECKSUM = "ab" * 32


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "wrapper" / "wrapper.yaml"
    path.parent.mkdir()
    path.write_text(
        f"distribution_url: {URL}\n"
        f"distribution_sha256_sum: {CHECKSUM.upper()}\n"
        "distribution_base: PROJECT\n"
        "distribution_path: build/dists\n"
        "lock_timeout: 30\n"
    )
    return path


class TestLoadWrapperConfiguration:
    """Test loading wrapper.yaml."""

    def test_load(self, config_file):
        configuration = load_wrapper_configuration(config_file, environ={})

        spec = configuration.distribution
        assert spec.source_uri == URL
        assert spec.sha256_sum == CHECKSUM
        assert spec.distribution_base is DistributionBase.PROJECT
        assert spec.distribution_path == "build/dists"
        assert spec.archive_base is DistributionBase.USER_HOME
        assert spec.archive_path == "wrapper/dists"
        assert configuration.install.lock_timeout == 30.0
        assert configuration.config_file == config_file

    def test_defaults(self, tmp_path):
        config_file = tmp_path / "wrapper.yaml"
        config_file.write_text(f"distribution_url: {URL}\n")

        configuration = load_wrapper_configuration(config_file, environ={})

        assert configuration.distribution.sha256_sum is None
        assert configuration.network.connect_timeout == 10.0
        assert configuration.network.read_timeout == 10.0
        assert configuration.network.user is None
        assert configuration.network.proxies == {}
        assert configuration.network.allow_insecure_auth is True
        assert configuration.install.lock_timeout == 120.0
        assert configuration.install.lock_poll_interval == 0.2
        assert configuration.install.launcher_path == "lib/ant-launcher.jar"
        assert configuration.launch.main_class == "org.apache.tools.ant.launch.Launcher"

    def test_overrides_win(self, config_file):
        configuration = load_wrapper_configuration(
            config_file, overrides={"distribution_base": "WRAPPER_USER_HOME"}, environ={}
        )

        assert configuration.distribution.distribution_base is DistributionBase.USER_HOME

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_wrapper_configuration(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "wrapper.yaml"
        config_file.write_text("distribution_url: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_properties(config_file)

    def test_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "wrapper.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_properties(config_file)

    def test_relative_url_resolved_against_config_dir(self, tmp_path):
        """Test scheme-less URLs are files next to the configuration."""
        config_file = tmp_path / "wrapper" / "wrapper.yaml"
        config_file.parent.mkdir()
        config_file.write_text("distribution_url: ../dists/tool-1.2.3.zip\n")

        configuration = load_wrapper_configuration(config_file, environ={})

        expected = (tmp_path / "dists" / "tool-1.2.3.zip").resolve().as_uri()
        assert configuration.distribution.source_uri == expected

    def test_relative_file_uri_resolved_against_config_dir(self, tmp_path, monkeypatch):
        """Test file: URIs without a leading slash behave like scheme-less paths."""
        config_file = tmp_path / "wrapper" / "wrapper.yaml"
        config_file.parent.mkdir()
        config_file.write_text("distribution_url: file:dists/tool-1.2.3.zip\n")
        monkeypatch.chdir(tmp_path)

        configuration = load_wrapper_configuration(config_file, environ={})

        expected = (tmp_path / "wrapper" / "dists" / "tool-1.2.3.zip").resolve().as_uri()
        assert configuration.distribution.source_uri == expected

    def test_absolute_file_uri_kept(self, tmp_path):
        uri = (tmp_path / "tool-1.2.3.zip").resolve().as_uri()

        configuration = configuration_from_properties(
            {"distribution_url": uri}, base_dir=tmp_path / "elsewhere", environ={}
        )

        assert configuration.distribution.source_uri == uri


class TestUserConfiguration:
    """Test the per-user wrapperkit.yaml in the wrapper user home."""

    def test_user_file_overrides_project_file(self, config_file, user_home):
        (user_home / "wrapperkit.yaml").write_text(
            "https_proxy: http://proxy.corp:3128\n"
            "wrapper_user: alice\n"
            "wrapper_password: secret\n"
            "lock_timeout: 5\n"
        )

        configuration = load_wrapper_configuration(
            config_file, environ={}, user_home=user_home
        )

        assert configuration.network.proxies == {"https": "http://proxy.corp:3128"}
        assert configuration.network.user == "alice"
        assert configuration.network.password == "secret"
        assert configuration.install.lock_timeout == 5.0
        assert configuration.distribution.source_uri == URL
        assert configuration.user_home == user_home

    def test_overrides_win_over_user_file(self, config_file, user_home):
        (user_home / "wrapperkit.yaml").write_text("lock_timeout: 5\n")

        configuration = load_wrapper_configuration(
            config_file, overrides={"lock_timeout": "7"}, environ={}, user_home=user_home
        )

        assert configuration.install.lock_timeout == 7.0

    def test_missing_user_file_ignored(self, config_file, user_home):
        configuration = load_wrapper_configuration(
            config_file, environ={}, user_home=user_home
        )

        assert configuration.install.lock_timeout == 30.0

    def test_invalid_user_file(self, config_file, user_home):
        (user_home / "wrapperkit.yaml").write_text("- not\n- a mapping\n")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_wrapper_configuration(config_file, environ={}, user_home=user_home)

    def test_user_home_property_selects_user_file(self, config_file, tmp_path):
        """Test wrapper_user_home from overrides picks the home and its file."""
        home = tmp_path / "custom-home"
        home.mkdir()
        (home / "wrapperkit.yaml").write_text("proxy_user: bob\n")

        configuration = load_wrapper_configuration(
            config_file, overrides={"wrapper_user_home": str(home)}, environ={}
        )

        assert configuration.user_home == home
        assert configuration.network.proxy_user == "bob"

    def test_user_home_property_in_project_file(self, tmp_path):
        home = tmp_path / "project-home"
        config_file = tmp_path / "wrapper.yaml"
        config_file.write_text(f"distribution_url: {URL}\nwrapper_user_home: {home}\n")

        configuration = load_wrapper_configuration(config_file, environ={})

        assert configuration.user_home == home

    def test_explicit_user_home_wins_over_property(self, config_file, user_home, tmp_path):
        configuration = load_wrapper_configuration(
            config_file,
            overrides={"wrapper_user_home": str(tmp_path / "ignored")},
            environ={},
            user_home=user_home,
        )

        assert configuration.user_home == user_home

    def test_default_user_home_from_environment(self, config_file, default_user_home):
        (default_user_home / "wrapperkit.yaml").write_text("read_timeout: 3\n")

        configuration = load_wrapper_configuration(config_file, environ={})

        assert configuration.user_home == default_user_home
        assert configuration.network.read_timeout == 3.0


class TestConfigurationFromProperties:
    """Test building configuration from properties."""

    def test_missing_url(self):
        with pytest.raises(ConfigurationError, match="distribution_url"):
            configuration_from_properties({}, environ={})

    def test_blank_url(self):
        with pytest.raises(ConfigurationError, match="distribution_url"):
            configuration_from_properties({"distribution_url": "  "}, environ={})

    def test_invalid_checksum(self):
        with pytest.raises(ConfigurationError, match="not a valid SHA-256"):
            configuration_from_properties(
                {"distribution_url": URL, "distribution_sha256_sum": "abc"}, environ={}
            )

    @pytest.mark.parametrize(
        "checksum", ["0x" + "a" * 62, "a" * 32 + "_" + "a" * 31, "+" + "a" * 63]
    )
    def test_checksum_with_int_literal_syntax(self, checksum):
        """Test checksums that only parse as Python integers are rejected."""
        with pytest.raises(ConfigurationError, match="not a valid SHA-256"):
            configuration_from_properties(
                {"distribution_url": URL, "distribution_sha256_sum": checksum}, environ={}
            )

    def test_unknown_base(self):
        with pytest.raises(ConfigurationError, match="is unknown"):
            configuration_from_properties(
                {"distribution_url": URL, "archive_base": "ELSEWHERE"}, environ={}
            )

    def test_unknown_property_warns(self, caplog):
        configuration_from_properties({"distribution_url": URL, "colour": "blue"}, environ={})
        assert "Ignoring unknown wrapper property: colour" in caplog.text

    def test_credentials_from_properties(self):
        configuration = configuration_from_properties(
            {"distribution_url": URL, "wrapper_user": "alice", "wrapper_password": "a"},
            environ={USER_ENV_VAR: "env-user", PASSWORD_ENV_VAR: "env-pass"},
        )

        assert configuration.network.user == "alice"
        assert configuration.network.password == "a"

    def test_credentials_from_environment(self):
        configuration = configuration_from_properties(
            {"distribution_url": URL},
            environ={USER_ENV_VAR: "env-user", PASSWORD_ENV_VAR: "env-pass"},
        )

        assert configuration.network.user == "env-user"
        assert configuration.network.password == "env-pass"

    def test_user_without_password_ignored(self):
        """Test credentials are only used as a complete pair."""
        configuration = configuration_from_properties(
            {"distribution_url": URL, "wrapper_user": "alice"}, environ={}
        )

        assert configuration.network.user is None
        assert configuration.network.password is None

    def test_proxies(self):
        configuration = configuration_from_properties(
            {
                "distribution_url": URL,
                "https_proxy": "http://proxy:3128",
                "proxy_user": "carol",
                "proxy_password": "c",
            },
            environ={},
        )

        assert configuration.network.proxies == {"https": "http://proxy:3128"}
        assert configuration.network.proxy_user == "carol"
        assert configuration.network.proxy_password == "c"

    @pytest.mark.parametrize("value,expected", [("false", False), ("no", False), (True, True)])
    def test_allow_insecure_auth(self, value, expected):
        configuration = configuration_from_properties(
            {"distribution_url": URL, "allow_insecure_auth": value}, environ={}
        )
        assert configuration.network.allow_insecure_auth is expected

    def test_invalid_boolean(self):
        with pytest.raises(ConfigurationError, match="true or false"):
            configuration_from_properties(
                {"distribution_url": URL, "allow_insecure_auth": "maybe"}, environ={}
            )

    def test_invalid_number(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            configuration_from_properties(
                {"distribution_url": URL, "connect_timeout": "soon"}, environ={}
            )

    def test_negative_number(self):
        with pytest.raises(ConfigurationError, match="must not be negative"):
            configuration_from_properties(
                {"distribution_url": URL, "lock_timeout": -1}, environ={}
            )

    def test_launcher_path_shared_by_install_and_launch(self):
        configuration = configuration_from_properties(
            {"distribution_url": URL, "launcher_path": "bin/run"}, environ={}
        )

        assert configuration.install.launcher_path == "bin/run"
        assert configuration.launch.launcher_path == "bin/run"


class TestPropertyOverrides:
    """Test -D KEY=VALUE parsing."""

    def test_parse(self):
        assert parse_property_overrides(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}

    def test_empty_value_allowed(self):
        assert parse_property_overrides(["wrapper_password="]) == {"wrapper_password": ""}

    def test_none(self):
        assert parse_property_overrides(None) == {}

    @pytest.mark.parametrize("assignment", ["novalue", "=value"])
    def test_invalid(self, assignment):
        with pytest.raises(ConfigurationError, match="Expected KEY=VALUE"):
            parse_property_overrides([assignment])


class TestRenderWrapperConfiguration:
    """Test rendering a new wrapper.yaml."""

    def test_render_round_trips_through_loader(self, tmp_path):
        config_file = tmp_path / "wrapper.yaml"
        config_file.write_text(render_wrapper_configuration(URL, CHECKSUM.upper()))

        configuration = load_wrapper_configuration(config_file, environ={})

        assert configuration.distribution.source_uri == URL
        assert configuration.distribution.sha256_sum == CHECKSUM

    def test_url_first(self):
        rendered = render_wrapper_configuration(URL)

        assert rendered.splitlines()[0] == f"distribution_url: {URL}"
        assert "distribution_sha256_sum" not in yaml.safe_load(rendered)
