"""YAML configuration for the wrapper.

A project describes the distribution it needs in ``wrapper/wrapper.yaml``::

    distribution_url: https://downloads.apache.org/ant/binaries/apache-ant-1.10.14-bin.zip
    distribution_sha256_sum: 4e74b382dd8271f9eac9fef69ba94751fb8a8356dbd995c4d642f2dad33de77bd
    distribution_base: WRAPPER_USER_HOME
    distribution_path: wrapper/dists
    archive_base: WRAPPER_USER_HOME
    archive_path: wrapper/dists

Values in ``<wrapper user home>/wrapperkit.yaml`` override the project file,
which keeps machine-specific credentials and proxies out of the project.
Every value can be overridden on the command line (``-D key=value``).
Credentials may also come from the ``WRAPPERKIT_USER`` and
``WRAPPERKIT_PASSWORD`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlsplit
from urllib.request import url2pathname

import yaml

from wrapperkit.core.directory import (
    DistributionBase,
    get_user_config_file,
    get_wrapper_user_home,
)
from wrapperkit.core.download import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    NetworkSettings,
)
from wrapperkit.core.exceptions import ConfigurationError
from wrapperkit.core.locking import DEFAULT_LOCK_TIMEOUT, DEFAULT_POLL_INTERVAL
from wrapperkit.core.paths import DEFAULT_DISTRIBUTION_PATH, DistributionSpec
from wrapperkit.core.verification import is_valid_hash_format
from wrapperkit.wrapper.installer import (
    DEFAULT_EXECUTABLE_PATH,
    DEFAULT_LAUNCHER_PATH,
    InstallSettings,
)
from wrapperkit.wrapper.launcher import DEFAULT_LAUNCHER_MAIN_CLASS, LaunchSettings

logger = logging.getLogger(__name__)

# Wrapper property keys
DISTRIBUTION_URL_PROPERTY = "distribution_url"
DISTRIBUTION_BASE_PROPERTY = "distribution_base"
DISTRIBUTION_PATH_PROPERTY = "distribution_path"
DISTRIBUTION_SHA256_SUM_PROPERTY = "distribution_sha256_sum"
ARCHIVE_BASE_PROPERTY = "archive_base"
ARCHIVE_PATH_PROPERTY = "archive_path"
WRAPPER_USER_PROPERTY = "wrapper_user"
WRAPPER_PASSWORD_PROPERTY = "wrapper_password"
HTTP_PROXY_PROPERTY = "http_proxy"
HTTPS_PROXY_PROPERTY = "https_proxy"
PROXY_USER_PROPERTY = "proxy_user"
PROXY_PASSWORD_PROPERTY = "proxy_password"
CONNECT_TIMEOUT_PROPERTY = "connect_timeout"
READ_TIMEOUT_PROPERTY = "read_timeout"
ALLOW_INSECURE_AUTH_PROPERTY = "allow_insecure_auth"
LOCK_TIMEOUT_PROPERTY = "lock_timeout"
LOCK_POLL_INTERVAL_PROPERTY = "lock_poll_interval"
LAUNCHER_PATH_PROPERTY = "launcher_path"
LAUNCHER_MAIN_CLASS_PROPERTY = "launcher_main_class"
EXECUTABLE_PATH_PROPERTY = "executable_path"
WRAPPER_USER_HOME_PROPERTY = "wrapper_user_home"

KNOWN_PROPERTIES = frozenset(
    {
        DISTRIBUTION_URL_PROPERTY,
        DISTRIBUTION_BASE_PROPERTY,
        DISTRIBUTION_PATH_PROPERTY,
        DISTRIBUTION_SHA256_SUM_PROPERTY,
        ARCHIVE_BASE_PROPERTY,
        ARCHIVE_PATH_PROPERTY,
        WRAPPER_USER_PROPERTY,
        WRAPPER_PASSWORD_PROPERTY,
        HTTP_PROXY_PROPERTY,
        HTTPS_PROXY_PROPERTY,
        PROXY_USER_PROPERTY,
        PROXY_PASSWORD_PROPERTY,
        CONNECT_TIMEOUT_PROPERTY,
        READ_TIMEOUT_PROPERTY,
        ALLOW_INSECURE_AUTH_PROPERTY,
        LOCK_TIMEOUT_PROPERTY,
        LOCK_POLL_INTERVAL_PROPERTY,
        LAUNCHER_PATH_PROPERTY,
        LAUNCHER_MAIN_CLASS_PROPERTY,
        EXECUTABLE_PATH_PROPERTY,
        WRAPPER_USER_HOME_PROPERTY,
    }
)

USER_ENV_VAR = "WRAPPERKIT_USER"
PASSWORD_ENV_VAR = "WRAPPERKIT_PASSWORD"

_TRUE_VALUES = ("true", "yes", "on", "1")
_FALSE_VALUES = ("false", "no", "off", "0")


@dataclass
class WrapperConfiguration:
    """Complete wrapper configuration."""

    distribution: DistributionSpec
    network: NetworkSettings = field(default_factory=NetworkSettings)
    install: InstallSettings = field(default_factory=InstallSettings)
    launch: LaunchSettings = field(default_factory=LaunchSettings)
    config_file: Optional[Path] = None
    user_home: Optional[Path] = None


def parse_property_overrides(assignments) -> Dict[str, str]:
    """
    Parse ``key=value`` strings from the command line.

    Raises:
        ConfigurationError: If an assignment has no '=' or an empty key

    Example:
        >>> parse_property_overrides(["lock_timeout=30"])
        {'lock_timeout': '30'}
    """
    overrides = {}
    for assignment in assignments or []:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(
                f"Invalid property override '{assignment}'. Expected KEY=VALUE."
            )
        overrides[key] = value
    return overrides


def load_properties(config_file: Path) -> Dict[str, Any]:
    """
    Load the flat key-value mapping from a wrapper configuration file.

    Raises:
        ConfigurationError: If the file is missing, not valid YAML or not a mapping
    """
    if not config_file.is_file():
        raise ConfigurationError(
            f"Wrapper configuration file {config_file} does not exist!"
        )

    logger.debug(f"Loading wrapper configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigurationError(
            f"Could not load wrapper configuration from {config_file}: {e}"
        ) from e

    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Wrapper configuration {config_file} must be a mapping of keys to values"
        )

    return data


def load_wrapper_configuration(
    config_file: Path,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    user_home: Optional[Union[str, Path]] = None,
) -> WrapperConfiguration:
    """
    Load wrapper configuration from a YAML file plus overrides.

    Properties are merged in this order, later sources winning:

    1. the project configuration file
    2. ``wrapperkit.yaml`` in the wrapper user home, if present
    3. ``overrides``

    The wrapper user home is ``user_home`` if given, else the
    ``wrapper_user_home`` property (overrides first, then the project file),
    else the usual environment and default lookup.

    Args:
        config_file: Path to wrapper.yaml
        overrides: Values taking precedence over the files (e.g. from ``-D``)
        environ: Environment used for credential fallbacks (default: os.environ)
        user_home: Explicit wrapper user home (e.g. from ``--user-home``)

    Returns:
        WrapperConfiguration

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    config_file = Path(config_file)
    overrides = dict(overrides or {})
    properties = load_properties(config_file)

    resolved_user_home = get_wrapper_user_home(
        user_home
        or _get(overrides, WRAPPER_USER_HOME_PROPERTY)
        or _get(properties, WRAPPER_USER_HOME_PROPERTY)
    )
    user_config_file = get_user_config_file(resolved_user_home)
    if user_config_file.is_file():
        properties.update(load_properties(user_config_file))

    properties.update(overrides)

    configuration = configuration_from_properties(
        properties, base_dir=config_file.parent, environ=environ
    )
    configuration.config_file = config_file
    configuration.user_home = resolved_user_home
    return configuration


def configuration_from_properties(
    properties: Mapping[str, Any],
    base_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WrapperConfiguration:
    """
    Build a configuration from a flat key-value mapping.

    Missing optional keys fall back to their documented defaults.

    Args:
        properties: Wrapper properties
        base_dir: Directory scheme-less distribution URLs are resolved against
        environ: Environment used for credential fallbacks (default: os.environ)

    Raises:
        ConfigurationError: If a required key is missing or a value is invalid
    """
    environ = os.environ if environ is None else environ
    base_dir = base_dir or Path.cwd()

    for key in properties:
        if key not in KNOWN_PROPERTIES:
            logger.warning(f"Ignoring unknown wrapper property: {key}")

    distribution = DistributionSpec(
        source_uri=_distribution_uri(properties, base_dir),
        distribution_base=DistributionBase.parse(
            _get(properties, DISTRIBUTION_BASE_PROPERTY, DistributionBase.USER_HOME.value)
        ),
        distribution_path=_get(
            properties, DISTRIBUTION_PATH_PROPERTY, DEFAULT_DISTRIBUTION_PATH
        ),
        archive_base=DistributionBase.parse(
            _get(properties, ARCHIVE_BASE_PROPERTY, DistributionBase.USER_HOME.value)
        ),
        archive_path=_get(properties, ARCHIVE_PATH_PROPERTY, DEFAULT_DISTRIBUTION_PATH),
        sha256_sum=_checksum(properties),
    )

    user = _get(properties, WRAPPER_USER_PROPERTY, environ.get(USER_ENV_VAR))
    password = _get(properties, WRAPPER_PASSWORD_PROPERTY, environ.get(PASSWORD_ENV_VAR))

    proxies = {}
    for scheme, key in (("http", HTTP_PROXY_PROPERTY), ("https", HTTPS_PROXY_PROPERTY)):
        proxy_url = _get(properties, key)
        if proxy_url:
            proxies[scheme] = proxy_url

    network = NetworkSettings(
        connect_timeout=_get_float(
            properties, CONNECT_TIMEOUT_PROPERTY, DEFAULT_CONNECT_TIMEOUT
        ),
        read_timeout=_get_float(properties, READ_TIMEOUT_PROPERTY, DEFAULT_READ_TIMEOUT),
        user=user if user and password is not None else None,
        password=password if user and password is not None else None,
        proxies=proxies,
        proxy_user=_get(properties, PROXY_USER_PROPERTY),
        proxy_password=_get(properties, PROXY_PASSWORD_PROPERTY),
        allow_insecure_auth=_get_bool(properties, ALLOW_INSECURE_AUTH_PROPERTY, True),
    )

    launcher_path = _get(properties, LAUNCHER_PATH_PROPERTY, DEFAULT_LAUNCHER_PATH)

    install = InstallSettings(
        launcher_path=launcher_path,
        executable_path=_get(properties, EXECUTABLE_PATH_PROPERTY, DEFAULT_EXECUTABLE_PATH),
        lock_timeout=_get_float(properties, LOCK_TIMEOUT_PROPERTY, DEFAULT_LOCK_TIMEOUT),
        lock_poll_interval=_get_float(
            properties, LOCK_POLL_INTERVAL_PROPERTY, DEFAULT_POLL_INTERVAL
        ),
    )

    launch = LaunchSettings(
        launcher_path=launcher_path,
        main_class=_get(
            properties, LAUNCHER_MAIN_CLASS_PROPERTY, DEFAULT_LAUNCHER_MAIN_CLASS
        ),
    )

    return WrapperConfiguration(
        distribution=distribution, network=network, install=install, launch=launch
    )


def render_wrapper_configuration(
    distribution_url: str, sha256_sum: Optional[str] = None
) -> str:
    """
    Render the contents of a new wrapper.yaml.

    Example:
        >>> print(render_wrapper_configuration("https://example.org/tool-1.2.3.zip"))
        distribution_url: https://example.org/tool-1.2.3.zip
        ...
    """
    properties: Dict[str, Any] = {DISTRIBUTION_URL_PROPERTY: distribution_url}
    if sha256_sum:
        properties[DISTRIBUTION_SHA256_SUM_PROPERTY] = sha256_sum.strip().lower()
    properties.update(
        {
            DISTRIBUTION_BASE_PROPERTY: DistributionBase.USER_HOME.value,
            DISTRIBUTION_PATH_PROPERTY: DEFAULT_DISTRIBUTION_PATH,
            ARCHIVE_BASE_PROPERTY: DistributionBase.USER_HOME.value,
            ARCHIVE_PATH_PROPERTY: DEFAULT_DISTRIBUTION_PATH,
        }
    )
    return yaml.safe_dump(properties, sort_keys=False, default_flow_style=False)


# ============================================================================
# Value helpers
# ============================================================================


def _get(properties: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = properties.get(key)
    if value is None:
        return default
    return str(value)


def _get_float(properties: Mapping[str, Any], key: str, default: float) -> float:
    value = properties.get(key)
    if value is None:
        return default

    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Property {key} must be a number, got: {value!r}"
        ) from e

    if number < 0:
        raise ConfigurationError(f"Property {key} must not be negative, got: {value!r}")
    return number


def _get_bool(properties: Mapping[str, Any], key: str, default: bool) -> bool:
    value = properties.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value

    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Property {key} must be true or false, got: {value!r}")


def _distribution_uri(properties: Mapping[str, Any], base_dir: Path) -> str:
    """
    Required distribution URL.

    Scheme-less values and relative ``file:`` URIs are paths relative to base_dir.
    """
    value = _get(properties, DISTRIBUTION_URL_PROPERTY)
    if not value or not value.strip():
        raise ConfigurationError(
            f"No value with key {DISTRIBUTION_URL_PROPERTY} specified in wrapper configuration"
        )

    value = value.strip()
    parts = urlsplit(value)
    # file:dist/tool.zip
    if parts.scheme.lower() == "file" and not parts.netloc and not parts.path.startswith("/"):
        return (base_dir / url2pathname(parts.path)).resolve().as_uri()

    # Single letter schemes are Windows drive letters
    if len(parts.scheme) > 1:
        return value

    return (base_dir / value).resolve().as_uri()


def _checksum(properties: Mapping[str, Any]) -> Optional[str]:
    value = _get(properties, DISTRIBUTION_SHA256_SUM_PROPERTY)
    if value is None or not value.strip():
        return None

    checksum = value.strip().lower()
    if not is_valid_hash_format(checksum, "sha256"):
        raise ConfigurationError(
            f"Property {DISTRIBUTION_SHA256_SUM_PROPERTY} is not a valid SHA-256 "
            f"checksum: {value}"
        )
    return checksum
