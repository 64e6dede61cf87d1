"""
Pytest configuration and shared fixtures for WrapperKit tests.
"""

from pathlib import Path
from typing import Generator

import pytest

from tests.utils import DIST_NAME, DistributionServer, distribution_zip
from wrapperkit.core.directory import USER_HOME_ENV_VAR
from wrapperkit.core.paths import PathResolver


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def default_user_home(tmp_path_factory, monkeypatch):
    """Point the default wrapper user home away from the real one."""
    home = tmp_path_factory.mktemp("default-wrapper-home")
    monkeypatch.setenv(USER_HOME_ENV_VAR, str(home))
    return home


@pytest.fixture
def user_home(tmp_path: Path) -> Path:
    """Isolated wrapper user home."""
    home = tmp_path / "wrapper-home"
    home.mkdir()
    return home


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Isolated project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def resolver(user_home: Path, project_dir: Path) -> PathResolver:
    return PathResolver(user_home, project_dir)


@pytest.fixture
def dist_archive(tmp_path: Path) -> Path:
    """A well-formed distribution zip on local disk."""
    archive = tmp_path / "source" / f"{DIST_NAME}.zip"
    archive.parent.mkdir()
    archive.write_bytes(distribution_zip())
    return archive


@pytest.fixture
def no_proxy_env(monkeypatch):
    """Keep requests from routing loopback traffic through an ambient proxy."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")


@pytest.fixture
def dist_server(no_proxy_env) -> Generator[DistributionServer, None, None]:
    """Running local distribution server."""
    server = DistributionServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()
