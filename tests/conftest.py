"""
Shared pytest fixtures for the laranav test suite.

Every fixture builds real files under tmp_path; nothing is mocked at the
filesystem level.

Usage in tests:
    def test_something(laravel_factory):
        laravel_factory.add_routes("web.php", "...")
        index = laravel_factory.build_index()

    def test_with_data(sample_project):
        index, resolver = sample_project.build_resolver()
"""

import logging

import pytest

from laranav.logging import reset_logging
from tests.factories import LaravelProjectFactory


@pytest.fixture
def laravel_factory(tmp_path):
    """An empty project root with the default layout."""
    return LaravelProjectFactory(tmp_path)


@pytest.fixture
def sample_project(tmp_path):
    """
    A project pre-populated by create_sample_project().

    Example:
        def test_routes(sample_project):
            index = sample_project.build_index()
            assert index.stats().routes == 3
    """
    return LaravelProjectFactory(tmp_path).create_sample_project()


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path_factory, monkeypatch):
    """Keep ~/.laranav and LARANAV_* variables out of every test."""
    from laranav.config import ConfigManager

    home = tmp_path_factory.mktemp("home") / ".laranav"
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_DIR", home)
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_FILE", home / "config.yaml")
    for name in ("LARANAV_ROOT_NAMESPACE", "LARANAV_LOG_LEVEL", "LARANAV_LOG_JSON", "LARANAV_PROJECT_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clean_logging():
    """Undo configure_logging() calls made by sessions under test."""
    yield
    reset_logging()
    logging.getLogger("laranav").setLevel(logging.NOTSET)
