"""
Pytest configuration and shared fixtures for bindep tests.
"""

import pytest

from bindep.core.platform import clear_platform_cache

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.registry import (
    make_manager,
    settings,
    task_entry,
)

_ENV_VARS = (
    "BINDEP_INSTALL_ROOT",
    "BINDEP_CONFIG",
    "BINDEP_CACHE_REPO",
    "BINDEP_API_URL",
    "BINDEP_TIMEOUT",
    "BINDEP_LOCK_TIMEOUT",
    "BINDEP_BUILD_TIMEOUT",
    "GITHUB_TOKEN",
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access or host toolchains",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's bindep environment out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_platform_cache()
    yield
    clear_platform_cache()
