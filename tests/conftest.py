"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
"""

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live Gemini API calls). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables and the shared config out of tests."""
    for name in (
        "GEMINI_API_KEY",
        "PIXSHOP_GEMINI_BASE_URL",
        "PIXSHOP_IMAGE_MODEL",
        "PIXSHOP_RELAY_URL",
        "PIXSHOP_TRANSPORT",
        "PIXSHOP_RELAY_HOST",
        "PIXSHOP_RELAY_PORT",
        "PIXSHOP_CORS_ORIGINS",
        "PIXSHOP_TIMEOUT",
        "PIXSHOP_DEBUG_API",
        "PIXSHOP_VERBOSITY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("pixshop.core.config._global_config", None)
