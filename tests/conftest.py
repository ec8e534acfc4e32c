"""Pytest configuration for llm_anthropic_bridge tests."""

from __future__ import annotations

import os

import pytest
from dotenv import load_dotenv

# Ensure pytest-asyncio is always available so async tests execute without
# requiring plugins to be explicitly enabled via command line options.
pytest_plugins = ("pytest_asyncio",)

load_dotenv()

_DEFAULT_ANTHROPIC_MODEL = "claude-haiku-4-5"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register custom command line options for pytest."""
    parser.addoption(
        "--anthropic-test-model",
        action="store",
        default=os.environ.get("ANTHROPIC_TEST_MODEL", _DEFAULT_ANTHROPIC_MODEL),
        dest="anthropic_test_model",
        help=(
            "Model identifier to use for Anthropic integration tests. "
            "Can also be provided through the ANTHROPIC_TEST_MODEL environment variable."
        ),
    )


@pytest.fixture(scope="session")
def anthropic_test_model(pytestconfig: pytest.Config) -> str:
    """Return the model identifier used for Anthropic integration tests."""
    return pytestconfig.getoption("anthropic_test_model")
