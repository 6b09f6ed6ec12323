"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, marker registration,
and automatic API test skipping. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from typing import TYPE_CHECKING

import pytest

from brandshift.source import ImageSource
from tests.helpers import PNG_BYTES

if TYPE_CHECKING:
    from pathlib import Path


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_brandshift_env(request, monkeypatch):
    """Ensure a clean gateway environment for each test.

    Clears BRANDSHIFT_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith("BRANDSHIFT_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Sources (not autouse)
# =============================================================================


@pytest.fixture
def png_source() -> ImageSource:
    """An accepted in-memory PNG."""
    return ImageSource.from_bytes(PNG_BYTES, filename="logo.png")


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    """An accepted PNG on disk."""
    path = tmp_path / "logo.png"
    path.write_bytes(PNG_BYTES)
    return path


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


@pytest.fixture
def gateway_base_url():
    """Return BRANDSHIFT_BASE_URL or skip the test if unavailable."""
    url = os.getenv("BRANDSHIFT_BASE_URL")
    if not url:
        pytest.skip("BRANDSHIFT_BASE_URL not set")
    return url
