"""Backends for the upload and agent collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from brandshift.errors import ConfigurationError
from brandshift.providers.base import AgentBackend
from brandshift.providers.http import HttpBackend
from brandshift.providers.mock import MockBackend

if TYPE_CHECKING:
    from brandshift.config import Config

__all__ = ["AgentBackend", "HttpBackend", "MockBackend", "create_backend"]


def create_backend(config: Config) -> AgentBackend:
    """Return the backend *config* asks for."""
    if config.use_mock:
        return MockBackend()
    if not config.base_url:
        raise ConfigurationError(
            "base_url required for the HTTP backend",
            hint="Set BRANDSHIFT_BASE_URL or pass Config(base_url=...).",
        )
    return HttpBackend(
        config.base_url, api_key=config.api_key, timeout_s=config.timeout_s
    )
