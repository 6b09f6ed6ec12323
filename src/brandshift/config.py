"""Configuration: frozen Config resolved from arguments and the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from brandshift.errors import ConfigurationError

load_dotenv()

DEFAULT_AGENT_ID = "699c802522d60b5dbc439726"

BRAND_INSTRUCTION = (
    "Transform this uploaded image into Lyzr brand style using the company "
    "color palette (deep purples #7458e8, vibrant blues, electric accents) with "
    "clean gradients and modern tech-forward aesthetic."
)

ACCEPTED_MIME_TYPES: tuple[str, ...] = ("image/png", "image/jpeg", "image/webp")

_AGENT_ID_ENV = "BRANDSHIFT_AGENT_ID"
_BASE_URL_ENV = "BRANDSHIFT_BASE_URL"
_API_KEY_ENV = "BRANDSHIFT_API_KEY"


@dataclass(frozen=True)
class Config:
    """Immutable configuration for a transform workflow.

    Unset ``agent_id``, ``base_url`` and ``api_key`` are resolved from
    ``BRANDSHIFT_AGENT_ID``, ``BRANDSHIFT_BASE_URL`` and ``BRANDSHIFT_API_KEY``.

    Example:
        config = Config(use_mock=True)
        # or, against a gateway:
        config = Config(base_url="https://studio.example.com")
    """

    agent_id: str | None = None
    #: Root URL of the agent gateway. Required unless ``use_mock`` is set.
    base_url: str | None = None
    api_key: str | None = None
    use_mock: bool = False
    timeout_s: float = 120.0
    brand_instruction: str = BRAND_INSTRUCTION
    accepted_mime_types: tuple[str, ...] = ACCEPTED_MIME_TYPES

    def __post_init__(self) -> None:
        """Resolve environment fallbacks and validate configuration."""
        if self.agent_id is None:
            object.__setattr__(
                self, "agent_id", os.environ.get(_AGENT_ID_ENV) or DEFAULT_AGENT_ID
            )
        # Mock runs never reach a gateway; ignore a stray env value there.
        if self.base_url is None and not self.use_mock:
            object.__setattr__(self, "base_url", os.environ.get(_BASE_URL_ENV) or None)
        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV) or None)

        if not isinstance(self.agent_id, str) or not self.agent_id.strip():
            raise ConfigurationError(
                "agent_id must be a non-empty string",
                hint=f"Pass agent_id=... or set {_AGENT_ID_ENV}.",
            )
        object.__setattr__(self, "agent_id", self.agent_id.strip())

        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This bounds each gateway request in seconds.",
            )

        if not self.brand_instruction or not self.brand_instruction.strip():
            raise ConfigurationError(
                "brand_instruction cannot be empty",
                hint="Leave it unset to use the default brand instruction.",
            )

        if not self.accepted_mime_types:
            raise ConfigurationError(
                "accepted_mime_types cannot be empty",
                hint="Accept at least one image MIME type, e.g. 'image/png'.",
            )

        if self.base_url is not None:
            base = self.base_url.strip().rstrip("/")
            if not base.startswith(("http://", "https://")):
                raise ConfigurationError(
                    f"base_url must be an http(s) URL, got {self.base_url!r}",
                    hint="Use e.g. base_url='https://studio.example.com'.",
                )
            object.__setattr__(self, "base_url", base)

        # Real calls need somewhere to go
        if not self.use_mock and not self.base_url:
            raise ConfigurationError(
                "base_url required unless use_mock=True",
                hint=f"Set {_BASE_URL_ENV} or pass base_url=...",
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(agent_id={self.agent_id!r}, base_url={self.base_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
