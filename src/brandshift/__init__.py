"""brandshift: restyle an image through a generative-AI agent.

Public API:
    - transform_image(): One-shot upload, invoke and extract
    - TransformWorkflow: Session state machine for interactive front ends
    - extract_image_url() / extract_transformation_details(): Response normalization
    - ImageSource: Explicit input type
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from brandshift.config import Config
from brandshift.errors import (
    BrandshiftError,
    ConfigurationError,
    ExtractionError,
    InvocationError,
    TransportError,
    UnexpectedError,
    UploadError,
    ValidationError,
)
from brandshift.providers import create_backend
from brandshift.results import (
    TransformationDetails,
    extract_image_url,
    extract_transformation_details,
)
from brandshift.source import ImageSource, validate_image_source
from brandshift.workflow import Phase, SessionSnapshot, TransformWorkflow

if TYPE_CHECKING:
    from brandshift.providers.base import AgentBackend

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("brandshift")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("brandshift").addHandler(logging.NullHandler())


async def transform_image(
    source: ImageSource,
    *,
    config: Config,
    style_note: str = "",
    backend: AgentBackend | None = None,
) -> SessionSnapshot:
    """Transform one image and return the final session snapshot.

    Args:
        source: The image to restyle.
        config: Configuration (agent id, gateway, mock mode).
        style_note: Optional extra style direction appended to the instruction.
        backend: Backend override; built from *config* when omitted.

    Returns:
        Snapshot in `Phase.SUCCEEDED` (with ``image_url``) or `Phase.FAILED`
        (with ``error``).

    Raises:
        ValidationError: If *source* is not an accepted image type.

    Example:
        config = Config(use_mock=True)
        snapshot = await transform_image(ImageSource.from_file("logo.png"), config=config)
        print(snapshot.image_url)
    """
    validate_image_source(source, config.accepted_mime_types)
    owned = backend is None
    active = backend if backend is not None else create_backend(config)
    try:
        workflow = TransformWorkflow(active, config=config)
        workflow.select_source(source)
        workflow.set_style_note(style_note)
        return await workflow.transform()
    finally:
        close = getattr(active, "aclose", None)
        if owned and callable(close):
            await close()


__all__ = [
    "BrandshiftError",
    "Config",
    "ConfigurationError",
    "ExtractionError",
    "ImageSource",
    "InvocationError",
    "Phase",
    "SessionSnapshot",
    "TransformWorkflow",
    "TransformationDetails",
    "TransportError",
    "UnexpectedError",
    "UploadError",
    "ValidationError",
    "extract_image_url",
    "extract_transformation_details",
    "transform_image",
]
