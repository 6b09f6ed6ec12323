"""Types shared by the image-reference candidates and their runner.

These are useful for consumers writing custom candidates or inspecting which
lookup produced (or failed to produce) an image reference.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


# --- Candidate Specification ---


@dataclasses.dataclass(frozen=True)
class CandidateSpec:
    """Specification for one pure image-reference lookup.

    Attributes:
        name: Unique candidate name.
        matcher: Callable that returns True when the envelope has the shape
            this candidate reads from.
        extractor: Callable that projects the envelope to a URL, or None.
        priority: Higher values run before lower ones.
    """

    name: str
    matcher: Callable[[Any], bool]  # Predicate: does the location exist?
    extractor: Callable[[Any], str | None]  # Pure projection
    priority: int = 0

    def __post_init__(self) -> None:
        """Validate candidate specification at construction time."""
        if not self.name or not isinstance(self.name, str):
            raise ValueError(
                f"Candidate name must be non-empty string, got {self.name}"
            )

        if not callable(self.matcher):
            raise ValueError(f"Candidate {self.name}: matcher must be callable")

        if not callable(self.extractor):
            raise ValueError(f"Candidate {self.name}: extractor must be callable")


# --- Diagnostics ---


@dataclasses.dataclass
class ExtractionDiagnostics:
    """Mutable diagnostics collected during one extraction.

    Only produced when an `ImageUrlExtractor` is constructed with
    ``enable_diagnostics=True``.
    """

    attempted_candidates: list[str] = dataclasses.field(default_factory=list)
    matched_shapes: list[str] = dataclasses.field(default_factory=list)
    successful_candidate: str | None = None
    candidate_errors: dict[str, str] = dataclasses.field(default_factory=dict)
    extraction_duration_ms: float | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly copy."""
        return dataclasses.asdict(self)


# --- Result ---


@dataclasses.dataclass(frozen=True)
class ImageUrlMatch:
    """Outcome of running the candidate cascade over one envelope.

    Attributes:
        url: The image reference, or None when nothing matched.
        candidate: Name of the candidate that produced ``url``.
        diagnostics: Present only when diagnostics were enabled.
    """

    url: str | None
    candidate: str | None = None
    diagnostics: ExtractionDiagnostics | None = None

    @property
    def found(self) -> bool:
        return self.url is not None
