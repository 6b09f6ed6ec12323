"""Find the generated image reference in an agent response envelope.

`ImageUrlExtractor` runs a prioritized tuple of `CandidateSpec`s and stops
at the first one that yields a URL. There is no fallback tier: when nothing
matches the result is ``None``, which the workflow treats as "the agent
succeeded but produced nothing usable".
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from brandshift.results.candidates import default_candidates
from brandshift.results.extraction import (
    CandidateSpec,
    ExtractionDiagnostics,
    ImageUrlMatch,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

log = logging.getLogger(__name__)


class ImageUrlExtractor:
    """Apply image-reference candidates to an envelope in priority order.

    Attributes:
        candidates: Candidates as given (defaults to the built-ins).
        enable_diagnostics: Whether `run` attaches `ExtractionDiagnostics`.
    """

    def __init__(
        self,
        candidates: Iterable[CandidateSpec] | None = None,
        *,
        enable_diagnostics: bool = False,
    ) -> None:
        self.candidates: tuple[CandidateSpec, ...] = (
            tuple(candidates) if candidates is not None else tuple(default_candidates())
        )
        self.enable_diagnostics = enable_diagnostics
        # Deterministic order: higher priority first, name tiebreaker
        self._ordered: tuple[CandidateSpec, ...] = tuple(
            sorted(self.candidates, key=lambda c: (-c.priority, c.name))
        )

    @property
    def ordered_candidates(self) -> tuple[CandidateSpec, ...]:
        return self._ordered

    def run(self, envelope: Any) -> ImageUrlMatch:
        """Return the first URL any candidate yields, with its provenance.

        A candidate whose extractor raises, or returns anything but a
        non-blank string, is treated as not matching. The envelope is never
        mutated.
        """
        start_time = time.perf_counter()
        diagnostics = ExtractionDiagnostics() if self.enable_diagnostics else None

        url: str | None = None
        winner: str | None = None
        for candidate in self._ordered:
            if diagnostics:
                diagnostics.attempted_candidates.append(candidate.name)
            if not candidate.matcher(envelope):
                continue
            if diagnostics:
                diagnostics.matched_shapes.append(candidate.name)
            try:
                value = candidate.extractor(envelope)
            except Exception as e:
                log.debug("Candidate %s failed: %s", candidate.name, e)
                if diagnostics:
                    diagnostics.candidate_errors[candidate.name] = str(e)
                continue
            if isinstance(value, str) and value.strip():
                url, winner = value, candidate.name
                break

        if diagnostics:
            diagnostics.successful_candidate = winner
            diagnostics.extraction_duration_ms = (
                time.perf_counter() - start_time
            ) * 1000

        if winner is not None:
            log.debug("Image reference found via %s", winner)
        return ImageUrlMatch(url=url, candidate=winner, diagnostics=diagnostics)

    def extract(self, envelope: Any) -> str | None:
        """Return just the URL (or None)."""
        return self.run(envelope).url


_default_extractor = ImageUrlExtractor()


def extract_image_url(envelope: Any) -> str | None:
    """Return the result image URL in *envelope*, or None when there is none.

    Lookup order (first hit wins):

    1. ``module_outputs.artifact_files[0].file_url``
    2. ``module_outputs.url`` / ``module_outputs.image_url``, then any
       ``module_outputs`` list whose first item has ``file_url`` or ``url``
    3. ``response.result`` URL keys, its ``artifact_files``, then its nested
       ``module_outputs.artifact_files``
    4. an image URL inside ``response.message``
    5. ``raw_response``, decoded as JSON or scanned as text
    """
    return _default_extractor.extract(envelope)
