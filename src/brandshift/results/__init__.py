"""Response normalization: image reference and transformation details."""

from brandshift.results.candidates import (
    create_candidate_registry,
    default_candidates,
)
from brandshift.results.details import (
    TransformationDetails,
    extract_transformation_details,
)
from brandshift.results.extraction import (
    CandidateSpec,
    ExtractionDiagnostics,
    ImageUrlMatch,
)
from brandshift.results.image_url import ImageUrlExtractor, extract_image_url

__all__ = [
    "CandidateSpec",
    "ExtractionDiagnostics",
    "ImageUrlExtractor",
    "ImageUrlMatch",
    "TransformationDetails",
    "create_candidate_registry",
    "default_candidates",
    "extract_image_url",
    "extract_transformation_details",
]
