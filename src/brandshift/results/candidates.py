"""Built-in, pure image-reference candidates used by `ImageUrlExtractor`.

Each factory returns a `CandidateSpec`. Priorities encode the lookup order
observed across upstream response shapes; two shapes can both satisfy a later
candidate with a different URL, so the order is part of the contract and not
a performance detail.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
import re
from typing import Any

from .extraction import CandidateSpec

# URLs embedded in free text. The raw_response scan is deliberately narrower.
# A match stops at brackets, parentheses and commas so markdown links and
# comma-separated lists yield the first URL; any query string is not kept.
MESSAGE_URL_PATTERN = re.compile(
    r"https?://[^\s\"'<>()\[\],]+\.(?:png|jpg|jpeg|webp|gif|svg|bmp)(?!\w)",
    re.IGNORECASE,
)
RAW_RESPONSE_URL_PATTERN = re.compile(
    r"https?://[^\s\"'<>()\[\],]+\.(?:png|jpg|jpeg|webp|gif)(?!\w)", re.IGNORECASE
)

RESULT_URL_KEYS = (
    "image_url",
    "url",
    "image",
    "output_image",
    "generated_image",
    "file_url",
)
MODULE_OUTPUT_URL_KEYS = ("url", "image_url")

# Bound on string-in-string JSON encodings unwrapped from raw_response
_MAX_JSON_UNWRAP = 2

# --- Utility Functions ---


def _dig(raw: Any, *path: str) -> Any:
    """Follow *path* through nested mappings, returning None on any miss."""
    current = raw
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _url_value(value: Any) -> str | None:
    """Return *value* when it is a usable (non-blank) string."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(
        value, str | bytes | bytearray
    )


def _first_item_url(value: Any, keys: tuple[str, ...]) -> str | None:
    """Read the first of *keys* from element 0 of a non-empty sequence."""
    if not _is_sequence(value) or not value:
        return None
    first = value[0]
    if not isinstance(first, Mapping):
        return None
    for key in keys:
        url = _url_value(first.get(key))
        if url is not None:
            return url
    return None


def _scan(text: str, pattern: re.Pattern[str]) -> str | None:
    match = pattern.search(text)
    return match.group(0) if match else None


# --- Built-in Candidates ---


def module_outputs_artifact_candidate() -> CandidateSpec:
    """``module_outputs.artifact_files[0].file_url``: the canonical location."""

    def matcher(raw: Any) -> bool:
        files = _dig(raw, "module_outputs", "artifact_files")
        return _is_sequence(files) and len(files) > 0

    def extractor(raw: Any) -> str | None:
        return _first_item_url(
            _dig(raw, "module_outputs", "artifact_files"), ("file_url",)
        )

    return CandidateSpec(
        name="module_outputs_artifact",
        matcher=matcher,
        extractor=extractor,
        priority=50,
    )


def module_outputs_fields_candidate() -> CandidateSpec:
    """Other fields directly under ``module_outputs``.

    Exact ``url``/``image_url`` keys win; otherwise the first key (in mapping
    order) holding a non-empty sequence whose element 0 carries ``file_url``
    or ``url``.
    """

    def matcher(raw: Any) -> bool:
        outputs = _dig(raw, "module_outputs")
        return isinstance(outputs, Mapping) and len(outputs) > 0

    def extractor(raw: Any) -> str | None:
        outputs = _dig(raw, "module_outputs")
        for key in MODULE_OUTPUT_URL_KEYS:
            url = _url_value(outputs.get(key))
            if url is not None:
                return url
        for key, value in outputs.items():
            if key in MODULE_OUTPUT_URL_KEYS:
                continue
            url = _first_item_url(value, ("file_url", "url"))
            if url is not None:
                return url
        return None

    return CandidateSpec(
        name="module_outputs_fields",
        matcher=matcher,
        extractor=extractor,
        priority=40,
    )


def response_result_candidate() -> CandidateSpec:
    """URL-ish keys of ``response.result`` when it is a mapping."""

    def matcher(raw: Any) -> bool:
        return isinstance(_dig(raw, "response", "result"), Mapping)

    def extractor(raw: Any) -> str | None:
        result = _dig(raw, "response", "result")
        for key in RESULT_URL_KEYS:
            url = _url_value(result.get(key))
            if url is not None:
                return url

        url = _first_item_url(result.get("artifact_files"), ("file_url", "url"))
        if url is not None:
            return url

        return _first_item_url(
            _dig(result, "module_outputs", "artifact_files"), ("file_url",)
        )

    return CandidateSpec(
        name="response_result",
        matcher=matcher,
        extractor=extractor,
        priority=30,
    )


def response_message_candidate() -> CandidateSpec:
    """First image URL mentioned in ``response.message`` text.

    The URL ends at its image extension, so a presigned query string such as
    ``?X-Amz-Signature=...`` is not part of the result.
    """

    def matcher(raw: Any) -> bool:
        return isinstance(_dig(raw, "response", "message"), str)

    def extractor(raw: Any) -> str | None:
        return _scan(_dig(raw, "response", "message"), MESSAGE_URL_PATTERN)

    return CandidateSpec(
        name="response_message",
        matcher=matcher,
        extractor=extractor,
        priority=20,
    )


def raw_response_candidate() -> CandidateSpec:
    """Look inside ``raw_response``, a serialized copy of the agent output.

    - JSON that decodes to a mapping: the canonical artifact path, then the
      same path nested under ``response``.
    - JSON that decodes to a string (double encoding) is unwrapped again.
    - Anything that does not decode: scan the text for an image URL
      (``png|jpg|jpeg|webp|gif`` only).
    """

    def matcher(raw: Any) -> bool:
        return isinstance(_dig(raw, "raw_response"), str)

    def extractor(raw: Any) -> str | None:
        text: str = _dig(raw, "raw_response")
        decoded: Any = text
        for _ in range(_MAX_JSON_UNWRAP):
            try:
                decoded = json.loads(text)
            except (ValueError, RecursionError):
                return _scan(text, RAW_RESPONSE_URL_PATTERN)
            if not isinstance(decoded, str):
                break
            text = decoded
        else:
            return _scan(text, RAW_RESPONSE_URL_PATTERN)

        if not isinstance(decoded, Mapping):
            return None
        return _first_item_url(
            _dig(decoded, "module_outputs", "artifact_files"), ("file_url",)
        ) or _first_item_url(
            _dig(decoded, "response", "module_outputs", "artifact_files"),
            ("file_url",),
        )

    return CandidateSpec(
        name="raw_response",
        matcher=matcher,
        extractor=extractor,
        priority=10,
    )


# --- Default Candidate Collection ---


def default_candidates() -> list[CandidateSpec]:
    """Get the built-in candidates, highest priority first."""
    return [
        module_outputs_artifact_candidate(),
        module_outputs_fields_candidate(),
        response_result_candidate(),
        response_message_candidate(),
        raw_response_candidate(),
    ]


def create_candidate_registry() -> dict[str, CandidateSpec]:
    """Map candidate names to specs, for customization and isolated tests."""
    return {candidate.name: candidate for candidate in default_candidates()}
