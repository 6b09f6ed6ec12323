"""Human-readable transformation metadata from an agent envelope."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import json
from typing import Any

DESCRIPTION_KEYS = ("transformation_description", "description", "text", "message")
STYLE_KEYS = ("style_elements_applied", "styles", "elements")
COLOR_KEYS = ("color_palette_used", "colors", "palette")


@dataclass(frozen=True)
class TransformationDetails:
    """Free-text description of what the agent did to the image.

    All three fields are always present; an unknown field is ``""``.
    """

    transformation_description: str = ""
    style_elements_applied: str = ""
    color_palette_used: str = ""

    @property
    def is_empty(self) -> bool:
        return not (
            self.transformation_description
            or self.style_elements_applied
            or self.color_palette_used
        )

    def as_dict(self) -> dict[str, str]:
        return {
            "transformation_description": self.transformation_description,
            "style_elements_applied": self.style_elements_applied,
            "color_palette_used": self.color_palette_used,
        }


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str | Mapping | list | tuple):
        return len(value) == 0
    return False


def _stringify(value: Any) -> str:
    """Render a candidate value as text; structured values become JSON."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping | Sequence | bool | int | float):
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def _first_present(result: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    """Stringify the value of the first key that is present.

    Empty strings and empty lists or mappings count as missing, so ``[]``
    falls through to the next key rather than rendering as ``"[]"``.
    """
    for key in keys:
        value = result.get(key)
        if not _is_absent(value):
            return _stringify(value)
    return ""


def extract_transformation_details(envelope: Any) -> TransformationDetails | None:
    """Return transformation metadata, or None when the envelope has none.

    Reads ``response.result`` when it is a mapping, taking each field from the
    first present of its candidate keys. If that yields nothing, a present
    ``response.message`` becomes the description on its own.
    """
    response = envelope.get("response") if isinstance(envelope, Mapping) else None
    if not isinstance(response, Mapping):
        return None

    result = response.get("result")
    if isinstance(result, Mapping):
        details = TransformationDetails(
            transformation_description=_first_present(result, DESCRIPTION_KEYS),
            style_elements_applied=_first_present(result, STYLE_KEYS),
            color_palette_used=_first_present(result, COLOR_KEYS),
        )
        if not details.is_empty:
            return details

    message = response.get("message")
    if not _is_absent(message):
        return TransformationDetails(transformation_description=_stringify(message))
    return None
