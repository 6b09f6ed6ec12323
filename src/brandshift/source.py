"""ImageSource: the asset a user selects for transformation."""

from __future__ import annotations

from collections.abc import Callable  # noqa: TC003 - used at runtime in dataclass
from dataclasses import dataclass
import mimetypes
from pathlib import Path

from brandshift.config import ACCEPTED_MIME_TYPES
from brandshift.errors import ValidationError

# Older mimetypes tables lack webp.
mimetypes.add_type("image/webp", ".webp")

_FORMAT_LABELS = {
    "image/png": "PNG",
    "image/jpeg": "JPG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
}


@dataclass(frozen=True, slots=True)
class ImageSource:
    """A selected image with lazy access to its bytes."""

    filename: str
    mime_type: str
    size_bytes: int
    content_loader: Callable[[], bytes]

    @classmethod
    def from_file(cls, path: str | Path, *, mime_type: str | None = None) -> ImageSource:
        """Create an ImageSource from a local file.

        Args:
            path: Path to the image. Must exist or ``ValidationError`` is raised.
            mime_type: MIME type override. Guessed from the extension when *None*.
        """
        p = Path(path)
        if not p.is_file():
            raise ValidationError(
                f"File not found: {p}", hint="Check the path and try again."
            )

        mt = mime_type or mimetypes.guess_type(str(p))[0] or "application/octet-stream"
        size = p.stat().st_size

        def loader() -> bytes:
            return p.read_bytes()

        return cls(filename=p.name, mime_type=mt, size_bytes=size, content_loader=loader)

    @classmethod
    def from_bytes(
        cls, data: bytes, *, filename: str, mime_type: str | None = None
    ) -> ImageSource:
        """Create an ImageSource from in-memory bytes (e.g. a form upload)."""
        mt = mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        return cls(
            filename=filename,
            mime_type=mt,
            size_bytes=len(data),
            content_loader=lambda: data,
        )

    @property
    def size_mb(self) -> str:
        """Size in megabytes with two decimals, e.g. ``"2.40 MB"``."""
        return f"{self.size_bytes / (1024 * 1024):.2f} MB"

    def read(self) -> bytes:
        """Load the image bytes."""
        return self.content_loader()


def _accepted_labels(accepted: tuple[str, ...]) -> str:
    labels = [_FORMAT_LABELS.get(mt, mt.rsplit("/", 1)[-1].upper()) for mt in accepted]
    if len(labels) == 1:
        return labels[0]
    return f"{', '.join(labels[:-1])}, or {labels[-1]}"


def validate_image_source(
    source: ImageSource, accepted: tuple[str, ...] = ACCEPTED_MIME_TYPES
) -> ImageSource:
    """Return *source* unchanged when its MIME type is accepted.

    Raises:
        ValidationError: For any other type, e.g.
            ``"Please upload a PNG, JPG, or WEBP image."``.
    """
    if source.mime_type not in accepted:
        raise ValidationError(
            f"Please upload a {_accepted_labels(accepted)} image.",
            hint=f"Got {source.mime_type!r} for {source.filename}.",
        )
    return source
