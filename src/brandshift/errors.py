"""Exception hierarchy for brandshift."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class BrandshiftError(Exception):
    """Base exception for all brandshift errors."""

    #: Stable short name used in session snapshots and logs.
    kind: str = "error"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    @property
    def message(self) -> str:
        """Return the user-facing message without the hint."""
        return self.args[0] if self.args else ""


class ConfigurationError(BrandshiftError):
    """Configuration validation or resolution failed."""

    kind = "configuration"


class ValidationError(BrandshiftError):
    """The selected source was rejected before any network activity."""

    kind = "validation"


class TransportError(BrandshiftError):
    """A collaborator call failed.

    Backends attach the HTTP status (when there is one) so callers can tell
    credential problems from an unavailable gateway without parsing messages.
    """

    kind = "transport"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.phase = phase


class UploadError(TransportError):
    """Upload was reported as failed or returned a malformed payload."""

    kind = "upload"


class InvocationError(TransportError):
    """The agent call reported failure."""

    kind = "invocation"


class ExtractionError(BrandshiftError):
    """The agent call succeeded but no image reference could be found.

    The full envelope is kept on the exception for diagnostics; it is never
    part of the user-facing message.
    """

    kind = "extraction"

    def __init__(
        self,
        message: str,
        *,
        envelope: Mapping[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.envelope = envelope


class UnexpectedError(BrandshiftError):
    """Any other exception raised while running the pipeline."""

    kind = "unexpected"

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        *,
        hint: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.cause = cause


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
