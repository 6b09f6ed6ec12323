"""Shared backend-side error helpers.

Backends map transport exceptions into `UploadError`/`InvocationError` with a
status code and an actionable hint, so the workflow never has to inspect
library-specific exception types.
"""

from __future__ import annotations

import asyncio

import httpx

from brandshift._http import TRANSIENT_STATUS_CODES
from brandshift.errors import (
    InvocationError,
    TransportError,
    UploadError,
    _walk_exception_chain,
)


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _status_hint(status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return "Check credentials (try setting BRANDSHIFT_API_KEY or Config.api_key)."
    if status_code == 404:
        return "Check BRANDSHIFT_BASE_URL and the gateway upload/agent paths."
    if status_code == 413:
        return "The image is too large for the gateway; try a smaller file."
    if status_code in TRANSIENT_STATUS_CODES:
        return "The gateway is busy or unavailable; try again in a moment."
    return None


def wrap_transport_error(
    exc: BaseException,
    *,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> TransportError:
    """Map an httpx (or other) exception into the error type for *phase*.

    *phase* is ``"upload"`` or ``"invoke"``.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped; fill in missing context only.
    if isinstance(exc, TransportError):
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc

    status_code = extract_status_code(exc)
    derived_hint = hint if hint is not None else _status_hint(status_code)
    if derived_hint is None:
        for e in _walk_exception_chain(exc):
            if isinstance(e, httpx.TimeoutException):
                derived_hint = "The gateway did not answer in time; try again."
                break
            if isinstance(e, httpx.RequestError):
                derived_hint = (
                    "Could not reach the gateway; check the network and base URL."
                )
                break

    err_cls: type[TransportError] = (
        UploadError if phase == "upload" else InvocationError
    )
    msg = message or (
        "Failed to upload image" if phase == "upload" else "Transformation failed"
    )
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    return err_cls(
        f"{msg}{status_note}",
        hint=derived_hint,
        status_code=status_code,
        phase=phase,
    )
