"""Transform workflow: upload, invoke the agent, extract, publish.

One `TransformWorkflow` owns one selected image and the session for the most
recent transform attempt. Phases advance strictly in order::

    idle -> uploading -> invoking -> extracting -> succeeded
                 \\            \\            \\
                  +------------+------------+--> failed

Every session carries a generation number. Selecting or removing a source,
resetting, or starting another transform bumps the generation; an awaited
collaborator call that returns for an older generation is dropped without
touching state. Network calls are never cancelled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as SchemaValidationError

from brandshift.errors import (
    BrandshiftError,
    ExtractionError,
    InvocationError,
    UnexpectedError,
    UploadError,
    ValidationError,
)
from brandshift.providers.models import UploadResponse
from brandshift.results import (
    ImageUrlExtractor,
    TransformationDetails,
    extract_transformation_details,
)
from brandshift.source import ImageSource, validate_image_source

if TYPE_CHECKING:
    from collections.abc import Callable

    from brandshift.config import Config
    from brandshift.providers.base import AgentBackend

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to upload image"
INVOCATION_FAILED_MESSAGE = "Transformation failed"
NO_IMAGE_MESSAGE = "No image was generated. Please try again."
STYLE_DIRECTION_PREFIX = " Additional style direction: "


class Phase(str, Enum):
    """Lifecycle phase of a transform session."""

    IDLE = "idle"
    UPLOADING = "uploading"
    INVOKING = "invoking"
    EXTRACTING = "extracting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ACTIVE_PHASES = frozenset({Phase.UPLOADING, Phase.INVOKING, Phase.EXTRACTING})

# Advisory only; not part of the correctness contract.
PROGRESS_MESSAGES: dict[Phase, str] = {
    Phase.UPLOADING: "Uploading image...",
    Phase.INVOKING: "Transforming with AI...",
}


@dataclass
class TransformSession:
    """Mutable state of one transform attempt. Owned by `TransformWorkflow`."""

    generation: int
    source: ImageSource | None = None
    style_note: str = ""
    phase: Phase = Phase.IDLE
    image_url: str | None = None
    details: TransformationDetails | None = None
    error: str | None = None
    #: Full failure, including diagnostics such as the raw envelope.
    failure: BrandshiftError | None = field(default=None, repr=False)

    @property
    def progress_message(self) -> str | None:
        return PROGRESS_MESSAGES.get(self.phase)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only projection of a session for presentation."""

    phase: Phase
    progress_message: str | None
    image_url: str | None
    details: TransformationDetails | None
    error: str | None
    error_kind: str | None
    source_name: str | None
    source_size_mb: str | None
    style_note: str

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def has_result(self) -> bool:
        return self.image_url is not None

    @property
    def can_transform(self) -> bool:
        """Whether a UI should enable the transform control."""
        return self.source_name is not None and not self.is_active

    @property
    def can_retry(self) -> bool:
        return self.phase is Phase.FAILED and self.source_name is not None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view."""
        return {
            "phase": self.phase.value,
            "progress_message": self.progress_message,
            "image_url": self.image_url,
            "details": self.details.as_dict() if self.details else None,
            "error": self.error,
            "error_kind": self.error_kind,
            "source_name": self.source_name,
            "source_size_mb": self.source_size_mb,
            "style_note": self.style_note,
        }


def build_request_message(instruction: str, style_note: str | None = None) -> str:
    """Return the agent message: the brand instruction plus an optional directive.

    A blank or whitespace-only *style_note* leaves the instruction unchanged.
    """
    note = (style_note or "").strip()
    if not note:
        return instruction
    return f"{instruction}{STYLE_DIRECTION_PREFIX}{note}"


def _dump_envelope(envelope: Any) -> str:
    """Serialize an envelope for logs, never failing."""
    try:
        return json.dumps(envelope, default=str, sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(envelope)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


class TransformWorkflow:
    """Drive transform sessions against an `AgentBackend`.

    The UI is expected to disable the transform control while a session is
    active (see `SessionSnapshot.can_transform`); overlapping runs are still
    safe because only the newest generation may publish.

    Example:
        workflow = TransformWorkflow(MockBackend(), config=Config(use_mock=True))
        workflow.select_source(ImageSource.from_file("logo.png"))
        snapshot = await workflow.transform()
    """

    def __init__(
        self,
        backend: AgentBackend,
        *,
        config: Config,
        extractor: ImageUrlExtractor | None = None,
    ) -> None:
        self._backend = backend
        self._config = config
        self._extractor = extractor or ImageUrlExtractor()
        self._generation = 0
        self._session = TransformSession(generation=0)
        self._listeners: list[Callable[[SessionSnapshot], None]] = []

    # --- Read side ---

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def snapshot(self) -> SessionSnapshot:
        s = self._session
        return SessionSnapshot(
            phase=s.phase,
            progress_message=s.progress_message,
            image_url=s.image_url,
            details=s.details,
            error=s.error,
            error_kind=s.failure.kind if s.failure else None,
            source_name=s.source.filename if s.source else None,
            source_size_mb=s.source.size_mb if s.source else None,
            style_note=s.style_note,
        )

    @property
    def last_failure(self) -> BrandshiftError | None:
        """The failure behind ``snapshot.error``, with diagnostics attached."""
        return self._session.failure

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def subscribe(
        self, listener: Callable[[SessionSnapshot], None]
    ) -> Callable[[], None]:
        """Call *listener* with a snapshot after every state change.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Selection ---

    def select_source(self, source: ImageSource) -> SessionSnapshot:
        """Select *source* for the next transform.

        An unsupported format is recorded as the session error and the current
        selection is kept. An accepted source discards any session results,
        including ones still in flight.
        """
        try:
            validate_image_source(source, self._config.accepted_mime_types)
        except ValidationError as e:
            logger.info("Rejected %s: %s", source.filename, e.message)
            self._session.error = e.message
            self._session.failure = e
            self._notify()
            return self.snapshot

        self._start_session(source=source, style_note=self._session.style_note)
        return self.snapshot

    def remove_source(self) -> SessionSnapshot:
        """Clear the selection and any results."""
        self._start_session(source=None, style_note=self._session.style_note)
        return self.snapshot

    def set_style_note(self, style_note: str) -> SessionSnapshot:
        """Update the optional style directive; the phase is unchanged."""
        self._session.style_note = style_note
        self._notify()
        return self.snapshot

    def reset(self) -> SessionSnapshot:
        """Return to a fresh idle session with the same selection."""
        self._start_session(
            source=self._session.source, style_note=self._session.style_note
        )
        return self.snapshot

    # --- Pipeline ---

    async def transform(self) -> SessionSnapshot:
        """Run upload, invoke and extract for the selected source.

        Does nothing when no source is selected. Failures never raise; they
        end the session in `Phase.FAILED` with a user-facing message.
        """
        source = self._session.source
        if source is None:
            logger.debug("Transform requested with no source selected")
            return self.snapshot

        style_note = self._session.style_note
        generation = self._start_session(
            source=source, style_note=style_note, phase=Phase.UPLOADING
        )
        try:
            asset_id = await self._upload(source)
            if not self._advance(generation, Phase.INVOKING):
                return self.snapshot

            message = build_request_message(self._config.brand_instruction, style_note)
            envelope = await self._backend.invoke(
                message, agent_id=self._config.agent_id, assets=[asset_id]
            )
            if not self.is_current(generation):
                logger.debug(
                    "Dropping agent response for stale generation %d", generation
                )
                return self.snapshot
            self._check_invocation(envelope)
            if not self._advance(generation, Phase.EXTRACTING):
                return self.snapshot

            image_url, details = self._extract(envelope)
            self._succeed(generation, image_url, details)
        except asyncio.CancelledError:
            raise
        except BrandshiftError as e:
            self._fail(generation, e)
        except Exception as e:
            logger.exception("Unexpected error during transform")
            err = UnexpectedError(cause=e)
            self._fail(generation, err)
        return self.snapshot

    async def retry(self) -> SessionSnapshot:
        """Re-run a failed session with the same source and style directive."""
        if not self.snapshot.can_retry:
            return self.snapshot
        return await self.transform()

    async def _upload(self, source: ImageSource) -> str:
        raw = await self._backend.upload(source)
        try:
            upload = UploadResponse.model_validate(raw)
        except SchemaValidationError as e:
            raise UploadError(
                UPLOAD_FAILED_MESSAGE,
                hint="The upload service returned a malformed response.",
                phase="upload",
            ) from e

        asset_id = upload.first_asset_id
        if not upload.success or asset_id is None:
            raise UploadError(
                _text(upload.error) or UPLOAD_FAILED_MESSAGE, phase="upload"
            )
        return asset_id

    def _check_invocation(self, envelope: Any) -> None:
        if not isinstance(envelope, Mapping):
            raise InvocationError(
                INVOCATION_FAILED_MESSAGE,
                hint="The agent returned a non-object response.",
                phase="invoke",
            )
        if envelope.get("success"):
            return
        response = envelope.get("response")
        embedded = response.get("message") if isinstance(response, Mapping) else None
        raise InvocationError(
            _text(envelope.get("error"))
            or _text(embedded)
            or INVOCATION_FAILED_MESSAGE,
            phase="invoke",
        )

    def _extract(
        self, envelope: Mapping[str, Any]
    ) -> tuple[str, TransformationDetails | None]:
        match = self._extractor.run(envelope)
        if match.url is None:
            logger.warning(
                "Agent succeeded but no image reference was found; envelope=%s",
                _dump_envelope(envelope),
            )
            raise ExtractionError(
                NO_IMAGE_MESSAGE,
                envelope=envelope,
                hint="The agent response had no recognizable image location.",
            )
        return match.url, extract_transformation_details(envelope)

    # --- State transitions ---

    def _start_session(
        self,
        *,
        source: ImageSource | None,
        style_note: str,
        phase: Phase = Phase.IDLE,
    ) -> int:
        self._generation += 1
        self._session = TransformSession(
            generation=self._generation,
            source=source,
            style_note=style_note,
            phase=phase,
        )
        logger.debug("Session %d started in %s", self._generation, phase.value)
        self._notify()
        return self._generation

    def _advance(self, generation: int, phase: Phase) -> bool:
        if not self.is_current(generation):
            logger.debug(
                "Dropping %s transition for stale generation %d",
                phase.value,
                generation,
            )
            return False
        self._session.phase = phase
        logger.debug("Session %d -> %s", generation, phase.value)
        self._notify()
        return True

    def _succeed(
        self, generation: int, image_url: str, details: TransformationDetails | None
    ) -> None:
        if not self.is_current(generation):
            logger.debug("Dropping result for stale generation %d", generation)
            return
        self._session = replace(
            self._session,
            phase=Phase.SUCCEEDED,
            image_url=image_url,
            details=details,
            error=None,
            failure=None,
        )
        logger.debug("Session %d succeeded: %s", generation, image_url)
        self._notify()

    def _fail(self, generation: int, error: BrandshiftError) -> None:
        if not self.is_current(generation):
            logger.debug(
                "Dropping %s failure for stale generation %d", error.kind, generation
            )
            return
        self._session = replace(
            self._session,
            phase=Phase.FAILED,
            image_url=None,
            details=None,
            error=error.message,
            failure=error,
        )
        logger.info("Session %d failed (%s): %s", generation, error.kind, error.message)
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)
