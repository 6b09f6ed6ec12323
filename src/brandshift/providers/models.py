"""Domain models for the backend transport layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


class UploadResponse(BaseModel):
    """Validated view of an upload collaborator payload.

    Unknown keys are preserved; a payload with a wrongly typed field fails
    validation and is reported as a malformed upload response.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = False
    asset_ids: list[str] | None = None
    error: str | None = None

    @property
    def first_asset_id(self) -> str | None:
        """Return the first non-blank asset id, if any."""
        if not self.asset_ids:
            return None
        first = self.asset_ids[0]
        return first if first.strip() else None


@dataclass(frozen=True)
class AgentRequest:
    """The outgoing agent call, as sent by the workflow."""

    message: str
    agent_id: str
    assets: tuple[str, ...] = field(default_factory=tuple)

    def as_payload(self) -> dict[str, object]:
        return {
            "message": self.message,
            "agent_id": self.agent_id,
            "assets": list(self.assets),
        }
