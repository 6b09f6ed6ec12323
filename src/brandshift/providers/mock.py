"""Mock backend for offline runs and testing."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
from typing import TYPE_CHECKING, Any

from brandshift.providers.models import AgentRequest

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from brandshift.source import ImageSource

MOCK_IMAGE_HOST = "https://mock.brandshift.invalid/artifacts"


@dataclass
class MockBackend:
    """Backend that never touches the network.

    Uploads succeed with a deterministic asset id derived from the image bytes;
    agent calls answer with the canonical envelope shape
    (``module_outputs.artifact_files``) plus transformation details.
    """

    uploads: list[str] = field(default_factory=list)
    requests: list[AgentRequest] = field(default_factory=list)

    async def upload(self, source: ImageSource) -> Mapping[str, Any]:
        """Return a mock upload payload."""
        digest = hashlib.sha256(source.read()).hexdigest()[:12]
        asset_id = f"mock-asset-{digest}"
        self.uploads.append(asset_id)
        return {"success": True, "asset_ids": [asset_id]}

    async def invoke(
        self, message: str, *, agent_id: str, assets: Sequence[str]
    ) -> Mapping[str, Any]:
        """Return a deterministic envelope echoing the first asset."""
        request = AgentRequest(message=message, agent_id=agent_id, assets=tuple(assets))
        self.requests.append(request)
        asset = assets[0] if assets else "none"
        return {
            "success": True,
            "response": {
                "status": "success",
                "result": {
                    "transformation_description": (
                        f"Mock restyle of {asset} for agent {agent_id}."
                    ),
                    "style_elements_applied": "Gradient overlays, geometric accents",
                    "color_palette_used": "Deep Purple (#7458e8), Electric Blue (#3B82F6)",
                },
            },
            "module_outputs": {
                "artifact_files": [
                    {"file_url": f"{MOCK_IMAGE_HOST}/{asset}.png", "name": f"{asset}.png"}
                ]
            },
        }
