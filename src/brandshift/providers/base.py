"""Backend protocol: the two collaborator calls the workflow depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from brandshift.source import ImageSource


@runtime_checkable
class AgentBackend(Protocol):
    """Minimal backend protocol: upload an asset, invoke the agent."""

    async def upload(self, source: ImageSource) -> Mapping[str, Any]:
        """Upload *source*; return ``{success, asset_ids?, error?}``."""
        ...

    async def invoke(
        self, message: str, *, agent_id: str, assets: Sequence[str]
    ) -> Mapping[str, Any]:
        """Call the agent and return its raw response envelope."""
        ...
