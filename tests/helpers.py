"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off backend classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from brandshift.providers.models import AgentRequest

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from brandshift.source import ImageSource

IMAGE_URL = "https://cdn.example.com/out/restyled.png"

# Smallest valid PNG header; content is never decoded, only uploaded.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


def success_envelope(url: str = IMAGE_URL, **result: Any) -> dict[str, Any]:
    """Agent envelope with the canonical artifact location."""
    return {
        "success": True,
        "response": {"status": "success", "result": dict(result)},
        "module_outputs": {"artifact_files": [{"file_url": url}]},
    }


@dataclass
class ScriptedBackend:
    """Backend that returns scripted upload payloads and agent envelopes.

    Items that are exceptions are raised instead of returned. An empty script
    falls back to a successful default.
    """

    upload_script: list[Mapping[str, Any] | BaseException] = field(
        default_factory=list
    )
    invoke_script: list[Mapping[str, Any] | BaseException] = field(
        default_factory=list
    )
    uploads: list[str] = field(default_factory=list)
    requests: list[AgentRequest] = field(default_factory=list)

    async def upload(self, source: ImageSource) -> Mapping[str, Any]:
        self.uploads.append(source.filename)
        if not self.upload_script:
            return {"success": True, "asset_ids": ["asset-1"]}
        item = self.upload_script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def invoke(
        self, message: str, *, agent_id: str, assets: Sequence[str]
    ) -> Mapping[str, Any]:
        self.requests.append(
            AgentRequest(message=message, agent_id=agent_id, assets=tuple(assets))
        )
        if not self.invoke_script:
            return success_envelope()
        item = self.invoke_script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class GateBackend(ScriptedBackend):
    """ScriptedBackend with an explicit barrier for stale-completion tests.

    ``gate`` selects the call that blocks: ``"upload"`` or ``"invoke"``.
    """

    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    gate: str = "invoke"

    async def upload(self, source: ImageSource) -> Mapping[str, Any]:
        if self.gate == "upload":
            self.started.set()
            await self.release.wait()
        return await super().upload(source)

    async def invoke(
        self, message: str, *, agent_id: str, assets: Sequence[str]
    ) -> Mapping[str, Any]:
        if self.gate == "invoke":
            self.started.set()
            await self.release.wait()
        return await super().invoke(message, agent_id=agent_id, assets=assets)
