"""HTTP backend: talks to an agent gateway over JSON and multipart."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from brandshift._http import DEFAULT_AGENT_PATH, DEFAULT_UPLOAD_PATH
from brandshift.providers._errors import wrap_transport_error
from brandshift.providers.models import AgentRequest

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from brandshift.source import ImageSource

logger = logging.getLogger(__name__)


class HttpBackend:
    """Agent gateway backend built on ``httpx.AsyncClient``.

    Uploads go to ``{base_url}{upload_path}`` as a multipart ``files`` part;
    agent calls go to ``{base_url}{agent_path}`` as JSON. Both endpoints
    answer with the collaborator payloads described in `AgentBackend`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout_s: float = 120.0,
        upload_path: str = DEFAULT_UPLOAD_PATH,
        agent_path: str = DEFAULT_AGENT_PATH,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a backend; the client is built lazily on first use."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.upload_path = upload_path
        self.agent_path = agent_path
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy-initialize the shared client."""
        if self._client is None:
            headers = {"accept": "application/json"}
            if self.api_key:
                headers["x-api-key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying client, if one was created."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def upload(self, source: ImageSource) -> Mapping[str, Any]:
        """Upload *source* and return the gateway's upload payload."""
        client = self._get_client()
        try:
            files = {"files": (source.filename, source.read(), source.mime_type)}
            response = await client.post(self.upload_path, files=files)
            response.raise_for_status()
            payload = response.json()
        except Exception as e:
            raise wrap_transport_error(e, phase="upload") from e

        logger.debug(
            "Uploaded %s (%s) status=%d",
            source.filename,
            source.size_mb,
            response.status_code,
        )
        return _as_payload(payload, phase="upload")

    async def invoke(
        self, message: str, *, agent_id: str, assets: Sequence[str]
    ) -> Mapping[str, Any]:
        """Call the agent and return the raw response envelope."""
        client = self._get_client()
        request = AgentRequest(message=message, agent_id=agent_id, assets=tuple(assets))
        try:
            response = await client.post(self.agent_path, json=request.as_payload())
            response.raise_for_status()
            payload = response.json()
        except Exception as e:
            raise wrap_transport_error(e, phase="invoke") from e

        logger.debug("Agent %s answered status=%d", agent_id, response.status_code)
        return _as_payload(payload, phase="invoke")


def _as_payload(payload: Any, *, phase: str) -> Mapping[str, Any]:
    if isinstance(payload, dict):
        return payload
    raise wrap_transport_error(
        TypeError(f"expected a JSON object, got {type(payload).__name__}"),
        phase=phase,
        hint="The gateway answered with something other than a JSON object.",
    )
