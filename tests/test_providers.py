"""Backend tests: HTTP wire format and error mapping, mock backend, factory."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from brandshift.config import Config
from brandshift.errors import ConfigurationError, InvocationError, UploadError
from brandshift.providers import HttpBackend, MockBackend, create_backend
from brandshift.providers._errors import extract_status_code, wrap_transport_error
from brandshift.providers.base import AgentBackend
from brandshift.source import ImageSource

pytestmark = pytest.mark.unit

BASE_URL = "https://gw.example.com"


def _backend(handler: Any, **kwargs: Any) -> HttpBackend:
    return HttpBackend(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)


# =============================================================================
# HttpBackend wire format
# =============================================================================


@pytest.mark.asyncio
async def test_upload_posts_multipart_file(png_source: ImageSource) -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.read()
        seen["api_key"] = request.headers.get("x-api-key")
        return httpx.Response(200, json={"success": True, "asset_ids": ["a-1"]})

    backend = _backend(handler, api_key="k-123")
    try:
        payload = await backend.upload(png_source)
    finally:
        await backend.aclose()

    assert payload == {"success": True, "asset_ids": ["a-1"]}
    assert seen["url"] == f"{BASE_URL}/api/upload"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="files"' in seen["body"]
    assert b'filename="logo.png"' in seen["body"]
    assert seen["api_key"] == "k-123"


@pytest.mark.asyncio
async def test_invoke_posts_json_request() -> None:
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["json"] = json.loads(request.read())
        seen["api_key"] = request.headers.get("x-api-key")
        return httpx.Response(200, json={"success": True, "response": {}})

    async with _backend(handler) as backend:
        envelope = await backend.invoke("restyle", agent_id="ag", assets=["a-1"])

    assert envelope == {"success": True, "response": {}}
    assert seen["url"] == f"{BASE_URL}/api/agent"
    assert seen["json"] == {"message": "restyle", "agent_id": "ag", "assets": ["a-1"]}
    assert seen["api_key"] is None


@pytest.mark.asyncio
async def test_custom_paths_are_used(png_source: ImageSource) -> None:
    urls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        urls.append(request.url.path)
        return httpx.Response(200, json={"success": True})

    async with _backend(
        handler, upload_path="/v2/files", agent_path="/v2/chat"
    ) as backend:
        await backend.upload(png_source)
        await backend.invoke("m", agent_id="a", assets=[])

    assert urls == ["/v2/files", "/v2/chat"]


# =============================================================================
# HttpBackend error mapping
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "hint_fragment"),
    [(401, "credentials"), (403, "credentials"), (404, "BASE_URL"), (503, "try again")],
)
async def test_http_status_maps_to_upload_error(
    png_source: ImageSource, status: int, hint_fragment: str
) -> None:
    async with _backend(lambda _: httpx.Response(status)) as backend:
        with pytest.raises(UploadError) as exc:
            await backend.upload(png_source)

    err = exc.value
    assert err.status_code == status
    assert err.phase == "upload"
    assert err.message == f"Failed to upload image (status={status})"
    assert err.hint is not None
    assert hint_fragment in err.hint


@pytest.mark.asyncio
async def test_agent_failure_maps_to_invocation_error() -> None:
    async with _backend(lambda _: httpx.Response(500, text="boom")) as backend:
        with pytest.raises(InvocationError) as exc:
            await backend.invoke("m", agent_id="a", assets=["x"])

    assert exc.value.status_code == 500
    assert exc.value.phase == "invoke"
    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_timeout_maps_with_hint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with _backend(handler) as backend:
        with pytest.raises(InvocationError) as exc:
            await backend.invoke("m", agent_id="a", assets=["x"])

    assert exc.value.status_code is None
    assert exc.value.message == "Transformation failed"
    assert exc.value.hint is not None
    assert "in time" in exc.value.hint


@pytest.mark.asyncio
async def test_connection_error_maps_with_hint(png_source: ImageSource) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _backend(handler) as backend:
        with pytest.raises(UploadError) as exc:
            await backend.upload(png_source)

    assert exc.value.hint is not None
    assert "reach the gateway" in exc.value.hint


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_non_object_body_is_an_invocation_error(response: httpx.Response) -> None:
    async with _backend(lambda _: response) as backend:
        with pytest.raises(InvocationError):
            await backend.invoke("m", agent_id="a", assets=["x"])


def test_wrap_keeps_existing_transport_error() -> None:
    original = UploadError("Too big", status_code=413)

    wrapped = wrap_transport_error(original, phase="upload", hint="shrink it")

    assert wrapped is original
    assert wrapped.phase == "upload"
    assert wrapped.hint == "shrink it"


def test_wrap_reraises_cancellation() -> None:
    with pytest.raises(asyncio.CancelledError):
        wrap_transport_error(asyncio.CancelledError(), phase="invoke")


def test_status_code_found_through_exception_chain() -> None:
    class _WithStatus(Exception):
        status_code = 429

    try:
        try:
            raise _WithStatus("inner")
        except _WithStatus as inner:
            raise RuntimeError("outer") from inner
    except RuntimeError as outer:
        assert extract_status_code(outer) == 429


# =============================================================================
# MockBackend and factory
# =============================================================================


@pytest.mark.asyncio
async def test_mock_backend_is_deterministic(png_source: ImageSource) -> None:
    backend = MockBackend()

    first = await backend.upload(png_source)
    second = await backend.upload(png_source)

    assert first == second
    assert first["success"] is True
    assert first["asset_ids"][0].startswith("mock-asset-")


def test_backends_satisfy_protocol() -> None:
    assert isinstance(MockBackend(), AgentBackend)
    assert isinstance(HttpBackend(BASE_URL), AgentBackend)


def test_create_backend_selects_by_mode() -> None:
    assert isinstance(create_backend(Config(use_mock=True)), MockBackend)

    http = create_backend(Config(base_url=BASE_URL, api_key="k", timeout_s=5))
    assert isinstance(http, HttpBackend)
    assert http.base_url == BASE_URL
    assert http.api_key == "k"
    assert http.timeout_s == 5


def test_create_backend_requires_base_url_outside_mock() -> None:
    cfg = Config(use_mock=True)
    object.__setattr__(cfg, "use_mock", False)

    with pytest.raises(ConfigurationError, match="base_url"):
        create_backend(cfg)
