"""Tests for the answering backend clients and image fetching."""

import base64
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from askpanel.core.errors import RemoteError, ValidationError
from askpanel.services.answer_client import (
    OpenAIAnswerClient,
    ProxyAnswerClient,
    get_answer_client,
)
from askpanel.services.image_fetch import fetch_image_as_data_url, sniff_mime_type


def proxy_with(handler) -> ProxyAnswerClient:
    return ProxyAnswerClient(
        base_url="http://proxy.test",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


class TestProxyAnswerClient:
    @pytest.mark.asyncio
    async def test_text_question_posts_json_and_returns_answer(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"answer": "42"})

        answer = await proxy_with(handler).answer_text("meaning of life")

        assert answer == "42"
        assert seen == {"path": "/ask", "body": {"text": "meaning of life"}}

    @pytest.mark.asyncio
    async def test_image_question_uses_image_route(self):
        def handler(request: httpx.Request):
            assert request.url.path == "/ask-image"
            assert json.loads(request.content) == {"url": "http://img.test/a.png"}
            return httpx.Response(200, json={"answer": "a cat"})

        assert await proxy_with(handler).answer_image("http://img.test/a.png") == "a cat"

    @pytest.mark.asyncio
    async def test_error_body_message_is_surfaced(self):
        def handler(request):
            return httpx.Response(400, json={"error": "Text too long"})

        with pytest.raises(RemoteError) as excinfo:
            await proxy_with(handler).answer_text("x")

        assert excinfo.value.message == "Text too long"
        assert excinfo.value.status_code == 400

    @pytest.mark.asyncio
    async def test_fastapi_detail_is_surfaced(self):
        def handler(request):
            return httpx.Response(500, json={"detail": "upstream exploded"})

        with pytest.raises(RemoteError, match="upstream exploded"):
            await proxy_with(handler).answer_text("x")

    @pytest.mark.asyncio
    async def test_malformed_error_body_falls_back_to_status(self):
        def handler(request):
            return httpx.Response(502, content=b"<html>Bad Gateway</html>")

        with pytest.raises(RemoteError) as excinfo:
            await proxy_with(handler).answer_text("x")

        assert excinfo.value.message == "Request failed (502)"
        assert excinfo.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_answer_is_empty(self):
        def handler(request):
            return httpx.Response(200, content=b"not json")

        assert await proxy_with(handler).answer_text("x") == ""

    @pytest.mark.asyncio
    async def test_network_failure_becomes_remote_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(RemoteError, match="connection refused"):
            await proxy_with(handler).answer_text("x")

    @pytest.mark.asyncio
    async def test_timeout_becomes_remote_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow")

        with pytest.raises(RemoteError, match="timed out"):
            await proxy_with(handler).answer_text("x")


class TestOpenAIAnswerClient:
    @pytest.fixture
    def openai_client(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content="Short answer."))]
            )
        )
        return client

    @pytest.mark.asyncio
    async def test_text_uses_system_prompt(self, openai_client):
        client = OpenAIAnswerClient(client=openai_client)

        answer = await client.answer_text("hello")

        assert answer == "Short answer."
        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Answer briefly and clearly."}
        assert messages[1] == {"role": "user", "content": "hello"}

    @pytest.mark.asyncio
    async def test_image_is_inlined_as_data_url(self, openai_client):
        client = OpenAIAnswerClient(client=openai_client)

        with patch(
            "askpanel.services.answer_client.fetch_image_as_data_url",
            AsyncMock(return_value="data:image/png;base64,AAAA"),
        ):
            await client.answer_image("https://img.test/a.png")

        content = openai_client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}

    @pytest.mark.asyncio
    async def test_empty_choices_mean_no_answer(self, openai_client):
        openai_client.chat.completions.create.return_value = SimpleNamespace(choices=[])

        assert await OpenAIAnswerClient(client=openai_client).answer_text("hi") == ""

    @pytest.mark.asyncio
    async def test_sdk_errors_become_remote_errors(self, openai_client):
        import openai

        openai_client.chat.completions.create.side_effect = openai.OpenAIError("quota exceeded")

        with pytest.raises(RemoteError, match="quota exceeded"):
            await OpenAIAnswerClient(client=openai_client).answer_text("hi")


class TestClientSelection:
    def test_proxy_backend_selected_from_settings(self):
        with patch("askpanel.core.config.settings") as mock_settings:
            mock_settings.answer_backend = "proxy"
            mock_settings.proxy_base_url = "http://localhost:9999/"
            mock_settings.answer_timeout_seconds = 12.0

            client = get_answer_client()

        assert isinstance(client, ProxyAnswerClient)
        assert client.base_url == "http://localhost:9999"
        assert client.timeout == 12.0


class TestSniffMimeType:
    @pytest.mark.parametrize("content_type,url,expected", [
        ("image/png", "http://x/a.jpg", "image/png"),
        ("IMAGE/WEBP; charset=binary", "", "image/webp"),
        ("application/octet-stream", "http://x/a.GIF", "image/gif"),
        ("", "http://x/photo.jpeg", "image/jpeg"),
        (None, None, "image/jpeg"),
    ])
    def test_sniff(self, content_type, url, expected):
        assert sniff_mime_type(content_type, url) == expected


class TestFetchImage:
    def client_with(self, handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_returns_data_url(self):
        payload = b"\x89PNG fake bytes"

        def handler(request):
            assert request.headers["user-agent"] == "Mozilla/5.0"
            return httpx.Response(200, content=payload, headers={"content-type": "image/png"})

        async with self.client_with(handler) as client:
            data_url = await fetch_image_as_data_url("https://img.test/a.png", client=client)

        assert data_url == "data:image/png;base64," + base64.b64encode(payload).decode()

    @pytest.mark.asyncio
    async def test_rejects_non_http_urls(self):
        with pytest.raises(ValidationError):
            await fetch_image_as_data_url("file:///etc/passwd")

    @pytest.mark.asyncio
    async def test_rejects_non_image_content(self):
        def handler(request):
            return httpx.Response(200, content=b"<html/>", headers={"content-type": "text/html"})

        async with self.client_with(handler) as client:
            with pytest.raises(RemoteError, match="did not return an image"):
                await fetch_image_as_data_url("https://img.test/page", client=client)

    @pytest.mark.asyncio
    async def test_rejects_oversized_images(self):
        def handler(request):
            return httpx.Response(200, content=b"x" * 2048, headers={"content-type": "image/gif"})

        async with self.client_with(handler) as client:
            with pytest.raises(RemoteError, match="too large"):
                await fetch_image_as_data_url("https://img.test/big.gif", client=client, max_bytes=1024)

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        def handler(request):
            return httpx.Response(404)

        async with self.client_with(handler) as client:
            with pytest.raises(RemoteError, match=r"Failed to fetch image \(404\)"):
                await fetch_image_as_data_url("https://img.test/missing.png", client=client)
