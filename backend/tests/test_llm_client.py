"""Tests for the Anthropic Messages API client."""

import json

import httpx
import pytest

from core.errors import RemoteServiceError
from core.llm_client import AnthropicClient


def make_client(handler, api_key="test-key") -> AnthropicClient:
    return AnthropicClient(
        api_key=api_key,
        model="claude-test",
        max_tokens=512,
        base_url="https://anthropic.test",
        transport=httpx.MockTransport(handler),
    )


class TestComplete:
    @pytest.mark.asyncio
    async def test_sends_single_user_message(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "content": [
                    {"type": "text", "text": '{"matches": '},
                    {"type": "text", "text": "[]}"},
                ],
            })

        client = make_client(handler)
        text = await client.complete("match these")
        await client.close()

        assert text == '{"matches": []}'
        assert seen["path"] == "/v1/messages"
        assert seen["headers"]["x-api-key"] == "test-key"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        assert seen["body"]["model"] == "claude-test"
        assert seen["body"]["max_tokens"] == 512
        assert seen["body"]["messages"] == [{"role": "user", "content": "match these"}]

    @pytest.mark.asyncio
    async def test_non_text_blocks_are_ignored(self):
        client = make_client(lambda r: httpx.Response(200, json={
            "content": [{"type": "tool_use", "id": "x"}, {"type": "text", "text": "hi"}],
        }))
        assert await client.complete("p") == "hi"
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = make_client(lambda r: httpx.Response(529, json={"error": "overloaded"}))
        with pytest.raises(RemoteServiceError) as exc:
            await client.complete("p")
        await client.close()
        assert exc.value.status_code == 529

    @pytest.mark.asyncio
    async def test_missing_api_key_raises_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"content": []})

        client = make_client(handler, api_key=None)
        with pytest.raises(RemoteServiceError):
            await client.complete("p")
        await client.close()
        assert calls == []

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteServiceError):
            await client.complete("p")
        await client.close()
