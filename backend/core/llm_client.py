"""Anthropic Messages API client for single-turn text completions."""

import logging

import httpx

from core.errors import RemoteServiceError

logger = logging.getLogger(__name__)

BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient:
    def __init__(
        self,
        api_key: str | None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        temperature: float = 0.0,
        timeout: float = 45.0,
        base_url: str = BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def close(self):
        await self._client.aclose()

    async def complete(self, prompt: str) -> str:
        """Send one user message and return the concatenated text of the reply."""
        if not self.api_key:
            raise RemoteServiceError("ANTHROPIC_API_KEY is not configured")

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        try:
            resp = await self._client.post("/v1/messages", json=payload, headers=headers)
        except httpx.TransportError as e:
            raise RemoteServiceError(f"Anthropic request failed: {e}", original=e) from e

        if not resp.is_success:
            raise RemoteServiceError(
                f"Anthropic API error: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteServiceError("Anthropic returned invalid JSON", resp.status_code, original=e) from e

        if not isinstance(data, dict):
            raise RemoteServiceError("Anthropic returned a non-object body", resp.status_code)
        blocks = data.get("content") or []
        text = "".join(
            b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text"
        )
        logger.debug("Model reply: %d chars", len(text))
        return text
