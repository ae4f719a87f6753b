"""Local model runtime adapter speaking the Ollama HTTP API."""

from __future__ import annotations

import json as _json
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from mindsphere_ai.constants import PROVIDER_TIMEOUT
from mindsphere_ai.logging import get_logger
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import (
    NetworkError,
    ProviderError,
    ServerError,
    error_from_status,
)
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    Model,
    ProbeResult,
    ProviderDescriptor,
    StreamEvent,
    TokenUsage,
)

log = get_logger("mindsphere_ai.providers.ollama_adapter")

# /api/tags does not report context sizes
DISCOVERED_CONTEXT_WINDOW = 4096
DISCOVERED_MAX_OUTPUT_TOKENS = 2048


class OllamaAdapter(ProviderAdapter):
    """Adapter for a locally hosted Ollama runtime."""

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        timeout: float = PROVIDER_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(descriptor, timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint or "",
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def _map_error(self, error: Exception, model: str | None = None) -> ProviderError:
        if isinstance(error, ProviderError):
            return error
        if isinstance(error, httpx.TimeoutException):
            return ServerError(f"{self.name} request timed out", self.name)
        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            return error_from_status(
                self.name, response.status_code, _error_message(response), model=model
            )
        if isinstance(error, httpx.TransportError):
            return NetworkError(
                f"Could not reach {self.name} at {self.endpoint}: {error}", self.name
            )
        if isinstance(error, ValueError):
            return ServerError(f"{self.name} returned a malformed response: {error}", self.name)
        return ProviderError(str(error), self.name)

    def _payload(self, context: ConversationContext, model: str, stream: bool) -> dict[str, Any]:
        messages = [{"role": "system", "content": self.system_prompt_for(context)}]
        messages.extend(self.chat_messages(context))
        return {
            "model": model,
            "messages": messages,
            "stream": stream,
            "options": {
                "temperature": self.temperature_for(context),
                "num_predict": self.max_tokens_for(context),
            },
        }

    async def complete(self, context: ConversationContext) -> AIResponse:
        model = self.model_for(context)
        started = time.monotonic()
        try:
            response = await self.client.post(
                "/api/chat", json=self._payload(context, model, stream=False)
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise self._map_error(e, model) from e

        usage = TokenUsage(
            input_tokens=data.get("prompt_eval_count", 0),
            output_tokens=data.get("eval_count", 0),
        )
        return AIResponse(
            content=data.get("message", {}).get("content", ""),
            model=data.get("model", model),
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=self.elapsed_ms(started),
            finish_reason=data.get("done_reason") or "stop",
        )

    async def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        model = self.model_for(context)
        try:
            async with self.client.stream(
                "POST", "/api/chat", json=self._payload(context, model, stream=True)
            ) as response:
                if response.is_error:
                    await response.aread()
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = _json.loads(line)
                    if "error" in data:
                        raise ServerError(f"{self.name} stream error: {data['error']}", self.name)
                    content = data.get("message", {}).get("content", "")
                    if data.get("done"):
                        yield StreamEvent(
                            delta=content,
                            is_complete=True,
                            model=model,
                            input_tokens=data.get("prompt_eval_count", 0),
                            output_tokens=data.get("eval_count", 0),
                            finish_reason=data.get("done_reason") or "stop",
                        )
                        return
                    if content:
                        yield StreamEvent(delta=content, model=model)
        except (httpx.HTTPError, ValueError) as e:
            raise self._map_error(e, model) from e

    async def probe(self, credential: str | None = None) -> ProbeResult:
        # The local runtime has no credential; the candidate is ignored
        started = time.monotonic()
        try:
            response = await self.client.get("/api/version")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise self._map_error(e) from e

        version = data.get("version") if isinstance(data, dict) else None
        if not version:
            raise ServerError(f"{self.name} returned no version in its probe reply", self.name)
        return ProbeResult(
            provider=self.name,
            model=self.descriptor.resolved_model or "",
            latency_ms=self.elapsed_ms(started),
            detail=f"ollama {version}",
        )

    async def list_models(self) -> list[Model]:
        """Discover the models pulled into the runtime."""
        try:
            response = await self.client.get("/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise self._map_error(e) from e

        models = [
            Model(
                id=entry["name"],
                display_name=entry["name"],
                context_window=DISCOVERED_CONTEXT_WINDOW,
                max_output_tokens=DISCOVERED_MAX_OUTPUT_TOKENS,
                cost_multiplier=0.0,
            )
            for entry in data.get("models", [])
            if entry.get("name")
        ]
        log.debug("ollama_models_discovered", provider=self.name, count=len(models))
        return models

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and "error" in data:
        return str(data["error"])
    return response.text
