"""Anthropic Claude adapter."""

from __future__ import annotations

import base64
import time
from collections.abc import AsyncIterator
from typing import Any

import anthropic

from mindsphere_ai.constants import (
    DEFAULT_IMAGE_MIME_TYPE,
    DEFAULT_IMAGE_PROMPT,
    DEFAULT_MAX_TOKENS,
    PROBE_MAX_TOKENS,
    PROBE_PROMPT,
    PROVIDER_TIMEOUT,
)
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.catalog import PROBE_MODELS
from mindsphere_ai.providers.errors import (
    AuthenticationError,
    NetworkError,
    ProviderError,
    ServerError,
    error_from_status,
    parse_retry_after,
)
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    ProbeResult,
    ProviderDescriptor,
    ProviderKind,
    StreamEvent,
    TokenUsage,
)


def map_anthropic_error(
    error: Exception, provider: str, model: str | None = None
) -> ProviderError:
    """Translate an ``anthropic`` SDK exception onto the error taxonomy."""
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, anthropic.APITimeoutError):
        return ServerError(f"{provider} request timed out", provider)
    if isinstance(error, anthropic.APIConnectionError):
        return NetworkError(f"Could not reach {provider}: {error}", provider)
    if isinstance(error, anthropic.APIStatusError):
        # 529 is Anthropic's "overloaded" status
        retry_after = parse_retry_after(error.response.headers.get("retry-after"))
        return error_from_status(
            provider, error.status_code, error.message, model=model, retry_after=retry_after
        )
    return ProviderError(str(error), provider)


def _text_of(content: Any) -> str:
    return "".join(getattr(block, "text", "") for block in content)


class ClaudeAdapter(ProviderAdapter):
    """Adapter for the Anthropic Messages API."""

    supports_image_analysis = True

    def __init__(self, descriptor: ProviderDescriptor, timeout: float = PROVIDER_TIMEOUT) -> None:
        super().__init__(descriptor, timeout)
        self._client: anthropic.AsyncAnthropic | None = None

    def _new_client(self, api_key: str) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=self.endpoint,
            timeout=self._timeout,
            max_retries=0,
        )

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            credential = self.credential
            if not credential:
                raise AuthenticationError(self.name, f"No credential configured for {self.name}")
            self._client = self._new_client(credential)
        return self._client

    def _request(self, context: ConversationContext, model: str) -> dict[str, Any]:
        # System turns travel in the dedicated system field
        return {
            "model": model,
            "max_tokens": self.max_tokens_for(context),
            "temperature": self.temperature_for(context),
            "system": self.system_prompt_for(context),
            "messages": self.chat_messages(context),
        }

    async def complete(self, context: ConversationContext) -> AIResponse:
        model = self.model_for(context)
        started = time.monotonic()
        try:
            response = await self.client.messages.create(**self._request(context, model))
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e, self.name, model) from e

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return AIResponse(
            content=_text_of(response.content),
            model=model,
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=self.elapsed_ms(started),
            finish_reason=response.stop_reason or "stop",
        )

    async def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        model = self.model_for(context)
        try:
            async with self.client.messages.stream(**self._request(context, model)) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield StreamEvent(delta=text, model=model)
                final = await stream.get_final_message()
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e, self.name, model) from e

        yield StreamEvent(
            is_complete=True,
            model=model,
            input_tokens=final.usage.input_tokens,
            output_tokens=final.usage.output_tokens,
            finish_reason=final.stop_reason or "stop",
        )

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> str:
        model = self.descriptor.resolved_model or PROBE_MODELS[ProviderKind.CLAUDE]
        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=DEFAULT_MAX_TOKENS,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": mime_type,
                                    "data": base64.b64encode(image).decode("ascii"),
                                },
                            },
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e, self.name, model) from e
        return _text_of(response.content)

    async def probe(self, credential: str | None = None) -> ProbeResult:
        client = self._new_client(credential) if credential else self.client
        model = PROBE_MODELS[ProviderKind.CLAUDE]
        started = time.monotonic()
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=PROBE_MAX_TOKENS,
                messages=[{"role": "user", "content": PROBE_PROMPT}],
            )
        except anthropic.AnthropicError as e:
            raise map_anthropic_error(e, self.name, model) from e
        finally:
            if credential:
                await client.close()

        if not response.content:
            raise ServerError(f"{self.name} returned an empty probe response", self.name)
        return ProbeResult(
            provider=self.name,
            model=model,
            latency_ms=self.elapsed_ms(started),
            detail=_text_of(response.content)[:50],
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
