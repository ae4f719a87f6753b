"""OpenAI adapter: chat completions, Whisper transcription, TTS and vision."""

from __future__ import annotations

import base64
import time
from collections.abc import AsyncIterator
from typing import Any

import openai

from mindsphere_ai.constants import (
    DEFAULT_IMAGE_MIME_TYPE,
    DEFAULT_IMAGE_PROMPT,
    DEFAULT_MAX_TOKENS,
    DEFAULT_VOICE,
    PROBE_MAX_TOKENS,
    PROBE_PROMPT,
    PROVIDER_TIMEOUT,
    SPEECH_MODEL,
    TRANSCRIPTION_MODEL,
)
from mindsphere_ai.logging import get_logger
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

log = get_logger("mindsphere_ai.providers.openai_adapter")


def map_openai_error(error: Exception, provider: str, model: str | None = None) -> ProviderError:
    """Translate an ``openai`` SDK exception onto the error taxonomy."""
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, openai.APITimeoutError):
        return ServerError(f"{provider} request timed out", provider)
    if isinstance(error, openai.APIConnectionError):
        return NetworkError(f"Could not reach {provider}: {error}", provider)
    if isinstance(error, openai.APIStatusError):
        retry_after = parse_retry_after(error.response.headers.get("retry-after"))
        return error_from_status(
            provider, error.status_code, error.message, model=model, retry_after=retry_after
        )
    return ProviderError(str(error), provider)


class OpenAIAdapter(ProviderAdapter):
    """Adapter for the OpenAI API."""

    supports_transcription = True
    supports_speech = True
    supports_image_analysis = True

    def __init__(self, descriptor: ProviderDescriptor, timeout: float = PROVIDER_TIMEOUT) -> None:
        super().__init__(descriptor, timeout)
        self._client: openai.AsyncOpenAI | None = None

    def _new_client(self, api_key: str) -> openai.AsyncOpenAI:
        # Retries are owned by the orchestration layer
        return openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.endpoint,
            timeout=self._timeout,
            max_retries=0,
        )

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            credential = self.credential
            if not credential:
                raise AuthenticationError(self.name, f"No credential configured for {self.name}")
            self._client = self._new_client(credential)
        return self._client

    def _messages(self, context: ConversationContext) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.system_prompt_for(context)}
        ]
        messages.extend(self.chat_messages(context))
        return messages

    async def complete(self, context: ConversationContext) -> AIResponse:
        model = self.model_for(context)
        started = time.monotonic()
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=self._messages(context),  # type: ignore[arg-type]
                max_tokens=self.max_tokens_for(context),
                temperature=self.temperature_for(context),
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, model) from e

        if not response.choices:
            raise ServerError(f"{self.name} returned no choices", self.name)
        choice = response.choices[0]
        usage = TokenUsage(
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
        )
        return AIResponse(
            content=choice.message.content or "",
            model=model,
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=self.elapsed_ms(started),
            finish_reason=choice.finish_reason or "stop",
        )

    async def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        model = self.model_for(context)
        finish_reason: str | None = None
        input_tokens = 0
        output_tokens = 0
        try:
            stream = await self.client.chat.completions.create(  # type: ignore[call-overload]
                model=model,
                messages=self._messages(context),
                max_tokens=self.max_tokens_for(context),
                temperature=self.temperature_for(context),
                stream=True,
                stream_options={"include_usage": True},
            )
            async for chunk in stream:
                if chunk.choices:
                    choice = chunk.choices[0]
                    if choice.delta.content:
                        yield StreamEvent(delta=choice.delta.content, model=model)
                    if choice.finish_reason:
                        finish_reason = choice.finish_reason
                if chunk.usage:
                    input_tokens = chunk.usage.prompt_tokens or 0
                    output_tokens = chunk.usage.completion_tokens or 0
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, model) from e

        if finish_reason is None:
            log.warning("openai_stream_ended_without_finish_reason", provider=self.name)
            return
        yield StreamEvent(
            is_complete=True,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
        )

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        try:
            result = await self.client.audio.transcriptions.create(
                model=TRANSCRIPTION_MODEL,
                file=(filename, audio),
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, TRANSCRIPTION_MODEL) from e
        return result.text

    async def synthesize_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        try:
            response = await self.client.audio.speech.create(
                model=SPEECH_MODEL,
                voice=voice,  # type: ignore[arg-type]
                input=text,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, SPEECH_MODEL) from e
        return response.content

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> str:
        model = self.descriptor.resolved_model or "gpt-4o"
        data_uri = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": data_uri}},
                        ],
                    }
                ],
                max_tokens=DEFAULT_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, model) from e
        return response.choices[0].message.content or ""

    async def probe(self, credential: str | None = None) -> ProbeResult:
        client = self._new_client(credential) if credential else self.client
        model = PROBE_MODELS[ProviderKind.OPENAI]
        started = time.monotonic()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": PROBE_PROMPT}],
                max_tokens=PROBE_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            raise map_openai_error(e, self.name, model) from e
        finally:
            if credential:
                await client.close()

        if not response.choices:
            raise ServerError(f"{self.name} returned an empty probe response", self.name)
        return ProbeResult(
            provider=self.name,
            model=model,
            latency_ms=self.elapsed_ms(started),
            detail=(response.choices[0].message.content or "")[:50],
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
