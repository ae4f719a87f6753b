"""Google Gemini adapter built on ``google-genai``."""

from __future__ import annotations

import asyncio
import mimetypes
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from mindsphere_ai.constants import (
    DEFAULT_IMAGE_MIME_TYPE,
    DEFAULT_IMAGE_PROMPT,
    PROBE_MAX_TOKENS,
    PROBE_PROMPT,
    PROVIDER_TIMEOUT,
)
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.catalog import PROBE_MODELS
from mindsphere_ai.providers.errors import (
    AuthenticationError,
    ModelNotAvailableError,
    NetworkError,
    ProviderError,
    RateLimitError,
    ServerError,
    error_from_status,
)
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    ProbeResult,
    ProviderDescriptor,
    ProviderKind,
    Role,
    StreamEvent,
    TokenUsage,
)

TRANSCRIPTION_PROMPT = "Transcribe this audio verbatim. Reply with the transcript only."


def map_gemini_error(error: Exception, provider: str, model: str | None = None) -> ProviderError:
    """Translate a Gemini failure onto the error taxonomy.

    Gemini reports several conditions only in the message body (an invalid
    key comes back as HTTP 400), so the message is checked before the
    status code.
    """
    if isinstance(error, ProviderError):
        return error
    message = str(error)
    upper = message.upper()
    if "API_KEY_INVALID" in upper or "API KEY NOT VALID" in upper:
        return AuthenticationError(provider)
    if "RATE_LIMIT" in upper or "QUOTA" in upper or "RESOURCE_EXHAUSTED" in upper:
        return RateLimitError(provider)
    if "MODEL" in upper and "NOT FOUND" in upper:
        return ModelNotAvailableError(provider, model or "unknown")
    if isinstance(error, genai_errors.APIError):
        return error_from_status(provider, error.code, message, model=model)
    if isinstance(error, (TimeoutError, httpx.TimeoutException)):
        return ServerError(f"{provider} request timed out", provider)
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return NetworkError(f"Could not reach {provider}: {error}", provider)
    return ProviderError(message, provider)


class GeminiAdapter(ProviderAdapter):
    """Adapter for the Gemini API.

    The synchronous client is run in a worker thread; streaming is
    simulated from the full response, word by word.
    """

    supports_transcription = True
    supports_image_analysis = True

    def __init__(self, descriptor: ProviderDescriptor, timeout: float = PROVIDER_TIMEOUT) -> None:
        super().__init__(descriptor, timeout)
        self._client: genai.Client | None = None

    def _new_client(self, api_key: str) -> genai.Client:
        return genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self._timeout * 1000)),
        )

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            credential = self.credential
            if not credential:
                raise AuthenticationError(self.name, f"No credential configured for {self.name}")
            self._client = self._new_client(credential)
        return self._client

    async def _generate(
        self,
        model: str,
        contents: Any,
        config: dict[str, Any],
        client: genai.Client | None = None,
    ) -> Any:
        target = client or self.client

        def _sync_generate() -> Any:
            return target.models.generate_content(model=model, contents=contents, config=config)

        try:
            return await asyncio.to_thread(_sync_generate)
        except Exception as e:
            raise map_gemini_error(e, self.name, model) from e

    @staticmethod
    def _contents(context: ConversationContext) -> list[dict[str, Any]]:
        # Gemini calls the assistant role "model"
        return [
            {
                "role": "model" if m.role == Role.ASSISTANT else "user",
                "parts": [{"text": m.content}],
            }
            for m in context.messages
            if m.role != Role.SYSTEM
        ]

    @staticmethod
    def _usage(response: Any, prompt_text: str) -> TokenUsage:
        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", 0) if usage else 0
        output_tokens = getattr(usage, "candidates_token_count", 0) if usage else 0
        # Fall back to a word-count heuristic when metadata is missing
        if not input_tokens:
            input_tokens = len(prompt_text.split()) * 2
        if not output_tokens:
            output_tokens = len((response.text or "").split()) * 2
        return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)

    async def complete(self, context: ConversationContext) -> AIResponse:
        model = self.model_for(context)
        started = time.monotonic()
        response = await self._generate(
            model,
            self._contents(context),
            {
                "system_instruction": self.system_prompt_for(context),
                "temperature": self.temperature_for(context),
                "max_output_tokens": self.max_tokens_for(context),
            },
        )
        prompt_text = " ".join(m.content for m in context.messages)
        usage = self._usage(response, prompt_text)
        return AIResponse(
            content=response.text or "",
            model=model,
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=self.elapsed_ms(started),
            finish_reason="stop",
        )

    async def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        result = await self.complete(context)
        words = result.content.split(" ")
        for i, word in enumerate(words):
            token = (" " if i > 0 else "") + word
            if token:
                yield StreamEvent(delta=token, model=result.model)
        yield StreamEvent(
            is_complete=True,
            model=result.model,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            finish_reason=result.finish_reason,
        )

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        model = self.descriptor.resolved_model or PROBE_MODELS[ProviderKind.GEMINI]
        mime_type = mimetypes.guess_type(filename)[0] or "audio/wav"
        response = await self._generate(
            model,
            [types.Part.from_bytes(data=audio, mime_type=mime_type), TRANSCRIPTION_PROMPT],
            {"temperature": 0.0},
        )
        return (response.text or "").strip()

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> str:
        model = self.descriptor.resolved_model or PROBE_MODELS[ProviderKind.GEMINI]
        response = await self._generate(
            model,
            [types.Part.from_bytes(data=image, mime_type=mime_type), prompt],
            {},
        )
        return response.text or ""

    async def probe(self, credential: str | None = None) -> ProbeResult:
        client = self._new_client(credential) if credential else None
        model = PROBE_MODELS[ProviderKind.GEMINI]
        started = time.monotonic()
        response = await self._generate(
            model, PROBE_PROMPT, {"max_output_tokens": PROBE_MAX_TOKENS}, client=client
        )
        if response is None or not getattr(response, "candidates", None):
            raise ServerError(f"{self.name} returned an empty probe response", self.name)
        return ProbeResult(
            provider=self.name,
            model=model,
            latency_ms=self.elapsed_ms(started),
            detail=(response.text or "")[:50],
        )

    async def close(self) -> None:
        # The sync client holds no connections that need an explicit close
        self._client = None
