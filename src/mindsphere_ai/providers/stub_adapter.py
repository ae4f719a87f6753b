"""Deterministic in-process backend for tests and credential-free development."""

from __future__ import annotations

import math
import time
from collections.abc import AsyncIterator

from mindsphere_ai.constants import (
    DEFAULT_CHARS_PER_TOKEN,
    DEFAULT_IMAGE_MIME_TYPE,
    DEFAULT_IMAGE_PROMPT,
    DEFAULT_VOICE,
)
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    ProbeResult,
    StreamEvent,
    TokenUsage,
)

GREETING = "Hello! I'm running in stub mode. How can I help you today?"

# First matching keyword wins
TOPIC_REPLIES: tuple[tuple[str, str], ...] = (
    ("task", "Start with your highest-priority task that has the nearest due date."),
    ("health", "Keep tracking sleep, steps and energy; consistent data reveals trends."),
    ("mood", "Your mood entries are a useful signal. Note what preceded the best days."),
    ("journal", "Writing regularly helps you notice patterns in your thoughts."),
)


def _tokens(text: str) -> int:
    return math.ceil(len(text) / DEFAULT_CHARS_PER_TOKEN)


class StubAdapter(ProviderAdapter):
    """Replies are a pure function of the request; no network, no randomness."""

    supports_transcription = True
    supports_speech = True
    supports_image_analysis = True

    def reply_for(self, context: ConversationContext) -> str:
        prompt = context.last_user_message.strip()
        if not prompt:
            return GREETING
        lowered = prompt.lower()
        for keyword, reply in TOPIC_REPLIES:
            if keyword in lowered:
                return reply
        return f"[stub] You said: {prompt}"

    async def complete(self, context: ConversationContext) -> AIResponse:
        started = time.monotonic()
        content = self.reply_for(context)
        usage = TokenUsage(
            input_tokens=_tokens("".join(m.content for m in context.messages)),
            output_tokens=_tokens(content),
        )
        return AIResponse(
            content=content,
            model=self.model_for(context),
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=self.elapsed_ms(started),
            finish_reason="stop",
        )

    async def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        response = await self.complete(context)
        for i, word in enumerate(response.content.split(" ")):
            yield StreamEvent(delta=(" " if i > 0 else "") + word, model=response.model)
        yield StreamEvent(
            is_complete=True,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            finish_reason="stop",
        )

    async def probe(self, credential: str | None = None) -> ProbeResult:
        return ProbeResult(
            provider=self.name,
            model=self.descriptor.resolved_model or "",
            latency_ms=0.0,
            detail="stub",
        )

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        return f"[stub] Transcript of {filename} ({len(audio)} bytes)"

    async def synthesize_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        return f"stub-audio:{voice}:{text}".encode()

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> str:
        return f"[stub] {prompt}: {mime_type} image of {len(image)} bytes"
