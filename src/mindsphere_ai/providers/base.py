"""Uniform contract every backend adapter implements."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from mindsphere_ai.constants import (
    DEFAULT_IMAGE_MIME_TYPE,
    DEFAULT_IMAGE_PROMPT,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_VOICE,
    PROVIDER_TIMEOUT,
)
from mindsphere_ai.prompts import build_system_prompt
from mindsphere_ai.providers.errors import CapabilityNotSupportedError, ModelNotAvailableError
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    Model,
    ProbeResult,
    ProviderDescriptor,
    Role,
    StreamEvent,
)


class ProviderAdapter(ABC):
    """One concrete backend behind the shared provider contract.

    Subclasses implement ``complete``, ``stream`` and ``probe``. The audio
    and image operations are optional; an adapter that implements one sets
    the matching ``supports_*`` flag so routing can find it.
    """

    supports_transcription = False
    supports_speech = False
    supports_image_analysis = False

    def __init__(self, descriptor: ProviderDescriptor, timeout: float = PROVIDER_TIMEOUT) -> None:
        self._descriptor = descriptor
        self._timeout = timeout

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self._descriptor

    async def configure(self, descriptor: ProviderDescriptor) -> None:
        """Swap in an updated descriptor (credential or endpoint rotation).

        The current client is closed so the next call is built from the new
        credential and endpoint.
        """
        if descriptor.name != self.name:
            raise ValueError(f"Cannot reconfigure {self.name} with descriptor {descriptor.name}")
        await self.close()
        self._descriptor = descriptor

    @property
    def credential(self) -> str | None:
        secret = getattr(self._descriptor, "credential", None)
        return secret.get_secret_value() if secret else None

    @property
    def endpoint(self) -> str | None:
        return getattr(self._descriptor, "endpoint", None)

    def supports_operation(self, operation: str) -> bool:
        return bool(getattr(self, f"supports_{operation}", False))

    # -- text generation ---------------------------------------------------

    @abstractmethod
    async def complete(self, context: ConversationContext) -> AIResponse:
        """Generate a full response for ``context``."""

    @abstractmethod
    def stream(self, context: ConversationContext) -> AsyncIterator[StreamEvent]:
        """Yield content deltas, ending with exactly one terminal event."""

    @abstractmethod
    async def probe(self, credential: str | None = None) -> ProbeResult:
        """Perform the smallest possible round-trip.

        With ``credential`` the probe runs against that candidate key
        instead of the configured one, without changing adapter state.
        Raises a ``ProviderError`` on any failure.
        """

    # -- optional operations -------------------------------------------------

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        raise CapabilityNotSupportedError(self.name, "audio transcription")

    async def synthesize_speech(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        raise CapabilityNotSupportedError(self.name, "speech synthesis")

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
    ) -> str:
        raise CapabilityNotSupportedError(self.name, "image analysis")

    async def list_models(self) -> list[Model]:
        """Models currently offered; static backends return their catalog."""
        return list(self._descriptor.models)

    async def close(self) -> None:  # noqa: B027
        """Release network resources. Safe to call more than once."""

    # -- helpers shared by subclasses ---------------------------------------

    def model_for(self, context: ConversationContext) -> str:
        model = context.model or self._descriptor.resolved_model
        if not model:
            raise ModelNotAvailableError(self.name, "default")
        return model

    @staticmethod
    def max_tokens_for(context: ConversationContext) -> int:
        return context.max_tokens or DEFAULT_MAX_TOKENS

    @staticmethod
    def temperature_for(context: ConversationContext) -> float:
        return DEFAULT_TEMPERATURE if context.temperature is None else context.temperature

    @staticmethod
    def system_prompt_for(context: ConversationContext) -> str:
        """Explicit system prompt, system-role turns, else the persona prompt."""
        parts = [context.system_prompt] if context.system_prompt else []
        parts.extend(m.content for m in context.messages if m.role == Role.SYSTEM)
        if not parts:
            return build_system_prompt(context.caller_profile)
        return "\n\n".join(parts)

    @staticmethod
    def chat_messages(context: ConversationContext) -> list[dict[str, str]]:
        """Non-system turns as role/content pairs."""
        return [
            {"role": m.role.value, "content": m.content}
            for m in context.messages
            if m.role != Role.SYSTEM
        ]

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self._descriptor.effective_pricing
        return input_tokens * pricing.input_per_token + output_tokens * pricing.output_per_token

    @staticmethod
    def elapsed_ms(started: float) -> float:
        return (time.monotonic() - started) * 1000
