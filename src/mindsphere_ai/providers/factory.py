"""Build the adapter matching a descriptor's backend kind."""

from __future__ import annotations

from mindsphere_ai.constants import PROVIDER_TIMEOUT
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.claude_adapter import ClaudeAdapter
from mindsphere_ai.providers.gemini_adapter import GeminiAdapter
from mindsphere_ai.providers.models import ProviderDescriptor, ProviderKind
from mindsphere_ai.providers.ollama_adapter import OllamaAdapter
from mindsphere_ai.providers.openai_adapter import OpenAIAdapter
from mindsphere_ai.providers.stub_adapter import StubAdapter


def create_adapter(
    descriptor: ProviderDescriptor, timeout: float = PROVIDER_TIMEOUT
) -> ProviderAdapter:
    """Instantiate the adapter for ``descriptor``.

    Clients are created lazily, so a disabled descriptor without a
    credential still yields a usable (if idle) adapter.
    """
    match descriptor.kind:
        case ProviderKind.OPENAI:
            return OpenAIAdapter(descriptor, timeout)
        case ProviderKind.CLAUDE:
            return ClaudeAdapter(descriptor, timeout)
        case ProviderKind.GEMINI:
            return GeminiAdapter(descriptor, timeout)
        case ProviderKind.LOCAL_LLM:
            return OllamaAdapter(descriptor, timeout)
        case ProviderKind.STUB:
            return StubAdapter(descriptor, timeout)
        case _:
            raise ValueError(f"Unknown provider kind: {descriptor.kind}")
