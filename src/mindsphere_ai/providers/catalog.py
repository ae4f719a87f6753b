"""Static per-backend metadata: models, capabilities, pricing and tags.

Pricing is USD per token and should be reviewed whenever the vendors
publish new rates.
"""

from __future__ import annotations

from mindsphere_ai.providers.models import (
    Capability,
    CapabilityKind,
    Model,
    Pricing,
    ProviderKind,
)


def _capabilities(*supported: CapabilityKind) -> tuple[Capability, ...]:
    return tuple(Capability(kind=kind, supported=kind in supported) for kind in CapabilityKind)


OPENAI_MODELS: tuple[Model, ...] = (
    Model(
        id="gpt-4o",
        display_name="GPT-4o",
        context_window=128000,
        max_output_tokens=4096,
        supports_images=True,
        supports_audio=True,
        cost_multiplier=1.0,
    ),
    Model(
        id="gpt-4o-mini",
        display_name="GPT-4o Mini",
        context_window=128000,
        max_output_tokens=4096,
        supports_images=True,
        cost_multiplier=0.1,
    ),
    Model(
        id="gpt-4-turbo",
        display_name="GPT-4 Turbo",
        context_window=128000,
        max_output_tokens=4096,
        supports_images=True,
        cost_multiplier=0.5,
    ),
)

CLAUDE_MODELS: tuple[Model, ...] = (
    Model(
        id="claude-3-5-sonnet-20241022",
        display_name="Claude 3.5 Sonnet",
        context_window=200000,
        max_output_tokens=8192,
        supports_images=True,
        cost_multiplier=1.0,
    ),
    Model(
        id="claude-3-5-haiku-20241022",
        display_name="Claude 3.5 Haiku",
        context_window=200000,
        max_output_tokens=8192,
        supports_images=True,
        cost_multiplier=0.2,
    ),
    Model(
        id="claude-3-opus-20240229",
        display_name="Claude 3 Opus",
        context_window=200000,
        max_output_tokens=4096,
        supports_images=True,
        cost_multiplier=5.0,
    ),
)

GEMINI_MODELS: tuple[Model, ...] = (
    Model(
        id="gemini-1.5-pro",
        display_name="Gemini 1.5 Pro",
        context_window=2000000,
        max_output_tokens=8192,
        supports_images=True,
        supports_audio=True,
        cost_multiplier=1.0,
    ),
    Model(
        id="gemini-1.5-flash",
        display_name="Gemini 1.5 Flash",
        context_window=1000000,
        max_output_tokens=8192,
        supports_images=True,
        supports_audio=True,
        cost_multiplier=0.1,
    ),
    Model(
        id="gemini-pro",
        display_name="Gemini Pro",
        context_window=32768,
        max_output_tokens=2048,
        cost_multiplier=0.5,
    ),
    Model(
        id="gemini-pro-vision",
        display_name="Gemini Pro Vision",
        context_window=16384,
        max_output_tokens=2048,
        supports_streaming=False,
        supports_images=True,
        cost_multiplier=0.5,
    ),
)

STUB_MODELS: tuple[Model, ...] = (
    Model(
        id="stub-model",
        display_name="Stub Model",
        context_window=8192,
        max_output_tokens=2048,
        supports_images=True,
        supports_audio=True,
        cost_multiplier=0.0,
    ),
)

CAPABILITIES: dict[ProviderKind, tuple[Capability, ...]] = {
    ProviderKind.OPENAI: _capabilities(
        CapabilityKind.TEXT,
        CapabilityKind.IMAGE,
        CapabilityKind.AUDIO,
        CapabilityKind.FUNCTION_CALLING,
    ),
    ProviderKind.CLAUDE: _capabilities(
        CapabilityKind.TEXT,
        CapabilityKind.IMAGE,
        CapabilityKind.FUNCTION_CALLING,
    ),
    ProviderKind.GEMINI: _capabilities(*CapabilityKind),
    ProviderKind.LOCAL_LLM: _capabilities(CapabilityKind.TEXT),
    ProviderKind.STUB: _capabilities(*CapabilityKind),
}

PRICING: dict[ProviderKind, Pricing] = {
    ProviderKind.OPENAI: Pricing(input_per_token=0.00001, output_per_token=0.00003),
    ProviderKind.CLAUDE: Pricing(input_per_token=0.000015, output_per_token=0.000075),
    ProviderKind.GEMINI: Pricing(input_per_token=0.000001, output_per_token=0.000002),
    ProviderKind.LOCAL_LLM: Pricing(),
    ProviderKind.STUB: Pricing(),
}

MODELS: dict[ProviderKind, tuple[Model, ...]] = {
    ProviderKind.OPENAI: OPENAI_MODELS,
    ProviderKind.CLAUDE: CLAUDE_MODELS,
    ProviderKind.GEMINI: GEMINI_MODELS,
    ProviderKind.LOCAL_LLM: (),  # discovered from the runtime
    ProviderKind.STUB: STUB_MODELS,
}

DISPLAY_NAMES: dict[ProviderKind, str] = {
    ProviderKind.OPENAI: "OpenAI GPT",
    ProviderKind.CLAUDE: "Anthropic Claude",
    ProviderKind.GEMINI: "Google Gemini",
    ProviderKind.LOCAL_LLM: "Local LLM (Ollama)",
    ProviderKind.STUB: "Stub Provider",
}

TAGS: dict[ProviderKind, frozenset[str]] = {
    ProviderKind.CLAUDE: frozenset({"analytical", "nuanced"}),
    ProviderKind.GEMINI: frozenset({"analytical", "multimodal"}),
    ProviderKind.OPENAI: frozenset({"multimodal", "audio"}),
}

# Prompt-side characters per token used by pre-flight estimates
CHARS_PER_TOKEN: dict[ProviderKind, float] = {
    ProviderKind.OPENAI: 4.0,
    ProviderKind.CLAUDE: 3.5,
    ProviderKind.GEMINI: 4.0,
    ProviderKind.LOCAL_LLM: 4.0,
    ProviderKind.STUB: 4.0,
}

# Cheapest model each hosted backend accepts for a probe
PROBE_MODELS: dict[ProviderKind, str] = {
    ProviderKind.OPENAI: "gpt-4o-mini",
    ProviderKind.CLAUDE: "claude-3-5-haiku-20241022",
    ProviderKind.GEMINI: "gemini-1.5-flash",
}
