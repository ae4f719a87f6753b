"""Pytest fixtures for MindSphere AI tests."""

import os
from collections.abc import AsyncIterator

import pytest

from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.models import (
    AIResponse,
    Capability,
    CapabilityKind,
    ConversationContext,
    HostedProviderDescriptor,
    Message,
    Model,
    Pricing,
    ProbeResult,
    StreamEvent,
    StubProviderDescriptor,
    TokenUsage,
)

HOSTED_KINDS = ("openai", "claude", "gemini")


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Keep tests away from production defaults and real credentials."""
    os.environ.setdefault("ENVIRONMENT", "test")

    from mindsphere_ai.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeAdapter(ProviderAdapter):
    """Scriptable adapter: queued errors are raised first, then ``reply`` is returned."""

    def __init__(
        self,
        descriptor,
        timeout=60.0,
        *,
        reply="ok",
        errors=(),
        stream_events=None,
        probe_error=None,
        models=None,
        models_error=None,
        transcription=False,
        speech=False,
        image_analysis=False,
    ):
        super().__init__(descriptor, timeout)
        self.reply = reply
        self.errors = list(errors)
        self.stream_events = stream_events
        self.probe_error = probe_error
        self.models = models
        self.models_error = models_error
        self.supports_transcription = transcription
        self.supports_speech = speech
        self.supports_image_analysis = image_analysis
        self.calls = 0
        self.contexts = []
        self.probe_credentials = []
        self.closed = 0
        self.configured = []

    def _next_error(self):
        if self.errors:
            raise self.errors.pop(0)

    async def complete(self, context):
        self.calls += 1
        self.contexts.append(context)
        self._next_error()
        usage = TokenUsage(input_tokens=10, output_tokens=5)
        return AIResponse(
            content=self.reply,
            model=self.model_for(context),
            provider=self.name,
            usage=usage,
            cost=self.calculate_cost(usage.input_tokens, usage.output_tokens),
            latency_ms=1.0,
        )

    async def stream(self, context) -> AsyncIterator[StreamEvent]:
        self.calls += 1
        self.contexts.append(context)
        self._next_error()
        events = self.stream_events
        if events is None:
            events = [
                StreamEvent(delta=self.reply, model="fake-model"),
                StreamEvent(is_complete=True, input_tokens=10, output_tokens=5),
            ]
        for event in events:
            if isinstance(event, Exception):
                raise event
            yield event

    async def probe(self, credential=None):
        self.probe_credentials.append(credential)
        if self.probe_error is not None:
            raise self.probe_error
        return ProbeResult(provider=self.name, model="fake-model", latency_ms=1.0)

    async def transcribe(self, audio, filename="audio.wav"):
        self.calls += 1
        self._next_error()
        return f"{self.name} transcript"

    async def synthesize_speech(self, text, voice="alloy"):
        self.calls += 1
        self._next_error()
        return f"{self.name}:{voice}:{text}".encode()

    async def analyze_image(self, image, prompt="Describe", mime_type="image/jpeg"):
        self.calls += 1
        self._next_error()
        return f"{self.name} saw {len(image)} bytes"

    async def list_models(self):
        if self.models_error is not None:
            raise self.models_error
        if self.models is not None:
            return list(self.models)
        return await super().list_models()

    async def configure(self, descriptor):
        self.configured.append(descriptor)
        await super().configure(descriptor)

    async def close(self):
        self.closed += 1


def build_descriptor(
    name,
    *,
    kind=None,
    priority=1,
    enabled=True,
    capabilities=(CapabilityKind.TEXT,),
    tags=(),
    pricing=None,
):
    kind = kind or (name if name in HOSTED_KINDS else "stub")
    common = {
        "name": name,
        "models": (
            Model(
                id=f"{name}-model",
                display_name=name,
                context_window=8192,
                max_output_tokens=1024,
            ),
        ),
        "capabilities": tuple(Capability(kind=cap) for cap in capabilities),
        "enabled": enabled,
        "priority": priority,
        "pricing": pricing,
        "tags": frozenset(tags),
    }
    if kind in HOSTED_KINDS:
        return HostedProviderDescriptor(kind=kind, credential="test-key", **common)
    return StubProviderDescriptor(**common)


@pytest.fixture
def make_descriptor():
    """Build a provider descriptor with sensible test defaults."""
    return build_descriptor


@pytest.fixture
def make_adapter():
    """Build a ``FakeAdapter`` around a fresh descriptor."""

    def _make(
        name,
        *,
        priority=1,
        enabled=True,
        capabilities=(CapabilityKind.TEXT,),
        tags=(),
        pricing=None,
        **adapter_kwargs,
    ):
        descriptor = build_descriptor(
            name,
            priority=priority,
            enabled=enabled,
            capabilities=capabilities,
            tags=tags,
            pricing=pricing,
        )
        return FakeAdapter(descriptor, **adapter_kwargs)

    return _make


@pytest.fixture
def fake_adapter_cls():
    """The ``FakeAdapter`` class, for adapter factories."""
    return FakeAdapter


@pytest.fixture
def make_settings():
    """Settings isolated from the process environment and any ``.env`` file."""
    from mindsphere_ai.config import Settings

    def _make(**overrides):
        values = {
            "openai_api_key": None,
            "claude_api_key": None,
            "gemini_api_key": None,
            "environment": "test",
            "health_monitor_enabled": False,
            "retry_delays": [0.0],
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def context():
    """A one-turn conversation."""
    return ConversationContext(caller_id="user-1", messages=[Message.user("Hello there")])


@pytest.fixture
def paid_pricing():
    return Pricing(input_per_token=0.00001, output_per_token=0.00003)
