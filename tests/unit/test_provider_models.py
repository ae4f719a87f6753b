"""Tests for provider descriptors and the shared data model."""

import pytest
from pydantic import ValidationError

from mindsphere_ai.providers.catalog import CAPABILITIES, MODELS, PRICING
from mindsphere_ai.providers.models import (
    AIResponse,
    CapabilityKind,
    ConversationContext,
    HealthRecord,
    HealthState,
    HostedProviderDescriptor,
    LocalProviderDescriptor,
    Message,
    Pricing,
    ProviderKind,
    Role,
    StubProviderDescriptor,
    TaskPriority,
    TokenUsage,
    parse_descriptor,
)


class TestHostedProviderDescriptor:
    """Tests for hosted API descriptors."""

    def test_enabled_requires_credential(self):
        """An enabled hosted provider without a key is a configuration error."""
        with pytest.raises(ValidationError, match="no credential"):
            HostedProviderDescriptor(kind="openai", name="openai", enabled=True)

    def test_blank_credential_rejected(self):
        with pytest.raises(ValidationError):
            HostedProviderDescriptor(kind="claude", name="claude", credential="   ")

    def test_disabled_without_credential_is_kept(self):
        """Unconfigured providers stay registered so they can be configured later."""
        descriptor = HostedProviderDescriptor(kind="gemini", name="gemini", enabled=False)
        assert descriptor.enabled is False
        assert descriptor.credential is None

    def test_credential_is_secret(self):
        descriptor = HostedProviderDescriptor(kind="openai", name="openai", credential="sk-1")
        assert descriptor.credential.get_secret_value() == "sk-1"
        assert "sk-1" not in repr(descriptor)

    def test_display_name_defaults_to_name(self):
        descriptor = HostedProviderDescriptor(kind="openai", name="openai", credential="sk-1")
        assert descriptor.display_name == "openai"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            HostedProviderDescriptor(kind="mistral", name="mistral", credential="k")

    def test_descriptors_are_frozen(self):
        descriptor = HostedProviderDescriptor(kind="openai", name="openai", credential="sk-1")
        with pytest.raises(ValidationError):
            descriptor.priority = 5


class TestLocalProviderDescriptor:
    """Tests for the local runtime descriptor."""

    def test_endpoint_normalized(self):
        descriptor = LocalProviderDescriptor(name="local_llm", endpoint="http://localhost:11434/")
        assert descriptor.endpoint == "http://localhost:11434"
        assert descriptor.kind == "local_llm"

    def test_endpoint_requires_http(self):
        with pytest.raises(ValidationError, match="http"):
            LocalProviderDescriptor(name="local_llm", endpoint="localhost:11434")

    def test_endpoint_required(self):
        with pytest.raises(ValidationError):
            LocalProviderDescriptor(name="local_llm")

    def test_paid_pricing_rejected(self):
        """The local runtime is always free."""
        with pytest.raises(ValidationError, match="pricing"):
            LocalProviderDescriptor(
                name="local_llm",
                endpoint="http://localhost:11434",
                pricing=Pricing(input_per_token=0.001),
            )

    def test_zero_pricing_allowed(self):
        descriptor = LocalProviderDescriptor(
            name="local_llm", endpoint="http://localhost:11434", pricing=Pricing()
        )
        assert descriptor.effective_pricing.is_free


class TestParseDescriptor:
    """Tests for tagged-union parsing."""

    def test_dispatches_on_kind(self):
        hosted = parse_descriptor({"kind": "claude", "name": "claude", "credential": "sk-ant-1"})
        local = parse_descriptor(
            {"kind": "local_llm", "name": "local_llm", "endpoint": "http://ollama:11434"}
        )
        stub = parse_descriptor({"kind": "stub", "name": "stub"})

        assert isinstance(hosted, HostedProviderDescriptor)
        assert isinstance(local, LocalProviderDescriptor)
        assert isinstance(stub, StubProviderDescriptor)

    def test_missing_kind_rejected(self):
        with pytest.raises(ValidationError):
            parse_descriptor({"name": "mystery"})

    def test_validation_applies_to_variant(self):
        with pytest.raises(ValidationError):
            parse_descriptor({"kind": "openai", "name": "openai", "enabled": True})


class TestDescriptorBehaviour:
    """Tests for descriptor helpers."""

    @pytest.fixture
    def openai_descriptor(self):
        return HostedProviderDescriptor(
            kind="openai",
            name="openai",
            credential="sk-1",
            models=MODELS[ProviderKind.OPENAI],
            capabilities=CAPABILITIES[ProviderKind.OPENAI],
            pricing=PRICING[ProviderKind.OPENAI],
            priority=1,
        )

    def test_supports(self, openai_descriptor):
        assert openai_descriptor.supports(CapabilityKind.AUDIO)
        assert openai_descriptor.supports(CapabilityKind.IMAGE)
        assert not openai_descriptor.supports(CapabilityKind.CODE_EXECUTION)

    def test_find_model(self, openai_descriptor):
        assert openai_descriptor.find_model("gpt-4o-mini").cost_multiplier == 0.1
        assert openai_descriptor.find_model("gpt-99") is None

    def test_resolved_model_prefers_default(self, openai_descriptor):
        assert openai_descriptor.resolved_model == "gpt-4o"
        assert openai_descriptor.updated(default_model="gpt-4-turbo").resolved_model == (
            "gpt-4-turbo"
        )

    def test_resolved_model_none_without_models(self):
        descriptor = StubProviderDescriptor(name="empty")
        assert descriptor.resolved_model is None
        assert descriptor.effective_pricing.is_free

    def test_updated_returns_new_validated_copy(self, openai_descriptor):
        """Administrative updates never mutate the original descriptor."""
        updated = openai_descriptor.updated(priority=7)

        assert updated.priority == 7
        assert openai_descriptor.priority == 1
        assert updated.credential.get_secret_value() == "sk-1"
        assert updated.models == openai_descriptor.models

    def test_updated_revalidates(self, openai_descriptor):
        with pytest.raises(ValidationError):
            openai_descriptor.updated(credential=None)


class TestConversationModel:
    """Tests for per-request dataclasses."""

    def test_last_user_message(self):
        context = ConversationContext(
            caller_id="u1",
            messages=[
                Message.system("be nice"),
                Message.user("first"),
                Message.assistant("reply"),
                Message.user("second"),
            ],
        )
        assert context.last_user_message == "second"
        assert context.messages[0].role == Role.SYSTEM

    def test_last_user_message_empty(self):
        assert ConversationContext(caller_id="u1").last_user_message == ""

    def test_token_usage_total(self):
        response = AIResponse(
            content="hi",
            model="m",
            provider="p",
            usage=TokenUsage(input_tokens=3, output_tokens=4),
        )
        assert response.usage.total_tokens == 7
        assert response.finish_reason == "stop"

    def test_health_record_defaults_to_unknown(self):
        record = HealthRecord(provider_name="openai")
        assert record.state == HealthState.UNKNOWN
        assert record.healthy is False
        assert record.to_dict() == {
            "provider": "openai",
            "healthy": False,
            "state": "unknown",
            "last_checked_at": None,
            "error": None,
        }

    def test_task_priority_rank(self):
        assert TaskPriority.HIGH.rank > TaskPriority.MEDIUM.rank > TaskPriority.LOW.rank
