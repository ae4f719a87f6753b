"""Tests for the provider registry."""

import pytest
from pydantic import ValidationError

from mindsphere_ai.orchestration.registry import ProviderRegistry
from mindsphere_ai.providers.errors import ProviderNotFoundError


@pytest.fixture
def registry():
    return ProviderRegistry()


def _register(registry, adapter):
    registry.register(adapter.descriptor, adapter)
    return adapter


class TestRegistration:
    """Tests for register, lookup and unregister."""

    def test_register_and_lookup(self, registry, make_adapter):
        adapter = _register(registry, make_adapter("openai"))

        assert registry.get_by_name("openai") is adapter
        assert registry.descriptor("openai") is adapter.descriptor
        assert "openai" in registry
        assert len(registry) == 1

    def test_unknown_name_returns_none(self, registry):
        assert registry.get_by_name("nope") is None
        assert registry.descriptor("nope") is None

    def test_name_mismatch_rejected(self, registry, make_adapter, make_descriptor):
        adapter = make_adapter("openai")
        with pytest.raises(ValueError, match="does not match"):
            registry.register(make_descriptor("claude"), adapter)

    def test_replace_keeps_registration_order(self, registry, make_adapter):
        """Replacing an adapter does not move it to the back of the tie-break order."""
        _register(registry, make_adapter("openai", priority=1))
        _register(registry, make_adapter("claude", priority=1))
        replacement = _register(registry, make_adapter("openai", priority=1))

        assert registry.names() == ["openai", "claude"]
        assert registry.primary() is replacement

    def test_unregister(self, registry, make_adapter):
        adapter = _register(registry, make_adapter("openai"))

        assert registry.unregister("openai") is adapter
        assert registry.unregister("openai") is None
        assert "openai" not in registry


class TestPrimaryResolution:
    """Tests for priority ordering (lower value wins)."""

    def test_primary_is_minimum_priority(self, registry, make_adapter):
        _register(registry, make_adapter("gemini", priority=3))
        claude = _register(registry, make_adapter("claude", priority=0))
        _register(registry, make_adapter("openai", priority=1))

        assert registry.primary() is claude

    def test_tie_broken_by_registration_order(self, registry, make_adapter):
        first = _register(registry, make_adapter("claude", priority=2))
        _register(registry, make_adapter("openai", priority=2))

        assert registry.primary() is first

    def test_scenario_openai_claude_gemini(self, registry, make_adapter):
        """openai(1, on), claude(2, on), gemini(3, off): openai is primary."""
        openai_adapter = _register(registry, make_adapter("openai", priority=1))
        _register(registry, make_adapter("claude", priority=2))
        _register(registry, make_adapter("gemini", priority=3, enabled=False))

        assert registry.primary() is openai_adapter
        assert [a.name for a in registry.enabled()] == ["openai", "claude"]

    def test_disabled_provider_never_primary(self, registry, make_adapter):
        _register(registry, make_adapter("openai", priority=0, enabled=False))
        claude = _register(registry, make_adapter("claude", priority=9))

        assert registry.primary() is claude

    def test_no_enabled_provider(self, registry, make_adapter):
        _register(registry, make_adapter("openai", enabled=False))
        assert registry.primary() is None
        assert registry.enabled() == []

    def test_all_in_registration_order(self, registry, make_adapter):
        _register(registry, make_adapter("b", priority=2))
        _register(registry, make_adapter("a", priority=1))

        assert [a.name for a in registry.all()] == ["b", "a"]
        assert [a.name for a in registry.enabled()] == ["a", "b"]


class TestAdministrativeUpdates:
    """Tests for priority and enablement changes."""

    def test_set_priority_reorders(self, registry, make_adapter):
        _register(registry, make_adapter("openai", priority=1))
        claude = _register(registry, make_adapter("claude", priority=2))

        descriptor = registry.set_priority("claude", 0)

        assert descriptor.priority == 0
        assert registry.primary() is claude

    def test_set_enabled(self, registry, make_adapter):
        _register(registry, make_adapter("openai", priority=1))
        claude = _register(registry, make_adapter("claude", priority=2))

        registry.set_enabled("openai", False)
        assert registry.primary() is claude

        registry.set_enabled("openai", True)
        assert registry.primary().name == "openai"

    def test_unknown_name_raises(self, registry):
        with pytest.raises(ProviderNotFoundError):
            registry.set_priority("nope", 1)
        with pytest.raises(ProviderNotFoundError):
            registry.set_enabled("nope", True)

    def test_invalid_update_leaves_state_untouched(self, registry, make_adapter):
        """A rejected update is not partially applied."""
        _register(registry, make_adapter("openai", priority=1))

        with pytest.raises(ValidationError):
            registry.update("openai", priority=5, credential=None)

        assert registry.descriptor("openai").priority == 1

    def test_snapshot_is_isolated_from_later_updates(self, registry, make_adapter):
        """A routing decision holding a snapshot sees the old state in full."""
        _register(registry, make_adapter("openai", priority=1))
        _register(registry, make_adapter("claude", priority=2))
        snapshot = registry.snapshot()

        registry.set_priority("claude", 0)
        registry.set_enabled("openai", False)

        assert snapshot.primary().name == "openai"
        assert [entry.name for entry in snapshot.enabled()] == ["openai", "claude"]
        assert registry.primary().name == "claude"
