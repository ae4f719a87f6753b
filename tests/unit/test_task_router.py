"""Tests for task routing: overrides, affinity and priority fallback."""

import pytest

from mindsphere_ai.orchestration.health import HealthMonitor
from mindsphere_ai.orchestration.registry import ProviderRegistry
from mindsphere_ai.orchestration.router import AFFINITY, AffinityRule, TaskRouter, TaskTag
from mindsphere_ai.providers.errors import NetworkError, NoProviderAvailable
from mindsphere_ai.providers.models import CapabilityKind

TEXT = CapabilityKind.TEXT
IMAGE = CapabilityKind.IMAGE
AUDIO = CapabilityKind.AUDIO


@pytest.fixture
def registry():
    return ProviderRegistry()


@pytest.fixture
def health(registry):
    return HealthMonitor(registry, interval=60.0, timeout=1.0)


@pytest.fixture
def router(registry, health):
    return TaskRouter(registry, health)


@pytest.fixture
def add(registry, make_adapter):
    def _add(name, **kwargs):
        adapter = make_adapter(name, **kwargs)
        registry.register(adapter.descriptor, adapter)
        return adapter

    return _add


async def _mark_unhealthy(health, adapter):
    adapter.probe_error = NetworkError("down", adapter.name)
    await health.check(adapter)
    assert health.is_unhealthy(adapter.name)


class TestAffinityTable:
    """Tests for the static affinity table."""

    def test_every_specialised_task_has_a_rule(self):
        for task in (
            TaskTag.JOURNAL_INSIGHT,
            TaskTag.HEALTH_INSIGHT,
            TaskTag.MOOD_INSIGHT,
            TaskTag.TRANSCRIPTION,
            TaskTag.SPEECH_SYNTHESIS,
            TaskTag.IMAGE_ANALYSIS,
        ):
            assert task in AFFINITY

    def test_chat_has_no_affinity(self):
        assert TaskTag.CHAT not in AFFINITY
        assert TaskTag.TASK_PRIORITIZATION not in AFFINITY

    def test_task_tag_values(self):
        assert TaskTag.IMAGE_ANALYSIS.value == "image-analysis"
        assert TaskTag("journal-insight") is TaskTag.JOURNAL_INSIGHT


class TestExplicitOverride:
    """An explicit provider choice beats health, affinity and priority."""

    def test_override_wins_over_priority(self, router, add):
        add("openai", priority=1)
        claude = add("claude", priority=5)

        assert router.select(TaskTag.CHAT, override="claude") is claude

    def test_override_wins_over_affinity(self, router, add):
        add("gemini", priority=2, capabilities=(TEXT, IMAGE), image_analysis=True)
        claude = add("claude", priority=3)

        assert router.select(TaskTag.IMAGE_ANALYSIS, override="claude") is claude

    @pytest.mark.asyncio
    async def test_override_wins_over_health(self, router, health, add):
        add("openai", priority=1)
        claude = add("claude", priority=2)
        await _mark_unhealthy(health, claude)

        assert router.select(TaskTag.CHAT, override="claude") is claude

    def test_disabled_override_falls_through(self, router, add):
        openai_adapter = add("openai", priority=1)
        add("claude", priority=2, enabled=False)

        assert router.select(TaskTag.CHAT, override="claude") is openai_adapter

    def test_unknown_override_falls_through(self, router, add):
        openai_adapter = add("openai", priority=1)

        assert router.select(TaskTag.CHAT, override="mistral") is openai_adapter


class TestTaskAffinity:
    """Tests for capability and tag based selection."""

    def test_image_analysis_prefers_image_capable(self, router, add):
        """A(1, no image) vs B(2, image): image analysis goes to B."""
        add("a", priority=1, capabilities=(TEXT,))
        b = add("b", priority=2, capabilities=(TEXT, IMAGE), image_analysis=True)

        assert router.select(TaskTag.IMAGE_ANALYSIS) is b

    def test_transcription_goes_to_audio_provider(self, router, add):
        """enabled=[claude, openai]; only openai has audio: openai is chosen."""
        add("claude", priority=1, capabilities=(TEXT, IMAGE))
        openai_adapter = add("openai", priority=2, capabilities=(TEXT, AUDIO), transcription=True)

        assert router.select(TaskTag.TRANSCRIPTION) is openai_adapter

    def test_capability_without_operation_does_not_match(self, router, add):
        """Declaring audio is not enough; the adapter must implement the operation."""
        primary = add("gemini", priority=1, capabilities=(TEXT, AUDIO))
        add("openai", priority=2, capabilities=(TEXT, AUDIO), speech=False)

        assert router.select(TaskTag.SPEECH_SYNTHESIS) is primary

    def test_preferred_name_beats_priority(self, router, add):
        add("gemini", priority=1, tags=("analytical",))
        claude = add("claude", priority=2, tags=("analytical",))

        assert router.select(TaskTag.JOURNAL_INSIGHT) is claude

    def test_analytical_tag_required(self, router, add):
        add("openai", priority=1)
        gemini = add("gemini", priority=3, tags=("analytical",))

        assert router.select(TaskTag.HEALTH_INSIGHT) is gemini

    def test_disabled_affinity_target_falls_back(self, router, add):
        add("claude", priority=1, tags=("analytical",), enabled=False)
        openai_adapter = add("openai", priority=2)

        assert router.select(TaskTag.MOOD_INSIGHT) is openai_adapter

    def test_no_affinity_match_uses_primary(self, router, add):
        openai_adapter = add("openai", priority=1)
        add("claude", priority=2)

        assert router.select(TaskTag.IMAGE_ANALYSIS) is openai_adapter

    @pytest.mark.asyncio
    async def test_healthy_candidate_preferred(self, router, health, add):
        """Affinity is a soft hint: an unhealthy preferred provider is ranked last."""
        claude = add("claude", priority=1, tags=("analytical",))
        gemini = add("gemini", priority=2, tags=("analytical",))
        await _mark_unhealthy(health, claude)

        assert router.select(TaskTag.HEALTH_INSIGHT) is gemini

    @pytest.mark.asyncio
    async def test_unhealthy_candidate_still_used_when_only_match(self, router, health, add):
        add("openai", priority=1)
        claude = add("claude", priority=2, tags=("analytical",))
        await _mark_unhealthy(health, claude)

        assert router.select(TaskTag.JOURNAL_INSIGHT) is claude

    def test_custom_affinity_table(self, registry, add):
        add("openai", priority=1)
        local = add("local_llm", priority=9)
        affinity = {TaskTag.CHAT: AffinityRule(preferred=("local_llm",))}
        router = TaskRouter(registry, affinity=affinity)

        assert router.select(TaskTag.CHAT) is local


class TestPriorityFallback:
    """Tests for fallback and configuration errors."""

    def test_chat_uses_primary(self, router, add):
        add("claude", priority=2)
        openai_adapter = add("openai", priority=1)

        assert router.select(TaskTag.CHAT) is openai_adapter

    @pytest.mark.asyncio
    async def test_unhealthy_primary_skipped(self, router, health, add):
        openai_adapter = add("openai", priority=1)
        claude = add("claude", priority=2)
        await _mark_unhealthy(health, openai_adapter)

        assert router.select(TaskTag.CHAT) is claude

    @pytest.mark.asyncio
    async def test_all_unhealthy_uses_primary(self, router, health, add):
        """Availability wins: with nothing healthy the primary is still tried."""
        openai_adapter = add("openai", priority=1)
        claude = add("claude", priority=2)
        await _mark_unhealthy(health, openai_adapter)
        await _mark_unhealthy(health, claude)

        assert router.select(TaskTag.CHAT) is openai_adapter

    def test_unknown_health_is_not_unhealthy(self, router, add):
        openai_adapter = add("openai", priority=1)
        assert router.select(TaskTag.CHAT) is openai_adapter

    def test_no_enabled_provider_raises(self, router, add):
        add("openai", enabled=False)

        with pytest.raises(NoProviderAvailable):
            router.select(TaskTag.CHAT)

    def test_empty_registry_raises_even_with_override(self, router):
        with pytest.raises(NoProviderAvailable):
            router.select(TaskTag.CHAT, override="openai")

    def test_router_without_health_monitor(self, registry, add):
        openai_adapter = add("openai", priority=1)
        assert TaskRouter(registry).select(TaskTag.CHAT) is openai_adapter
