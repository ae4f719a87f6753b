"""Task router: semantic task tag to adapter.

Task affinity is a soft preference. Resolution order:

1. An explicit override naming an enabled provider wins outright.
2. Providers matching the task's affinity rule, ordered by health (known
   unhealthy last), preferred-name order, priority and registration.
3. The first enabled provider in priority order that is not known to be
   unhealthy, else the registry primary.
4. Nothing enabled raises ``NoProviderAvailable``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mindsphere_ai.logging import get_logger
from mindsphere_ai.orchestration.health import HealthMonitor
from mindsphere_ai.orchestration.registry import ProviderRegistry, RegistryEntry
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import NoProviderAvailable
from mindsphere_ai.providers.models import CapabilityKind

log = get_logger("mindsphere_ai.orchestration.router")


class TaskTag(str, Enum):
    """Semantic tasks callers can request."""

    CHAT = "chat"
    JOURNAL_INSIGHT = "journal-insight"
    HEALTH_INSIGHT = "health-insight"
    MOOD_INSIGHT = "mood-insight"
    TASK_PRIORITIZATION = "task-prioritization"
    TRANSCRIPTION = "transcription"
    SPEECH_SYNTHESIS = "speech-synthesis"
    IMAGE_ANALYSIS = "image-analysis"


@dataclass(frozen=True)
class AffinityRule:
    """What makes a provider a good fit for a task.

    A provider matches when it declares ``capability`` (if set), implements
    ``operation`` (if set) and carries ``tag`` (if set). ``preferred``
    orders matching providers by name ahead of priority.
    """

    capability: CapabilityKind | None = None
    operation: str | None = None
    tag: str | None = None
    preferred: tuple[str, ...] = ()

    def matches(self, entry: RegistryEntry) -> bool:
        descriptor = entry.descriptor
        if self.capability is not None and not descriptor.supports(self.capability):
            return False
        if self.operation is not None and not entry.adapter.supports_operation(self.operation):
            return False
        return self.tag is None or self.tag in descriptor.tags


AFFINITY: dict[TaskTag, AffinityRule] = {
    TaskTag.JOURNAL_INSIGHT: AffinityRule(
        capability=CapabilityKind.TEXT, tag="analytical", preferred=("claude",)
    ),
    TaskTag.HEALTH_INSIGHT: AffinityRule(
        capability=CapabilityKind.TEXT, tag="analytical", preferred=("claude", "gemini")
    ),
    TaskTag.MOOD_INSIGHT: AffinityRule(
        capability=CapabilityKind.TEXT, tag="analytical", preferred=("claude", "gemini")
    ),
    TaskTag.TRANSCRIPTION: AffinityRule(
        capability=CapabilityKind.AUDIO, operation="transcription", preferred=("openai",)
    ),
    TaskTag.SPEECH_SYNTHESIS: AffinityRule(
        capability=CapabilityKind.AUDIO, operation="speech", preferred=("openai",)
    ),
    TaskTag.IMAGE_ANALYSIS: AffinityRule(
        capability=CapabilityKind.IMAGE, operation="image_analysis", preferred=("gemini",)
    ),
}


class TaskRouter:
    """Selects the adapter for a task from a consistent registry snapshot."""

    def __init__(
        self,
        registry: ProviderRegistry,
        health: HealthMonitor | None = None,
        affinity: dict[TaskTag, AffinityRule] | None = None,
    ) -> None:
        self._registry = registry
        self._health = health
        self._affinity = AFFINITY if affinity is None else affinity

    def _unhealthy(self, name: str) -> bool:
        return self._health is not None and self._health.is_unhealthy(name)

    def select(self, task: TaskTag, override: str | None = None) -> ProviderAdapter:
        """Resolve the adapter for ``task``.

        Raises:
            NoProviderAvailable: no provider is enabled.
        """
        snapshot = self._registry.snapshot()
        enabled = snapshot.enabled()
        if not enabled:
            log.error("no_provider_available", task=task.value)
            raise NoProviderAvailable(f"No AI provider is enabled to handle {task.value}")

        if override:
            entry = snapshot.get(override)
            if entry is not None and entry.descriptor.enabled:
                log.debug(
                    "provider_selected", task=task.value, provider=override, reason="override"
                )
                return entry.adapter
            log.warning(
                "preferred_provider_unavailable",
                task=task.value,
                provider=override,
                registered=entry is not None,
            )

        rule = self._affinity.get(task)
        if rule is not None:
            candidates = [entry for entry in enabled if rule.matches(entry)]
            if candidates:
                chosen = min(candidates, key=lambda entry: self._affinity_key(rule, entry))
                log.debug(
                    "provider_selected", task=task.value, provider=chosen.name, reason="affinity"
                )
                return chosen.adapter

        # enabled is already in priority order
        chosen = next((entry for entry in enabled if not self._unhealthy(entry.name)), enabled[0])
        log.debug("provider_selected", task=task.value, provider=chosen.name, reason="priority")
        return chosen.adapter

    def _affinity_key(self, rule: AffinityRule, entry: RegistryEntry) -> tuple[int, int, int, int]:
        if entry.name in rule.preferred:
            preferred = rule.preferred.index(entry.name)
        else:
            preferred = len(rule.preferred)
        return (
            int(self._unhealthy(entry.name)),
            preferred,
            entry.descriptor.priority,
            entry.order,
        )
