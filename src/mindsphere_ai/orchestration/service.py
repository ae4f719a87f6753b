"""UnifiedAIService - the single entry point into the AI orchestration layer.

Callers hand in a conversation or a task-specific data set; the service
routes it to an adapter (task affinity, then priority), runs the call
through the shared retry policy and returns an ``AIResponse``. Failures
always propagate: no method returns fabricated content on error.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import date
from typing import Any, TypeVar

from pydantic import SecretStr

from mindsphere_ai.config import Settings, get_settings
from mindsphere_ai.constants import DEFAULT_IMAGE_MIME_TYPE, DEFAULT_IMAGE_PROMPT, DEFAULT_VOICE
from mindsphere_ai.logging import get_logger
from mindsphere_ai.orchestration.cost import CostEstimator, UsageTracker
from mindsphere_ai.orchestration.health import HealthMonitor
from mindsphere_ai.orchestration.registry import ProviderRegistry
from mindsphere_ai.orchestration.retry import RetryCoordinator, RetryResult
from mindsphere_ai.orchestration.router import TaskRouter, TaskTag
from mindsphere_ai.orchestration.sources import (
    LOCAL_PROVIDER_NAME,
    ProviderOverride,
    ProviderPreferenceSource,
    build_descriptors,
    validate_credential,
)
from mindsphere_ai.orchestration.streaming import (
    ProgressCallback,
    StreamAggregator,
    StreamState,
)
from mindsphere_ai.prompts import (
    HEALTH_MAX_TOKENS,
    HEALTH_SYSTEM_PROMPT,
    INSIGHT_TEMPERATURE,
    JOURNAL_MAX_TOKENS,
    JOURNAL_SYSTEM_PROMPT,
    MOOD_MAX_TOKENS,
    MOOD_SYSTEM_PROMPT,
    TASKS_MAX_TOKENS,
    TASKS_SYSTEM_PROMPT,
    format_health,
    format_journal,
    format_mood,
    format_tasks,
)
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import ProviderError, ProviderNotFoundError
from mindsphere_ai.providers.factory import create_adapter
from mindsphere_ai.providers.models import (
    AIResponse,
    CallerProfile,
    ConversationContext,
    HealthEntry,
    Message,
    Model,
    MoodEntry,
    ProbeResult,
    ProviderDescriptor,
    TaskItem,
    TaskPrioritization,
)

log = get_logger("mindsphere_ai.orchestration.service")

T = TypeVar("T")

AdapterFactory = Callable[[ProviderDescriptor, float], ProviderAdapter]

INSIGHT_CALLER_ID = "insights"


def prioritize_tasks(tasks: Sequence[TaskItem]) -> list[TaskItem]:
    """Order tasks high > medium > low, then by due date, dated before undated.

    The sort is stable, so tasks that tie keep their input order.
    """
    return sorted(
        tasks,
        key=lambda task: (
            -task.priority.rank,
            task.due_date is None,
            task.due_date or date.max,
        ),
    )


class UnifiedAIService:
    """Facade over registry, router, retry coordinator and health monitor.

    Every public operation initializes the layer on first use; calling
    ``initialize()`` explicitly is optional and idempotent.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        registry: ProviderRegistry | None = None,
        preference_source: ProviderPreferenceSource | None = None,
        adapter_factory: AdapterFactory = create_adapter,
        retry: RetryCoordinator | None = None,
        health_monitor: HealthMonitor | None = None,
        cost_estimator: CostEstimator | None = None,
        usage_tracker: UsageTracker | None = None,
        aggregator: StreamAggregator | None = None,
    ) -> None:
        """Wire the layer together without touching any backend.

        Args:
            settings: Configuration; defaults to ``get_settings()``.
            registry: Registry to populate; a fresh one by default.
            preference_source: Optional tenant preference store whose
                overrides are applied on top of environment configuration.
            adapter_factory: Builds an adapter for a descriptor and timeout.
            retry: Retry policy; built from settings by default.
            health_monitor: Health monitor bound to ``registry``.
            cost_estimator: Pre-flight cost estimator.
            usage_tracker: In-memory usage accounting.
            aggregator: Stream aggregator.
        """
        self._settings = settings or get_settings()
        self._registry = registry or ProviderRegistry()
        self._preference_source = preference_source
        self._adapter_factory = adapter_factory
        self._retry = retry or RetryCoordinator.from_settings(self._settings)
        self._health = health_monitor or HealthMonitor(
            self._registry,
            interval=self._settings.health_check_interval,
            timeout=self._settings.health_check_timeout,
        )
        self._router = TaskRouter(self._registry, self._health)
        self._costs = cost_estimator or CostEstimator()
        self._usage = usage_tracker or UsageTracker()
        self._aggregator = aggregator or StreamAggregator()

        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def health_monitor(self) -> HealthMonitor:
        return self._health

    @property
    def router(self) -> TaskRouter:
        return self._router

    @property
    def usage(self) -> UsageTracker:
        return self._usage

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # -- lifecycle -----------------------------------------------------------

    async def initialize(self) -> None:
        """Build descriptors, register adapters and start health monitoring.

        Only the first call does any work; concurrent callers wait for it.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            overrides = await self._load_overrides()
            for descriptor in build_descriptors(self._settings, overrides):
                adapter = self._adapter_factory(descriptor, self._settings.provider_timeout)
                self._registry.register(descriptor, adapter)

            await self._discover_local_models()

            if self._settings.health_monitor_enabled:
                await self._health.start()

            self._initialized = True
            primary = self._registry.primary()
            log.info(
                "ai_service_initialized",
                providers=self._registry.names(),
                enabled=[adapter.name for adapter in self._registry.enabled()],
                primary=primary.name if primary else None,
            )

    async def _load_overrides(self) -> Mapping[str, ProviderOverride]:
        if self._preference_source is None:
            return {}
        try:
            return await self._preference_source.load_overrides()
        except Exception as e:
            # Environment configuration still yields a working layer
            log.warning("provider_preferences_unavailable", error=str(e))
            return {}

    async def _discover_local_models(self) -> None:
        """Fetch the local runtime's model list, disabling it when unreachable."""
        descriptor = self._registry.descriptor(LOCAL_PROVIDER_NAME)
        adapter = self._registry.get_by_name(LOCAL_PROVIDER_NAME)
        if descriptor is None or adapter is None or not descriptor.enabled:
            return

        try:
            models = await adapter.list_models()
        except ProviderError as e:
            log.warning(
                "local_runtime_unreachable",
                endpoint=adapter.endpoint,
                error=str(e),
            )
            self._registry.set_enabled(LOCAL_PROVIDER_NAME, False)
            return

        updated = self._registry.update(LOCAL_PROVIDER_NAME, models=tuple(models))
        await adapter.configure(updated)
        log.info("local_models_discovered", count=len(models), models=[m.id for m in models])

    async def close(self) -> None:
        """Stop health monitoring and release every adapter's resources."""
        if self._health.is_running:
            await self._health.stop()
        for adapter in self._registry.all():
            await adapter.close()
        self._initialized = False
        log.info("ai_service_closed")

    # -- generation ----------------------------------------------------------

    async def generate_response(
        self,
        context: ConversationContext,
        preferred_provider: str | None = None,
        task: TaskTag = TaskTag.CHAT,
    ) -> AIResponse:
        """Generate a complete response.

        Raises:
            NoProviderAvailable: nothing is enabled.
            ProviderError: the call failed for good (after retries, if the
                failure class allows them).
        """
        await self.initialize()
        adapter = self._router.select(task, preferred_provider)
        result = await self._retry.execute(adapter, lambda: adapter.complete(context))
        response = result.unwrap()
        self._record(response, task, result.attempts_made)
        return response

    async def generate_stream_response(
        self,
        context: ConversationContext,
        on_progress: ProgressCallback | None = None,
        preferred_provider: str | None = None,
        cancel_event: asyncio.Event | None = None,
        task: TaskTag = TaskTag.CHAT,
    ) -> AIResponse:
        """Stream a response, relaying progress to ``on_progress``.

        A failed stream is retried only while nothing has been forwarded
        yet; a restart after the caller saw partial output would duplicate
        it. Setting ``cancel_event`` stops the callbacks and returns the
        partial response with ``finish_reason="cancelled"``.
        """
        await self.initialize()
        adapter = self._router.select(task, preferred_provider)
        state = StreamState()

        result = await self._retry.execute(
            adapter,
            lambda: self._aggregator.consume(adapter, context, on_progress, cancel_event, state),
            should_retry=lambda _error: state.chunks_forwarded == 0,
        )
        response = result.unwrap()
        self._record(response, task, result.attempts_made)
        return response

    def _record(self, response: AIResponse, task: TaskTag, attempts_made: int) -> None:
        self._usage.record(response, task.value)
        log.info(
            "ai_response_generated",
            task=task.value,
            provider=response.provider,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=round(response.latency_ms, 1),
            attempts_made=attempts_made,
            finish_reason=response.finish_reason,
        )

    async def _run(
        self,
        task: TaskTag,
        preferred_provider: str | None,
        call: Callable[[ProviderAdapter], Awaitable[T]],
    ) -> T:
        await self.initialize()
        adapter = self._router.select(task, preferred_provider)
        result = await self._retry.execute(adapter, lambda: call(adapter))
        data = result.unwrap()
        log.info(
            "ai_operation_completed",
            task=task.value,
            provider=adapter.name,
            attempts_made=result.attempts_made,
            response_time_ms=round(result.response_time_ms, 1),
        )
        return data

    # -- insights ------------------------------------------------------------

    async def _insight(
        self,
        task: TaskTag,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        profile: CallerProfile | None,
        preferred_provider: str | None,
    ) -> str:
        context = ConversationContext(
            caller_id=INSIGHT_CALLER_ID,
            messages=[Message.user(prompt)],
            caller_profile=profile,
            system_prompt=system_prompt,
            temperature=INSIGHT_TEMPERATURE,
            max_tokens=max_tokens,
        )
        response = await self.generate_response(context, preferred_provider, task=task)
        return response.content

    async def journal_insights(
        self,
        content: str,
        profile: CallerProfile | None = None,
        preferred_provider: str | None = None,
    ) -> str:
        """Reflective feedback on one journal entry."""
        if not content.strip():
            raise ValueError("Journal content must not be empty")
        return await self._insight(
            TaskTag.JOURNAL_INSIGHT,
            format_journal(content),
            JOURNAL_SYSTEM_PROMPT,
            JOURNAL_MAX_TOKENS,
            profile,
            preferred_provider,
        )

    async def health_insights(
        self,
        entries: Sequence[HealthEntry],
        profile: CallerProfile | None = None,
        preferred_provider: str | None = None,
    ) -> str:
        """Patterns and recommendations from health log entries."""
        if not entries:
            raise ValueError("At least one health entry is required")
        return await self._insight(
            TaskTag.HEALTH_INSIGHT,
            format_health(entries),
            HEALTH_SYSTEM_PROMPT,
            HEALTH_MAX_TOKENS,
            profile,
            preferred_provider,
        )

    async def mood_insights(
        self,
        entries: Sequence[MoodEntry],
        profile: CallerProfile | None = None,
        preferred_provider: str | None = None,
    ) -> str:
        """Emotional patterns and suggestions from mood entries."""
        if not entries:
            raise ValueError("At least one mood entry is required")
        return await self._insight(
            TaskTag.MOOD_INSIGHT,
            format_mood(entries),
            MOOD_SYSTEM_PROMPT,
            MOOD_MAX_TOKENS,
            profile,
            preferred_provider,
        )

    async def task_prioritization(
        self,
        tasks: Sequence[TaskItem],
        profile: CallerProfile | None = None,
        preferred_provider: str | None = None,
    ) -> TaskPrioritization:
        """Model-written prioritization advice plus a deterministic task order."""
        if not tasks:
            raise ValueError("At least one task is required")
        insights = await self._insight(
            TaskTag.TASK_PRIORITIZATION,
            format_tasks(tasks),
            TASKS_SYSTEM_PROMPT,
            TASKS_MAX_TOKENS,
            profile,
            preferred_provider,
        )
        return TaskPrioritization(insights=insights, prioritized_tasks=prioritize_tasks(tasks))

    # -- audio and image -------------------------------------------------------

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.wav",
        preferred_provider: str | None = None,
    ) -> str:
        if not audio:
            raise ValueError("Audio payload must not be empty")
        return await self._run(
            TaskTag.TRANSCRIPTION,
            preferred_provider,
            lambda adapter: adapter.transcribe(audio, filename),
        )

    async def synthesize_speech(
        self,
        text: str,
        voice: str = DEFAULT_VOICE,
        preferred_provider: str | None = None,
    ) -> bytes:
        if not text.strip():
            raise ValueError("Text to synthesize must not be empty")
        return await self._run(
            TaskTag.SPEECH_SYNTHESIS,
            preferred_provider,
            lambda adapter: adapter.synthesize_speech(text, voice),
        )

    async def analyze_image(
        self,
        image: bytes,
        prompt: str = DEFAULT_IMAGE_PROMPT,
        mime_type: str = DEFAULT_IMAGE_MIME_TYPE,
        preferred_provider: str | None = None,
    ) -> str:
        if not image:
            raise ValueError("Image payload must not be empty")
        return await self._run(
            TaskTag.IMAGE_ANALYSIS,
            preferred_provider,
            lambda adapter: adapter.analyze_image(image, prompt, mime_type),
        )

    # -- provider management ---------------------------------------------------

    def _require(self, name: str) -> ProviderAdapter:
        adapter = self._registry.get_by_name(name)
        if adapter is None:
            raise ProviderNotFoundError(name)
        return adapter

    async def list_providers(self) -> list[dict[str, Any]]:
        """Every registered provider with its configuration and cached health."""
        await self.initialize()
        providers: list[dict[str, Any]] = []
        for entry in self._registry.snapshot().entries:
            descriptor = entry.descriptor
            record = self._health.record(entry.name)
            providers.append(
                {
                    "name": descriptor.name,
                    "display_name": descriptor.display_name,
                    "kind": descriptor.kind,
                    "enabled": descriptor.enabled,
                    "priority": descriptor.priority,
                    "default_model": descriptor.resolved_model,
                    "models": [model.id for model in descriptor.models],
                    "capabilities": [
                        cap.kind.value for cap in descriptor.capabilities if cap.supported
                    ],
                    "tags": sorted(descriptor.tags),
                    "healthy": record.healthy,
                    "health_state": record.state.value,
                }
            )
        return providers

    async def provider_models(self, name: str) -> list[Model]:
        await self.initialize()
        return await self._require(name).list_models()

    async def provider_health(self) -> list[dict[str, object]]:
        """Cached health as ``{provider, healthy}``; never probes."""
        await self.initialize()
        return self._health.status()

    def provider_stats(self) -> dict[str, Any]:
        return self._usage.summary()

    async def estimate_costs(self, context: ConversationContext) -> dict[str, float]:
        """Projected cost of ``context`` on every enabled provider."""
        await self.initialize()
        return {
            entry.name: self._costs.estimate(context, entry.descriptor)
            for entry in self._registry.snapshot().enabled()
        }

    async def estimate_cost(self, context: ConversationContext, name: str) -> float:
        await self.initialize()
        descriptor = self._registry.descriptor(name)
        if descriptor is None:
            raise ProviderNotFoundError(name)
        return self._costs.estimate(context, descriptor)

    async def set_provider_priority(self, name: str, priority: int) -> ProviderDescriptor:
        await self.initialize()
        return self._registry.set_priority(name, priority)

    async def set_provider_enabled(self, name: str, enabled: bool) -> ProviderDescriptor:
        await self.initialize()
        return self._registry.set_enabled(name, enabled)

    async def update_provider(
        self,
        name: str,
        credential: str | None = None,
        endpoint: str | None = None,
        model: str | None = None,
    ) -> ProviderDescriptor:
        """Rotate a provider's credential, endpoint or default model.

        The descriptor is re-validated and the adapter rebuilds its client
        on the next call. Cached health is dropped so routing does not act
        on a probe of the old configuration.

        Raises:
            ProviderNotFoundError: ``name`` is not registered.
            ValueError: the provider has no such setting, or the credential
                fails validation.
        """
        await self.initialize()
        adapter = self._require(name)
        descriptor = adapter.descriptor
        fields = type(descriptor).model_fields

        changes: dict[str, Any] = {}
        if credential is not None:
            if "credential" not in fields:
                raise ValueError(f"Provider {name} does not take a credential")
            if not validate_credential(descriptor.kind, credential):
                raise ValueError(f"Credential for {name} is not a valid key")
            changes["credential"] = SecretStr(credential)
        if endpoint is not None:
            if "endpoint" not in fields:
                raise ValueError(f"Provider {name} does not take an endpoint")
            changes["endpoint"] = endpoint
        if model is not None:
            changes["default_model"] = model
        if not changes:
            return self._registry.descriptor(name) or descriptor

        updated = self._registry.update(name, **changes)
        await adapter.configure(updated)
        self._health.forget(name)
        return updated

    async def test_provider(
        self, name: str, credential: str | None = None
    ) -> RetryResult[ProbeResult]:
        """One live round-trip, optionally against a candidate credential.

        Uses the same probe as the health monitor; the candidate credential
        is not stored.
        """
        await self.initialize()
        adapter = self._require(name)
        result = await self._retry.execute(adapter, lambda: adapter.probe(credential))
        log.info(
            "provider_tested",
            provider=name,
            candidate_credential=credential is not None,
            success=result.success,
            attempts_made=result.attempts_made,
        )
        return result
