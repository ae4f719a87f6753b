"""Background health monitoring for registered providers.

The monitor is the only writer of health records. It probes every enabled
adapter on a fixed interval and caches the outcome; request routing only
reads the cache and never probes on the request path. Probes bypass the
retry coordinator: one failure marks a provider unhealthy and the next
successful tick recovers it.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime

from mindsphere_ai.constants import HEALTH_CHECK_INTERVAL, HEALTH_CHECK_TIMEOUT
from mindsphere_ai.logging import get_logger
from mindsphere_ai.orchestration.registry import ProviderRegistry
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.models import HealthRecord, HealthState

log = get_logger("mindsphere_ai.orchestration.health")


class HealthMonitor:
    """Per-provider ``UNKNOWN -> HEALTHY <-> UNHEALTHY`` cache."""

    def __init__(
        self,
        registry: ProviderRegistry,
        interval: float = HEALTH_CHECK_INTERVAL,
        timeout: float = HEALTH_CHECK_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._interval = interval
        self._timeout = timeout
        self._records: dict[str, HealthRecord] = {}
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start probing in the background."""
        if self._running:
            log.warning("health_monitor_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        log.info("health_monitor_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the background loop."""
        self._running = False
        task = self._task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self._task = None
        log.info("health_monitor_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.check_all()
            except Exception as e:
                log.error("health_check_cycle_failed", error=str(e))

            await asyncio.sleep(self._interval)

    async def check_all(self) -> list[HealthRecord]:
        """Probe every enabled provider once, concurrently."""
        adapters = self._registry.enabled()
        if not adapters:
            return []
        return list(await asyncio.gather(*(self.check(adapter) for adapter in adapters)))

    async def check(self, adapter: ProviderAdapter) -> HealthRecord:
        """Probe one provider and record the outcome."""
        try:
            await asyncio.wait_for(adapter.probe(), timeout=self._timeout)
        except TimeoutError:
            record = self._record(adapter.name, HealthState.UNHEALTHY, "probe timed out")
        except Exception as e:
            record = self._record(adapter.name, HealthState.UNHEALTHY, str(e))
        else:
            record = self._record(adapter.name, HealthState.HEALTHY)

        if not record.healthy:
            log.warning("health_probe_failed", provider=adapter.name, error=record.error)
        return record

    def _record(self, name: str, state: HealthState, error: str = "") -> HealthRecord:
        previous = self._records.get(name)
        record = HealthRecord(
            provider_name=name,
            state=state,
            last_checked_at=datetime.now(UTC),
            error=error,
        )
        self._records[name] = record
        if previous is None or previous.state != state:
            log.info(
                "provider_health_changed",
                provider=name,
                previous=previous.state.value if previous else HealthState.UNKNOWN.value,
                current=state.value,
            )
        return record

    def record(self, name: str) -> HealthRecord:
        """Cached record for ``name``; ``UNKNOWN`` until the first probe."""
        return self._records.get(name) or HealthRecord(provider_name=name)

    def is_healthy(self, name: str) -> bool:
        return self.record(name).healthy

    def is_unhealthy(self, name: str) -> bool:
        return self.record(name).state == HealthState.UNHEALTHY

    def forget(self, name: str) -> None:
        self._records.pop(name, None)

    def status(self) -> list[dict[str, object]]:
        """``{provider, healthy}`` for every registered provider."""
        return [
            {"provider": name, "healthy": self.is_healthy(name)}
            for name in self._registry.names()
        ]

    def records(self) -> list[HealthRecord]:
        return [self.record(name) for name in self._registry.names()]
