"""Provider orchestration: registry, routing, retries, health and the service facade."""

from mindsphere_ai.orchestration.cost import CostEstimate, CostEstimator, UsageTracker
from mindsphere_ai.orchestration.health import HealthMonitor
from mindsphere_ai.orchestration.registry import ProviderRegistry, RegistryEntry, RegistrySnapshot
from mindsphere_ai.orchestration.retry import RetryAttempt, RetryCoordinator, RetryResult
from mindsphere_ai.orchestration.router import AFFINITY, AffinityRule, TaskRouter, TaskTag
from mindsphere_ai.orchestration.service import UnifiedAIService, prioritize_tasks
from mindsphere_ai.orchestration.sources import (
    ProviderOverride,
    ProviderPreferenceSource,
    build_descriptors,
)
from mindsphere_ai.orchestration.streaming import StreamAggregator, StreamState

__all__ = [
    "AFFINITY",
    "AffinityRule",
    "CostEstimate",
    "CostEstimator",
    "HealthMonitor",
    "ProviderOverride",
    "ProviderPreferenceSource",
    "ProviderRegistry",
    "RegistryEntry",
    "RegistrySnapshot",
    "RetryAttempt",
    "RetryCoordinator",
    "RetryResult",
    "StreamAggregator",
    "StreamState",
    "TaskRouter",
    "TaskTag",
    "UnifiedAIService",
    "build_descriptors",
    "prioritize_tasks",
]
