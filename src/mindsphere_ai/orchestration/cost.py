"""Pre-flight cost estimates and in-memory usage accounting.

Estimates are for display only and never gate a call.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from mindsphere_ai.constants import DEFAULT_CHARS_PER_TOKEN, DEFAULT_ESTIMATED_OUTPUT_TOKENS
from mindsphere_ai.providers.catalog import CHARS_PER_TOKEN
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    ProviderDescriptor,
    ProviderKind,
)


@dataclass(frozen=True)
class CostEstimate:
    """Projected tokens and USD cost for one request."""

    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float

    @property
    def total(self) -> float:
        return self.input_cost + self.output_cost


class CostEstimator:
    """Approximates request cost from message length and pricing."""

    def __init__(self, default_output_tokens: int = DEFAULT_ESTIMATED_OUTPUT_TOKENS) -> None:
        self._default_output_tokens = default_output_tokens

    @staticmethod
    def chars_per_token(descriptor: ProviderDescriptor) -> float:
        return CHARS_PER_TOKEN.get(ProviderKind(descriptor.kind), DEFAULT_CHARS_PER_TOKEN)

    def estimate_tokens(self, context: ConversationContext, descriptor: ProviderDescriptor) -> int:
        chars = sum(len(message.content) for message in context.messages)
        if context.system_prompt:
            chars += len(context.system_prompt)
        return math.ceil(chars / self.chars_per_token(descriptor))

    def breakdown(
        self, context: ConversationContext, descriptor: ProviderDescriptor
    ) -> CostEstimate:
        pricing = descriptor.effective_pricing
        input_tokens = self.estimate_tokens(context, descriptor)
        output_tokens = context.max_tokens or self._default_output_tokens
        return CostEstimate(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost=input_tokens * pricing.input_per_token,
            output_cost=output_tokens * pricing.output_per_token,
        )

    def estimate(self, context: ConversationContext, descriptor: ProviderDescriptor) -> float:
        """Projected USD cost; always 0 for zero-priced providers."""
        if descriptor.effective_pricing.is_free:
            return 0.0
        return self.breakdown(context, descriptor).total


@dataclass
class ProviderUsage:
    """Accumulated usage for one provider."""

    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    by_task: dict[str, float] = field(default_factory=dict)


class UsageTracker:
    """Per-provider call, token and cost totals for this process."""

    def __init__(self) -> None:
        self._usage: dict[str, ProviderUsage] = {}

    def record(self, response: AIResponse, task: str) -> None:
        usage = self._usage.setdefault(response.provider, ProviderUsage())
        cost = response.cost or 0.0
        usage.total_calls += 1
        usage.total_input_tokens += response.usage.input_tokens
        usage.total_output_tokens += response.usage.output_tokens
        usage.total_cost_usd += cost
        usage.by_task[task] = usage.by_task.get(task, 0.0) + cost

    def for_provider(self, name: str) -> ProviderUsage:
        return self._usage.get(name) or ProviderUsage()

    def summary(self) -> dict[str, Any]:
        """Cost breakdown per provider plus the overall total."""
        summary: dict[str, Any] = {}
        total_cost = 0.0
        for provider, usage in self._usage.items():
            summary[provider] = {
                "calls": usage.total_calls,
                "input_tokens": usage.total_input_tokens,
                "output_tokens": usage.total_output_tokens,
                "cost_usd": round(usage.total_cost_usd, 6),
                "by_task": {k: round(v, 6) for k, v in usage.by_task.items()},
            }
            total_cost += usage.total_cost_usd
        summary["total_cost_usd"] = round(total_cost, 6)
        return summary
