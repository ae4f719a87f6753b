"""Backend adapters, provider descriptors and the error taxonomy."""

from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import (
    AuthenticationError,
    CapabilityNotSupportedError,
    ErrorClass,
    ModelNotAvailableError,
    NetworkError,
    NoProviderAvailable,
    OrchestrationError,
    ProviderError,
    ProviderNotFoundError,
    RateLimitError,
    ServerError,
    StreamInterruptedError,
    classify_error,
)
from mindsphere_ai.providers.factory import create_adapter
from mindsphere_ai.providers.models import (
    AIResponse,
    CallerProfile,
    Capability,
    CapabilityKind,
    ConversationContext,
    HealthEntry,
    HealthRecord,
    HealthState,
    HostedProviderDescriptor,
    LocalProviderDescriptor,
    Message,
    Model,
    MoodEntry,
    Pricing,
    ProbeResult,
    ProviderDescriptor,
    ProviderKind,
    Role,
    StreamChunk,
    StreamEvent,
    StubProviderDescriptor,
    TaskItem,
    TaskPrioritization,
    TaskPriority,
    TokenUsage,
    parse_descriptor,
)

__all__ = [
    "AIResponse",
    "AuthenticationError",
    "CallerProfile",
    "Capability",
    "CapabilityKind",
    "CapabilityNotSupportedError",
    "ConversationContext",
    "ErrorClass",
    "HealthEntry",
    "HealthRecord",
    "HealthState",
    "HostedProviderDescriptor",
    "LocalProviderDescriptor",
    "Message",
    "Model",
    "ModelNotAvailableError",
    "MoodEntry",
    "NetworkError",
    "NoProviderAvailable",
    "OrchestrationError",
    "Pricing",
    "ProbeResult",
    "ProviderAdapter",
    "ProviderDescriptor",
    "ProviderError",
    "ProviderKind",
    "ProviderNotFoundError",
    "RateLimitError",
    "Role",
    "ServerError",
    "StreamChunk",
    "StreamEvent",
    "StreamInterruptedError",
    "StubProviderDescriptor",
    "TaskItem",
    "TaskPrioritization",
    "TaskPriority",
    "TokenUsage",
    "classify_error",
    "create_adapter",
    "parse_descriptor",
]
