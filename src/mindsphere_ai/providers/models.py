"""Data model shared by adapters and the orchestration layer.

Provider descriptors arrive from external configuration, so they are
validated pydantic models (a tagged union on ``kind``). Everything built
per request (conversation context, responses, stream chunks, health
records) is a plain dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    TypeAdapter,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------


class ProviderKind(str, Enum):
    """Backend families an adapter can speak to."""

    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    LOCAL_LLM = "local_llm"
    STUB = "stub"


class CapabilityKind(str, Enum):
    """Features a provider may declare."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    FUNCTION_CALLING = "function-calling"
    CODE_EXECUTION = "code-execution"


class Model(BaseModel):
    """A model offered by a provider."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    display_name: str
    context_window: int = Field(gt=0)
    max_output_tokens: int = Field(gt=0)
    supports_streaming: bool = True
    supports_images: bool = False
    supports_audio: bool = False
    cost_multiplier: float = Field(default=1.0, ge=0)


class Capability(BaseModel):
    """A declared feature and whether it is supported."""

    model_config = ConfigDict(frozen=True)

    kind: CapabilityKind
    supported: bool = True
    limitations: tuple[str, ...] = ()


class Pricing(BaseModel):
    """Cost in USD per token."""

    model_config = ConfigDict(frozen=True)

    input_per_token: float = Field(default=0.0, ge=0)
    output_per_token: float = Field(default=0.0, ge=0)

    @property
    def is_free(self) -> bool:
        return self.input_per_token == 0 and self.output_per_token == 0


FREE_PRICING = Pricing()


class _DescriptorBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    display_name: str = ""
    models: tuple[Model, ...] = ()
    capabilities: tuple[Capability, ...] = ()
    enabled: bool = True
    priority: int = 0
    pricing: Pricing | None = None
    tags: frozenset[str] = frozenset()
    default_model: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_display_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("display_name"):
            data = {**data, "display_name": data.get("name", "")}
        return data

    def supports(self, kind: CapabilityKind) -> bool:
        """Whether the provider declares ``kind`` as supported."""
        return any(cap.kind == kind and cap.supported for cap in self.capabilities)

    def find_model(self, model_id: str) -> Model | None:
        return next((m for m in self.models if m.id == model_id), None)

    @property
    def resolved_model(self) -> str | None:
        """The configured default model, else the first declared one."""
        if self.default_model:
            return self.default_model
        return self.models[0].id if self.models else None

    @property
    def effective_pricing(self) -> Pricing:
        return self.pricing or FREE_PRICING

    def updated(self, **changes: Any) -> ProviderDescriptor:
        """Return a re-validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)  # type: ignore[return-value]


class HostedProviderDescriptor(_DescriptorBase):
    """A hosted API reached with a credential."""

    kind: Literal["openai", "claude", "gemini"]
    credential: SecretStr | None = None
    endpoint: str | None = None

    @model_validator(mode="after")
    def _require_credential(self) -> HostedProviderDescriptor:
        if self.enabled and not (self.credential and self.credential.get_secret_value().strip()):
            raise ValueError(f"Provider {self.name} is enabled but has no credential")
        return self


class LocalProviderDescriptor(_DescriptorBase):
    """A model runtime reachable over plain HTTP, free to call."""

    kind: Literal["local_llm"] = "local_llm"
    endpoint: str

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL, got: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def _check_pricing(self) -> LocalProviderDescriptor:
        if self.pricing is not None and not self.pricing.is_free:
            raise ValueError(f"Provider {self.name} is a local runtime and cannot carry pricing")
        return self


class StubProviderDescriptor(_DescriptorBase):
    """The deterministic in-process backend used for testing."""

    kind: Literal["stub"] = "stub"


ProviderDescriptor = Annotated[
    HostedProviderDescriptor | LocalProviderDescriptor | StubProviderDescriptor,
    Field(discriminator="kind"),
]

_descriptor_adapter: TypeAdapter[ProviderDescriptor] = TypeAdapter(ProviderDescriptor)


def parse_descriptor(data: dict[str, Any]) -> ProviderDescriptor:
    """Validate a raw mapping into the matching descriptor variant."""
    return _descriptor_adapter.validate_python(data)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Message:
    """A single conversation turn."""

    role: Role
    content: str
    timestamp: datetime | None = None

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)


@dataclass
class CallerProfile:
    """What the layer knows about the person it is talking to."""

    name: str | None = None
    preferences: dict[str, Any] = field(default_factory=dict)
    recent_activities: list[str] = field(default_factory=list)


@dataclass
class ConversationContext:
    """Everything an adapter needs for one request. Never persisted here."""

    caller_id: str
    messages: list[Message] = field(default_factory=list)
    caller_profile: CallerProfile | None = None
    system_prompt: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    @property
    def last_user_message(self) -> str:
        for message in reversed(self.messages):
            if message.role == Role.USER:
                return message.content
        return ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class AIResponse:
    """Result of a completed generation."""

    content: str
    model: str
    provider: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost: float | None = None
    latency_ms: float = 0.0
    finish_reason: str = "stop"


@dataclass(frozen=True)
class StreamEvent:
    """One increment emitted by an adapter's stream.

    Exactly one event per stream has ``is_complete=True``; only that event
    carries usage and the finish reason.
    """

    delta: str = ""
    is_complete: bool = False
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    finish_reason: str | None = None


@dataclass(frozen=True)
class StreamChunk:
    """Normalized progress event relayed to stream callers."""

    content_so_far: str
    is_complete: bool
    model: str
    tokens_so_far: int = 0
    finish_reason: str | None = None


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a minimal round-trip against a backend."""

    provider: str
    model: str
    latency_ms: float
    detail: str = ""


class HealthState(str, Enum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class HealthRecord:
    """Cached probe outcome for one provider."""

    provider_name: str
    state: HealthState = HealthState.UNKNOWN
    last_checked_at: datetime | None = None
    error: str = ""

    @property
    def healthy(self) -> bool:
        return self.state == HealthState.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider_name,
            "healthy": self.healthy,
            "state": self.state.value,
            "last_checked_at": self.last_checked_at.isoformat() if self.last_checked_at else None,
            "error": self.error or None,
        }


# ---------------------------------------------------------------------------
# Insight inputs
# ---------------------------------------------------------------------------


@dataclass
class HealthEntry:
    date: date
    sleep_hours: float | None = None
    steps: int | None = None
    mood: int | None = None
    energy: int | None = None
    weight: float | None = None
    notes: str | None = None


@dataclass
class MoodEntry:
    date: date
    mood: int
    energy: int | None = None
    stress: int | None = None
    notes: str | None = None


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass
class TaskItem:
    id: str
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: str = "pending"
    description: str | None = None
    due_date: date | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class TaskPrioritization:
    insights: str
    prioritized_tasks: list[TaskItem]
