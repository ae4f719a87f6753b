"""Provider descriptors built from configuration.

Hosted backends are declared once in ``HOSTED_SOURCES``; every entry is
evaluated the same way: read the credential, validate it, and register an
enabled descriptor when it passes or a disabled one (kept so an operator
can configure it later) when it does not.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from mindsphere_ai.logging import get_logger
from mindsphere_ai.providers.catalog import (
    CAPABILITIES,
    DISPLAY_NAMES,
    MODELS,
    PRICING,
    TAGS,
)
from mindsphere_ai.providers.models import (
    HostedProviderDescriptor,
    LocalProviderDescriptor,
    ProviderDescriptor,
    ProviderKind,
    StubProviderDescriptor,
)

if TYPE_CHECKING:
    from mindsphere_ai.config import Settings

log = get_logger("mindsphere_ai.orchestration.sources")

PLACEHOLDER_MARKERS = ("your_", "your-", "placeholder", "changeme", "replace-me", "<", "xxx")

LOCAL_PROVIDER_NAME = ProviderKind.LOCAL_LLM.value
STUB_PROVIDER_NAME = ProviderKind.STUB.value
STUB_PRIORITY = 0


def looks_like_placeholder(value: str) -> bool:
    lowered = value.strip().lower()
    if not lowered or lowered.endswith("_here"):
        return True
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def key_validator(*, forbidden_prefixes: tuple[str, ...] = ()) -> Callable[[str], bool]:
    """Build a credential check that rejects placeholders and foreign key formats."""

    def validate(value: str) -> bool:
        if looks_like_placeholder(value):
            return False
        return not (forbidden_prefixes and value.strip().startswith(forbidden_prefixes))

    return validate


@dataclass(frozen=True)
class CredentialSource:
    """How one hosted backend is configured."""

    name: str
    kind: ProviderKind
    env_var: str
    validate: Callable[[str], bool]

    @property
    def setting(self) -> str:
        return self.env_var.lower()


HOSTED_SOURCES: tuple[CredentialSource, ...] = (
    CredentialSource(
        name="openai",
        kind=ProviderKind.OPENAI,
        env_var="OPENAI_API_KEY",
        validate=key_validator(forbidden_prefixes=("sk-ant-", "AIza")),
    ),
    CredentialSource(
        name="claude",
        kind=ProviderKind.CLAUDE,
        env_var="CLAUDE_API_KEY",
        validate=key_validator(forbidden_prefixes=("AIza",)),
    ),
    CredentialSource(
        name="gemini",
        kind=ProviderKind.GEMINI,
        env_var="GEMINI_API_KEY",
        validate=key_validator(forbidden_prefixes=("sk-",)),
    ),
)


def validate_credential(kind: str, value: str) -> bool:
    """Apply the configuration-time credential check for a backend kind."""
    source = next((s for s in HOSTED_SOURCES if s.kind.value == kind), None)
    if source is None:
        return False
    return source.validate(value)


@dataclass(frozen=True)
class ProviderOverride:
    """Per-provider settings from the tenant preference store."""

    enabled: bool | None = None
    priority: int | None = None
    credential: str | None = None
    endpoint: str | None = None
    model: str | None = None


class ProviderPreferenceSource(Protocol):
    """External store of provider preferences (e.g. per tenant)."""

    async def load_overrides(self) -> Mapping[str, ProviderOverride]: ...


def _hosted_descriptor(
    source: CredentialSource, settings: Settings, override: ProviderOverride
) -> HostedProviderDescriptor:
    secret = getattr(settings, source.setting, None)
    credential = override.credential or (secret.get_secret_value() if secret else None)
    valid = bool(credential) and source.validate(credential or "")
    if credential and not valid:
        log.warning("provider_credential_rejected", provider=source.name, env_var=source.env_var)

    enabled = valid if override.enabled is None else override.enabled and valid
    if override.enabled and not valid:
        log.warning("provider_enable_ignored", provider=source.name, reason="no valid credential")

    return HostedProviderDescriptor(
        kind=source.kind.value,
        name=source.name,
        display_name=DISPLAY_NAMES[source.kind],
        credential=credential if valid else None,
        endpoint=override.endpoint,
        models=MODELS[source.kind],
        capabilities=CAPABILITIES[source.kind],
        enabled=enabled,
        priority=_priority(settings, source.name, override),
        pricing=PRICING[source.kind],
        tags=TAGS.get(source.kind, frozenset()),
        default_model=override.model or getattr(settings, f"{source.name}_model"),
    )


def _priority(settings: Settings, name: str, override: ProviderOverride) -> int:
    if override.priority is not None:
        return override.priority
    return int(getattr(settings, f"{name}_priority"))


def local_descriptor(
    settings: Settings, override: ProviderOverride | None = None
) -> LocalProviderDescriptor:
    override = override or ProviderOverride()
    return LocalProviderDescriptor(
        name=LOCAL_PROVIDER_NAME,
        display_name=DISPLAY_NAMES[ProviderKind.LOCAL_LLM],
        endpoint=override.endpoint or settings.ollama_url,
        models=MODELS[ProviderKind.LOCAL_LLM],
        capabilities=CAPABILITIES[ProviderKind.LOCAL_LLM],
        enabled=True if override.enabled is None else override.enabled,
        priority=override.priority if override.priority is not None else settings.ollama_priority,
        pricing=PRICING[ProviderKind.LOCAL_LLM],
        default_model=override.model or settings.ollama_model,
    )


def stub_descriptor() -> StubProviderDescriptor:
    return StubProviderDescriptor(
        name=STUB_PROVIDER_NAME,
        display_name=DISPLAY_NAMES[ProviderKind.STUB],
        models=MODELS[ProviderKind.STUB],
        capabilities=CAPABILITIES[ProviderKind.STUB],
        enabled=True,
        priority=STUB_PRIORITY,
        pricing=PRICING[ProviderKind.STUB],
    )


def build_descriptors(
    settings: Settings, overrides: Mapping[str, ProviderOverride] | None = None
) -> list[ProviderDescriptor]:
    """Descriptors for every configured backend, in registration order.

    The stub backend is added only when ``use_stub_adapter`` is set and no
    hosted backend ended up enabled.
    """
    overrides = overrides or {}
    descriptors: list[ProviderDescriptor] = [
        _hosted_descriptor(source, settings, overrides.get(source.name) or ProviderOverride())
        for source in HOSTED_SOURCES
    ]
    descriptors.append(local_descriptor(settings, overrides.get(LOCAL_PROVIDER_NAME)))

    hosted_enabled = [d.name for d in descriptors if d.enabled and d.kind != "local_llm"]
    if settings.use_stub_adapter:
        if hosted_enabled:
            log.info("stub_adapter_skipped", enabled_providers=hosted_enabled)
        else:
            descriptors.append(stub_descriptor())
            log.info("stub_adapter_enabled", environment=settings.environment)

    log.info(
        "provider_descriptors_built",
        providers=[d.name for d in descriptors],
        enabled=[d.name for d in descriptors if d.enabled],
    )
    return descriptors
