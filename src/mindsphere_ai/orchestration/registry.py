"""Provider registry.

Holds every adapter with its descriptor, keyed by provider name. Entries
are immutable and the mapping is replaced wholesale on every change, so
a routing decision that took a snapshot sees either the old or the new
state of an administrative update, never a mix.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any

from mindsphere_ai.logging import get_logger
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import ProviderNotFoundError
from mindsphere_ai.providers.models import ProviderDescriptor

log = get_logger("mindsphere_ai.orchestration.registry")


@dataclass(frozen=True)
class RegistryEntry:
    """A registered adapter and the descriptor it was registered with."""

    descriptor: ProviderDescriptor
    adapter: ProviderAdapter
    order: int

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def sort_key(self) -> tuple[int, int]:
        # Lower priority value first, then first registered
        return (self.descriptor.priority, self.order)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time view of the registry used for one routing decision."""

    entries: tuple[RegistryEntry, ...]

    def get(self, name: str) -> RegistryEntry | None:
        return next((entry for entry in self.entries if entry.name == name), None)

    def enabled(self) -> list[RegistryEntry]:
        """Enabled entries in priority order."""
        return sorted(
            (entry for entry in self.entries if entry.descriptor.enabled),
            key=lambda entry: entry.sort_key,
        )

    def primary(self) -> RegistryEntry | None:
        enabled = self.enabled()
        return enabled[0] if enabled else None


class ProviderRegistry:
    """Adapters by name, with enablement and priority ordering."""

    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}
        self._order = itertools.count()

    def register(self, descriptor: ProviderDescriptor, adapter: ProviderAdapter) -> None:
        """Add or replace the adapter registered under ``descriptor.name``.

        A replaced entry keeps its original registration order.
        """
        if adapter.name != descriptor.name:
            raise ValueError(
                f"Adapter {adapter.name} does not match descriptor {descriptor.name}"
            )
        existing = self._entries.get(descriptor.name)
        order = existing.order if existing else next(self._order)
        entry = RegistryEntry(descriptor=descriptor, adapter=adapter, order=order)
        self._entries = {**self._entries, descriptor.name: entry}
        log.debug(
            "provider_registered",
            provider=descriptor.name,
            enabled=descriptor.enabled,
            priority=descriptor.priority,
            replaced=existing is not None,
        )

    def unregister(self, name: str) -> ProviderAdapter | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        self._entries = {key: value for key, value in self._entries.items() if key != name}
        return entry.adapter

    def get_by_name(self, name: str) -> ProviderAdapter | None:
        entry = self._entries.get(name)
        return entry.adapter if entry else None

    def descriptor(self, name: str) -> ProviderDescriptor | None:
        entry = self._entries.get(name)
        return entry.descriptor if entry else None

    def all(self) -> list[ProviderAdapter]:
        """Every adapter in registration order."""
        return [entry.adapter for entry in self.snapshot().entries]

    def enabled(self) -> list[ProviderAdapter]:
        """Enabled adapters in priority order."""
        return [entry.adapter for entry in self.snapshot().enabled()]

    def primary(self) -> ProviderAdapter | None:
        """The enabled adapter with the lowest priority value.

        ``None`` means nothing is enabled, which callers must treat as a
        configuration error rather than a transient failure.
        """
        entry = self.snapshot().primary()
        return entry.adapter if entry else None

    def snapshot(self) -> RegistrySnapshot:
        entries = self._entries
        return RegistrySnapshot(tuple(sorted(entries.values(), key=lambda entry: entry.order)))

    def set_priority(self, name: str, value: int) -> ProviderDescriptor:
        return self.update(name, priority=value)

    def set_enabled(self, name: str, enabled: bool) -> ProviderDescriptor:
        return self.update(name, enabled=enabled)

    def update(self, name: str, **changes: Any) -> ProviderDescriptor:
        """Apply validated changes to a descriptor in one step.

        Raises ``ProviderNotFoundError`` for unknown names and a pydantic
        ``ValidationError`` if the result is not a valid descriptor (for
        example enabling a hosted provider that has no credential).
        """
        entry = self._entries.get(name)
        if entry is None:
            raise ProviderNotFoundError(name)
        descriptor = entry.descriptor.updated(**changes)
        self._entries = {
            **self._entries,
            name: RegistryEntry(descriptor=descriptor, adapter=entry.adapter, order=entry.order),
        }
        log.info(
            "provider_updated",
            provider=name,
            fields=sorted(changes),
            enabled=descriptor.enabled,
            priority=descriptor.priority,
        )
        return descriptor

    def names(self) -> list[str]:
        return [entry.name for entry in self.snapshot().entries]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
