from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

from .base import ApplyCapable, PlatformAdapter, supports_apply
from .indeed import IndeedAdapter
from .linkedin import LinkedInAdapter

LOGGER = logging.getLogger(__name__)


class AdapterRegistry:
    """Lower-cased platform identifier -> adapter instance.

    Lookups never raise: an unknown identifier resolves to None and callers
    report it as an unsupported platform.
    """

    def __init__(self) -> None:
        self._adapters: Dict[str, PlatformAdapter] = {}

    @staticmethod
    def _key(name: Optional[str]) -> str:
        return (name or "").strip().lower()

    def register(self, adapter: PlatformAdapter, key: Optional[str] = None) -> None:
        platform = self._key(key or adapter.name)
        if not platform:
            raise ValueError("adapter needs a non-empty platform identifier")
        if platform in self._adapters:
            LOGGER.info("registry replacing adapter platform=%s", platform)
        self._adapters[platform] = adapter

    def get(self, name: Optional[str]) -> Optional[PlatformAdapter]:
        return self._adapters.get(self._key(name))

    def names(self) -> list[str]:
        return sorted(self._adapters)

    def all(self) -> list[PlatformAdapter]:
        return [self._adapters[name] for name in self.names()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._adapters

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._adapters)


def default_registry() -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(LinkedInAdapter())
    registry.register(IndeedAdapter())
    return registry


# Process-wide registry, populated once at import
REGISTRY = default_registry()


def register(adapter: PlatformAdapter, key: Optional[str] = None) -> None:
    REGISTRY.register(adapter, key)


def get(name: Optional[str]) -> Optional[PlatformAdapter]:
    return REGISTRY.get(name)


__all__ = [
    "AdapterRegistry",
    "ApplyCapable",
    "IndeedAdapter",
    "LinkedInAdapter",
    "PlatformAdapter",
    "REGISTRY",
    "default_registry",
    "get",
    "register",
    "supports_apply",
]
