from __future__ import annotations

from typing import Callable, Dict, Optional

from .base import ProviderHooks
from .mock_provider import MockProviderHooks

_REGISTRY: Dict[str, Callable[[], ProviderHooks]] = {
    "mock": MockProviderHooks,
}


def register_provider_hooks(name: str, factory: Callable[[], ProviderHooks]) -> None:
    """Integrators register their hooks here before create_app() runs."""
    _REGISTRY[name.strip().lower()] = factory


def get_provider_hooks(name: Optional[str] = None) -> ProviderHooks:
    key = (name or "mock").strip().lower()
    factory = _REGISTRY.get(key)
    if factory is None:
        raise KeyError(f"Unknown provider hooks: {name!r} (known: {', '.join(sorted(_REGISTRY))})")
    return factory()
