from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Union


@dataclass(frozen=True)
class CredentialsResponse:
    """
    Result of ProviderHooks.authorise.

    NOTE:
    - success=False or a non-empty error both mean "rejected".
    - data is the provider's reference material; it is passed to capture().
    """
    success: bool
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def rejected(self) -> bool:
        return bool(self.error) or not self.success

    @classmethod
    def coerce(cls, obj: Any) -> "CredentialsResponse":
        if isinstance(obj, cls):
            return obj
        if not isinstance(obj, Mapping):
            raise TypeError(f"authorise returned {type(obj).__name__}, expected CredentialsResponse")
        return cls(
            success=bool(obj.get("success")),
            error=obj.get("error") or None,
            data=dict(obj.get("data") or {}),
        )


@dataclass(frozen=True)
class TariffResponse:
    """Result of ProviderHooks.capture. tariff is provider-shaped; convert() normalizes it."""
    tariff: Any = None
    postal_address: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def coerce(cls, obj: Any) -> "TariffResponse":
        if isinstance(obj, cls):
            return obj
        if not isinstance(obj, Mapping):
            raise TypeError(f"capture returned {type(obj).__name__}, expected TariffResponse")
        return cls(
            tariff=obj.get("tariff"),
            postal_address=obj.get("postal_address") or None,
            error=obj.get("error") or None,
        )


class ProviderHooks(Protocol):
    """
    Provider-specific capabilities supplied by the integrator.
    The core only calls these three operations and never inspects the provider.
    """
    name: str

    async def authorise(self, credentials: Dict[str, Any]) -> Union[CredentialsResponse, Mapping[str, Any]]:
        ...

    async def capture(self, reference: Dict[str, Any]) -> Union[TariffResponse, Mapping[str, Any]]:
        ...

    def convert(self, tariff: Any) -> Mapping[str, Any]:
        ...


async def resolve(value: Any) -> Any:
    # hooks may be plain functions or coroutines
    if inspect.isawaitable(value):
        return await value
    return value


async def call_authorise(hooks: ProviderHooks, credentials: Dict[str, Any]) -> CredentialsResponse:
    return CredentialsResponse.coerce(await resolve(hooks.authorise(credentials)))


async def call_capture(hooks: ProviderHooks, reference: Dict[str, Any]) -> TariffResponse:
    return TariffResponse.coerce(await resolve(hooks.capture(reference)))
