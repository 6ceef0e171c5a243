from .base import CredentialsResponse, ProviderHooks, TariffResponse, call_authorise, call_capture, resolve
from .registry import get_provider_hooks, register_provider_hooks

__all__ = [
    "CredentialsResponse",
    "ProviderHooks",
    "TariffResponse",
    "call_authorise",
    "call_capture",
    "get_provider_hooks",
    "register_provider_hooks",
    "resolve",
]
