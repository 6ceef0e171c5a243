"""
Runtime settings for the onboarding service.

Defaults:
- API_URL: http://localhost:8080/v1
- PROVIDER_HOOKS: mock
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field


DEFAULT_API_URL = "http://localhost:8080/v1"


class Settings(BaseModel):
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    api_url: str = DEFAULT_API_URL
    # explicit provider id wins over the one carried in the state token
    provider_id: Optional[str] = None
    api_timeout_seconds: float = Field(10.0, gt=0)
    provider_hooks: str = "mock"
    state_extension_keys: FrozenSet[str] = frozenset()
    live_mode: bool = False


def _parse_bool(v: Optional[str], default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() not in ("0", "false", "no", "off", "")


def _parse_keys(v: Optional[str]) -> FrozenSet[str]:
    if not v:
        return frozenset()
    return frozenset(k.strip() for k in v.split(",") if k.strip())


def load_settings() -> Settings:
    return Settings(
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        api_url=os.getenv("API_URL", DEFAULT_API_URL),
        provider_id=os.getenv("PROVIDER_ID") or None,
        api_timeout_seconds=float(os.getenv("API_TIMEOUT_SECONDS", "10")),
        provider_hooks=os.getenv("PROVIDER_HOOKS", "mock"),
        state_extension_keys=_parse_keys(os.getenv("STATE_EXTENSION_KEYS")),
        live_mode=_parse_bool(os.getenv("LIVE_MODE")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
