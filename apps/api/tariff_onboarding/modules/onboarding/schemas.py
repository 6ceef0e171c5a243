from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class OnboardPage(BaseModel):
    view: str
    title: str
    params: Dict[str, str] = Field(default_factory=dict)


DEFAULT_PAGES: Dict[str, OnboardPage] = {
    "auth": OnboardPage(view="auth", title="Sign in to your provider"),
    "share": OnboardPage(view="share", title="Share your tariff"),
    "success": OnboardPage(view="success", title="Tariff connected"),
}


class ProviderSummary(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None
    logo_url: Optional[str] = None
    accent_color: str = "#333333"
    privacy_url: Optional[str] = None
    support_url: Optional[str] = None
    terms_url: Optional[str] = None


class AccountSummary(BaseModel):
    display_name: Optional[str] = None
    logo_url: Optional[str] = None
    accent_color: str = "#333333"
    privacy_url: Optional[str] = None
    terms_url: Optional[str] = None


class RenderData(BaseModel):
    # page params and pipeline results are merged in as extra keys
    model_config = ConfigDict(extra="allow")

    callback_url: Optional[str] = None
    provider: ProviderSummary
    account: AccountSummary
    error: Optional[str] = None


class RenderOut(BaseModel):
    type: Literal["render"] = "render"
    route: str
    view: str
    title: str
    live_mode: bool = False
    connect_token: str
    public_token: str
    auth: str
    data: RenderData


class RedirectOut(BaseModel):
    type: Literal["redirect"] = "redirect"
    route: str
    auth: str
    connect_token: str
