"""
Onboarding steps.

  start -> auth -> auth/capture -> share -> share/capture
  (any step) -> cancel

The only memory between hops is the state token; every step runs behind
the guard and hands back a freshly encoded token.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from tariff_onboarding.core.config import Settings
from tariff_onboarding.core.errors import AuthorisationFailed, PipelineStepFailed, UnsupportedRoute
from tariff_onboarding.core.logging import emit
from tariff_onboarding.modules.connector import PipelineResult, connect_tariff, convert_tariff
from tariff_onboarding.modules.guard import WorkflowContext
from tariff_onboarding.modules.providers import ProviderHooks, call_authorise, call_capture
from tariff_onboarding.modules.state import WorkflowState

from .schemas import AccountSummary, OnboardPage, ProviderSummary, RedirectOut, RenderData, RenderOut

ROUTES = ("auth", "share")

# request params that are never treated as provider credentials
_RESERVED_PARAMS = ("auth", "state")


def language_asset(display_settings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    assets = (display_settings or {}).get("language_assets") or []
    if not isinstance(assets, list) or not assets:
        return {}
    default = (display_settings or {}).get("default_language")
    for a in assets:
        if isinstance(a, dict) and a.get("language_code") == default:
            return a
    return assets[0] if isinstance(assets[0], dict) else {}


def _accent_color(resource: Mapping[str, Any]) -> str:
    graphic = ((resource.get("display_settings") or {}).get("graphic_assets")) or {}
    return graphic.get("accent_color") or "#333333"


def provider_summary(provider: Mapping[str, Any]) -> ProviderSummary:
    lang = language_asset(provider.get("display_settings"))
    return ProviderSummary(
        id=provider.get("id"),
        display_name=lang.get("display_name"),
        logo_url=lang.get("logo_url"),
        accent_color=_accent_color(provider),
        privacy_url=lang.get("privacy_url"),
        support_url=lang.get("support_url"),
        terms_url=lang.get("terms_url") or lang.get("support_url"),
    )


def account_summary(account: Mapping[str, Any]) -> AccountSummary:
    lang = language_asset(account.get("display_settings"))
    return AccountSummary(
        display_name=lang.get("display_name"),
        logo_url=lang.get("logo_url"),
        accent_color=_accent_color(account),
        privacy_url=lang.get("privacy_url"),
        terms_url=lang.get("terms_url"),
    )


def render_page(
    ctx: WorkflowContext,
    page_key: str,
    pages: Mapping[str, OnboardPage],
    *,
    state: Optional[WorkflowState] = None,
    live_mode: bool = False,
    error: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> RenderOut:
    page = pages.get(page_key)
    if page is None:
        raise UnsupportedRoute(details={"page": page_key})

    st = state or ctx.state
    data: Dict[str, Any] = dict(page.params)
    data.update(extra or {})
    data.update(
        callback_url=st.get("callback_url"),
        provider=provider_summary(ctx.provider),
        account=account_summary(ctx.account),
        error=error,
    )
    return RenderOut(
        route=page_key,
        view=page.view,
        title=page.title,
        live_mode=live_mode,
        connect_token=st.token(),
        public_token=st.public_token(),
        auth=ctx.credential_proof,
        data=RenderData.model_validate(data),
    )


def redirect_to(ctx: WorkflowContext, route: str, state: Optional[WorkflowState] = None) -> RedirectOut:
    if route not in ROUTES:
        raise UnsupportedRoute(details={"route": route})
    return RedirectOut(route=route, auth=ctx.credential_proof, connect_token=(state or ctx.state).token())


def submitted_credentials(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if k not in _RESERVED_PARAMS}


async def capture_auth(ctx: WorkflowContext, hooks: ProviderHooks, credentials: Dict[str, Any], request_id: Optional[str] = None) -> WorkflowState:
    """Run authorise(); on success the submitted credentials become the flow's auth_metadata."""
    try:
        res = await call_authorise(hooks, credentials)
    except Exception as e:
        emit("error", "onboarding.authorise.exception", f"{type(e).__name__}: {e}", request_id, __name__)
        raise AuthorisationFailed() from e

    if res.rejected:
        emit("info", "onboarding.authorise.rejected", res.error or "rejected", request_id, __name__)
        raise AuthorisationFailed(res.error or None)

    return ctx.state.extend({"auth_metadata": credentials})


async def capture_share(
    ctx: WorkflowContext,
    hooks: ProviderHooks,
    settings: Settings,
    request_id: Optional[str] = None,
) -> Tuple[WorkflowState, PipelineResult]:
    """
    authorise(auth_metadata) -> capture(reference) -> convert(tariff) -> pipeline.

    The returned state is the guard's state extended with the pipeline
    result; nothing is merged unless every step succeeded.
    """
    credentials = dict(ctx.state.get("auth_metadata") or {})
    try:
        auth = await call_authorise(hooks, credentials)
    except Exception as e:
        emit("error", "onboarding.authorise.exception", f"{type(e).__name__}: {e}", request_id, __name__)
        raise AuthorisationFailed() from e
    if auth.rejected:
        raise AuthorisationFailed(auth.error or None)

    try:
        captured = await call_capture(hooks, dict(auth.data))
    except Exception as e:
        emit("error", "onboarding.capture.exception", f"{type(e).__name__}: {e}", request_id, __name__)
        raise PipelineStepFailed("capture", str(e)) from e
    if captured.error:
        raise PipelineStepFailed("capture", captured.error)

    draft = await convert_tariff(hooks, captured.tariff, request_id)
    outcome = await connect_tariff(
        ctx.client,
        draft,
        ctx.state,
        provider_id=settings.provider_id,
        postal_address=captured.postal_address,
    )
    result = outcome.unwrap()
    emit("info", "onboarding.share.connected", f"tariff {result.tariff_id}", request_id, __name__, product_id=result.product_id)
    return ctx.state.extend(result.model_dump()), result
