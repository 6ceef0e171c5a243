from __future__ import annotations

from typing import Any, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tariff_onboarding.core.errors import AuthorisationFailed, UserCancelled
from tariff_onboarding.modules.guard import WorkflowContext, request_params, workflow_context

from .schemas import RedirectOut, RenderOut
from .service import capture_auth, capture_share, redirect_to, render_page, submitted_credentials

router = APIRouter(tags=["onboarding"])


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "") or "")


def _render(request: Request, ctx: WorkflowContext, page_key: str, **kw: Any) -> RenderOut:
    return render_page(
        ctx,
        page_key,
        request.app.state.pages,
        live_mode=request.app.state.settings.live_mode,
        **kw,
    )


@router.api_route("/start", methods=["GET", "POST"], response_model=RedirectOut)
async def start(ctx: WorkflowContext = Depends(workflow_context)) -> RedirectOut:
    # the guard already minted request_id; hand the token on to auth
    return redirect_to(ctx, "auth")


@router.api_route("/auth", methods=["GET", "POST"], response_model=RenderOut)
async def auth(request: Request, ctx: WorkflowContext = Depends(workflow_context)) -> RenderOut:
    return _render(request, ctx, "auth")


@router.post("/auth/capture", response_model=RedirectOut)
async def auth_capture(request: Request, ctx: WorkflowContext = Depends(workflow_context)) -> Any:
    credentials = submitted_credentials(await request_params(request))
    try:
        state = await capture_auth(ctx, request.app.state.provider_hooks, credentials, _request_id(request))
    except AuthorisationFailed as e:
        # same page again, same token, inline error
        page = _render(request, ctx, "auth", error=e.message)
        return JSONResponse(status_code=e.status_code, content=page.model_dump())
    return redirect_to(ctx, "share", state)


@router.api_route("/share", methods=["GET", "POST"], response_model=Union[RenderOut, RedirectOut])
async def share(request: Request, ctx: WorkflowContext = Depends(workflow_context)) -> Union[RenderOut, RedirectOut]:
    if not ctx.state.is_authorised:
        return redirect_to(ctx, "auth")
    return _render(request, ctx, "share")


@router.post("/share/capture", response_model=Union[RenderOut, RedirectOut])
async def share_capture(request: Request, ctx: WorkflowContext = Depends(workflow_context)) -> Union[RenderOut, RedirectOut]:
    if not ctx.state.is_authorised:
        return redirect_to(ctx, "auth")

    state, result = await capture_share(
        ctx,
        request.app.state.provider_hooks,
        request.app.state.settings,
        _request_id(request),
    )
    return _render(request, ctx, "success", state=state, extra=result.model_dump())


@router.post("/cancel")
async def cancel(ctx: WorkflowContext = Depends(workflow_context)) -> Any:
    raise UserCancelled()
