from __future__ import annotations

from typing import Any, AsyncIterator, Dict

from fastapi import Request

from .service import WorkflowContext, resolve_workflow_context

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def request_params(request: Request) -> Dict[str, Any]:
    """Query params overlaid with the form or JSON body; cached per request."""
    cached = getattr(request.state, "params", None)
    if cached is not None:
        return cached

    params: Dict[str, Any] = dict(request.query_params)
    if request.method in ("POST", "PUT", "PATCH"):
        ctype = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
        if ctype == "application/json":
            try:
                body = await request.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                params.update(body)
        elif ctype in _FORM_TYPES:
            form = await request.form()
            params.update({k: v for k, v in form.items() if isinstance(v, str)})

    request.state.params = params
    return params


def credential_proof_from(request: Request, params: Dict[str, Any]) -> str | None:
    header = request.headers.get("Authorization")
    if header and header.strip():
        return header
    v = params.get("auth")
    return v if isinstance(v, str) else None


async def workflow_context(request: Request) -> AsyncIterator[WorkflowContext]:
    params = await request_params(request)
    token = params.get("state")
    ctx = await resolve_workflow_context(
        credential_proof_from(request, params),
        token if isinstance(token, str) else None,
        settings=request.app.state.settings,
        client_factory=request.app.state.client_factory,
        request_id=getattr(request.state, "request_id", None),
    )
    request.state.callback_url = ctx.state.get("callback_url")
    try:
        yield ctx
    finally:
        await ctx.client.aclose()
