"""
POST /api/tariff_plan

Called by the resource API backend with stored auth metadata to refresh a
tariff. Not behind the workflow guard: there is no onboarding flow here.

Status mapping:
- 422 api_error    : auth_metadata missing or malformed (caller input)
- 400 api_error    : a hook rejected the request or convert output is invalid
- 500 server_error : anything else
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, ValidationError

from tariff_onboarding.core.errors import ApiError, ServerError, api_error_body
from tariff_onboarding.core.logging import emit
from tariff_onboarding.modules.connector import TariffDraft
from tariff_onboarding.modules.providers import ProviderHooks, call_authorise, call_capture, resolve

router = APIRouter(tags=["tariff_plan"])


class AuthMetadataIn(BaseModel):
    data: Dict[str, Any]
    reference_id: Optional[str] = None


def _parse_auth_metadata(body: Any) -> AuthMetadataIn:
    raw = body.get("auth_metadata") if isinstance(body, dict) else None
    if not isinstance(raw, dict) or not raw.get("data"):
        raise ApiError("Invalid credentials", status_code=422)
    try:
        return AuthMetadataIn.model_validate(raw)
    except ValidationError:
        raise ApiError("Invalid credentials", status_code=422) from None


async def fetch_tariff_plan(hooks: ProviderHooks, meta: AuthMetadataIn) -> TariffDraft:
    auth = await call_authorise(hooks, dict(meta.data))
    if auth.rejected:
        raise ApiError(auth.error or "Authorisation failed")

    reference = dict(auth.data)
    if meta.reference_id:
        reference["reference_id"] = meta.reference_id

    captured = await call_capture(hooks, reference)
    if captured.error:
        raise ApiError(captured.error)

    converted = await resolve(hooks.convert(captured.tariff))
    try:
        return converted if isinstance(converted, TariffDraft) else TariffDraft.model_validate(converted)
    except ValidationError as e:
        raise ApiError(f"Invalid tariff: {e.errors()[0].get('msg')}") from e


@router.post("/api/tariff_plan")
async def tariff_plan(request: Request) -> Any:
    rid = getattr(request.state, "request_id", None)
    try:
        body = await request.json()
    except ValueError:
        body = None

    try:
        meta = _parse_auth_metadata(body)
        draft = await fetch_tariff_plan(request.app.state.provider_hooks, meta)
    except ApiError as e:
        emit("warning", "tariff_plan.rejected", e.message, rid, __name__, status_code=e.status_code)
        return api_error_body(e)
    except Exception as e:
        emit("error", "tariff_plan.exception", f"{type(e).__name__}: {e}", rid, __name__)
        return api_error_body(ServerError(str(e) or type(e).__name__))

    return draft.model_dump(exclude_none=True)
