"""
Workflow guard: runs in front of every onboarding step.

Checks, in order:
  1. credential proof present            -> MissingAuthorization (403)
  2. state token present                 -> MissingState (400)
  3. token decodes and validates         -> InvalidState (400)
  4. account + provider resolve remotely -> InvalidCredentials (403)

Steps 1-3 make no external call.
"""
from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Iterable, Optional, Tuple

from tariff_onboarding.core.api_client import (
    ApiResponseError,
    ApiTransportError,
    ClientFactory,
    ResourceApiClient,
    raise_on_api_error,
)
from tariff_onboarding.core.config import Settings
from tariff_onboarding.core.errors import InvalidCredentials, InvalidState, MissingAuthorization, MissingState
from tariff_onboarding.core.logging import emit
from tariff_onboarding.modules.state import TokenError, WorkflowState


@dataclass
class WorkflowContext:
    state: WorkflowState
    account: Dict[str, Any]
    provider: Dict[str, Any]
    credential_proof: str
    public_key: str
    client: ResourceApiClient


def extract_public_key(credential_proof: str) -> str:
    """base64("identifier:secret") -> "identifier"."""
    raw = credential_proof.strip()
    if raw[:6].lower() == "basic ":
        raw = raw[6:].strip()
    raw += "=" * (-len(raw) % 4)
    try:
        decoded = base64.b64decode(raw, validate=True).decode("utf-8")
    except ValueError:
        raise InvalidCredentials() from None
    key = decoded.split(":", 1)[0].strip()
    if not key:
        raise InvalidCredentials()
    return key


def load_state(token: str, extension_keys: Iterable[str] = (), request_id: Optional[str] = None) -> WorkflowState:
    try:
        return WorkflowState.from_token(token, extension_keys=extension_keys)
    except TokenError as e:
        # the reason goes to the log only
        emit("warning", "guard.invalid_state", str(e), request_id, __name__)
        raise InvalidState() from e


async def _checked(call: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
    return raise_on_api_error(await call)


async def fetch_context(
    client: ResourceApiClient,
    provider_id: str,
    request_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Fetch account and provider concurrently; the first failure wins and cancels the other."""
    account_task = asyncio.ensure_future(_checked(client.accounts.current()))
    provider_task = asyncio.ensure_future(_checked(client.providers.retrieve(provider_id)))
    tasks = (account_task, provider_task)

    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    for t in tasks:
        if t not in done:
            continue
        exc = t.exception()
        if isinstance(exc, (ApiResponseError, ApiTransportError)):
            emit("warning", "guard.context_failed", str(exc), request_id, __name__, kind=type(exc).__name__)
            raise InvalidCredentials() from exc
        if exc is not None:
            raise exc

    return account_task.result(), provider_task.result()


async def resolve_workflow_context(
    credential_proof: Optional[str],
    token: Optional[str],
    *,
    settings: Settings,
    client_factory: ClientFactory,
    request_id: Optional[str] = None,
) -> WorkflowContext:
    if not credential_proof or not credential_proof.strip():
        raise MissingAuthorization()
    if not token or not token.strip():
        raise MissingState()

    state = load_state(token, settings.state_extension_keys, request_id)
    public_key = extract_public_key(credential_proof)

    target_provider_id = settings.provider_id or state.provider_id
    if not target_provider_id:
        raise InvalidState("Missing provider_id in shared state")

    client = client_factory(public_key, request_id=request_id)
    try:
        account, provider = await fetch_context(client, target_provider_id, request_id)
    except BaseException:
        await client.aclose()
        raise

    emit("info", "guard.passed", f"flow {state.request_id}", request_id, __name__, provider_id=target_provider_id)
    return WorkflowContext(
        state=state,
        account=account,
        provider=provider,
        credential_proof=credential_proof,
        public_key=public_key,
        client=client,
    )
