"""
Tariff connection pipeline.

Order (each step needs the id produced by the previous one):
  resolve_customer -> resolve_product -> create_tariff -> update_product

Fail-fast: the first failing step stops the run. Nothing already created
is rolled back; customers and products are created disabled, so leftovers
stay inert until a retry reuses them through the ids in the state token.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tariff_onboarding.core.api_client import (
    ApiResponseError,
    ApiTransportError,
    ResourceApiClient,
    raise_on_api_error,
)
from tariff_onboarding.core.errors import PipelineStepFailed
from tariff_onboarding.core.logging import emit
from tariff_onboarding.modules.providers import ProviderHooks, resolve
from tariff_onboarding.modules.state import WorkflowState

from .schemas import PipelineResult, TariffDraft


@dataclass(frozen=True)
class StepResult:
    step: str
    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass
class PipelineOutcome:
    request_id: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)
    result: Optional[PipelineResult] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def failed_step(self) -> Optional[StepResult]:
        for s in self.steps:
            if not s.ok:
                return s
        return None

    async def run(self, step: str, call: Callable[[], Awaitable[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        """Run one step; returns its object, or None once the pipeline has failed."""
        if self.failed_step is not None:
            return None
        try:
            value = raise_on_api_error(await call())
            if not value.get("id"):
                raise ApiResponseError("Response is missing an id", value)
        except (ApiResponseError, ApiTransportError) as e:
            emit("error", "pipeline.step.failed", str(e), self.request_id, __name__, step=step)
            self.steps.append(StepResult(step=step, ok=False, error=str(e)))
            return None

        emit("info", "pipeline.step.ok", f"{step} -> {value['id']}", self.request_id, __name__, step=step)
        self.steps.append(StepResult(step=step, ok=True, value=value))
        return value

    def unwrap(self) -> PipelineResult:
        failed = self.failed_step
        if failed is not None:
            raise PipelineStepFailed(failed.step, failed.error)
        if self.result is None:
            raise PipelineStepFailed("incomplete", "pipeline did not produce a result")
        return self.result


def is_valid_geo_location(value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    return all(isinstance(v, Real) and not isinstance(v, bool) for v in value)


def build_product_patch(
    draft: TariffDraft,
    tariff: Mapping[str, Any],
    state_data: Mapping[str, Any],
    postal_address: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    patch: Dict[str, Any] = {
        "tariff_settings": {
            "reference_id": draft.reference_id,
            "is_disabled": False,
            "integrated": True,
            "tariff_id": tariff["id"],
            "failed_attempts": 0,
            "auth_metadata": {
                "reference_id": draft.reference_id,
                "data": state_data.get("auth_metadata"),
            },
        },
    }

    contract_end_date = tariff.get("contract_end_date") or draft.contract_end_date
    if contract_end_date:
        patch["contract_end_date"] = contract_end_date

    address = postal_address or state_data.get("postal_address")
    if address:
        patch["postal_address"] = dict(address)

    geo = state_data.get("geo_location")
    if is_valid_geo_location(geo):
        patch["geo_location"] = list(geo)

    return patch


async def convert_tariff(hooks: ProviderHooks, provider_tariff: Any, request_id: Optional[str] = None) -> TariffDraft:
    try:
        converted = await resolve(hooks.convert(provider_tariff))
        if isinstance(converted, TariffDraft):
            return converted
        return TariffDraft.model_validate(converted)
    except ValidationError as e:
        emit("error", "pipeline.convert.invalid", str(e.errors()[0].get("msg")), request_id, __name__)
        raise PipelineStepFailed("convert", "converted tariff is invalid") from e
    except Exception as e:
        emit("error", "pipeline.convert.failed", f"{type(e).__name__}: {e}", request_id, __name__)
        raise PipelineStepFailed("convert", str(e)) from e


async def connect_tariff(
    client: ResourceApiClient,
    draft: TariffDraft,
    state: WorkflowState,
    *,
    provider_id: Optional[str] = None,
    postal_address: Optional[Mapping[str, Any]] = None,
) -> PipelineOutcome:
    data = state.get_data()
    outcome = PipelineOutcome(request_id=data.get("request_id"))

    customer_id = data.get("customer_id")
    customer = await outcome.run(
        "resolve_customer",
        lambda: client.customers.retrieve(customer_id) if customer_id else client.customers.create({"is_disabled": True}),
    )
    if customer is None:
        return outcome

    product_id = data.get("product_id")
    product = await outcome.run(
        "resolve_product",
        lambda: client.products.retrieve(product_id)
        if product_id
        else client.products.create(
            {
                "customer_id": customer["id"],
                "provider_id": provider_id or data.get("provider_id"),
                "timezone": draft.timezone,
                "is_disabled": True,
            }
        ),
    )
    if product is None:
        return outcome

    draft = draft.model_copy(update={"product_id": product["id"]})
    tariff = await outcome.run("create_tariff", lambda: client.tariffs.create(draft.to_payload()))
    if tariff is None:
        return outcome

    patch = build_product_patch(draft, tariff, data, postal_address)
    updated = await outcome.run("update_product", lambda: client.products.update(product["id"], patch))
    if updated is None:
        return outcome

    outcome.result = PipelineResult(customer_id=customer["id"], product_id=updated["id"], tariff_id=tariff["id"])
    return outcome
