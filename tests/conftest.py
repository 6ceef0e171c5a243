from __future__ import annotations

import asyncio
import base64
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from tariff_onboarding.core.config import Settings
from tariff_onboarding.main import create_app
from tariff_onboarding.modules.providers.mock_provider import MockProviderHooks
from tariff_onboarding.modules.state import encode


def make_proof(identifier: str = "pk_test_123", secret: str = "sk_secret") -> str:
    return base64.b64encode(f"{identifier}:{secret}".encode("utf-8")).decode("ascii")


def make_token(data: Dict[str, Any]) -> str:
    return encode(data)


class _Namespace:
    def __init__(self, api: "FakeResourceApi") -> None:
        self.api = api


class _Accounts(_Namespace):
    async def current(self) -> Dict[str, Any]:
        return await self.api._call("accounts.current", produce=lambda: dict(self.api.account))


class _Providers(_Namespace):
    async def retrieve(self, provider_id: str) -> Dict[str, Any]:
        return await self.api._call("providers.retrieve", provider_id, produce=lambda: self.api._get("providers", provider_id))


class _Customers(_Namespace):
    async def retrieve(self, customer_id: str) -> Dict[str, Any]:
        return await self.api._call("customers.retrieve", customer_id, produce=lambda: self.api._get("customers", customer_id))

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api._call("customers.create", body, produce=lambda: self.api._create("customers", body))


class _Products(_Namespace):
    async def retrieve(self, product_id: str) -> Dict[str, Any]:
        return await self.api._call("products.retrieve", product_id, produce=lambda: self.api._get("products", product_id))

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api._call("products.create", body, produce=lambda: self.api._create("products", body))

    async def update(self, product_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api._call("products.update", product_id, patch, produce=lambda: self.api._update("products", product_id, patch))


class _Tariffs(_Namespace):
    async def create(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api._call("tariffs.create", draft, produce=lambda: self.api._create("tariffs", draft))


class FakeResourceApi:
    """
    In-memory stand-in for ResourceApiClient.

    failures: call name -> error object (returned) or exception (raised)
    delays:   call name -> seconds to sleep before answering
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.failures: Dict[str, Any] = {}
        self.delays: Dict[str, float] = {}
        self.cancelled: List[str] = []
        self.public_keys: List[str] = []
        self.closed = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.next_ids = {"customers": "cust_x", "products": "prod_x", "tariffs": "tar_x"}
        self.account: Dict[str, Any] = {
            "id": "acc_1",
            "object": "account",
            "display_settings": {
                "default_language": "en",
                "language_assets": [
                    {"language_code": "de", "display_name": "Konto"},
                    {"language_code": "en", "display_name": "Acme Devices", "privacy_url": "https://acme.test/privacy"},
                ],
                "graphic_assets": {"accent_color": "#ff0000"},
            },
        }
        self.store: Dict[str, Dict[str, Dict[str, Any]]] = {
            "providers": {
                "prov_1": {
                    "id": "prov_1",
                    "object": "provider",
                    "display_settings": {
                        "language_assets": [{"language_code": "en", "display_name": "Mock Energy", "support_url": "https://mock.test/help"}],
                    },
                }
            },
            "customers": {"cust_1": {"id": "cust_1", "object": "customer"}},
            "products": {"prod_1": {"id": "prod_1", "object": "product"}},
            "tariffs": {},
        }
        self.accounts = _Accounts(self)
        self.providers = _Providers(self)
        self.customers = _Customers(self)
        self.products = _Products(self)
        self.tariffs = _Tariffs(self)

    def factory(self, public_key: str, request_id: Optional[str] = None) -> "FakeResourceApi":
        self.public_keys.append(public_key)
        return self

    async def aclose(self) -> None:
        self.closed += 1

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def call_args(self, name: str) -> List[Tuple[Any, ...]]:
        return [c[1:] for c in self.calls if c[0] == name]

    async def _call(self, name: str, *args: Any, produce: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        self.calls.append((name,) + args)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if name in self.delays:
                await asyncio.sleep(self.delays[name])
        except asyncio.CancelledError:
            self.cancelled.append(name)
            raise
        finally:
            self.in_flight -= 1

        failure = self.failures.get(name)
        if isinstance(failure, BaseException):
            raise failure
        if failure is not None:
            return dict(failure)
        return produce()

    def _get(self, kind: str, obj_id: str) -> Dict[str, Any]:
        obj = self.store[kind].get(obj_id)
        if obj is None:
            return {"object": "error", "type": "not_found", "message": f"No such {kind[:-1]}: {obj_id}"}
        return dict(obj)

    def _create(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        obj = {**body, "id": self.next_ids[kind]}
        self.store[kind][obj["id"]] = obj
        return dict(obj)

    def _update(self, kind: str, obj_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        obj = self.store[kind].get(obj_id)
        if obj is None:
            return {"object": "error", "type": "not_found", "message": f"No such {kind[:-1]}: {obj_id}"}
        obj.update(patch)
        return dict(obj)


@pytest.fixture
def fake_api() -> FakeResourceApi:
    return FakeResourceApi()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_url="http://resource.test/v1")


@pytest.fixture
def hooks() -> MockProviderHooks:
    return MockProviderHooks()


@pytest.fixture
def client(settings: Settings, hooks: MockProviderHooks, fake_api: FakeResourceApi) -> TestClient:
    app = create_app(settings, provider_hooks=hooks, client_factory=fake_api.factory)
    return TestClient(app)


@pytest.fixture
def proof() -> str:
    return make_proof()
