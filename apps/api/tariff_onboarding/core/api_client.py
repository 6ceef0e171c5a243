"""
Async client for the resource API (accounts, providers, customers, products, tariffs).

Contract:
- every call returns the decoded JSON object
- error responses come back as {"object": "error", "message": ...}, never raised
- transport failures (connect errors, timeouts) raise ApiTransportError
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from tariff_onboarding.core.logging import emit


class ApiTransportError(Exception):
    """The resource API could not be reached or did not answer in time."""


class ApiResponseError(Exception):
    """The resource API answered with an error object."""

    def __init__(self, message: str, body: Optional[Mapping[str, Any]] = None) -> None:
        self.body = dict(body or {})
        super().__init__(message)


def is_api_error(result: Any) -> bool:
    return isinstance(result, Mapping) and result.get("object") == "error"


def _path_id(value: str) -> str:
    # exactly one path segment, dots included
    return quote(str(value), safe="").replace(".", "%2E")


def raise_on_api_error(result: Dict[str, Any]) -> Dict[str, Any]:
    if is_api_error(result):
        raise ApiResponseError(str(result.get("message") or "Unknown API error"), result)
    return result


class _Resource:
    def __init__(self, client: "ResourceApiClient") -> None:
        self._client = client


class Accounts(_Resource):
    async def current(self) -> Dict[str, Any]:
        return await self._client.request("GET", "/accounts/current")


class Providers(_Resource):
    async def retrieve(self, provider_id: str) -> Dict[str, Any]:
        return await self._client.request("GET", f"/providers/{_path_id(provider_id)}")


class Customers(_Resource):
    async def retrieve(self, customer_id: str) -> Dict[str, Any]:
        return await self._client.request("GET", f"/customers/{_path_id(customer_id)}")

    async def create(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._client.request("POST", "/customers", json=dict(body))


class Products(_Resource):
    async def retrieve(self, product_id: str) -> Dict[str, Any]:
        return await self._client.request("GET", f"/products/{_path_id(product_id)}")

    async def create(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._client.request("POST", "/products", json=dict(body))

    async def update(self, product_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._client.request("POST", f"/products/{_path_id(product_id)}", json=dict(patch))


class Tariffs(_Resource):
    async def create(self, draft: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._client.request("POST", "/tariffs", json=dict(draft))


class ResourceApiClient:
    """
    One client per inbound request, addressed by the caller's public key.
    Use as an async context manager so the connection pool is released.
    """

    def __init__(
        self,
        base_url: str,
        public_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_id: Optional[str] = None,
    ) -> None:
        self.request_id = request_id
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=(public_key, ""),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.accounts = Accounts(self)
        self.providers = Providers(self)
        self.customers = Customers(self)
        self.products = Products(self)
        self.tariffs = Tariffs(self)

    async def __aenter__(self) -> "ResourceApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = await self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            emit("error", "api.call.transport_error", f"{method} {path}: {type(e).__name__}", self.request_id, __name__)
            raise ApiTransportError(f"{method} {path} failed: {type(e).__name__}") from e

        emit("info", "api.call", f"{method} {path} -> {resp.status_code}", self.request_id, __name__)
        return _decode_response(resp)


def _decode_response(resp: httpx.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.is_success and isinstance(body, dict):
        return body

    if isinstance(body, dict) and body.get("object") == "error":
        return body

    message = ""
    if isinstance(body, dict):
        message = str(body.get("message") or "")
    if not message:
        message = f"HTTP {resp.status_code}" if not resp.is_success else "Unexpected response body"
    return {"object": "error", "type": "api_error", "message": message, "status_code": resp.status_code}


ClientFactory = Callable[..., ResourceApiClient]


def default_client_factory(base_url: str, timeout: float) -> ClientFactory:
    def _factory(public_key: str, request_id: Optional[str] = None) -> ResourceApiClient:
        return ResourceApiClient(base_url, public_key, timeout=timeout, request_id=request_id)

    return _factory
