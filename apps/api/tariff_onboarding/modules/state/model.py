from __future__ import annotations

import uuid
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from . import codec

INPUT_KEYS: FrozenSet[str] = frozenset(
    {
        "provider_id",
        "product_id",
        "customer_id",
        "callback_url",
        "postal_address",
        "geo_location",
    }
)

GENERATED_KEYS: FrozenSet[str] = frozenset({"request_id", "tariff_id"})

PRIVATE_KEYS: FrozenSet[str] = frozenset({"auth_metadata"})

# generated once, then fixed for the life of the flow
WRITE_ONCE_KEYS: FrozenSet[str] = frozenset({"request_id"})


def new_request_id() -> str:
    return str(uuid.uuid4())


class WorkflowState:
    """
    Whitelisted key/value bundle threading one onboarding flow.

    Instances are treated as values: extend() returns a new state and
    leaves the receiver untouched.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        extension_keys: Iterable[str] = (),
        request_id: Optional[str] = None,
    ) -> None:
        self.extension_keys = frozenset(extension_keys) - GENERATED_KEYS - PRIVATE_KEYS
        self._data: Dict[str, Any] = {"provider_id": ""}
        self._merge(data or {})
        if not self._data.get("request_id"):
            self._data["request_id"] = request_id or new_request_id()

    @property
    def allowed_keys(self) -> FrozenSet[str]:
        return INPUT_KEYS | self.extension_keys | GENERATED_KEYS | PRIVATE_KEYS

    def _merge(self, patch: Mapping[str, Any]) -> None:
        allowed = self.allowed_keys
        for k, v in patch.items():
            if k not in allowed:
                continue
            if k in WRITE_ONCE_KEYS and self._data.get(k):
                continue
            self._data[k] = v

    def extend(self, patch: Mapping[str, Any]) -> "WorkflowState":
        nxt = WorkflowState(self._data, extension_keys=self.extension_keys)
        nxt._merge(patch)
        return nxt

    def get_data(self) -> Dict[str, Any]:
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    @property
    def request_id(self) -> str:
        return self._data["request_id"]

    @property
    def provider_id(self) -> str:
        return self._data.get("provider_id") or ""

    @property
    def is_authorised(self) -> bool:
        return self._data.get("auth_metadata") is not None

    def to_public(self) -> "WorkflowState":
        public = {k: v for k, v in self._data.items() if k not in PRIVATE_KEYS}
        return WorkflowState(public, extension_keys=self.extension_keys)

    def token(self) -> str:
        return codec.encode(self._data)

    def public_token(self) -> str:
        return self.to_public().token()

    @classmethod
    def from_token(cls, token: str, *, extension_keys: Iterable[str] = ()) -> "WorkflowState":
        return cls(codec.decode(token), extension_keys=extension_keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WorkflowState):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        keys = ",".join(sorted(self._data))
        return f"WorkflowState(request_id={self.request_id!r}, keys=[{keys}])"
