from __future__ import annotations

import uuid

from tariff_onboarding.modules.state import GENERATED_KEYS, INPUT_KEYS, PRIVATE_KEYS, WorkflowState, decode


def test_request_id_generated_once() -> None:
    s = WorkflowState({"provider_id": "prov_1"})
    uuid.UUID(s.request_id)
    assert s.extend({"customer_id": "c1"}).request_id == s.request_id


def test_existing_request_id_is_kept() -> None:
    s = WorkflowState({"provider_id": "prov_1", "request_id": "rid-1"})
    assert s.request_id == "rid-1"


def test_request_id_cannot_be_overwritten_by_extend() -> None:
    s = WorkflowState({"provider_id": "prov_1", "request_id": "rid-1"})
    s2 = s.extend({"request_id": "attacker", "customer_id": "c1"})
    assert s2.request_id == "rid-1"
    assert s2.get("customer_id") == "c1"


def test_tariff_id_is_assignable() -> None:
    s = WorkflowState({"provider_id": "prov_1", "tariff_id": "tar_old"})
    assert s.extend({"tariff_id": "tar_new"}).get("tariff_id") == "tar_new"


def test_extend_drops_unknown_keys() -> None:
    s = WorkflowState({"provider_id": "prov_1"}).extend({"evil": "x", "customer_id": "c1"})
    data = s.get_data()
    assert data["customer_id"] == "c1"
    assert "evil" not in data
    assert set(data) <= INPUT_KEYS | GENERATED_KEYS | PRIVATE_KEYS


def test_constructor_drops_unknown_keys_from_token() -> None:
    s = WorkflowState({"provider_id": "prov_1", "__proto__": {"admin": True}})
    assert "__proto__" not in s.get_data()


def test_extension_keys_are_whitelisted_inputs() -> None:
    s = WorkflowState({"provider_id": "prov_1"}, extension_keys={"meter_type", "auth_metadata"})
    s2 = s.extend({"meter_type": "smart", "other": 1})
    assert s2.get("meter_type") == "smart"
    assert "other" not in s2.get_data()
    assert "auth_metadata" not in s2.extension_keys


def test_extend_returns_new_state() -> None:
    s = WorkflowState({"provider_id": "prov_1"})
    s2 = s.extend({"auth_metadata": {"username": "a"}})
    assert s.get("auth_metadata") is None
    assert s2.is_authorised
    assert not s.is_authorised


def test_empty_auth_metadata_counts_as_present() -> None:
    assert WorkflowState({"provider_id": "prov_1", "auth_metadata": {}}).is_authorised
    assert not WorkflowState({"provider_id": "prov_1", "auth_metadata": None}).is_authorised


def test_public_view_hides_private_keys() -> None:
    s = WorkflowState({"provider_id": "prov_1", "auth_metadata": {"password": "pw"}, "customer_id": "c1"})
    public = decode(s.public_token())
    assert "auth_metadata" not in public
    assert public["customer_id"] == "c1"
    assert public["request_id"] == s.request_id
    assert decode(s.token())["auth_metadata"] == {"password": "pw"}


def test_from_token_round_trip() -> None:
    s = WorkflowState({"provider_id": "prov_1", "geo_location": [1.5, 2.5]})
    assert WorkflowState.from_token(s.token()) == s
