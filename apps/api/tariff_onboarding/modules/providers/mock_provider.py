from __future__ import annotations

from typing import Any, Dict

from .base import CredentialsResponse, TariffResponse


class MockProviderHooks:
    """
    Deterministic provider for local runs and tests:
    - authorise accepts any username/password except password "invalid"
    - capture returns one flat-rate import tariff for the reference
    """
    name = "mock"

    def __init__(self, rate: float = 0.25, timezone: str = "Europe/London") -> None:
        self.rate = rate
        self.timezone = timezone

    async def authorise(self, credentials: Dict[str, Any]) -> CredentialsResponse:
        username = str(credentials.get("username") or "").strip()
        password = str(credentials.get("password") or "")
        if not username or not password:
            return CredentialsResponse(success=False, error="Username and password are required")
        if password == "invalid":
            return CredentialsResponse(success=False, error="Invalid username or password")
        return CredentialsResponse(success=True, data={"reference_id": f"mock-{username}"})

    async def capture(self, reference: Dict[str, Any]) -> TariffResponse:
        ref = reference.get("reference_id")
        if not ref:
            return TariffResponse(error="Missing reference_id")
        tariff = {
            "reference": ref,
            "name": "Mock Flat Rate",
            "tz": self.timezone,
            "unit_rate": self.rate,
            "ends": None,
        }
        return TariffResponse(tariff=tariff)

    def convert(self, tariff: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "display_name": tariff["name"],
            "timezone": tariff["tz"],
            "integration_instance": self.name,
            "provider_tariff_reference": tariff["reference"],
            "reference_id": tariff["reference"],
            "direction": "IMPORT",
            "connection_type": "DIRECT",
            "data": [
                {
                    "months": ["All"],
                    "days_and_hours": [
                        {
                            "days": ["All"],
                            "hours": [
                                {
                                    "valid_from": "00:00:00",
                                    "valid_to": "00:00:00",
                                    "rate": [{"value": tariff["unit_rate"]}],
                                }
                            ],
                        }
                    ],
                }
            ],
        }
        if tariff.get("ends"):
            out["contract_end_date"] = tariff["ends"]
        return out
