from __future__ import annotations

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)$")

Direction = Literal["IMPORT", "EXPORT"]
ConnectionType = Literal["DIRECT", "MARKET", "LIBRARY"]


class Rate(BaseModel):
    to_kwh: Optional[float] = None
    value: float


class HourBand(BaseModel):
    rate: List[Rate]
    valid_from: str
    valid_to: str

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _hh_mm_ss(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("Invalid time format. Must be in the format hh:mm:ss")
        return v


class DaysAndHours(BaseModel):
    days: List[str]
    hours: List[HourBand]


class TariffPeriod(BaseModel):
    months: List[str]
    days_and_hours: List[DaysAndHours]


class TariffDraft(BaseModel):
    """Normalized tariff produced by ProviderHooks.convert()."""

    model_config = ConfigDict(extra="allow")

    display_name: str
    contract_end_date: Optional[str] = None
    timezone: Optional[str] = None
    integration_instance: str
    provider_tariff_reference: Optional[str] = None
    provider_tariff_expiry_date: Optional[str] = None
    direction: Direction
    connection_type: ConnectionType
    data: List[TariffPeriod] = Field(default_factory=list)

    reference_id: Optional[str] = None
    product_id: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class PipelineResult(BaseModel):
    customer_id: str
    product_id: str
    tariff_id: str
