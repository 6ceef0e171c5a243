from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictStr


class PostalAddress(BaseModel):
    model_config = ConfigDict(extra="allow")

    address_line1: Optional[StrictStr] = None
    address_line2: Optional[StrictStr] = None
    city: Optional[StrictStr] = None
    state: Optional[StrictStr] = None
    post_code: Optional[StrictStr] = None
    country_code: Optional[StrictStr] = None


class WorkflowStateSchema(BaseModel):
    """
    Shape of a decoded state token.

    Unknown top-level keys are accepted here; the merge whitelist in
    WorkflowState decides what survives.
    """

    model_config = ConfigDict(extra="allow")

    provider_id: StrictStr
    product_id: Optional[StrictStr] = None
    customer_id: Optional[StrictStr] = None
    postal_address: Optional[PostalAddress] = None
    # (lat, lon)
    geo_location: Optional[Tuple[StrictFloat, StrictFloat]] = None
    callback_url: Optional[StrictStr] = None
    tariff_id: Optional[StrictStr] = None
    request_id: Optional[StrictStr] = None
    auth_metadata: Optional[Dict[str, Any]] = None
