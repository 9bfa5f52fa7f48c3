"""Reference-data and validation-rule request/response schemas."""


from typing import Any

from pydantic import Field

from vendor_mdm.schemas.common import CamelModel

class PayloadValidationRequest(CamelModel):
    payload: dict[str, Any] = Field(default_factory=dict)

class PayloadValidationResult(CamelModel):
    entity_type: str
    is_valid: bool
    rules_checked: int
