"""
Wire schemas for the subscription backend.

Every backend response uses the same `{success, data, message}` envelope.
Request bodies use camelCase keys.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiEnvelope(BaseModel):
    """Standard response envelope"""
    model_config = ConfigDict(extra="allow")

    success: bool = False
    data: Any = None
    message: Optional[str] = None

    def data_dict(self) -> dict:
        return self.data if isinstance(self.data, dict) else {}


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PreferencesUpdate(CamelModel):
    currency: str = Field(..., description="Currency code: INR or USD")


class UpgradePreviewRequest(CamelModel):
    currency: str


class CreateRecurringRequest(CamelModel):
    plan_id: str = Field(..., alias="planId")
    currency: str


class ScheduleDowngradeRequest(CamelModel):
    plan_id: str = Field(..., alias="planId")


class AutoRenewalRequest(CamelModel):
    auto_renewal: bool = Field(..., alias="autoRenewal")
