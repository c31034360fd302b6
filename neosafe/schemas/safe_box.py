"""Safe box schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from neosafe.models.box_sensor import SensorType
from neosafe.schemas.base import CamelModel


class SafeBoxCreate(CamelModel):
    """Schema for registering a box."""
    name: str = Field(..., min_length=1, max_length=255)
    model: Optional[str] = Field(None, max_length=100)
    code_nfc: Optional[str] = Field(None, max_length=100)
    sensor_types: Optional[List[SensorType]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class SafeBoxUpdate(CamelModel):
    """Schema for updating box metadata. Ownership fields are not editable.

    Omitted fields are left alone; ``name`` and ``model`` cannot be cleared.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    code_nfc: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "model")
    @classmethod
    def not_null(cls, value: Optional[str], info) -> str:
        if value is None or not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value.strip()


class BoxSensorResponse(CamelModel):
    id: int
    type: SensorType
    serial_number: Optional[str] = None
    is_active: bool


class SafeBoxResponse(CamelModel):
    """Schema for box response.

    ``claim_code`` and ``property_code`` are only filled in for principals
    that manage the (still unclaimed) box.
    """
    id: int
    name: str
    model: str
    code_nfc: Optional[str] = None
    claim_code: Optional[str] = None
    property_code: Optional[str] = None
    is_claimed: bool
    owner_id: Optional[int] = None
    provider_id: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sensors: List[BoxSensorResponse] = []


class ClaimRequest(CamelModel):
    """Body of a claim request."""
    claim_code: str


class ClaimResponse(CamelModel):
    """Summary of a freshly claimed box."""
    message: str
    id: int
    name: str
    is_claimed: bool
    owner_id: int


class PropertyCodeResponse(CamelModel):
    box_id: int
    property_code: str


class BoxCommandResponse(CamelModel):
    """A command queued for a box."""
    id: int
    box_id: int
    command: str
    issued_by: int
    issued_at: Optional[datetime] = None
