"""Box transfer schemas."""
from datetime import datetime
from typing import Literal, Optional

from neosafe.schemas.base import CamelModel


class TransferRequestCreate(CamelModel):
    """A user asks for a box by its property code."""
    property_code: str


class TransferDecision(CamelModel):
    """Provider's answer to a pending request."""
    action: Literal["approve", "reject"]
    notes: Optional[str] = None


class TransferRequestResponse(CamelModel):
    """Schema for transfer request response."""
    id: int
    box_id: int
    requestor_id: int
    provider_id: int
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
