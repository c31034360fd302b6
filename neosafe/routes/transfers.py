"""Box transfer routes - provider-approved ownership transfer."""
from typing import List

from fastapi import APIRouter, Depends, status

from neosafe.auth import get_current_user
from neosafe.dependencies import get_ownership_service
from neosafe.models.user import User
from neosafe.schemas.transfer import TransferDecision, TransferRequestCreate, TransferRequestResponse
from neosafe.services.ownership import OwnershipService

router = APIRouter(prefix="/box-transfers", tags=["Box Transfers"])


@router.post("/request", response_model=TransferRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_box(
    body: TransferRequestCreate,
    service: OwnershipService = Depends(get_ownership_service),
    current_user: User = Depends(get_current_user)
):
    """Ask the provider for the box holding the given property code."""
    return service.request_transfer(body.property_code, current_user)


@router.get("", response_model=List[TransferRequestResponse])
async def list_transfer_requests(
    service: OwnershipService = Depends(get_ownership_service),
    current_user: User = Depends(get_current_user)
):
    """List transfer requests: all for admins, per box for providers, own for users."""
    return service.list_requests(current_user)


@router.post("/{request_id}/respond", response_model=TransferRequestResponse)
async def respond_to_request(
    request_id: int,
    decision: TransferDecision,
    service: OwnershipService = Depends(get_ownership_service),
    current_user: User = Depends(get_current_user)
):
    """Approve or reject a pending request (box provider or admin)."""
    return service.respond(request_id, current_user, decision.action, decision.notes)
