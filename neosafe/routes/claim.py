"""Claim route - redeem a claim code."""
from fastapi import APIRouter, Depends

from neosafe.auth import get_current_user
from neosafe.dependencies import get_ownership_service
from neosafe.models.user import User
from neosafe.schemas.safe_box import ClaimRequest, ClaimResponse
from neosafe.services.ownership import OwnershipService

router = APIRouter(prefix="/claim", tags=["Claim"])


@router.post("", response_model=ClaimResponse)
async def claim_box(
    body: ClaimRequest,
    service: OwnershipService = Depends(get_ownership_service),
    current_user: User = Depends(get_current_user)
):
    """Claim an unclaimed box with the code shipped with the device."""
    box = service.claim(body.claim_code, current_user)
    return ClaimResponse(
        message="Box claimed successfully",
        id=box.id,
        name=box.name,
        is_claimed=box.is_claimed,
        owner_id=box.owner_id,
    )
