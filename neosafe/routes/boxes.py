"""Safe box routes."""
from typing import List

from fastapi import APIRouter, Depends, status

from neosafe.auth import get_current_user, require_provider
from neosafe.dependencies import get_ownership_service, get_registry
from neosafe.models.box_command import CommandType
from neosafe.models.safe_box import SafeBox
from neosafe.models.user import User
from neosafe.schemas.safe_box import (
    BoxCommandResponse,
    PropertyCodeResponse,
    SafeBoxCreate,
    SafeBoxResponse,
    SafeBoxUpdate,
)
from neosafe.services.access_policy import Operation, ensure_permitted, is_permitted
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.ownership import OwnershipService

router = APIRouter(prefix="/boxes", tags=["Boxes"])


def box_response(box: SafeBox, user: User) -> SafeBoxResponse:
    """Serialize a box for the caller.

    The claim code goes only to the principal that registered the box, and
    only while it is unclaimed. The property code goes to anyone who may
    manage the box, admins included.
    """
    response = SafeBoxResponse.model_validate(box)
    if box.is_claimed or box.provider_id != user.id:
        response.claim_code = None
    if not is_permitted(user, box, Operation.MODIFY):
        response.property_code = None
    return response


@router.get("", response_model=List[SafeBoxResponse])
async def list_boxes(
    skip: int = 0,
    limit: int = 100,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """List the boxes visible to the caller's role."""
    boxes = registry.list_visible(current_user, skip=skip, limit=limit)
    return [box_response(box, current_user) for box in boxes]


@router.post("", response_model=SafeBoxResponse, status_code=status.HTTP_201_CREATED)
async def create_box(
    box_data: SafeBoxCreate,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(require_provider)
):
    """Register a new box (provider or admin). The claim code is returned once here."""
    box = registry.create(current_user.id, box_data)
    return box_response(box, current_user)


@router.get("/{box_id}", response_model=SafeBoxResponse)
async def get_box(
    box_id: int,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """Get a box the caller may view."""
    box = registry.find_by_id(box_id)
    ensure_permitted(current_user, box, Operation.VIEW)
    return box_response(box, current_user)


@router.put("/{box_id}", response_model=SafeBoxResponse)
async def update_box(
    box_id: int,
    box_update: SafeBoxUpdate,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """Update metadata of an unclaimed box."""
    box = registry.find_by_id(box_id)
    ensure_permitted(current_user, box, Operation.MODIFY)
    box = registry.update(box_id, box_update.model_dump(exclude_unset=True))
    return box_response(box, current_user)


@router.delete("/{box_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_box(
    box_id: int,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """Delete an unclaimed box."""
    box = registry.find_by_id(box_id)
    ensure_permitted(current_user, box, Operation.MODIFY)
    registry.delete(box_id)
    return None


@router.post("/{box_id}/generate-code", response_model=PropertyCodeResponse)
async def generate_property_code(
    box_id: int,
    service: OwnershipService = Depends(get_ownership_service),
    current_user: User = Depends(require_provider)
):
    """Issue a property code for the provider-approved transfer flow."""
    box = service.issue_property_code(box_id, current_user)
    return PropertyCodeResponse(box_id=box.id, property_code=box.property_code)


@router.post("/{box_id}/unlock", response_model=BoxCommandResponse, status_code=status.HTTP_202_ACCEPTED)
async def unlock_box(
    box_id: int,
    registry: BoxRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user)
):
    """Send a remote unlock signal to a box the caller owns."""
    box = registry.find_by_id(box_id)
    ensure_permitted(current_user, box, Operation.OPERATE)
    return registry.queue_command(box.id, CommandType.UNLOCK, current_user.id)
